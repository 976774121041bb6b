"""Whole-novel JSON export for manual backups."""

import json
import logging
from pathlib import Path

from models.novel import Novel
from tools.text_utils import safe_filename

logger = logging.getLogger(__name__)


def export_novel_json(novel: Novel) -> str:
    """Serialize the complete novel to a single JSON document."""
    return json.dumps(novel.to_dict(), ensure_ascii=False, indent=2)


def backup_filename(novel: Novel) -> str:
    return f"{safe_filename(novel.config.title, max_len=80, fallback='backup')}_full_backup.json"


def write_backup(novel: Novel, directory: str | Path) -> Path:
    """Write the JSON export into ``directory`` and return the file path."""
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / backup_filename(novel)
    path.write_text(export_novel_json(novel), encoding="utf-8")
    logger.info("Backup written to %s", path)
    return path


def load_backup(path: str | Path) -> Novel:
    """Read a backup produced by ``write_backup``."""
    return Novel.from_dict(json.loads(Path(path).read_text(encoding="utf-8")))
