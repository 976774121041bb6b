"""Storage package: persistence collaborators, export, and debounced writes."""

from storage.persistence import NovelPersistence, NullPersistence, save_quietly
from storage.directory_store import DirectoryStore
from storage.export import export_novel_json, write_backup, load_backup
from storage.debounce import DebouncedWriter

__all__ = [
    "NovelPersistence",
    "NullPersistence",
    "save_quietly",
    "DirectoryStore",
    "export_novel_json",
    "write_backup",
    "load_backup",
    "DebouncedWriter",
]
