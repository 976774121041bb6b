"""CLI entry point: novel-architect 长篇小说生成。

用法：
  novel-architect new -t 书名 -g 玄幻      创建新小说
  novel-architect recommend -n <id>        AI 一键生成爆款设定
  novel-architect outline -n <id>          生成故事大纲
  novel-architect plan -n <id>             分批生成分章目录
  novel-architect streak -n <id>           批量连更正文
  novel-architect --help                   查看所有命令
"""

import asyncio
import logging
import os
import signal
import sys
from typing import Optional

# Ensure UTF-8 output on Windows to avoid GBK encoding errors with Rich
if sys.platform == "win32":
    os.environ.setdefault("PYTHONIOENCODING", "utf-8")

import click

from agents.writer_agent import is_empty_generation
from cli.theme import (
    get_console,
    app_header,
    command_panel,
    success_panel,
    run_result_panel,
    novel_summary_panel,
    chapter_tree,
    novel_table,
    STAGE_LABELS,
)
from config.exceptions import NovelArchitectError
from tools.text_utils import count_chinese_chars
from config.logging_config import setup_logging
from config.settings import get_settings
from models.database import Database
from models.enums import NovelStage
from models.library import NovelLibrary
from models.novel import Novel, NovelConfig
from storage.export import load_backup
from workflow.callbacks import RichProgressCallback
from workflow.session import NovelSession

console = get_console()
logger = logging.getLogger(__name__)


def _init_logging(verbose: bool):
    """Configure logging based on verbosity."""
    level = logging.DEBUG if verbose else logging.INFO
    settings = get_settings()
    setup_logging(level=level, log_dir=settings.log_dir, console_enabled=verbose)


def _open_library() -> NovelLibrary:
    settings = get_settings()
    return NovelLibrary(store=Database(settings.sqlite_db_path))


def _resolve(library: NovelLibrary, novel_id: str) -> Novel:
    """Select a novel by full id or unique id prefix, or exit."""
    matches = [n for n in library.novels if n.id.startswith(novel_id)]
    if len(matches) != 1:
        reason = "未找到" if not matches else "匹配到多本"
        console.print(f"[error]{reason} ID 为 {novel_id} 的小说[/]")
        sys.exit(1)
    library.select_novel(matches[0].id)
    return matches[0]


def _open_session(novel_id: str) -> tuple[NovelSession, Novel]:
    library = _open_library()
    novel = _resolve(library, novel_id)
    return NovelSession(library, settings=get_settings()), novel


async def _with_directory(session: NovelSession, directory: Optional[str]) -> None:
    if directory:
        await session.connect_directory(directory)


async def _run_cancellable(session: NovelSession, coro):
    """Await a run; Ctrl-C asks it to stop after the chapter in flight."""
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, session.cancel)
    except (NotImplementedError, RuntimeError):
        # Windows event loops have no signal handlers; Ctrl-C aborts instead
        pass
    try:
        return await coro
    finally:
        try:
            loop.remove_signal_handler(signal.SIGINT)
        except (NotImplementedError, RuntimeError):
            pass


def _fail(action: str, error: Exception):
    console.print(f"\n[error]{action}失败：{error}[/]")
    logger.debug("%s failed", action, exc_info=True)
    sys.exit(1)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose):
    """novel-architect: AI 长篇网文生成引擎

    \b
    典型流程：
      novel-architect new -t 逆天剑帝 -g 玄幻
      novel-architect recommend -n <id>
      novel-architect outline -n <id>
      novel-architect plan -n <id>
      novel-architect streak -n <id> -l 10
    """
    _init_logging(verbose)


# ---------------------------------------------------------------------------
# new / list / delete
# ---------------------------------------------------------------------------

@cli.command()
@click.option("--title", "-t", default="", help="书名")
@click.option("--genre", "-g", default="玄幻", help="类型（如：玄幻、都市、言情、悬疑）")
@click.option("--tone", default="热血", help="基调")
@click.option("--protagonist", "-p", default="", help="主角设定")
@click.option("--world", "-w", default="", help="世界观设定")
@click.option("--style", "-s", default="智商在线，剧情紧凑", help="文风要求")
@click.option("--chapters", "-c", default=50, type=int, help="目标章节数（默认50）")
@click.option("--words", default=3000, type=int, help="每章字数（默认3000）")
@click.option("--notes", "-i", default="", help="补充想法（可选）")
def new(title, genre, tone, protagonist, world, style, chapters, words, notes):
    """创建一本新小说（仅保存设定，不调用 AI）。

    示例：
      novel-architect new -t 逆天剑帝 -g 玄幻 -p "少年偶获上古传承"
    """
    library = _open_library()
    config = NovelConfig(
        title=title, genre=genre, tone=tone, protagonist=protagonist,
        world_setting=world, writing_style=style, target_chapter_count=chapters,
        target_word_count=words, additional_notes=notes,
    )
    novel = library.create_novel(config)

    console.print(app_header())
    console.print()
    console.print(novel_summary_panel(novel))
    console.print(f"\n下一步: [info]novel-architect outline -n {novel.id[:8]}[/]")


@cli.command(name="list")
@click.option("--novel-id", "-n", default=None, help="查看指定小说（不指定则列出所有）")
def list_novels(novel_id):
    """查看小说列表或单本详情。"""
    library = _open_library()
    console.print(app_header())
    console.print()

    if novel_id:
        novel = _resolve(library, novel_id)
        console.print(novel_summary_panel(novel))
        if novel.chapters:
            console.print()
            console.print(chapter_tree(novel.chapters))
        return

    if not library.novels:
        console.print("[warning]暂无小说记录。使用 [info]novel-architect new[/] 创建新小说。[/]")
        return
    console.print(novel_table(library.novels))


@cli.command()
@click.option("--novel-id", "-n", required=True, help="要删除的小说ID")
@click.option("--force", "-f", is_flag=True, help="跳过确认直接删除")
def delete(novel_id, force):
    """删除一本小说（不可恢复）。"""
    library = _open_library()
    novel = _resolve(library, novel_id)
    if not force and not click.confirm(f"确定删除《{novel.config.title or '未命名'}》？", default=False):
        console.print("[muted]已取消[/]")
        return
    library.delete_novel(novel.id)
    console.print(f"[success]已删除 {novel.id[:8]}[/]")


# ---------------------------------------------------------------------------
# setup and outline
# ---------------------------------------------------------------------------

@cli.command()
@click.option("--novel-id", "-n", required=True, help="小说ID")
@click.option("--dir", "directory", default=None, help="同步保存到本地目录")
def recommend(novel_id, directory):
    """AI 一键生成爆款设定，覆盖当前设定表单。"""
    session, novel = _open_session(novel_id)

    async def _go():
        await _with_directory(session, directory)
        return await session.autofill_config()

    try:
        with console.status("正在构思爆款设定..."):
            asyncio.run(_go())
    except NovelArchitectError as e:
        _fail("生成设定", e)

    console.print(novel_summary_panel(session.library.active_novel))


@cli.command()
@click.option("--novel-id", "-n", required=True, help="小说ID")
@click.option("--dir", "directory", default=None, help="同步保存到本地目录")
def outline(novel_id, directory):
    """根据设定生成故事大纲。"""
    session, novel = _open_session(novel_id)
    console.print(command_panel("生成大纲", {
        "书名": novel.config.title or "未命名",
        "类型": novel.config.genre,
        "目标": f"{novel.config.target_chapter_count} 章",
    }))

    async def _go():
        await _with_directory(session, directory)
        return await session.generate_outline()

    try:
        with console.status("正在生成大纲..."):
            text = asyncio.run(_go())
    except NovelArchitectError as e:
        _fail("生成大纲", e)

    preview = text if len(text) <= 600 else text[:600] + "..."
    console.print(success_panel("大纲生成完成", preview))
    console.print(f"\n下一步: [info]novel-architect plan -n {novel.id[:8]}[/]")


# ---------------------------------------------------------------------------
# plan / write / streak
# ---------------------------------------------------------------------------

@cli.command()
@click.option("--novel-id", "-n", required=True, help="小说ID")
@click.option("--dir", "directory", default=None, help="同步保存到本地目录")
def plan(novel_id, directory):
    """按批次生成完整分章目录（每批默认 20 章）。Ctrl-C 在当前批次后停止。"""
    session, novel = _open_session(novel_id)
    target = novel.config.target_chapter_count
    console.print(command_panel("生成分章目录", {
        "书名": novel.config.title or "未命名",
        "目标": f"{target} 章",
        "每批": f"{session.settings.chapter_batch_size} 章",
    }))

    cb = RichProgressCallback(console=console, description="  规划目录", total=target)

    async def _go():
        await _with_directory(session, directory)
        return await _run_cancellable(session, session.plan_chapters(callback=cb))

    cb.start()
    try:
        result = asyncio.run(_go())
    except NovelArchitectError as e:
        cb.stop()
        _fail("生成目录", e)
    cb.stop()

    console.print()
    console.print(run_result_panel("分章目录", result))
    console.print(chapter_tree(session.library.active_novel.chapters))
    _print_usage_summary(session)
    if not result.succeeded:
        sys.exit(1)


@cli.command()
@click.option("--novel-id", "-n", required=True, help="小说ID")
@click.option("--chapter", "-c", required=True, type=int, help="章节号（从1开始）")
@click.option("--dir", "directory", default=None, help="同步保存到本地目录")
def write(novel_id, chapter, directory):
    """单独生成（或重写）一章正文。"""
    session, novel = _open_session(novel_id)
    if not 1 <= chapter <= len(novel.chapters):
        console.print(f"[error]章节号超出范围（共 {len(novel.chapters)} 章）[/]")
        sys.exit(1)
    target = novel.chapters[chapter - 1]

    async def _go():
        await _with_directory(session, directory)
        return await session.write_chapter(target.id)

    try:
        with console.status(f"正在撰写第{chapter}章：{target.title}..."):
            written = asyncio.run(_go())
    except NovelArchitectError as e:
        _fail("写作", e)

    if is_empty_generation(written.content):
        console.print(f"[warning]第{chapter}章生成内容为空，可重试[/]")
        sys.exit(1)
    console.print(success_panel("写作完成", f"  第{chapter}章 {written.title}: [stat.value]{count_chinese_chars(written.content):,}[/] 字"))
    _print_usage_summary(session)


@cli.command()
@click.option("--novel-id", "-n", required=True, help="小说ID")
@click.option("--length", "-l", default=None, type=int, help="本次连更章数（默认10）")
@click.option("--from", "from_chapter", default=None, type=int, help="从第几章开始（默认当前选中章）")
@click.option("--dir", "directory", default=None, help="同步保存到本地目录")
def streak(novel_id, length, from_chapter, directory):
    """批量连更：从当前章起顺序写作，已写完的章节自动跳过。Ctrl-C 在当前章节后停止。

    示例：
      novel-architect streak -n 1a2b3c4d
      novel-architect streak -n 1a2b3c4d -l 5 --from 12
    """
    session, novel = _open_session(novel_id)
    run_length = length or session.settings.streak_length
    from_id = None
    if from_chapter is not None:
        if not 1 <= from_chapter <= len(novel.chapters):
            console.print(f"[error]章节号超出范围（共 {len(novel.chapters)} 章）[/]")
            sys.exit(1)
        from_id = novel.chapters[from_chapter - 1].id

    console.print(command_panel("批量连更", {
        "书名": novel.config.title or "未命名",
        "已规划": f"{len(novel.chapters)} 章",
        "本次": f"{run_length} 章",
    }))

    cb = RichProgressCallback(console=console, description="  连更中", total=run_length)

    async def _go():
        await _with_directory(session, directory)
        return await _run_cancellable(session, session.streak_write(
            callback=cb, run_length=run_length, from_chapter_id=from_id,
        ))

    cb.start()
    try:
        result = asyncio.run(_go())
    except NovelArchitectError as e:
        cb.stop()
        _fail("连更", e)
    cb.stop()

    console.print()
    console.print(run_result_panel("批量连更", result))
    _print_usage_summary(session)
    if not result.succeeded:
        sys.exit(1)


# ---------------------------------------------------------------------------
# export / go-back
# ---------------------------------------------------------------------------

@cli.command()
@click.option("--novel-id", "-n", required=True, help="小说ID")
@click.option("--out", "-o", default=None, help="导出目录（默认 data/novels）")
def export(novel_id, out):
    """导出整本小说为 JSON 备份。"""
    session, novel = _open_session(novel_id)
    try:
        path = session.export(out)
    except OSError as e:
        _fail("导出", e)
    console.print(f"[success]已导出:[/] {path}")


@cli.command(name="import")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
def import_backup(path):
    """从 JSON 备份恢复一本小说。"""
    library = _open_library()
    try:
        novel = library.import_novel(load_backup(path))
    except (OSError, ValueError, TypeError, KeyError) as e:
        _fail("导入", e)
    console.print(novel_summary_panel(novel))
    console.print(f"[success]已导入 {novel.id[:8]}[/]")


@cli.command(name="backup-db")
@click.option("--out", "-o", required=True, help="备份文件路径")
def backup_db(out):
    """备份整个小说库数据库。"""
    settings = get_settings()
    try:
        path = Database(settings.sqlite_db_path).backup_database(out)
    except OSError as e:
        _fail("备份", e)
    console.print(f"[success]数据库已备份:[/] {path}")


@cli.command(name="go-back")
@click.option("--novel-id", "-n", required=True, help="小说ID")
@click.argument("stage", type=click.Choice([s.value for s in NovelStage]))
def go_back(novel_id, stage):
    """回到之前的阶段（如重新生成大纲）。已有内容不会被删除。"""
    session, novel = _open_session(novel_id)
    try:
        novel = session.go_back(NovelStage(stage))
    except NovelArchitectError as e:
        _fail("切换阶段", e)
    console.print(f"[success]当前阶段:[/] {STAGE_LABELS[novel.step]}")


def _print_usage_summary(session: NovelSession) -> None:
    """Print provider call count and cost if any calls were made."""
    usage = session.llm.get_usage_summary()
    if not usage.get("total_calls"):
        return
    console.print(
        f"\n[muted]LLM调用: {usage['total_calls']} 次 | "
        f"预估费用: ${usage.get('total_cost_usd', 0.0):.4f}[/]"
    )


def main():
    """Entry point."""
    cli()


if __name__ == "__main__":
    main()
