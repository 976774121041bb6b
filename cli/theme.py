"""Unified Rich theme and reusable UI helper functions for the CLI."""

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.theme import Theme
from rich.tree import Tree

from models.enums import NovelStage, RunOutcome
from tools.text_utils import count_chinese_chars
from workflow.state import RunResult

NOVEL_THEME = Theme({
    "app.title": "bold",
    "success": "green",
    "warning": "yellow",
    "error": "red",
    "info": "blue",
    "muted": "dim",
    "accent": "cyan",
    "genre": "bold",
    "stat.label": "dim",
    "stat.value": "bold",
    "chapter.num": "blue",
})

STAGE_LABELS = {
    NovelStage.SETUP: "设定",
    NovelStage.OUTLINE: "大纲",
    NovelStage.CHAPTERS: "目录",
    NovelStage.WRITING: "写作",
}

STAGE_COLORS = {
    NovelStage.SETUP: "dim",
    NovelStage.OUTLINE: "yellow",
    NovelStage.CHAPTERS: "cyan",
    NovelStage.WRITING: "green",
}


def get_console() -> Console:
    """Return a Console instance with the novel theme applied."""
    return Console(theme=NOVEL_THEME)


def app_header(title: str = "novel-architect") -> Rule:
    return Rule(title=f"[bold]{title}[/]", style="dim")


def stage_label(stage: NovelStage) -> str:
    return f"[{STAGE_COLORS[stage]}]{STAGE_LABELS[stage]}[/]"


def command_panel(title: str, fields: dict[str, str]) -> Panel:
    """Return a Panel displaying command parameters.

    Args:
        title: Panel title (e.g. "创建新小说").
        fields: Ordered dict of label -> value pairs.
    """
    lines = []
    for label, value in fields.items():
        lines.append(f"  [stat.label]{label}:[/] [stat.value]{value}[/]")
    body = "\n".join(lines)
    return Panel(body, title=f"[bold]{title}[/]", box=box.ROUNDED, border_style="dim", padding=(0, 2))


def success_panel(title: str, body: str) -> Panel:
    """Return a green-bordered Panel for success results."""
    return Panel(body, title=f"[success]{title}[/]", box=box.ROUNDED, border_style="green", padding=(0, 2))


def run_result_panel(title: str, result: RunResult) -> Panel:
    """Summarize a finished planning or streak run."""
    lines = [f"  完成: [stat.value]{result.completed}[/] / {result.total}"]
    if result.outcome == RunOutcome.COMPLETED:
        border = "green"
        if result.exhausted:
            lines.append("  [muted]已到达最后一章，提前结束[/]")
    elif result.outcome == RunOutcome.CANCELLED:
        border = "yellow"
        lines.append("  [warning]已被用户停止，已完成的内容均已保存[/]")
    else:
        border = "red"
        lines.append(f"  [error]错误: {result.error}[/]")
        lines.append("  [muted]已完成的内容均已保存，可重新运行继续[/]")
    return Panel("\n".join(lines), title=f"[bold]{title}[/]", box=box.ROUNDED, border_style=border, padding=(0, 2))


def novel_summary_panel(novel) -> Panel:
    """Return a Panel with novel summary stats.

    Args:
        novel: ``models.novel.Novel`` snapshot.
    """
    config = novel.config
    written = sum(1 for c in novel.chapters if c.content.strip())
    total_chars = sum(count_chinese_chars(c.content) for c in novel.chapters)
    setting = config.world_setting or ""
    if len(setting) > 150:
        setting = setting[:150] + "..."

    body = (
        f"  [stat.label]类型:[/] [genre]{config.genre}[/] · {config.tone}  "
        f"[muted]|[/]  [stat.label]阶段:[/] {stage_label(novel.step)}  "
        f"[muted]|[/]  [stat.label]章节:[/] [stat.value]{written}/{len(novel.chapters)}[/]"
        f" [muted](目标 {config.target_chapter_count})[/]  "
        f"[muted]|[/]  [stat.label]字数:[/] [stat.value]{total_chars:,}[/]\n"
        f"  [stat.label]主角:[/] {config.protagonist}\n"
        f"  [stat.label]世界观:[/] {setting}"
    )
    return Panel(
        body,
        title=f"[bold]{config.title or '未命名'}[/] [muted](ID: {novel.id[:8]})[/]",
        box=box.ROUNDED,
        border_style="dim",
        padding=(0, 2),
    )


def chapter_tree(chapters: list, limit: int = 10) -> Tree:
    """Build a Rich Tree of the chapter list with written markers."""
    tree = Tree("[bold]分章目录[/]")
    for i, chapter in enumerate(chapters[:limit]):
        mark = "[success]✓[/]" if chapter.content.strip() else "[muted]·[/]"
        summary = chapter.summary or ""
        short = (summary[:30] + "...") if len(summary) > 30 else summary
        tree.add(f"{mark} [chapter.num]第{i + 1}章[/] {chapter.title} [muted]{short}[/]")
    if len(chapters) > limit:
        tree.add(f"[muted]... (共{len(chapters)}章)[/]")
    return tree


def novel_table(novels: list) -> Table:
    table = Table(title="小说列表", show_lines=True, border_style="dim")
    table.add_column("ID", style="chapter.num")
    table.add_column("标题", style="bold")
    table.add_column("类型", style="genre")
    table.add_column("阶段")
    table.add_column("章节", justify="right")

    for n in novels:
        written = sum(1 for c in n.chapters if c.content.strip())
        table.add_row(
            n.id[:8],
            n.config.title or "[muted]未命名[/]",
            n.config.genre,
            stage_label(n.step),
            f"{written}/{len(n.chapters)}",
        )
    return table
