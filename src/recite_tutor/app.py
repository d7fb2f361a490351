"""Interactive CLI application."""
import asyncio
from datetime import date
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt, IntPrompt
from rich.table import Table
from rich.text import Text

from recite_tutor import config
from recite_tutor.catalog import get_catalog
from recite_tutor.db import init_db, get_setting, set_setting
from recite_tutor.errors import ValidationFailure
from recite_tutor.importer import import_file, next_page_number
from recite_tutor.learn import SegmentSessionEngine, SegmentState
from recite_tutor.overview import ScheduleOverview
from recite_tutor.plan import create_program, get_program_progress
from recite_tutor.review import ReviewQueueEngine, SessionMode, SessionState
from recite_tutor.scheduler import SqliteScheduler
from recite_tutor.stats import ActivityTracker, get_level_color, heatmap_weeks
from recite_tutor.status import STATUS_COLORS

console = Console()

EXIT_WORDS = ("q", "quit", "menu")


class SessionExitRequested(Exception):
    """Raised when the learner leaves a session from any prompt."""


def session_prompt(prompt: str, **kwargs) -> str:
    answer = Prompt.ask(prompt, **kwargs)
    if answer is not None and answer.strip().lower() in EXIT_WORDS:
        raise SessionExitRequested()
    return answer


def session_int_prompt(prompt: str, choices: list[str] | None = None, **kwargs) -> int:
    answer = session_prompt(prompt, choices=choices, **kwargs)
    return int(answer)


def show_welcome():
    console.print(Panel(
        "[bold]Recite Tutor[/bold]\n[dim]Learn pages, then keep them with spaced recitation[/dim]",
        title="Welcome", border_style="blue",
    ))


def show_menu():
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("learn", "Today's segment to learn"),
        ("review", "Recite what is due"),
        ("plan", "Segments in progress"),
        ("stats", "Streak, heatmap, weekly progress"),
        ("program", "Plan a new program"),
        ("import", "Add material"),
        ("catalog", "Browse chapters"),
        ("settings", "Review mode"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


def show_notifications(engine) -> None:
    styles = {"error": "red", "success": "green", "info": "yellow"}
    for note in engine.notifications.drain():
        style = styles.get(note.kind, "white")
        console.print(f"[{style}]{note.message}[/{style}]")


def load_review_mode(db_path: str) -> SessionMode:
    scale = get_setting(db_path, "review_scale", "three_point")
    quiz = get_setting(db_path, "review_quiz", "1") == "1"
    try:
        return SessionMode.from_names(scale, quiz)
    except ValidationFailure:
        return SessionMode()


# --- Review ------------------------------------------------------------------


def render_item(engine: ReviewQueueEngine) -> None:
    item = engine.current
    if item is None:
        return
    console.print(
        f"\n[bold]{engine.done + 1}/{engine.total}[/bold]  [dim]{item.label}[/dim]  "
        f"[cyan]{engine.timer.display()}[/cyan]"
    )
    if engine.revealed:
        console.print(Panel(item.content, border_style="green"))
    else:
        console.print(Panel("[dim]••• hidden •••[/dim]", border_style="cyan"))


def _on_review_change(engine: ReviewQueueEngine, event: str) -> None:
    if event == "reveal" and engine.revealed and engine.current is not None:
        console.print(Panel(engine.current.content, border_style="green"))


def review_hint(engine: ReviewQueueEngine) -> str:
    keys = " ".join(f"{k}={engine.mode.scale.labels.get(q, q)}" for k, q in engine.key_map.items() if k.isdigit())
    return f"[dim]{keys} · Enter=reveal/hide · p=pause · q=quit[/dim]"


async def run_review_session(db_path: str, service=None, mode: SessionMode | None = None) -> int:
    """Run a review session until the queue drains. Returns the number graded."""
    service = service or SqliteScheduler(db_path)
    mode = mode or load_review_mode(db_path)
    async with ReviewQueueEngine(service, mode=mode, on_change=_on_review_change) as engine:
        await engine.load()
        while True:
            show_notifications(engine)
            if engine.state == SessionState.ERROR:
                answer = await asyncio.to_thread(session_prompt, "[red]Loading failed.[/red] Retry? (y/n)", default="y")
                if answer.strip().lower() != "y":
                    return engine.graded
                await engine.load()
                continue
            if engine.state == SessionState.EMPTY:
                console.print("[green]Everything due today is reviewed.[/green]")
                return engine.graded

            current_id = engine.current.id
            render_item(engine)
            while engine.current is not None and engine.current.id == current_id:
                key = await asyncio.to_thread(session_prompt, review_hint(engine), default="")
                key = key.strip()
                if key == "":
                    await engine.handle_key(" ")
                elif key.lower() == "p":
                    engine.toggle_pause()
                    console.print("[dim]Paused[/dim]" if engine.timer.paused else "[dim]Resumed[/dim]")
                elif await engine.handle_key(key):
                    break
                else:
                    console.print("[red]Unknown key.[/red]")


# --- Learn -------------------------------------------------------------------


def render_segment(engine: SegmentSessionEngine) -> None:
    seg = engine.segment
    console.print(Panel(
        "\n".join(f"[green]{line.number}[/green] {line.text}" for line in engine.content)
        or "[dim]No lines loaded for these pages. Check your import.[/dim]",
        title=f"{seg.pages_label} · planned {seg.planned_date}",
        border_style="cyan",
    ))


async def run_learn_session(db_path: str, segment_id: int | None = None, service=None) -> bool:
    """Show one segment and mark it learned. Returns True when completed."""
    service = service or SqliteScheduler(db_path)
    with SegmentSessionEngine(service) as engine:
        await engine.load(segment_id)
        show_notifications(engine)
        if engine.state == SegmentState.NOT_FOUND:
            console.print("[yellow]No segment to learn today.[/yellow]")
            return False
        if engine.state != SegmentState.LOADED:
            return False
        render_segment(engine)
        if not engine.can_complete:
            return False
        answer = await asyncio.to_thread(session_prompt, "Mark as learned? (y/n)", default="y")
        if answer.strip().lower() != "y":
            return False
        completed = await engine.complete()
        show_notifications(engine)
        return completed


def cmd_learn(db_path: str, segment_id: int | None = None):
    if asyncio.run(run_learn_session(db_path, segment_id)):
        answer = session_prompt("Start reviewing now? (y/n)", default="y")
        if answer.strip().lower() == "y":
            cmd_review(db_path)


def cmd_review(db_path: str):
    graded = asyncio.run(run_review_session(db_path))
    if graded:
        console.print(f"[dim]{graded} item(s) graded.[/dim]")


# --- Plan --------------------------------------------------------------------


def show_overview(db_path: str, overview: ScheduleOverview) -> None:
    counts = overview.counts
    console.print(
        f"\n  Late: [red]{counts.late}[/red]  |  Today: [green]{counts.today}[/green]  |  "
        f"Upcoming: {counts.next}  |  Total: [bold]{counts.total}[/bold]"
    )
    priority = overview.priority
    if priority is None:
        console.print("[dim]Nothing pending. Create a program with 'program'.[/dim]")
        return
    progress = get_program_progress(db_path, priority.segment.program_id)
    color = STATUS_COLORS[priority.status]
    console.print(Panel(
        f"[{color}]{priority.label}[/{color}]  {priority.segment.pages_label}\n"
        f"Planned {priority.segment.planned_date}  ·  Program progress {progress['percent']}%",
        title=f"Priority · {priority.program_title}", border_style="yellow",
    ))
    table = Table(title="In Progress")
    table.add_column("ID", justify="right")
    table.add_column("Program")
    table.add_column("Pages")
    table.add_column("Planned")
    table.add_column("Status")
    for card in overview.cards:
        color = STATUS_COLORS[card.status]
        table.add_row(
            str(card.segment.id), card.program_title, card.segment.pages_label,
            card.segment.planned_date, f"[{color}]{card.label}[/{color}]",
        )
    console.print(table)


def cmd_plan(db_path: str):
    overview = ScheduleOverview(SqliteScheduler(db_path))
    asyncio.run(overview.refresh())
    while True:
        show_notifications(overview)
        show_overview(db_path, overview)
        action = Prompt.ask(
            "[dim]start <id> · done <id> · postpone <id> <days> · date <id> <YYYY-MM-DD> · Enter=back[/dim]",
            default="",
        ).split()
        if not action:
            return
        try:
            verb, seg_id = action[0].lower(), int(action[1])
            if verb == "start":
                cmd_learn(db_path, seg_id)
                asyncio.run(overview.refresh())
            elif verb == "done":
                asyncio.run(overview.complete(seg_id))
            elif verb == "postpone":
                asyncio.run(overview.postpone(seg_id, int(action[2]) if len(action) > 2 else 1))
            elif verb == "date":
                date.fromisoformat(action[2])
                asyncio.run(overview.reschedule(seg_id, action[2]))
            else:
                console.print("[red]Unknown action.[/red]")
        except ValidationFailure as e:
            console.print(f"[red]{e}[/red]")
        except (IndexError, ValueError):
            console.print("[red]Could not read that action.[/red]")


# --- Stats -------------------------------------------------------------------


def render_heatmap(tracker: ActivityTracker) -> Text:
    columns = heatmap_weeks(tracker.heatmap())
    text = Text()
    for row in range(7):
        for col in columns:
            entry = col[row] if row < len(col) else None
            if entry is None:
                text.append("  ")
            else:
                text.append("■ ", style=get_level_color(entry.level))
        text.append("\n")
    return text


def cmd_stats(db_path: str):
    tracker = ActivityTracker(SqliteScheduler(db_path))
    asyncio.run(tracker.refresh())
    show_notifications(tracker)
    console.print(Panel(
        f"Streak: [bold]{tracker.streak}[/bold] day(s)  |  Reviews: [bold]{len(tracker.events)}[/bold]  |  "
        f"Segments learned: [bold]{len(tracker.completed)}[/bold]",
        title="Progress", border_style="blue",
    ))
    spark = "  ".join(f"{day[5:]}:{count}" for day, count in tracker.sparkline())
    console.print(f"  Last 7 days  {spark}\n")
    console.print(Panel(render_heatmap(tracker), title=f"Activity · last {config.HEATMAP_MONTHS} months"))
    weeks = tracker.segments_per_week()
    if weeks:
        table = Table(title="Segments per week")
        table.add_column("Week")
        table.add_column("Segments", justify="right")
        for week, count in weeks[-12:]:
            table.add_row(week, str(count))
        console.print(table)


# --- Setup -------------------------------------------------------------------


def cmd_program(db_path: str):
    title = Prompt.ask("Program title")
    first = IntPrompt.ask("First page", default=1)
    last = IntPrompt.ask("Last page", default=first)
    per_day = IntPrompt.ask("Pages per day", default=1)
    program_id = create_program(db_path, title, first, last, per_day)
    console.print(f"[green]Program {program_id} planned from {date.today().isoformat()}.[/green]")


def cmd_import(db_path: str):
    file_path = Prompt.ask("File path")
    if not Path(file_path).exists():
        console.print(f"[red]File not found: {file_path}[/red]")
        return
    first_page = IntPrompt.ask("Store from page", default=next_page_number(db_path))
    result = import_file(db_path, file_path, first_page=first_page)
    console.print(
        f"[green]Imported {result['filename']}: pages {result['first_page']}-{result['last_page']} "
        f"({result['lines']} lines)[/green]"
    )


def cmd_catalog(db_path: str):
    chapters = get_catalog(db_path)
    table = Table(title="Chapters")
    table.add_column("#", justify="right")
    table.add_column("Name")
    table.add_column("", justify="right")
    table.add_column("Units", justify="right")
    for chapter in chapters:
        table.add_row(str(chapter.id), chapter.name, chapter.native_name, str(chapter.units or ""))
    console.print(table)


def cmd_settings(db_path: str):
    mode = load_review_mode(db_path)
    scale = Prompt.ask("Grading scale", choices=["three_point", "five_point"], default=mode.scale.name)
    quiz = Prompt.ask("Quiz mode (start hidden)", choices=["y", "n"], default="y" if mode.quiz else "n")
    set_setting(db_path, "review_scale", scale)
    set_setting(db_path, "review_quiz", "1" if quiz == "y" else "0")
    console.print("[green]Saved.[/green]")


def main():
    db_path = config.DB_PATH
    init_db(db_path)
    show_welcome()

    while True:
        show_menu()
        choice = Prompt.ask("\n[bold]>[/bold]", default="review").strip().lower()
        try:
            if choice == "learn":
                cmd_learn(db_path)
            elif choice == "review":
                cmd_review(db_path)
            elif choice == "plan":
                cmd_plan(db_path)
            elif choice == "stats":
                cmd_stats(db_path)
            elif choice == "program":
                cmd_program(db_path)
            elif choice == "import":
                cmd_import(db_path)
            elif choice == "catalog":
                cmd_catalog(db_path)
            elif choice == "settings":
                cmd_settings(db_path)
            elif choice in ("quit", "exit", "q"):
                console.print("[dim]See you at the next recitation.[/dim]")
                break
            else:
                console.print("[red]Unknown command. Try again.[/red]")
        except SessionExitRequested:
            console.print("[dim]Left the session. Progress so far is saved.[/dim]")
        except KeyboardInterrupt:
            console.print("\n[dim]Use 'quit' to exit.[/dim]")
        except Exception as e:
            console.print(f"[red]Error: {e}[/red]")


if __name__ == "__main__":
    main()
