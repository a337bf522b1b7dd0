"""Interactive console for driving the journey and progress engines."""
import logging
import os

from rich.console import Console
from rich.panel import Panel
from rich.prompt import IntPrompt, Prompt
from rich.table import Table

from abundance_flow.db import DEFAULT_DB_PATH
from abundance_flow.journey import JourneyEngine
from abundance_flow.models import ActivityKind, JourneyMode, Mood, SlotState, StreakKind
from abundance_flow.progress import ProgressEngine
from abundance_flow.scoring import score_breakdown
from abundance_flow.storage import KeyValueStore

console = Console()

SLOT_STYLES = {
    SlotState.AVAILABLE: "cyan",
    SlotState.ACTIVE: "bold yellow",
    SlotState.LOCKED: "dim",
    SlotState.MASTERED: "green",
}


def get_score_color(score: int) -> str:
    if score >= 80:
        return "green"
    elif score >= 50:
        return "yellow"
    elif score >= 25:
        return "dark_orange"
    return "red"


def show_welcome():
    console.print(Panel(
        "[bold]Abundance Flow[/bold]\n[dim]Journey & alignment tracker[/dim]",
        title="Welcome", border_style="magenta",
    ))


def show_menu():
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("paths", "Show all paths"),
        ("select", "Choose a path"),
        ("stage", "Complete the current stage"),
        ("reset", "Return to path selection"),
        ("log", "Log a practice"),
        ("dashboard", "Alignment score + streaks"),
        ("history", "Recent days"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


def cmd_paths(journey: JourneyEngine):
    table = Table(title="Paths")
    table.add_column("#", justify="right")
    table.add_column("Path")
    table.add_column("Theme")
    table.add_column("Status")
    for i, (path, slot) in enumerate(journey.slots(), 1):
        style = SLOT_STYLES[slot]
        table.add_row(str(i), path.name, path.meaning, f"[{style}]{slot.value}[/{style}]")
    console.print(table)
    if journey.all_paths_mastered():
        console.print("[green]Every path mastered.[/green]")


def cmd_select(journey: JourneyEngine):
    ids = journey.catalog.ids()
    for i, path_id in enumerate(ids, 1):
        console.print(f"  [cyan]{i}[/cyan]) {journey.catalog.get(path_id).name}")
    choice = IntPrompt.ask("Select path", choices=[str(i) for i in range(1, len(ids) + 1)])
    path_id = ids[choice - 1]
    if journey.select_path(path_id):
        console.print(f"[green]Path {journey.catalog.get(path_id).name} is now active.[/green]")
        cmd_task(journey)
    else:
        console.print(f"[red]{journey.catalog.get(path_id).name} is {journey.slot_state(path_id).value}.[/red]")


def cmd_task(journey: JourneyEngine):
    task = journey.current_task()
    if task is None:
        console.print("[yellow]No active path. Use 'select' to begin.[/yellow]")
        return
    path = journey.catalog.get(task.path_id)
    console.print(Panel(task.text, title=f"{path.name} - Stage {task.stage}/3", border_style="yellow"))


def cmd_stage(journey: JourneyEngine):
    if not journey.complete_stage():
        console.print("[yellow]No active path. Use 'select' to begin.[/yellow]")
        return
    state = journey.snapshot()
    if state.mode is JourneyMode.COMPLETE:
        path = journey.selected_path()
        console.print(Panel(
            f"You have unlocked the wisdom of {path.meaning.lower()}.",
            title=f"{path.name} Mastered!", border_style="green",
        ))
        Prompt.ask("[dim]Press Enter to choose your next path[/dim]", default="")
        journey.reset_to_selection()
    else:
        console.print(f"[green]Stage {state.stages_completed}/3 complete.[/green]")
        cmd_task(journey)


def cmd_reset(journey: JourneyEngine):
    journey.reset_to_selection()
    console.print("[dim]Back to path selection. Mastered paths are kept.[/dim]")


def cmd_log(progress: ProgressEngine):
    kind = Prompt.ask("Activity", choices=[k.value for k in ActivityKind])
    if kind == ActivityKind.MEDITATION.value:
        minutes = IntPrompt.ask("Minutes", default=10)
        ok = progress.complete_meditation(minutes=minutes)
    elif kind == ActivityKind.EXERCISE.value:
        ok = progress.complete_exercise(Prompt.ask("Exercise id").strip())
    elif kind == ActivityKind.MOOD.value:
        mood = Prompt.ask("Mood", choices=[m.value for m in Mood])
        ok = progress.add_mood_entry(mood, note=Prompt.ask("Note", default="") or None)
    else:
        ok = progress.record_activity(kind)
    if ok:
        console.print(f"[green]Logged. Today's alignment: {progress.today_score()}[/green]")
    else:
        console.print("[red]Nothing logged.[/red]")


def cmd_dashboard(progress: ProgressEngine):
    score = progress.today_score()
    color = get_score_color(score)
    bar_filled = int(score / 5)
    bar = f"[{color}]{'█' * bar_filled}{'░' * (20 - bar_filled)}[/{color}]"
    console.print(Panel(f"[bold]{score}[/bold] {bar}", title="Today's Alignment", border_style="magenta"))

    breakdown = score_breakdown(progress.today())
    console.print("  " + "  |  ".join(f"{name}: [bold]{pts}[/bold]" for name, pts in breakdown.items()))

    table = Table(title="Streaks")
    table.add_column("Streak", style="cyan")
    table.add_column("Current", justify="right")
    table.add_column("Longest", justify="right")
    for kind in StreakKind:
        s = progress.streak(kind)
        table.add_row(kind.value, str(s.current), str(s.longest))
    console.print(table)

    weekly = progress.weekly_stats()
    totals = progress.totals()
    console.print(f"\n  Week avg: [bold]{weekly.average_score}[/bold]  |  "
                  f"Week practices: [bold]{weekly.total_practices}[/bold]  |  "
                  f"Meditation minutes: [bold]{totals['total_practice_minutes']}[/bold]")


def cmd_history(progress: ProgressEngine):
    days = IntPrompt.ask("Days", default=7)
    table = Table(title=f"Last {days} days")
    table.add_column("Date")
    table.add_column("Med", justify="right")
    table.add_column("Journal", justify="right")
    table.add_column("Shifts", justify="right")
    table.add_column("Exercises", justify="right")
    table.add_column("Mood")
    for day in progress.history(days):
        table.add_row(
            day.date, str(day.meditations), str(day.journal_entries), str(day.quick_shifts),
            str(len(day.exercises)), day.latest_mood.value if day.latest_mood else "",
        )
    console.print(table)


def main():
    logging.basicConfig(level=os.environ.get("ABUNDANCE_FLOW_LOG_LEVEL", "WARNING").upper())
    store = KeyValueStore(DEFAULT_DB_PATH)
    journey = JourneyEngine(store)
    progress = ProgressEngine(store)

    show_welcome()

    while True:
        show_menu()
        choice = Prompt.ask("\n[bold]>[/bold]", default="dashboard").strip().lower()
        try:
            if choice == "paths":
                cmd_paths(journey)
            elif choice == "select":
                cmd_select(journey)
            elif choice == "stage":
                cmd_stage(journey)
            elif choice == "reset":
                cmd_reset(journey)
            elif choice == "log":
                cmd_log(progress)
            elif choice == "dashboard":
                cmd_dashboard(progress)
            elif choice == "history":
                cmd_history(progress)
            elif choice in ("quit", "exit", "q"):
                console.print("[dim]Stay aligned.[/dim]")
                break
            else:
                console.print("[red]Unknown command. Try again.[/red]")
        except KeyboardInterrupt:
            console.print("\n[dim]Use 'quit' to exit.[/dim]")
        except Exception as e:
            console.print(f"[red]Error: {e}[/red]")


if __name__ == "__main__":
    main()
