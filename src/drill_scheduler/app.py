"""Interactive CLI application."""
import logging
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.prompt import IntPrompt, Prompt
from rich.table import Table

from drill_scheduler.dashboard import get_direction_stats
from drill_scheduler.db import DEFAULT_DB_PATH, init_db
from drill_scheduler.decks import DECKS
from drill_scheduler.importer import import_file
from drill_scheduler.models import DeckSettings, Grade, SessionCard
from drill_scheduler.seed import is_seeded, seed_all
from drill_scheduler.session import (
    DEFAULT_EXTRA_NEW_CARDS_COUNT, DEFAULT_PRACTICE_AHEAD_COUNT, LOAD_ERROR_MESSAGE, MODE_PRACTICE_AHEAD,
    DeckSession,
)
from drill_scheduler.storage import StorageError

console = Console()

GRADE_CHOICES = {str(int(g)): g for g in Grade}


class SessionExitRequested(Exception):
    """Raised when the user asks to leave a running session."""


def session_prompt(prompt: str, **kwargs) -> str:
    answer = Prompt.ask(prompt, **kwargs)
    if answer.strip().lower() in ("q", "menu"):
        raise SessionExitRequested()
    return answer


def show_welcome():
    console.print(Panel(
        "[bold]Polish Drill[/bold]\n[dim]Spaced-repetition decks[/dim]",
        title="Welcome", border_style="blue",
    ))


def show_menu():
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("study", "Today's session for a deck"),
        ("dashboard", "Due counts + progress"),
        ("settings", "New cards per day"),
        ("import", "Add custom items from a file"),
        ("clear", "Erase progress for a deck"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


def card_faces(card: SessionCard, direction: str | None) -> tuple[str, str]:
    """Question and answer text for a card in the given direction."""
    content = card.item.content
    deck = card.item.deck
    if deck == "declension":
        return content.get("front", ""), content.get("back", "")
    if deck == "aspect_pairs":
        verb, pair = content["verb"], content["pair_verb"]
        return (
            f"{verb.get('infinitive')} ({verb.get('aspect')})",
            f"{pair.get('infinitive')} ({pair.get('aspect')})",
        )
    if deck == "conjugation":
        polish = content.get("pl", "")
        english = ", ".join(content.get("en") or [])
        label = f"[dim]{content.get('infinitive')} · {content.get('tense')} · {content.get('form_key')}[/dim]"
        if direction == "en-to-pl":
            return f"{english}\n{label}", polish
        return f"{polish}\n{label}", english
    polish, english = content.get("polish", ""), content.get("english", "")
    if direction == "en-to-pl":
        return english, polish
    return polish, english


def choose_deck() -> tuple[str, str | None]:
    for name, deck in DECKS.items():
        console.print(f"  [cyan]{name}[/cyan]) {deck.title}")
    name = Prompt.ask("Deck", choices=list(DECKS))
    directions = DECKS[name].directions
    if directions == (None,):
        return name, None
    return name, Prompt.ask("Direction", choices=list(directions), default=directions[0])


def run_session(session: DeckSession) -> None:
    if session.finished:
        console.print("[yellow]Nothing to do here right now![/yellow]")
        return
    console.print(
        f"\n[bold]{session.deck.title}[/bold]: {session.review_count} reviews, {session.new_count} new\n"
    )
    while not session.finished:
        card = session.current
        front, back = card_faces(card, session.direction)
        tag = "[green]new[/green]" if card.is_new else "review"
        console.print(Panel(front, title=f"{tag} · {session.remaining} left", border_style="cyan"))
        session_prompt("[dim]Press Enter to reveal answer[/dim]", default="", show_default=False)
        console.print(Panel(back, border_style="green"))
        preview = session.interval_preview()
        labels = "  ".join(f"{int(g)}={g.name.title()} ({preview[g]})" for g in Grade)
        answer = session_prompt(f"Rate yourself  {labels}", choices=[*GRADE_CHOICES, "q"])
        session.grade(GRADE_CHOICES[answer])
        console.print()
    console.print("[green]Session complete![/green]")


def offer_more_practice(session: DeckSession) -> None:
    choice = Prompt.ask("More practice?", choices=["ahead", "extra", "no"], default="no")
    if choice == "ahead":
        count = IntPrompt.ask("How many cards", default=DEFAULT_PRACTICE_AHEAD_COUNT)
        session.start_practice_ahead(count)
    elif choice == "extra":
        count = IntPrompt.ask("How many new cards", default=DEFAULT_EXTRA_NEW_CARDS_COUNT)
        session.start_extra_new_cards(count)
    else:
        return
    if session.mode == MODE_PRACTICE_AHEAD:
        console.print("[dim]Practising ahead of schedule[/dim]")
    run_session(session)


def notify_error(message: str) -> None:
    console.print(f"[red]{message}[/red]")


def cmd_study(db_path: str):
    deck, direction = choose_deck()
    session = DeckSession(deck, direction, db_path=db_path, on_error=notify_error)
    if not session.store_loaded:
        return
    try:
        run_session(session)
        offer_more_practice(session)
    except SessionExitRequested:
        console.print("[dim]Progress saved. Back to menu.[/dim]")


def cmd_dashboard(db_path: str):
    try:
        rows = get_direction_stats(db_path)
    except StorageError:
        notify_error(LOAD_ERROR_MESSAGE)
        return
    table = Table(title="Decks")
    table.add_column("Deck", style="cyan")
    table.add_column("Direction")
    table.add_column("Due", justify="right")
    table.add_column("Learned", justify="right")
    table.add_column("Mastered", justify="right")
    table.add_column("Total", justify="right")
    for row in rows:
        due = f"[bold yellow]{row['due']}[/bold yellow]" if row["due"] else "0"
        table.add_row(
            row["title"], row["direction"] or "-", due,
            str(row["learned"]), str(row["mastered"]), str(row["total"]),
        )
    console.print(table)


def cmd_settings(db_path: str):
    deck, direction = choose_deck()
    session = DeckSession(deck, direction, db_path=db_path, on_error=notify_error)
    current = session.settings.new_cards_per_day
    value = IntPrompt.ask("New cards per day", default=current)
    if value < 0:
        console.print("[red]New cards per day cannot be negative.[/red]")
        return
    if not session.change_settings(DeckSettings(new_cards_per_day=value, filters=session.settings.filters)):
        return
    console.print(f"[green]Saved. {len(session.queue)} cards in today's session.[/green]")


def cmd_import(db_path: str):
    deck = Prompt.ask("Deck", choices=["vocabulary", "declension", "sentences"])
    file_path = Prompt.ask("File path")
    if not Path(file_path).exists():
        console.print(f"[red]File not found: {file_path}[/red]")
        return
    result = import_file(db_path, deck, file_path)
    console.print(
        f"[green]Imported {result['imported']} items from {result['filename']}[/green]"
        + (f" [yellow]({result['skipped']} skipped)[/yellow]" if result["skipped"] else "")
    )


def cmd_clear(db_path: str):
    deck, direction = choose_deck()
    confirm = Prompt.ask(f"Erase all progress for {deck}?", choices=["yes", "no"], default="no")
    if confirm != "yes":
        return
    session = DeckSession(deck, direction, db_path=db_path, on_error=notify_error)
    if not session.clear():
        return
    console.print("[green]Progress cleared.[/green]")


def main():
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")
    db_path = DEFAULT_DB_PATH
    init_db(db_path)
    first_run = not is_seeded(db_path)
    if first_run:
        console.print("[dim]Setting up for first use...[/dim]")
    seed_all(db_path)
    if first_run:
        console.print("[green]Ready![/green]\n")

    show_welcome()

    while True:
        show_menu()
        choice = Prompt.ask("\n[bold]>[/bold]", default="study").strip().lower()
        try:
            if choice == "study":
                cmd_study(db_path)
            elif choice == "dashboard":
                cmd_dashboard(db_path)
            elif choice == "settings":
                cmd_settings(db_path)
            elif choice == "import":
                cmd_import(db_path)
            elif choice == "clear":
                cmd_clear(db_path)
            elif choice in ("quit", "exit", "q"):
                console.print("[dim]Do zobaczenia![/dim]")
                break
            else:
                console.print("[red]Unknown command. Try again.[/red]")
        except KeyboardInterrupt:
            console.print("\n[dim]Use 'quit' to exit.[/dim]")
        except Exception as e:
            console.print(f"[red]Error: {e}[/red]")


if __name__ == "__main__":
    main()
