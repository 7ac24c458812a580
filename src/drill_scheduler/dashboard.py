"""Dashboard badges and progress statistics."""
from datetime import datetime

from drill_scheduler.content import list_items
from drill_scheduler.decks import DECKS, Deck
from drill_scheduler.fsrs_bridge import utc_now
from drill_scheduler.models import CardState, DeckSettings, ReviewStore
from drill_scheduler.scheduler import filter_items, get_or_create_record, iter_session_candidates
from drill_scheduler.storage import load_settings, load_store, today_string


def count_due(deck: Deck, items: list, store: ReviewStore,
              settings: DeckSettings, now: datetime | None = None) -> int:
    """Due reviews plus remaining new-card allowance, exactly as a fresh session would contain."""
    return sum(1 for _ in iter_session_candidates(deck, items, store, settings, now))


def get_progress_stats(deck: Deck, items: list, store: ReviewStore,
                       settings: DeckSettings, now: datetime | None = None) -> dict:
    now = utc_now(now)
    total = learned = mastered = 0
    for item in filter_items(deck, items, settings.filters):
        total += 1
        state = get_or_create_record(item.id, store, now).state
        if state != CardState.NEW:
            learned += 1
        if state == CardState.REVIEW:
            mastered += 1
    return {
        "total": total,
        "learned": learned,
        "mastered": mastered,
        "due": count_due(deck, items, store, settings, now),
    }


def get_direction_stats(db_path: str, now: datetime | None = None) -> list[dict]:
    """Progress stats for every deck/direction, loading stores and settings from the database."""
    now = utc_now(now)
    today = today_string(now)
    rows = []
    for deck in DECKS.values():
        items = list_items(db_path, deck.name)
        for direction in deck.directions:
            store = load_store(db_path, deck.name, direction, today)
            settings = load_settings(db_path, deck.name, direction)
            stats = get_progress_stats(deck, items, store, settings, now)
            rows.append({"deck": deck.name, "title": deck.title, "direction": direction, **stats})
    return rows


def get_review_counts(db_path: str, now: datetime | None = None) -> dict:
    """Actionable card count per deck, summed over its directions."""
    counts = {name: 0 for name in DECKS}
    for row in get_direction_stats(db_path, now):
        counts[row["deck"]] += row["due"]
    return counts
