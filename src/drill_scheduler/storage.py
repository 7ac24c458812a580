"""Review store and settings persistence, including the daily counter reset."""
import json
import logging
import sqlite3
from dataclasses import replace
from datetime import datetime

from drill_scheduler.db import get_connection
from drill_scheduler.decks import check_direction, get_deck
from drill_scheduler.fsrs_bridge import utc_now
from drill_scheduler.models import CardState, DeckSettings, ReviewRecord, ReviewStore, SchedulerState

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """A review store or settings document could not be written."""


def today_string(now: datetime | None = None) -> str:
    return utc_now(now).date().isoformat()


def default_store(today: str | None = None) -> ReviewStore:
    return ReviewStore(last_review_date=today or today_string())


def reconcile_day(store: ReviewStore, today: str | None = None) -> ReviewStore:
    """Clear the day's lists when the store was last used on another day."""
    today = today or today_string()
    if store.last_review_date == today:
        return store
    return replace(store, reviewed_today=(), new_cards_today=(), last_review_date=today)


def record_to_dict(record: ReviewRecord) -> dict:
    state = record.scheduler_state
    return {
        "item_id": record.item_id,
        "scheduler_state": {
            "state": int(state.state),
            "due": state.due.isoformat(),
            "memory": state.memory,
        },
        "review_log": record.review_log,
    }


def record_from_dict(data: dict) -> ReviewRecord:
    state = data["scheduler_state"]
    return ReviewRecord(
        item_id=str(data["item_id"]),
        scheduler_state=SchedulerState(
            state=CardState(state["state"]),
            due=utc_now(datetime.fromisoformat(state["due"])),
            memory=state.get("memory") or {},
        ),
        review_log=data.get("review_log"),
    )


def store_to_dict(store: ReviewStore) -> dict:
    return {
        "cards": {key: record_to_dict(record) for key, record in store.cards.items()},
        "reviewed_today": list(store.reviewed_today),
        "new_cards_today": list(store.new_cards_today),
        "last_review_date": store.last_review_date,
    }


def store_from_dict(data: dict) -> ReviewStore:
    return ReviewStore(
        cards={str(key): record_from_dict(value) for key, value in data.get("cards", {}).items()},
        reviewed_today=tuple(str(i) for i in data.get("reviewed_today", [])),
        new_cards_today=tuple(str(i) for i in data.get("new_cards_today", [])),
        last_review_date=data["last_review_date"],
    )


def _document_key(deck_name: str, direction: str | None) -> tuple[str, str]:
    deck = get_deck(deck_name)
    check_direction(deck, direction)
    return deck.name, direction or ""


def load_store(db_path: str, deck: str, direction: str | None = None,
               today: str | None = None) -> ReviewStore:
    """Load a deck's review store, reset for today if it was last used on another day.

    A missing or unreadable document yields a fresh store. A database error
    raises StorageError so callers never mistake it for a deck with no progress.
    """
    key = _document_key(deck, direction)
    today = today or today_string()
    try:
        conn = get_connection(db_path)
        try:
            row = conn.execute(
                "SELECT data FROM review_stores WHERE deck = ? AND direction = ?", key,
            ).fetchone()
        finally:
            conn.close()
    except sqlite3.Error as e:
        raise StorageError(f"Failed to load review data for {key[0]}/{key[1]}: {e}") from e
    if row:
        try:
            return reconcile_day(store_from_dict(json.loads(row["data"])), today)
        except (ValueError, KeyError, TypeError):
            logger.exception("Unreadable review data for %s/%s", *key)
    return default_store(today)


def save_store(db_path: str, deck: str, direction: str | None, store: ReviewStore) -> None:
    key = _document_key(deck, direction)
    payload = json.dumps(store_to_dict(store))
    try:
        conn = get_connection(db_path)
        try:
            conn.execute(
                """INSERT INTO review_stores (deck, direction, data, updated_at) VALUES (?, ?, ?, ?)
                ON CONFLICT(deck, direction) DO UPDATE SET data=excluded.data, updated_at=excluded.updated_at""",
                (*key, payload, utc_now().isoformat()),
            )
            conn.commit()
        finally:
            conn.close()
    except sqlite3.Error as e:
        raise StorageError(f"Failed to save review data for {key[0]}/{key[1]}: {e}") from e


def clear_store(db_path: str, deck: str, direction: str | None = None,
                today: str | None = None) -> ReviewStore:
    """Delete a deck's persisted progress and return a fresh empty store."""
    key = _document_key(deck, direction)
    try:
        conn = get_connection(db_path)
        try:
            conn.execute("DELETE FROM review_stores WHERE deck = ? AND direction = ?", key)
            conn.commit()
        finally:
            conn.close()
    except sqlite3.Error as e:
        raise StorageError(f"Failed to clear review data for {key[0]}/{key[1]}: {e}") from e
    logger.info("Cleared review data for %s/%s", *key)
    return default_store(today)


def load_settings(db_path: str, deck: str, direction: str | None = None) -> DeckSettings:
    """Persisted settings merged over the deck defaults."""
    key = _document_key(deck, direction)
    defaults = get_deck(deck).new_settings()
    try:
        conn = get_connection(db_path)
        try:
            row = conn.execute(
                "SELECT data FROM deck_settings WHERE deck = ? AND direction = ?", key,
            ).fetchone()
        finally:
            conn.close()
    except sqlite3.Error as e:
        raise StorageError(f"Failed to load settings for {key[0]}/{key[1]}: {e}") from e
    if row:
        try:
            data = json.loads(row["data"])
            return DeckSettings(
                new_cards_per_day=int(data.get("new_cards_per_day", defaults.new_cards_per_day)),
                filters={**defaults.filters, **data.get("filters", {})},
            )
        except (ValueError, TypeError, AttributeError):
            logger.exception("Unreadable settings for %s/%s", *key)
    return defaults


def save_settings(db_path: str, deck: str, direction: str | None, settings: DeckSettings) -> None:
    key = _document_key(deck, direction)
    if settings.new_cards_per_day < 0:
        raise ValueError("new_cards_per_day must be >= 0")
    payload = json.dumps({
        "new_cards_per_day": settings.new_cards_per_day,
        "filters": settings.filters,
    })
    try:
        conn = get_connection(db_path)
        try:
            conn.execute(
                """INSERT INTO deck_settings (deck, direction, data) VALUES (?, ?, ?)
                ON CONFLICT(deck, direction) DO UPDATE SET data=excluded.data""",
                (*key, payload),
            )
            conn.commit()
        finally:
            conn.close()
    except sqlite3.Error as e:
        raise StorageError(f"Failed to save settings for {key[0]}/{key[1]}: {e}") from e
