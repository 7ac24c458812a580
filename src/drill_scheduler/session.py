"""A learner's visit to one deck/direction: the card queue, the learning loop and grading."""
import logging
from collections import deque
from datetime import datetime
from typing import Callable, Optional

from drill_scheduler.content import list_items
from drill_scheduler.decks import check_direction, get_deck
from drill_scheduler.fsrs_bridge import next_interval_preview
from drill_scheduler.models import DeckSettings, Grade, ReviewStore, SessionCard
from drill_scheduler.optimistic import OptimisticValue
from drill_scheduler.rating import apply_rating
from drill_scheduler.scheduler import (
    build_session, get_extra_new_cards, get_or_create_record, get_practice_ahead_cards,
)
from drill_scheduler.storage import (
    StorageError, clear_store, default_store, load_settings, load_store, save_settings, save_store,
)

logger = logging.getLogger(__name__)

DEFAULT_PRACTICE_AHEAD_COUNT = 10
DEFAULT_EXTRA_NEW_CARDS_COUNT = 5
SAVE_ERROR_MESSAGE = "Failed to save. Please try again."
LOAD_ERROR_MESSAGE = "Failed to load your progress. Please try again."

MODE_SCHEDULED = "scheduled"
MODE_PRACTICE_AHEAD = "practice_ahead"
MODE_EXTRA_NEW = "extra_new"


class DeckSession:
    """Drives one deck/direction session.

    The main queue is consumed by index. Cards graded Again go to a FIFO
    learning loop that is drained once the main queue is exhausted; the
    session is finished only when both are empty. The review store is
    updated optimistically and persisted after every grade.
    """

    def __init__(
        self,
        deck: str,
        direction: str | None = None,
        items: list | None = None,
        store: ReviewStore | None = None,
        settings: DeckSettings | None = None,
        db_path: str | None = None,
        on_error: Optional[Callable[[str], None]] = None,
    ):
        self.deck = get_deck(deck)
        self.direction = check_direction(self.deck, direction)
        self.db_path = db_path
        self.on_error = on_error
        self.last_error: str | None = None
        # False while the persisted store could not be read; nothing is saved over it
        self.store_loaded = True
        if items is None:
            items = list_items(db_path, self.deck.name) if db_path else []
        if store is None:
            store = self._load_store() if db_path else default_store()
        if settings is None:
            settings = self._load_settings() if db_path else self.deck.new_settings()
        self.items = list(items)
        self.settings = settings
        self._store = OptimisticValue(store)
        self.queue: list[SessionCard] = []
        self.learning: deque[SessionCard] = deque()
        self.index = 0
        self.mode = MODE_SCHEDULED
        self.review_count = 0
        self.new_count = 0
        self.rebuild()

    def _notify(self, message: str) -> None:
        self.last_error = message
        if self.on_error:
            self.on_error(message)

    def _load_store(self, today: str | None = None) -> ReviewStore:
        try:
            store = load_store(self.db_path, self.deck.name, self.direction, today)
        except StorageError as e:
            logger.warning("Could not load %s review store: %s", self.deck.name, e)
            self.store_loaded = False
            self._notify(LOAD_ERROR_MESSAGE)
            return default_store(today)
        self.store_loaded = True
        return store

    def _load_settings(self) -> DeckSettings:
        try:
            return load_settings(self.db_path, self.deck.name, self.direction)
        except StorageError as e:
            logger.warning("Could not load %s settings: %s", self.deck.name, e)
            self._notify(LOAD_ERROR_MESSAGE)
            return self.deck.new_settings()

    def reload(self, now: datetime | None = None) -> bool:
        """Retry reading the persisted store and rebuild. Returns True on success."""
        if not self.db_path:
            return True
        store = self._load_store()
        if self.store_loaded:
            self._store.reset(store)
            self.rebuild(now)
        return self.store_loaded

    @property
    def store(self) -> ReviewStore:
        return self._store.value

    @property
    def current(self) -> SessionCard | None:
        if self.index < len(self.queue):
            return self.queue[self.index]
        if self.learning:
            return self.learning[0]
        return None

    @property
    def finished(self) -> bool:
        return self.index >= len(self.queue) and not self.learning

    @property
    def remaining(self) -> int:
        return max(0, len(self.queue) - self.index) + len(self.learning)

    def _replace_queue(self, cards: list, mode: str, review_count: int, new_count: int) -> None:
        self.queue = list(cards)
        self.learning.clear()
        self.index = 0
        self.mode = mode
        self.review_count = review_count
        self.new_count = new_count

    def rebuild(self, now: datetime | None = None) -> None:
        """Build the scheduled session from the current store and settings."""
        plan = build_session(self.deck, self.items, self.store, self.settings, now)
        self._replace_queue(plan.queue, MODE_SCHEDULED, len(plan.review_cards), len(plan.new_cards))

    def start_practice_ahead(self, count: int = DEFAULT_PRACTICE_AHEAD_COUNT,
                             now: datetime | None = None) -> None:
        cards = get_practice_ahead_cards(
            self.deck, self.items, self.store, count, self.settings.filters, now,
        )
        self._replace_queue(cards, MODE_PRACTICE_AHEAD, len(cards), 0)

    def start_extra_new_cards(self, count: int = DEFAULT_EXTRA_NEW_CARDS_COUNT,
                              now: datetime | None = None) -> None:
        cards = get_extra_new_cards(
            self.deck, self.items, self.store, count, self.settings.filters, now,
        )
        self._replace_queue(cards, MODE_EXTRA_NEW, 0, len(cards))

    def change_settings(self, settings: DeckSettings, now: datetime | None = None) -> bool:
        """Apply new settings and rebuild, discarding the in-flight queue and learning loop."""
        if settings.new_cards_per_day < 0:
            raise ValueError("new_cards_per_day must be >= 0")
        if self.db_path:
            try:
                save_settings(self.db_path, self.deck.name, self.direction, settings)
            except StorageError as e:
                logger.warning("Keeping previous %s settings: %s", self.deck.name, e)
                self._notify(SAVE_ERROR_MESSAGE)
                return False
        self.settings = settings
        self.rebuild(now)
        return True

    def interval_preview(self, now: datetime | None = None) -> dict:
        card = self.current
        if card is None:
            return {grade: "" for grade in Grade}
        record = get_or_create_record(card.item.id, self.store, now)
        return next_interval_preview(record.scheduler_state, now)

    def grade(self, grade: Grade, now: datetime | None = None) -> SessionCard:
        """Grade the current card, advance the session and persist the store."""
        card = self.current
        if card is None:
            raise RuntimeError("session is finished")
        grade = Grade(grade)
        new_store, record = apply_rating(self.store, card, grade, now)
        graded = SessionCard(item=card.item, record=record, is_new=card.is_new)

        in_main_queue = self.index < len(self.queue)
        if grade == Grade.AGAIN:
            if in_main_queue:
                self.learning.append(graded)
                self.index += 1
            else:
                self.learning.popleft()
                self.learning.append(graded)
        elif in_main_queue:
            self.index += 1
        else:
            self.learning.popleft()

        self._persist(new_store)
        return graded

    def _persist(self, new_store: ReviewStore) -> None:
        op_id = self._store.apply(new_store)
        if not self.db_path:
            self._store.commit(op_id)
            return
        if not self.store_loaded:
            logger.warning("Not saving %s review store: persisted progress was never loaded", self.deck.name)
            if self._store.rollback(op_id):
                self._notify(LOAD_ERROR_MESSAGE)
            return
        try:
            save_store(self.db_path, self.deck.name, self.direction, new_store)
        except StorageError as e:
            logger.warning("Rolling back %s review store: %s", self.deck.name, e)
            if self._store.rollback(op_id):
                self._notify(SAVE_ERROR_MESSAGE)
        else:
            self._store.commit(op_id)

    def clear(self, today: str | None = None) -> bool:
        """Erase all progress for this deck/direction and start over."""
        if self.db_path:
            try:
                store = clear_store(self.db_path, self.deck.name, self.direction, today)
            except StorageError as e:
                logger.warning("Could not clear %s review store: %s", self.deck.name, e)
                self._notify(SAVE_ERROR_MESSAGE)
                return False
            self.store_loaded = True
        else:
            store = ReviewStore(last_review_date=today or self.store.last_review_date)
        self._store.reset(store)
        self.rebuild()
        return True
