"""Session building: which cards are due, which new cards are introduced, and in what order."""
import logging
from dataclasses import dataclass, field
from datetime import datetime

from drill_scheduler.decks import Deck, matches_filters
from drill_scheduler.fsrs_bridge import empty_state, utc_now
from drill_scheduler.models import CardState, DeckSettings, ReviewRecord, ReviewStore, SessionCard

logger = logging.getLogger(__name__)

LEARNING_STATES = (CardState.LEARNING, CardState.RELEARNING)


@dataclass
class SessionPlan:
    review_cards: list = field(default_factory=list)
    new_cards: list = field(default_factory=list)

    @property
    def queue(self) -> list:
        """Reviews first, then new introductions."""
        return self.review_cards + self.new_cards

    def __len__(self) -> int:
        return len(self.review_cards) + len(self.new_cards)


def item_key(item_id) -> str:
    return str(item_id)


def get_or_create_record(item_id, store: ReviewStore, now: datetime | None = None) -> ReviewRecord:
    """Return the stored record, or a fresh NEW record that is not added to the store."""
    key = item_key(item_id)
    record = store.cards.get(key)
    if record is not None:
        return record
    return ReviewRecord(item_id=key, scheduler_state=empty_state(now))


def is_due(record: ReviewRecord, now: datetime | None = None) -> bool:
    if record.state == CardState.NEW:
        return False
    return record.due <= utc_now(now)


def filter_items(deck: Deck, items: list, filters: dict) -> list:
    if not filters:
        return list(items)
    return [item for item in items if matches_filters(deck, item, filters)]


def iter_session_candidates(deck: Deck, items: list, store: ReviewStore,
                            settings: DeckSettings, now: datetime | None = None):
    """Yield a SessionCard for every item a scheduled session would contain.

    This is the single inclusion rule shared by the session builder and the
    due-count aggregator.
    """
    now = utc_now(now)
    remaining_new = max(0, settings.new_cards_per_day - len(store.new_cards_today))
    drawn_new = 0
    for item in filter_items(deck, items, settings.filters):
        key = item_key(item.id)
        record = get_or_create_record(key, store, now)
        if record.state == CardState.NEW:
            if key not in store.new_cards_today and drawn_new < remaining_new:
                drawn_new += 1
                yield SessionCard(item=item, record=record, is_new=True)
        elif record.state in LEARNING_STATES:
            if key not in store.reviewed_today:
                yield SessionCard(item=item, record=record, is_new=False)
        elif is_due(record, now) and key not in store.reviewed_today:
            yield SessionCard(item=item, record=record, is_new=False)


def sort_by_due(cards: list) -> list:
    return sorted(cards, key=lambda card: card.record.due)


def custom_first(cards: list, sort=None) -> list:
    """Split cards into custom and system buckets, optionally sort each, custom first."""
    custom = [card for card in cards if card.item.is_custom]
    system = [card for card in cards if not card.item.is_custom]
    if sort is not None:
        custom, system = sort(custom), sort(system)
    return custom + system


def build_session(deck: Deck, items: list, store: ReviewStore,
                  settings: DeckSettings, now: datetime | None = None) -> SessionPlan:
    review_cards, new_cards = [], []
    for card in iter_session_candidates(deck, items, store, settings, now):
        (new_cards if card.is_new else review_cards).append(card)
    plan = SessionPlan(
        review_cards=custom_first(review_cards, sort=sort_by_due),
        new_cards=custom_first(new_cards),
    )
    logger.debug(
        "Built %s session: %d reviews, %d new",
        deck.name, len(plan.review_cards), len(plan.new_cards),
    )
    return plan


def get_practice_ahead_cards(deck: Deck, items: list, store: ReviewStore, count: int,
                             filters: dict | None = None, now: datetime | None = None) -> list:
    """Cards already reviewed today or not yet due, earliest due first."""
    now = utc_now(now)
    if count <= 0:
        return []
    cards = []
    for item in filter_items(deck, items, filters or {}):
        key = item_key(item.id)
        record = get_or_create_record(key, store, now)
        if record.state == CardState.NEW:
            continue
        if not is_due(record, now) or key in store.reviewed_today:
            cards.append(SessionCard(item=item, record=record, is_new=False))
    return custom_first(cards, sort=sort_by_due)[:count]


def get_extra_new_cards(deck: Deck, items: list, store: ReviewStore, count: int,
                        filters: dict | None = None, now: datetime | None = None) -> list:
    """New cards beyond the daily cap, in content order."""
    now = utc_now(now)
    cards = []
    if count <= 0:
        return cards
    for item in filter_items(deck, items, filters or {}):
        key = item_key(item.id)
        record = get_or_create_record(key, store, now)
        if record.state == CardState.NEW and key not in store.new_cards_today:
            cards.append(SessionCard(item=item, record=record, is_new=True))
            if len(cards) >= count:
                break
    return custom_first(cards)
