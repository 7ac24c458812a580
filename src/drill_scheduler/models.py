"""Data classes for the scheduling domain model."""
from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum
from typing import Optional


class CardState(IntEnum):
    NEW = 0
    LEARNING = 1
    REVIEW = 2
    RELEARNING = 3


class Grade(IntEnum):
    AGAIN = 1
    HARD = 2
    GOOD = 3
    EASY = 4


@dataclass(frozen=True)
class SchedulerState:
    state: CardState
    due: datetime
    memory: dict = field(default_factory=dict)  # opaque fsrs card fields


@dataclass(frozen=True)
class ReviewRecord:
    item_id: str
    scheduler_state: SchedulerState
    review_log: Optional[dict] = None

    @property
    def state(self) -> CardState:
        return self.scheduler_state.state

    @property
    def due(self) -> datetime:
        return self.scheduler_state.due


@dataclass(frozen=True)
class ReviewStore:
    """Per-deck (or per deck and direction) review state.

    Treated as a value: every change produces a new store, so two stores
    compare equal exactly when their contents do.
    """
    last_review_date: str
    cards: dict = field(default_factory=dict)
    reviewed_today: tuple = ()
    new_cards_today: tuple = ()


@dataclass(frozen=True)
class DeckSettings:
    new_cards_per_day: int = 10
    filters: dict = field(default_factory=dict)


@dataclass(frozen=True)
class Item:
    id: str
    deck: str
    content: dict = field(default_factory=dict)
    is_custom: bool = False


@dataclass(frozen=True)
class SessionCard:
    item: Item
    record: ReviewRecord
    is_new: bool
