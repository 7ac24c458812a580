"""Adapter between the engine's card model and the fsrs per-card scheduler."""
import math
from datetime import datetime, timezone

from fsrs import Card, Rating, Scheduler, State

from drill_scheduler.models import CardState, Grade, SchedulerState

# no fuzzing: a previewed interval equals the interval applied
scheduler = Scheduler(enable_fuzzing=False)

RATING_MAP = {
    Grade.AGAIN: Rating.Again,
    Grade.HARD: Rating.Hard,
    Grade.GOOD: Rating.Good,
    Grade.EASY: Rating.Easy,
}

STATE_MAP = {
    State.Learning: CardState.LEARNING,
    State.Review: CardState.REVIEW,
    State.Relearning: CardState.RELEARNING,
}


def utc_now(now: datetime | None = None) -> datetime:
    """Return `now` as an aware UTC datetime (wall clock when omitted)."""
    if now is None:
        return datetime.now(timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc)


def empty_state(now: datetime | None = None) -> SchedulerState:
    return SchedulerState(state=CardState.NEW, due=utc_now(now))


def _to_fsrs_card(state: SchedulerState) -> Card:
    # fsrs has no New state: a never-graded card starts as a fresh Card
    if state.state == CardState.NEW or not state.memory:
        return Card(due=state.due)
    return Card.from_dict(state.memory)


def _from_fsrs_card(card: Card) -> SchedulerState:
    return SchedulerState(
        state=STATE_MAP[card.state],
        due=utc_now(card.due),
        memory=card.to_dict(),
    )


def grade_state(state: SchedulerState, grade: Grade, now: datetime | None = None) -> tuple[SchedulerState, dict]:
    """Apply a grade to a scheduler state.

    Args:
        state: Current scheduler state (NEW states are graded as fresh cards)
        grade: Learner's self-assessed recall
        now: Review time, defaults to the wall clock

    Returns:
        Tuple of the new scheduler state and the serialized review log.
    """
    card, review_log = scheduler.review_card(
        _to_fsrs_card(state), RATING_MAP[Grade(grade)], review_datetime=utc_now(now),
    )
    return _from_fsrs_card(card), review_log.to_dict()


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def format_interval(due: datetime, now: datetime) -> str:
    diff_seconds = (utc_now(due) - utc_now(now)).total_seconds()
    minutes = _round_half_up(diff_seconds / 60)
    hours = _round_half_up(diff_seconds / 3600)
    days = _round_half_up(diff_seconds / 86400)
    if minutes < 1:
        return "<1m"
    if minutes < 60:
        return f"{minutes}m"
    if hours < 24:
        return f"{hours}h"
    return f"{days}d"


def next_interval_preview(state: SchedulerState, now: datetime | None = None) -> dict:
    """Human-readable interval each grade would produce, for labelling rating choices."""
    now = utc_now(now)
    preview = {}
    for grade in Grade:
        next_state, _ = grade_state(state, grade, now)
        preview[grade] = format_interval(next_state.due, now)
    return preview
