"""Apply a learner's grade to a card and to the day's review bookkeeping."""
from dataclasses import replace
from datetime import datetime

from drill_scheduler.fsrs_bridge import grade_state
from drill_scheduler.models import Grade, ReviewRecord, ReviewStore, SessionCard
from drill_scheduler.scheduler import item_key


def rate_record(record: ReviewRecord, grade: Grade, now: datetime | None = None) -> ReviewRecord:
    new_state, review_log = grade_state(record.scheduler_state, grade, now)
    return replace(record, scheduler_state=new_state, review_log=review_log)


def apply_rating(store: ReviewStore, card: SessionCard, grade: Grade,
                 now: datetime | None = None) -> tuple[ReviewStore, ReviewRecord]:
    """Grade a session card and return the updated store and record.

    The input store is left untouched. A card drawn as new is counted against
    today's new-card allowance whatever the grade; only grades other than
    Again mark it as reviewed for the day.
    """
    grade = Grade(grade)
    key = item_key(card.item.id)
    updated = rate_record(card.record, grade, now)

    new_cards_today = store.new_cards_today
    if card.is_new and key not in new_cards_today:
        new_cards_today = new_cards_today + (key,)

    reviewed_today = store.reviewed_today
    if grade != Grade.AGAIN and key not in reviewed_today:
        reviewed_today = reviewed_today + (key,)

    new_store = replace(
        store,
        cards={**store.cards, key: updated},
        new_cards_today=new_cards_today,
        reviewed_today=reviewed_today,
    )
    return new_store, updated
