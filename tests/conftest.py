from datetime import datetime, timedelta, timezone

import pytest

from drill_scheduler.models import CardState, Grade, Item, ReviewRecord, ReviewStore, SchedulerState
from drill_scheduler.rating import rate_record

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)
TODAY = "2026-03-10"


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary SQLite database path for tests."""
    db_path = str(tmp_path / "test_drill.db")
    return db_path


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def empty_store():
    return ReviewStore(last_review_date=TODAY)


@pytest.fixture
def make_items():
    """Factory for plain vocabulary items; ids are "1", "2", ..."""
    def _make(count, deck="vocabulary", custom_ids=()):
        return [
            Item(id=str(i), deck=deck, content={"polish": f"pl{i}", "english": f"en{i}"},
                 is_custom=str(i) in custom_ids)
            for i in range(1, count + 1)
        ]
    return _make


@pytest.fixture
def make_record():
    """Factory for records in a given state with a due offset from NOW (in hours)."""
    def _make(item_id, state=CardState.REVIEW, due_in_hours=-24):
        return ReviewRecord(
            item_id=str(item_id),
            scheduler_state=SchedulerState(state=state, due=NOW + timedelta(hours=due_in_hours)),
        )
    return _make


@pytest.fixture
def graded_review_record():
    """A real fsrs-backed Review record, graded Easy long ago so it is due at NOW."""
    def _make(item_id, days_ago=120):
        fresh = ReviewRecord(
            item_id=str(item_id),
            scheduler_state=SchedulerState(state=CardState.NEW, due=NOW - timedelta(days=days_ago)),
        )
        return rate_record(fresh, Grade.EASY, NOW - timedelta(days=days_ago))
    return _make
