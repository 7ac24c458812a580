# tests/test_scheduler.py
from dataclasses import replace
from datetime import timedelta

from drill_scheduler.decks import get_deck
from drill_scheduler.models import CardState, DeckSettings, Item, ReviewStore
from drill_scheduler.scheduler import (
    build_session, get_extra_new_cards, get_or_create_record, get_practice_ahead_cards, is_due,
)

VOCAB = get_deck("vocabulary")


def ids(cards):
    return [c.item.id for c in cards]


def test_get_or_create_record_synthesizes_new(empty_store, now):
    record = get_or_create_record(42, empty_store, now)
    assert record.item_id == "42"
    assert record.state == CardState.NEW
    assert "42" not in empty_store.cards


def test_get_or_create_record_numeric_and_string_ids_match(empty_store, make_record):
    store = replace(empty_store, cards={"7": make_record(7)})
    assert get_or_create_record(7, store).state == CardState.REVIEW


def test_is_due(make_record, now):
    assert is_due(make_record(1, due_in_hours=-1), now)
    assert is_due(make_record(1, due_in_hours=0), now)
    assert not is_due(make_record(1, due_in_hours=1), now)


def test_new_record_is_never_due(make_record, now):
    assert not is_due(make_record(1, state=CardState.NEW, due_in_hours=-100), now)


def test_all_new_respects_cap(make_items, empty_store, now):
    plan = build_session(VOCAB, make_items(3), empty_store, DeckSettings(new_cards_per_day=2), now)
    assert ids(plan.new_cards) == ["1", "2"]
    assert plan.review_cards == []
    assert all(c.is_new for c in plan.new_cards)


def test_cap_reduced_by_new_cards_today(make_items, empty_store, now):
    store = replace(empty_store, new_cards_today=("9",))
    plan = build_session(VOCAB, make_items(5), store, DeckSettings(new_cards_per_day=3), now)
    assert len(plan.new_cards) == 2


def test_negative_remaining_yields_no_new_cards(make_items, empty_store, now):
    store = replace(empty_store, new_cards_today=("7", "8", "9"))
    plan = build_session(VOCAB, make_items(5), store, DeckSettings(new_cards_per_day=1), now)
    assert plan.new_cards == []


def test_zero_new_cards_per_day(make_items, empty_store, now):
    plan = build_session(VOCAB, make_items(5), empty_store, DeckSettings(new_cards_per_day=0), now)
    assert len(plan) == 0


def test_new_card_already_introduced_today_is_skipped(make_items, empty_store, now):
    store = replace(empty_store, new_cards_today=("1",))
    plan = build_session(VOCAB, make_items(3), store, DeckSettings(new_cards_per_day=5), now)
    assert ids(plan.new_cards) == ["2", "3"]


def test_due_reviews_included_and_sorted_by_due(make_items, make_record, empty_store, now):
    store = replace(empty_store, cards={
        "1": make_record(1, due_in_hours=-2),
        "2": make_record(2, due_in_hours=-48),
        "3": make_record(3, due_in_hours=5),
        "4": make_record(4, due_in_hours=-10),
    })
    plan = build_session(VOCAB, make_items(4), store, DeckSettings(new_cards_per_day=0), now)
    assert ids(plan.review_cards) == ["2", "4", "1"]


def test_equal_due_keeps_content_order(make_items, make_record, empty_store, now):
    store = replace(empty_store, cards={
        "1": make_record(1, due_in_hours=-3),
        "2": make_record(2, due_in_hours=-3),
        "3": make_record(3, due_in_hours=-3),
    })
    plan = build_session(VOCAB, make_items(3), store, DeckSettings(), now)
    assert ids(plan.review_cards) == ["1", "2", "3"]


def test_reviewed_today_excluded(make_items, make_record, empty_store, now):
    store = replace(
        empty_store,
        cards={"1": make_record(1), "2": make_record(2)},
        reviewed_today=("1",),
    )
    plan = build_session(VOCAB, make_items(2), store, DeckSettings(), now)
    assert ids(plan.review_cards) == ["2"]


def test_learning_cards_actionable_before_due(make_items, make_record, empty_store, now):
    store = replace(empty_store, cards={
        "1": make_record(1, state=CardState.LEARNING, due_in_hours=3),
        "2": make_record(2, state=CardState.RELEARNING, due_in_hours=30),
        "3": make_record(3, state=CardState.REVIEW, due_in_hours=3),
    })
    plan = build_session(VOCAB, make_items(3), store, DeckSettings(new_cards_per_day=0), now)
    assert ids(plan.review_cards) == ["1", "2"]


def test_learning_card_reviewed_today_excluded(make_items, make_record, empty_store, now):
    store = replace(
        empty_store,
        cards={"1": make_record(1, state=CardState.LEARNING, due_in_hours=-1)},
        reviewed_today=("1",),
    )
    plan = build_session(VOCAB, make_items(1), store, DeckSettings(), now)
    assert len(plan) == 0


def test_custom_reviews_sorted_separately_and_first(make_items, make_record, empty_store, now):
    items = make_items(4, custom_ids=("3", "4"))
    store = replace(empty_store, cards={
        "1": make_record(1, due_in_hours=-100),
        "2": make_record(2, due_in_hours=-50),
        "3": make_record(3, due_in_hours=-1),
        "4": make_record(4, due_in_hours=-5),
    })
    plan = build_session(VOCAB, items, store, DeckSettings(), now)
    assert ids(plan.review_cards) == ["4", "3", "1", "2"]


def test_custom_new_cards_first_within_cap(make_items, empty_store, now):
    items = make_items(4, custom_ids=("2",))
    plan = build_session(VOCAB, items, empty_store, DeckSettings(new_cards_per_day=2), now)
    assert ids(plan.new_cards) == ["2", "1"]


def test_queue_is_reviews_then_new(make_items, make_record, empty_store, now):
    store = replace(empty_store, cards={"3": make_record(3)})
    plan = build_session(VOCAB, make_items(3), store, DeckSettings(new_cards_per_day=5), now)
    assert ids(plan.queue) == ["3", "1", "2"]


def test_partition_and_subset(make_items, make_record, empty_store, now):
    items = make_items(10, custom_ids=("5", "6"))
    store = replace(
        empty_store,
        cards={
            "1": make_record(1, due_in_hours=-1),
            "2": make_record(2, state=CardState.LEARNING, due_in_hours=1),
            "5": make_record(5, due_in_hours=-7),
            "6": make_record(6, due_in_hours=7),
        },
        reviewed_today=("2",),
        new_cards_today=("2",),
    )
    plan = build_session(VOCAB, items, store, DeckSettings(new_cards_per_day=4), now)
    review_ids, new_ids = set(ids(plan.review_cards)), set(ids(plan.new_cards))
    assert review_ids.isdisjoint(new_ids)
    assert (review_ids | new_ids) <= {item.id for item in items}
    assert len(plan.new_cards) <= max(0, 4 - len(store.new_cards_today))
    assert len(plan.queue) == len(set(ids(plan.queue)))


def test_build_session_is_idempotent(make_items, make_record, empty_store, now):
    items = make_items(6, custom_ids=("6",))
    store = replace(empty_store, cards={"1": make_record(1), "6": make_record(6, due_in_hours=-3)})
    settings = DeckSettings(new_cards_per_day=3)
    first = build_session(VOCAB, items, store, settings, now)
    second = build_session(VOCAB, items, store, settings, now)
    assert first.queue == second.queue


def test_deck_filters_applied_to_items(now):
    deck = get_deck("sentences")
    items = [
        Item(id="a", deck="sentences", content={"level": "A1"}),
        Item(id="b", deck="sentences", content={"level": "B2"}),
        Item(id="c", deck="sentences", content={"level": "A1"}),
    ]
    settings = DeckSettings(new_cards_per_day=5, filters={"levels": ["A1"]})
    plan = build_session(deck, items, ReviewStore(last_review_date="2026-03-10"), settings, now)
    assert ids(plan.new_cards) == ["a", "c"]


def test_empty_deck(empty_store, now):
    plan = build_session(VOCAB, [], empty_store, DeckSettings(), now)
    assert plan.queue == []


# --- Practice ahead ---


def test_practice_ahead_selects_not_due_and_reviewed_today(make_items, make_record, empty_store, now):
    store = replace(
        empty_store,
        cards={
            "1": make_record(1, due_in_hours=48),
            "2": make_record(2, due_in_hours=-1),
            "3": make_record(3, due_in_hours=-1),
            "4": make_record(4, due_in_hours=24),
        },
        reviewed_today=("3",),
    )
    cards = get_practice_ahead_cards(VOCAB, make_items(5), store, 10, now=now)
    assert ids(cards) == ["3", "4", "1"]
    assert not any(c.is_new for c in cards)


def test_practice_ahead_respects_count_and_custom_first(make_items, make_record, empty_store, now):
    items = make_items(4, custom_ids=("4",))
    store = replace(empty_store, cards={
        "1": make_record(1, due_in_hours=10),
        "2": make_record(2, due_in_hours=20),
        "3": make_record(3, due_in_hours=30),
        "4": make_record(4, due_in_hours=90),
    })
    cards = get_practice_ahead_cards(VOCAB, items, store, 2, now=now)
    assert ids(cards) == ["4", "1"]


def test_practice_ahead_zero_count(make_items, make_record, empty_store, now):
    store = replace(empty_store, cards={"1": make_record(1, due_in_hours=10)})
    assert get_practice_ahead_cards(VOCAB, make_items(1), store, 0, now=now) == []


# --- Extra new cards ---


def test_extra_new_ignores_daily_cap(make_items, empty_store, now):
    store = replace(empty_store, new_cards_today=("1", "2"))
    cards = get_extra_new_cards(VOCAB, make_items(6), store, 3, now=now)
    assert ids(cards) == ["3", "4", "5"]
    assert all(c.is_new for c in cards)


def test_extra_new_skips_seen_cards(make_items, make_record, empty_store, now):
    store = replace(empty_store, cards={"1": make_record(1, due_in_hours=10)})
    cards = get_extra_new_cards(VOCAB, make_items(3), store, 5, now=now)
    assert ids(cards) == ["2", "3"]


def test_extra_new_with_filters(now, empty_store):
    deck = get_deck("declension")
    items = [
        Item(id="1", deck="declension", content={"case": "Genitive"}),
        Item(id="2", deck="declension", content={"case": "Dative"}),
    ]
    cards = get_extra_new_cards(deck, items, empty_store, 5, filters={"cases": ["Dative"]}, now=now)
    assert ids(cards) == ["2"]


def test_due_boundary_uses_now(make_items, make_record, empty_store, now):
    store = replace(empty_store, cards={"1": make_record(1, due_in_hours=1)})
    later = now + timedelta(hours=2)
    assert build_session(VOCAB, make_items(1), store, DeckSettings(), now).review_cards == []
    assert ids(build_session(VOCAB, make_items(1), store, DeckSettings(), later).review_cards) == ["1"]
