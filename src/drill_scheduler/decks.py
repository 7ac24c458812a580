"""Registry of the drillable decks and their deck-specific settings."""
import copy
from dataclasses import dataclass, field, replace

from drill_scheduler.models import DeckSettings, Item

TRANSLATION_DIRECTIONS = ("pl-to-en", "en-to-pl")

ALL_LEVELS = ("A1", "A2", "B1", "B2", "C1", "C2")


@dataclass(frozen=True)
class Deck:
    name: str
    title: str
    directions: tuple = (None,)
    default_settings: DeckSettings = field(default_factory=DeckSettings)
    # filter key -> item content field it constrains
    filter_fields: dict = field(default_factory=dict)

    def new_settings(self) -> DeckSettings:
        """A private copy of the default settings, safe to hand out."""
        return replace(self.default_settings, filters=copy.deepcopy(self.default_settings.filters))


DECKS = {
    "vocabulary": Deck(
        name="vocabulary",
        title="Vocabulary",
        directions=TRANSLATION_DIRECTIONS,
        default_settings=DeckSettings(new_cards_per_day=10),
    ),
    "declension": Deck(
        name="declension",
        title="Declension",
        default_settings=DeckSettings(new_cards_per_day=10),
        filter_fields={"cases": "case", "genders": "gender", "number": "number"},
    ),
    "sentences": Deck(
        name="sentences",
        title="Sentences",
        directions=TRANSLATION_DIRECTIONS,
        default_settings=DeckSettings(new_cards_per_day=5, filters={"levels": list(ALL_LEVELS)}),
        filter_fields={"levels": "level"},
    ),
    "conjugation": Deck(
        name="conjugation",
        title="Conjugation",
        directions=TRANSLATION_DIRECTIONS,
        default_settings=DeckSettings(new_cards_per_day=10),
        filter_fields={
            "tenses": "tense",
            "persons": "person",
            "number": "number",
            "aspects": "aspect",
            "verb_classes": "verb_class",
            "genders": "gender",
        },
    ),
    "aspect_pairs": Deck(
        name="aspect_pairs",
        title="Aspect Pairs",
        default_settings=DeckSettings(new_cards_per_day=5),
    ),
}


def get_deck(name: str) -> Deck:
    try:
        return DECKS[name]
    except KeyError:
        raise ValueError(f"unknown deck: {name}") from None


def check_direction(deck: Deck, direction: str | None) -> str | None:
    if direction not in deck.directions:
        raise ValueError(f"unknown direction for {deck.name}: {direction}")
    return direction


def matches_filters(deck: Deck, item: Item, filters: dict) -> bool:
    """Check an item against deck filters.

    A list filter matches when empty or when it contains the item's value;
    a scalar filter matches when it is "All" or equal to the item's value.
    Filters the deck does not know are ignored.
    """
    for key, wanted in filters.items():
        content_field = deck.filter_fields.get(key)
        if content_field is None or wanted is None:
            continue
        value = item.content.get(content_field)
        if isinstance(wanted, (list, tuple, set)):
            if wanted and value not in wanted:
                return False
        elif wanted != "All" and value != wanted:
            return False
    return True
