"""Content source: the drillable items of each deck."""
import json
import re
import uuid
from datetime import datetime

from drill_scheduler.db import get_connection
from drill_scheduler.decks import get_deck, matches_filters
from drill_scheduler.models import Item

# Decks whose items are stored directly; conjugation stores verbs and
# aspect pairs are derived from those verbs.
DOCUMENT_DECKS = ("vocabulary", "declension", "sentences", "conjugation")
CUSTOM_DECKS = ("vocabulary", "declension", "sentences")

PERSON_FORM_KEYS = ["1sg", "2sg", "3sg", "1pl", "2pl", "3pl"]
GENDERED_FORM_KEYS = [
    "1sg_m", "1sg_f", "2sg_m", "2sg_f", "3sg_m", "3sg_f", "3sg_n",
    "1pl_m", "1pl_f", "2pl_m", "2pl_f", "3pl_m", "3pl_f",
]
TENSE_FORM_KEYS = {
    "present": PERSON_FORM_KEYS,
    "past": GENDERED_FORM_KEYS,
    "future": PERSON_FORM_KEYS,
    "imperative": ["2sg", "1pl", "2pl"],
    "conditional": GENDERED_FORM_KEYS,
}

_PERSONS = {"1": "1st", "2": "2nd", "3": "3rd"}
_GENDERS = {"m": "Masculine", "f": "Feminine", "n": "Neuter"}
_FORM_KEY_RE = re.compile(r"^(\d)(sg|pl)(?:_([mfn]))?$")


def parse_form_key(form_key: str) -> dict:
    match = _FORM_KEY_RE.match(form_key)
    if not match:
        raise ValueError(f"Invalid form key: {form_key}")
    person, number, gender = match.groups()
    return {
        "person": _PERSONS[person],
        "number": "Singular" if number == "sg" else "Plural",
        "gender": _GENDERS.get(gender),
    }


def full_form_key(verb_id: str, tense: str, form_key: str) -> str:
    return f"{verb_id}:{tense}:{form_key}"


def expand_verb_forms(verb: dict) -> list[Item]:
    """One conjugation item per drillable form of a verb, in tense order."""
    items = []
    conjugations = verb.get("conjugations") or {}
    for tense, form_keys in TENSE_FORM_KEYS.items():
        forms = conjugations.get(tense)
        if not forms:
            continue
        for form_key in form_keys:
            form = forms.get(form_key)
            if not form:
                continue
            items.append(Item(
                id=full_form_key(verb["id"], tense, form_key),
                deck="conjugation",
                content={
                    "verb_id": verb["id"],
                    "infinitive": verb.get("infinitive"),
                    "aspect": verb.get("aspect"),
                    "verb_class": verb.get("verb_class"),
                    "tense": tense,
                    "form_key": form_key,
                    "pl": form.get("pl"),
                    "en": form.get("en", []),
                    **parse_form_key(form_key),
                },
            ))
    return items


def build_aspect_pairs(verbs: list[dict]) -> list[Item]:
    """One item per unordered aspect pair whose partner verb exists."""
    by_id = {verb["id"]: verb for verb in verbs}
    seen = set()
    items = []
    for verb in verbs:
        pair = by_id.get(verb.get("aspect_pair"))
        if pair is None:
            continue
        pair_key = tuple(sorted((verb["id"], pair["id"])))
        if pair_key in seen:
            continue
        seen.add(pair_key)
        items.append(Item(
            id=verb["id"],
            deck="aspect_pairs",
            content={"verb": verb, "pair_verb": pair},
        ))
    return items


def _load_documents(db_path: str, deck: str) -> list:
    conn = get_connection(db_path)
    rows = conn.execute(
        "SELECT * FROM items WHERE deck = ? ORDER BY is_custom DESC, id ASC", (deck,),
    ).fetchall()
    conn.close()
    return rows


def _row_to_item(row) -> Item:
    return Item(
        id=row["item_id"],
        deck=row["deck"],
        content=json.loads(row["payload"]),
        is_custom=bool(row["is_custom"]),
    )


def list_items(db_path: str, deck: str, filters: dict | None = None) -> list[Item]:
    """All items of a deck in content order (custom items first)."""
    deck_info = get_deck(deck)
    if deck == "conjugation":
        items = []
        for row in _load_documents(db_path, "conjugation"):
            items.extend(expand_verb_forms(json.loads(row["payload"])))
    elif deck == "aspect_pairs":
        verbs = [json.loads(row["payload"]) for row in _load_documents(db_path, "conjugation")]
        items = build_aspect_pairs(verbs)
    else:
        items = [_row_to_item(row) for row in _load_documents(db_path, deck)]
    if filters:
        items = [item for item in items if matches_filters(deck_info, item, filters)]
    return items


def add_item(db_path: str, deck: str, item_id: str, payload: dict, is_custom: bool = False) -> bool:
    """Insert a content document. Returns False if the id already exists in the deck."""
    if deck not in DOCUMENT_DECKS:
        raise ValueError(f"deck {deck} does not store items directly")
    conn = get_connection(db_path)
    cursor = conn.execute(
        "INSERT OR IGNORE INTO items (deck, item_id, is_custom, payload, created_at) VALUES (?, ?, ?, ?, ?)",
        (deck, str(item_id), int(is_custom), json.dumps(payload), datetime.now().isoformat()),
    )
    conn.commit()
    conn.close()
    return cursor.rowcount > 0


def add_custom_item(db_path: str, deck: str, payload: dict) -> Item:
    """Store a learner-authored item; it competes ahead of system items for queue slots."""
    if deck not in CUSTOM_DECKS:
        raise ValueError(f"custom items are not supported for {deck}")
    item_id = f"custom_{uuid.uuid4().hex[:12]}"
    add_item(db_path, deck, item_id, payload, is_custom=True)
    return Item(id=item_id, deck=deck, content=payload, is_custom=True)


def delete_custom_item(db_path: str, deck: str, item_id: str) -> bool:
    conn = get_connection(db_path)
    cursor = conn.execute(
        "DELETE FROM items WHERE deck = ? AND item_id = ? AND is_custom = 1", (deck, str(item_id)),
    )
    conn.commit()
    conn.close()
    return cursor.rowcount > 0
