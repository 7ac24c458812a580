"""Seed the database with the bundled system decks."""
from pathlib import Path

import yaml

from drill_scheduler.content import add_item
from drill_scheduler.db import get_connection

DATA_DIR = Path(__file__).parent / "data"

# deck -> (file, top-level key)
SYSTEM_DECKS = {
    "vocabulary": ("vocabulary.yaml", "words"),
    "declension": ("declension.yaml", "cards"),
    "sentences": ("sentences.yaml", "sentences"),
    "conjugation": ("verbs.yaml", "verbs"),
}


def is_seeded(db_path: str) -> bool:
    """Check whether any system content has been loaded."""
    conn = get_connection(db_path)
    count = conn.execute("SELECT COUNT(*) FROM items WHERE is_custom = 0").fetchone()[0]
    conn.close()
    return count > 0


def load_deck_file(path: Path, key: str) -> list[dict]:
    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    return data.get(key) or []


def seed_deck(db_path: str, deck: str, data_dir: Path = DATA_DIR) -> int:
    """Insert one deck's system items. Existing ids are left alone. Returns rows added."""
    filename, key = SYSTEM_DECKS[deck]
    added = 0
    for entry in load_deck_file(data_dir / filename, key):
        if add_item(db_path, deck, entry["id"], entry):
            added += 1
    return added


def seed_all(db_path: str) -> None:
    for deck in SYSTEM_DECKS:
        seed_deck(db_path, deck)
