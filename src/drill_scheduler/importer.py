"""Import learner-authored items from YAML or JSON files."""
import json
from pathlib import Path

import yaml

from drill_scheduler.content import CUSTOM_DECKS, add_custom_item

# Fields an item must carry to be drillable, per deck
REQUIRED_FIELDS = {
    "vocabulary": ("polish", "english"),
    "declension": ("front", "back"),
    "sentences": ("polish", "english"),
}


def read_entries(file_path: str) -> list[dict]:
    path = Path(file_path)
    suffix = path.suffix.lower()
    text = path.read_text(encoding="utf-8")
    if suffix == ".json":
        data = json.loads(text)
    elif suffix in (".yaml", ".yml"):
        data = yaml.safe_load(text)
    else:
        raise ValueError(f"Unsupported file type: {suffix}")
    if isinstance(data, dict):
        # Accept {"items": [...]} as well as a bare list
        data = data.get("items", [])
    if not isinstance(data, list):
        raise ValueError("Expected a list of items")
    return data


def import_file(db_path: str, deck: str, file_path: str) -> dict:
    """Add every valid entry of a file to a deck as custom items."""
    if deck not in CUSTOM_DECKS:
        raise ValueError(f"custom items are not supported for {deck}")
    required = REQUIRED_FIELDS[deck]
    imported, skipped = 0, 0
    for entry in read_entries(file_path):
        if not isinstance(entry, dict) or any(not entry.get(f) for f in required):
            skipped += 1
            continue
        entry = {k: v for k, v in entry.items() if k != "id"}
        add_custom_item(db_path, deck, entry)
        imported += 1
    return {"filename": Path(file_path).name, "deck": deck, "imported": imported, "skipped": skipped}
