"""Database initialization and connection management."""
import sqlite3
from pathlib import Path

DEFAULT_DB_PATH = str(Path.home() / ".drill_scheduler" / "drill.db")

SCHEMA = """
CREATE TABLE IF NOT EXISTS items (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    deck TEXT NOT NULL,
    item_id TEXT NOT NULL,
    is_custom INTEGER DEFAULT 0,
    payload TEXT NOT NULL,
    created_at TEXT,
    UNIQUE(deck, item_id)
);

CREATE TABLE IF NOT EXISTS review_stores (
    deck TEXT NOT NULL,
    direction TEXT NOT NULL DEFAULT '',
    data TEXT NOT NULL,
    updated_at TEXT,
    PRIMARY KEY (deck, direction)
);

CREATE TABLE IF NOT EXISTS deck_settings (
    deck TEXT NOT NULL,
    direction TEXT NOT NULL DEFAULT '',
    data TEXT NOT NULL,
    PRIMARY KEY (deck, direction)
);
"""


def get_connection(db_path: str = DEFAULT_DB_PATH) -> sqlite3.Connection:
    """Return a SQLite connection with row factory and foreign keys enabled."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def init_db(db_path: str = DEFAULT_DB_PATH) -> None:
    """Initialize the database, creating all tables if they don't exist."""
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = get_connection(db_path)
    conn.executescript(SCHEMA)
    conn.commit()
    conn.close()
