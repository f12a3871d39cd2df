"""SQLite database schema definition.

Source documents are kept whole as JSON; the extra columns exist for
filtering and listing without decoding every document.
"""

import sqlite3
from pathlib import Path

SCHEMA_VERSION = 1

DOCUMENT_TABLES = ("sales", "returns", "uploaded_sheets", "products", "purchases", "combos")

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS import_batches (
    id TEXT PRIMARY KEY,
    source TEXT NOT NULL,
    file_path TEXT NOT NULL,
    imported_at TEXT NOT NULL DEFAULT (datetime('now')),
    record_count INTEGER NOT NULL DEFAULT 0,
    status TEXT NOT NULL DEFAULT 'pending'
);

CREATE TABLE IF NOT EXISTS sales (
    id TEXT PRIMARY KEY,
    batch_id TEXT REFERENCES import_batches(id),
    sale_date TEXT,
    data TEXT NOT NULL,
    created_at TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS returns (
    id TEXT PRIMARY KEY,
    batch_id TEXT REFERENCES import_batches(id),
    category TEXT,
    return_date TEXT,
    data TEXT NOT NULL,
    created_at TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS uploaded_sheets (
    id TEXT PRIMARY KEY,
    batch_id TEXT REFERENCES import_batches(id),
    file_name TEXT NOT NULL,
    upload_date TEXT NOT NULL DEFAULT (datetime('now')),
    data TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS products (
    id TEXT PRIMARY KEY,
    batch_id TEXT REFERENCES import_batches(id),
    name TEXT,
    data TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS purchases (
    id TEXT PRIMARY KEY,
    batch_id TEXT REFERENCES import_batches(id),
    data TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS combos (
    id TEXT PRIMARY KEY,
    batch_id TEXT REFERENCES import_batches(id),
    name TEXT,
    data TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_sales_date ON sales(sale_date);
CREATE INDEX IF NOT EXISTS idx_returns_date ON returns(return_date);
"""


def create_schema(db_path: Path) -> sqlite3.Connection:
    """Create the database schema. Returns the connection."""
    conn = sqlite3.connect(str(db_path))
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")
    conn.executescript(SCHEMA_SQL)
    conn.execute(
        "INSERT OR IGNORE INTO schema_version (version) VALUES (?)",
        (SCHEMA_VERSION,),
    )
    conn.commit()
    return conn
