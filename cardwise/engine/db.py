"""Database layer for Cardwise flashcard application."""

import sqlite3
import json
import threading
from contextlib import contextmanager
from typing import Optional, Any, Dict, Iterator, List
from pathlib import Path

from .errors import StorageFailure


class Database:
    """SQLite database manager for Cardwise.

    Holds three collections: ``cards``, ``review_schedules`` (keyed by card id) and
    ``tag_usages`` (keyed by normalized tag). Rows are returned as plain dicts; the
    repository and tag cache turn them into model objects.
    """

    def __init__(self, path: str):
        """Initialize database connection.

        Args:
            path: Path to SQLite database file, or ":memory:"
        """
        self.path = path
        self._lock = threading.RLock()
        self._depth = 0
        self._ensure_path_exists()
        try:
            # Autocommit mode; transaction() issues BEGIN/COMMIT itself
            self.conn = sqlite3.connect(path, check_same_thread=False, isolation_level=None)
            self.conn.row_factory = sqlite3.Row
            self._setup_database()
        except sqlite3.Error as e:
            raise StorageFailure(f"Could not open database {path}: {e}") from e

    def _ensure_path_exists(self) -> None:
        """Ensure the database directory exists."""
        if self.path == ":memory:":
            return
        db_path = Path(self.path)
        db_path.parent.mkdir(parents=True, exist_ok=True)

    def _setup_database(self) -> None:
        """Set up database with WAL mode and create tables."""
        self.conn.execute("PRAGMA journal_mode=WAL")
        self.conn.execute("PRAGMA foreign_keys=ON")
        self.create_tables()

    def create_tables(self) -> None:
        """Create necessary tables if they don't exist."""
        schema = """
        CREATE TABLE IF NOT EXISTS cards (
            id TEXT PRIMARY KEY,
            question TEXT NOT NULL,
            answer JSON NOT NULL,
            tags JSON NOT NULL,
            created_ts INTEGER NOT NULL,
            updated_ts INTEGER NOT NULL
        );

        CREATE TABLE IF NOT EXISTS review_schedules (
            card_id TEXT PRIMARY KEY,
            due_ts INTEGER NOT NULL,
            interval_days INTEGER NOT NULL DEFAULT 1,
            repetitions INTEGER NOT NULL DEFAULT 0,
            ease REAL NOT NULL DEFAULT 2.5,
            history JSON NOT NULL,
            last_review_ts INTEGER,
            FOREIGN KEY(card_id) REFERENCES cards(id) ON DELETE CASCADE
        );

        CREATE TABLE IF NOT EXISTS tag_usages (
            tag TEXT PRIMARY KEY,
            count INTEGER NOT NULL,
            last_used_ts INTEGER NOT NULL,
            seq INTEGER NOT NULL DEFAULT 0
        );
        """
        indexes = """
        CREATE INDEX IF NOT EXISTS idx_schedules_due ON review_schedules(due_ts);
        CREATE INDEX IF NOT EXISTS idx_schedules_reviewed ON review_schedules(last_review_ts);
        CREATE INDEX IF NOT EXISTS idx_cards_created ON cards(created_ts);
        CREATE INDEX IF NOT EXISTS idx_tag_usages_order ON tag_usages(count, last_used_ts, seq);
        """

        self.conn.executescript(schema)
        self._migrate()
        self.conn.executescript(indexes)

    def _migrate(self) -> None:
        """Bring databases created by older versions up to the current schema."""
        columns = {row["name"] for row in self.conn.execute("PRAGMA table_info(tag_usages)")}
        if "seq" not in columns:
            print("Migrating tag_usages: adding use order column")
            self.conn.execute("DROP INDEX IF EXISTS idx_tag_usages_rank")
            self.conn.execute("ALTER TABLE tag_usages ADD COLUMN seq INTEGER NOT NULL DEFAULT 0")

    def close(self) -> None:
        """Close database connection."""
        if self.conn:
            self.conn.close()
            self.conn = None

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Run a block as one atomic unit of work.

        Re-entrant: nested blocks join the outermost transaction. The lock keeps
        read-modify-write sequences from interleaving when the UI calls in from
        worker threads.
        """
        with self._lock:
            outermost = self._depth == 0
            if outermost:
                self._execute("BEGIN IMMEDIATE")
            self._depth += 1
            try:
                yield self.conn
            except BaseException:
                self._depth -= 1
                if outermost:
                    self._rollback()
                raise
            else:
                self._depth -= 1
                if outermost:
                    try:
                        self._execute("COMMIT")
                    except StorageFailure:
                        self._rollback()
                        raise

    def _rollback(self) -> None:
        try:
            self.conn.execute("ROLLBACK")
        except sqlite3.Error as e:
            print(f"Warning: rollback failed: {e}")

    def _execute(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        try:
            return self.conn.execute(sql, params)
        except sqlite3.Error as e:
            raise StorageFailure(f"{e} (while running: {sql.split()[0]})") from e

    def _fetchone(self, sql: str, params: tuple = ()) -> Optional[Dict]:
        row = self._execute(sql, params).fetchone()
        return dict(row) if row else None

    def _fetchall(self, sql: str, params: tuple = ()) -> List[Dict]:
        return [dict(row) for row in self._execute(sql, params).fetchall()]

    # Cards

    def insert_card(self, card: Dict) -> bool:
        """Insert a card row if its id is free. Returns False when it already exists."""
        with self.transaction():
            cursor = self._execute(
                "INSERT OR IGNORE INTO cards (id, question, answer, tags, created_ts, updated_ts) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (card["id"], card["question"], json.dumps(card["answer"]),
                 json.dumps(card["tags"]), card["created_ts"], card["updated_ts"])
            )
            return cursor.rowcount == 1

    def put_card(self, card: Dict) -> None:
        """Insert or replace a card row."""
        with self.transaction():
            self._execute(
                "INSERT INTO cards (id, question, answer, tags, created_ts, updated_ts) "
                "VALUES (?, ?, ?, ?, ?, ?) "
                "ON CONFLICT(id) DO UPDATE SET question = excluded.question, "
                "answer = excluded.answer, tags = excluded.tags, "
                "created_ts = excluded.created_ts, updated_ts = excluded.updated_ts",
                (card["id"], card["question"], json.dumps(card["answer"]),
                 json.dumps(card["tags"]), card["created_ts"], card["updated_ts"])
            )

    def get_card(self, card_id: str) -> Optional[Dict]:
        """Get card row by ID."""
        row = self._fetchone("SELECT * FROM cards WHERE id = ?", (card_id,))
        return self._decode_card(row) if row else None

    def delete_card(self, card_id: str) -> bool:
        """Delete a card row. Returns False when nothing was deleted."""
        with self.transaction():
            cursor = self._execute("DELETE FROM cards WHERE id = ?", (card_id,))
            return cursor.rowcount == 1

    def list_cards(self) -> List[Dict]:
        """All card rows, oldest first."""
        rows = self._fetchall("SELECT * FROM cards ORDER BY created_ts, id")
        return [self._decode_card(row) for row in rows]

    def get_cards(self, card_ids: List[str]) -> List[Dict]:
        """Card rows for the given ids, in the order of ``card_ids``."""
        if not card_ids:
            return []

        found: Dict[str, Dict] = {}
        # SQLite caps bound parameters; query in chunks
        for start in range(0, len(card_ids), 500):
            chunk = card_ids[start:start + 500]
            placeholders = ",".join("?" for _ in chunk)
            rows = self._fetchall(f"SELECT * FROM cards WHERE id IN ({placeholders})", tuple(chunk))
            for row in rows:
                found[row["id"]] = self._decode_card(row)
        return [found[card_id] for card_id in card_ids if card_id in found]

    def cards_created_between(self, start_ts: int, end_ts: int) -> List[Dict]:
        """Card rows created within [start_ts, end_ts], via the created_ts index."""
        rows = self._fetchall(
            "SELECT * FROM cards WHERE created_ts BETWEEN ? AND ? ORDER BY created_ts",
            (start_ts, end_ts)
        )
        return [self._decode_card(row) for row in rows]

    def count_cards(self) -> int:
        row = self._fetchone("SELECT COUNT(*) AS n FROM cards")
        return row["n"]

    def _decode_card(self, row: Dict) -> Dict:
        row["answer"] = json.loads(row["answer"])
        row["tags"] = json.loads(row["tags"])
        return row

    # Review schedules

    def insert_schedule(self, schedule: Dict) -> bool:
        """Insert a schedule row if the card has none. Returns False when one exists."""
        with self.transaction():
            cursor = self._execute(
                "INSERT OR IGNORE INTO review_schedules "
                "(card_id, due_ts, interval_days, repetitions, ease, history, last_review_ts) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                self._schedule_params(schedule)
            )
            return cursor.rowcount == 1

    def put_schedule(self, schedule: Dict) -> None:
        """Insert or replace a schedule row."""
        with self.transaction():
            self._execute(
                "INSERT OR REPLACE INTO review_schedules "
                "(card_id, due_ts, interval_days, repetitions, ease, history, last_review_ts) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                self._schedule_params(schedule)
            )

    def _schedule_params(self, schedule: Dict) -> tuple:
        return (schedule["card_id"], schedule["due_ts"], schedule["interval_days"],
                schedule["repetitions"], schedule["ease"], json.dumps(schedule["history"]),
                schedule.get("last_review_ts"))

    def get_schedule(self, card_id: str) -> Optional[Dict]:
        """Get schedule row by card ID."""
        row = self._fetchone("SELECT * FROM review_schedules WHERE card_id = ?", (card_id,))
        return self._decode_schedule(row) if row else None

    def delete_schedule(self, card_id: str) -> bool:
        with self.transaction():
            cursor = self._execute("DELETE FROM review_schedules WHERE card_id = ?", (card_id,))
            return cursor.rowcount == 1

    def list_schedules(self) -> List[Dict]:
        rows = self._fetchall("SELECT * FROM review_schedules")
        return [self._decode_schedule(row) for row in rows]

    def schedules_due(self, now_ts: int) -> List[Dict]:
        """Schedules with due_ts <= now_ts, earliest first (range scan on idx_schedules_due)."""
        rows = self._fetchall(
            "SELECT * FROM review_schedules WHERE due_ts <= ? ORDER BY due_ts",
            (now_ts,)
        )
        return [self._decode_schedule(row) for row in rows]

    def count_due(self, now_ts: int) -> int:
        row = self._fetchone("SELECT COUNT(*) AS n FROM review_schedules WHERE due_ts <= ?", (now_ts,))
        return row["n"]

    def schedules_reviewed_between(self, start_ts: int, end_ts: int) -> List[Dict]:
        """Schedules last reviewed within [start_ts, end_ts]; never-reviewed rows are excluded."""
        rows = self._fetchall(
            "SELECT * FROM review_schedules WHERE last_review_ts BETWEEN ? AND ? "
            "ORDER BY last_review_ts",
            (start_ts, end_ts)
        )
        return [self._decode_schedule(row) for row in rows]

    def count_reviewed_between(self, start_ts: int, end_ts: int) -> int:
        row = self._fetchone(
            "SELECT COUNT(*) AS n FROM review_schedules WHERE last_review_ts BETWEEN ? AND ?",
            (start_ts, end_ts)
        )
        return row["n"]

    def _decode_schedule(self, row: Dict) -> Dict:
        row["history"] = json.loads(row["history"])
        return row

    # Tag usages

    def get_tag_usage(self, tag: str) -> Optional[Dict]:
        return self._fetchone("SELECT * FROM tag_usages WHERE tag = ?", (tag,))

    def insert_tag_usage(self, tag: str, count: int, last_used_ts: int) -> bool:
        with self.transaction():
            cursor = self._execute(
                "INSERT OR IGNORE INTO tag_usages (tag, count, last_used_ts, seq) "
                "VALUES (?, ?, ?, (SELECT COALESCE(MAX(seq), 0) + 1 FROM tag_usages))",
                (tag, count, last_used_ts)
            )
            return cursor.rowcount == 1

    def put_tag_usage(self, tag: str, count: int, last_used_ts: int) -> None:
        """Insert or overwrite a usage row; either way it becomes the latest used."""
        with self.transaction():
            self._execute(
                "INSERT OR REPLACE INTO tag_usages (tag, count, last_used_ts, seq) "
                "VALUES (?, ?, ?, (SELECT COALESCE(MAX(seq), 0) + 1 FROM tag_usages))",
                (tag, count, last_used_ts)
            )

    def delete_tag_usage(self, tag: str) -> bool:
        with self.transaction():
            cursor = self._execute("DELETE FROM tag_usages WHERE tag = ?", (tag,))
            return cursor.rowcount == 1

    def list_tag_usages(self) -> List[Dict]:
        """All tag usage rows, most used first, most recent first within a count."""
        return self._fetchall(
            "SELECT * FROM tag_usages ORDER BY count DESC, last_used_ts DESC, seq DESC, tag"
        )

    def least_used_tag(self) -> Optional[Dict]:
        """The eviction victim: lowest count, then oldest use, then earliest use order."""
        return self._fetchone(
            "SELECT * FROM tag_usages ORDER BY count ASC, last_used_ts ASC, seq ASC, tag ASC LIMIT 1"
        )

    def count_tag_usages(self) -> int:
        row = self._fetchone("SELECT COUNT(*) AS n FROM tag_usages")
        return row["n"]

    def clear_tag_usages(self) -> None:
        with self.transaction():
            self._execute("DELETE FROM tag_usages")

    def stats(self) -> Dict[str, Any]:
        """Row counts per table, for the preferences dialog."""
        return {
            "cards": self.count_cards(),
            "schedules": self._fetchone("SELECT COUNT(*) AS n FROM review_schedules")["n"],
            "tags": self.count_tag_usages(),
        }
