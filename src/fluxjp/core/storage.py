"""SQLite-backed store for items, daily stats, favorites and settings."""

import json
import logging
import sqlite3
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime
from pathlib import Path
from typing import Protocol

from fluxjp.core.errors import StoreError
from fluxjp.core.models import DailyStat, Favorite, Item, ItemStatus, Level, Settings

logger = logging.getLogger(__name__)

# Maximum results returned by a search
SEARCH_LIMIT = 50


class ItemStore(Protocol):
    """The storage contract the scheduling core depends on."""

    def get_by_id(self, item_id: int) -> Item | None: ...

    def query_by_status(self, status: ItemStatus, level: Level | None = None) -> list[Item]: ...

    def query_due(self, statuses: Iterable[ItemStatus], before: datetime) -> list[Item]: ...

    def upsert(self, items: Iterable[Item]) -> list[Item]: ...

    def delete_all(self) -> None: ...


def _ts(value: datetime) -> str:
    """Fixed-width UTC timestamp so text ordering matches time ordering."""
    return value.astimezone(UTC).isoformat(timespec="microseconds")


class VocabDatabase:
    """SQLite database holding all durable FluxJP records."""

    def __init__(self, db_path: Path):
        self.db_path = db_path
        db_path.parent.mkdir(parents=True, exist_ok=True)
        # Open transaction connection of the current task, if any
        self._tx_conn: ContextVar[sqlite3.Connection | None] = ContextVar(
            f"fluxjp_tx_{id(self)}", default=None
        )
        self._init_db()

    def _init_db(self) -> None:
        """Initialize database schema."""
        with self._connection() as conn:
            conn.executescript(
                """
                -- Items: indexed columns plus the full record as JSON
                CREATE TABLE IF NOT EXISTS items (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    word TEXT NOT NULL,
                    reading TEXT NOT NULL DEFAULT '',
                    level TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'new',
                    interval INTEGER NOT NULL DEFAULT 0,
                    due_date TEXT NOT NULL,
                    review_count INTEGER NOT NULL DEFAULT 0,
                    leech_count INTEGER NOT NULL DEFAULT 0,
                    data TEXT NOT NULL
                );

                -- One row per calendar day
                CREATE TABLE IF NOT EXISTS daily_stats (
                    date TEXT PRIMARY KEY,
                    review_count INTEGER NOT NULL DEFAULT 0,
                    correct_count INTEGER NOT NULL DEFAULT 0,
                    new_items_learned INTEGER NOT NULL DEFAULT 0,
                    study_minutes INTEGER NOT NULL DEFAULT 0
                );

                CREATE TABLE IF NOT EXISTS favorites (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    item_id INTEGER NOT NULL,
                    word TEXT NOT NULL,
                    reading TEXT NOT NULL DEFAULT '',
                    meaning TEXT NOT NULL DEFAULT '',
                    added_at TEXT NOT NULL,
                    UNIQUE (word, reading)
                );

                -- Single settings row
                CREATE TABLE IF NOT EXISTS settings (
                    id INTEGER PRIMARY KEY CHECK (id = 1),
                    data TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_items_key ON items(word, level);
                CREATE INDEX IF NOT EXISTS idx_items_reading ON items(word, reading);
                CREATE INDEX IF NOT EXISTS idx_items_status_due ON items(status, due_date);
            """
            )

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        """Context manager for database connections.

        Inside ``transaction()`` every call shares the open connection and
        nothing is committed until the transaction ends.
        """
        tx_conn = self._tx_conn.get()
        if tx_conn is not None:
            try:
                yield tx_conn
            except sqlite3.Error as e:
                raise StoreError(str(e)) from e
            return

        try:
            conn = sqlite3.connect(self.db_path)
        except sqlite3.Error as e:
            raise StoreError(f"Cannot open {self.db_path}: {e}") from e
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise StoreError(str(e)) from e
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    @contextmanager
    def transaction(self) -> Iterator["VocabDatabase"]:
        """Run several operations as one all-or-nothing unit.

        Nested calls in the same task join the outer transaction; other
        tasks keep using their own connections.
        """
        if self._tx_conn.get() is not None:
            yield self
            return

        try:
            conn = sqlite3.connect(self.db_path)
        except sqlite3.Error as e:
            raise StoreError(f"Cannot open {self.db_path}: {e}") from e
        conn.row_factory = sqlite3.Row
        token = self._tx_conn.set(conn)
        try:
            yield self
            conn.commit()
        except Exception:
            conn.rollback()
            logger.debug("Transaction rolled back")
            raise
        finally:
            self._tx_conn.reset(token)
            conn.close()

    # ------------------------------------------------------------------
    # Items
    # ------------------------------------------------------------------

    @staticmethod
    def _row_to_item(row: sqlite3.Row) -> Item:
        data = json.loads(row["data"])
        data["id"] = row["id"]
        return Item.model_validate(data)

    def get_by_id(self, item_id: int) -> Item | None:
        """Get an item by id."""
        with self._connection() as conn:
            row = conn.execute("SELECT * FROM items WHERE id = ?", (item_id,)).fetchone()
            return self._row_to_item(row) if row else None

    def query_by_status(self, status: ItemStatus, level: Level | None = None) -> list[Item]:
        """Get items with a status, optionally restricted to one level."""
        sql = "SELECT * FROM items WHERE status = ?"
        params: list = [ItemStatus(status).value]
        if level is not None:
            sql += " AND level = ?"
            params.append(Level(level).value)
        sql += " ORDER BY due_date ASC, id ASC"
        with self._connection() as conn:
            rows = conn.execute(sql, params).fetchall()
            return [self._row_to_item(row) for row in rows]

    def query_due(self, statuses: Iterable[ItemStatus], before: datetime) -> list[Item]:
        """Get items in any of ``statuses`` due at or before ``before``."""
        values = [ItemStatus(s).value for s in statuses]
        if not values:
            return []
        placeholders = ", ".join("?" for _ in values)
        with self._connection() as conn:
            rows = conn.execute(
                f"""
                SELECT * FROM items
                WHERE status IN ({placeholders}) AND due_date <= ?
                ORDER BY due_date ASC, id ASC
                """,
                (*values, _ts(before)),
            ).fetchall()
            return [self._row_to_item(row) for row in rows]

    def upsert(self, items: Iterable[Item]) -> list[Item]:
        """Insert or replace items keyed by id.

        Items without an id are inserted and get one assigned. Returns the
        stored items with their ids.
        """
        stored: list[Item] = []
        with self._connection() as conn:
            for item in items:
                data = json.dumps(item.model_dump(mode="json", exclude={"id"}))
                values = (
                    item.word,
                    item.reading,
                    item.level.value,
                    item.status.value,
                    item.interval,
                    _ts(item.due_date),
                    item.review_count,
                    item.leech_count,
                    data,
                )
                if item.id is None:
                    cursor = conn.execute(
                        """
                        INSERT INTO items (
                            word, reading, level, status, interval,
                            due_date, review_count, leech_count, data
                        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                        """,
                        values,
                    )
                    stored.append(item.model_copy(update={"id": cursor.lastrowid}))
                else:
                    conn.execute(
                        """
                        INSERT INTO items (
                            id, word, reading, level, status, interval,
                            due_date, review_count, leech_count, data
                        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                        ON CONFLICT(id) DO UPDATE SET
                            word = excluded.word,
                            reading = excluded.reading,
                            level = excluded.level,
                            status = excluded.status,
                            interval = excluded.interval,
                            due_date = excluded.due_date,
                            review_count = excluded.review_count,
                            leech_count = excluded.leech_count,
                            data = excluded.data
                        """,
                        (item.id, *values),
                    )
                    stored.append(item)
        return stored

    def find_by_key(self, word: str, level: Level) -> Item | None:
        """Find an item by its natural key (word, level)."""
        with self._connection() as conn:
            row = conn.execute(
                "SELECT * FROM items WHERE word = ? AND level = ? ORDER BY id LIMIT 1",
                (word, Level(level).value),
            ).fetchone()
            return self._row_to_item(row) if row else None

    def find_by_reading(self, word: str, reading: str) -> Item | None:
        """Find an item by display text and reading (how favorites match)."""
        with self._connection() as conn:
            row = conn.execute(
                "SELECT * FROM items WHERE word = ? AND reading = ? ORDER BY id LIMIT 1",
                (word, reading),
            ).fetchone()
            return self._row_to_item(row) if row else None

    def list_items(self, limit: int | None = None) -> list[Item]:
        """List all items in id order."""
        sql = "SELECT * FROM items ORDER BY id"
        params: tuple = ()
        if limit is not None:
            sql += " LIMIT ?"
            params = (limit,)
        with self._connection() as conn:
            return [self._row_to_item(row) for row in conn.execute(sql, params).fetchall()]

    def search_items(self, query: str, limit: int = SEARCH_LIMIT) -> list[Item]:
        """Case-insensitive substring search over word, reading, meaning,
        category and tags. Returns at most ``limit`` items in id order.
        """
        query = query.strip().lower()
        if not query or limit <= 0:
            return []

        results: list[Item] = []
        for item in self.list_items():
            searchable = [item.word, item.reading, item.meaning, item.category or "", *item.tags]
            if any(query in field.lower() for field in searchable):
                results.append(item)
                if len(results) >= limit:
                    break
        return results

    def suggest_words(self, prefix: str, limit: int = 5) -> list[str]:
        """Distinct words whose text or reading starts with ``prefix``."""
        prefix = prefix.strip().lower()
        if not prefix:
            return []
        words: list[str] = []
        for item in self.list_items():
            if item.word in words:
                continue
            if item.word.lower().startswith(prefix) or item.reading.lower().startswith(prefix):
                words.append(item.word)
                if len(words) >= limit:
                    break
        return words

    def count_items(self) -> int:
        with self._connection() as conn:
            return conn.execute("SELECT COUNT(*) FROM items").fetchone()[0]

    # ------------------------------------------------------------------
    # Daily stats
    # ------------------------------------------------------------------

    @staticmethod
    def _row_to_stat(row: sqlite3.Row) -> DailyStat:
        return DailyStat.model_validate(dict(row))

    def get_daily_stat(self, day: str) -> DailyStat | None:
        """Get the stat row for an ISO date, if it exists."""
        with self._connection() as conn:
            row = conn.execute("SELECT * FROM daily_stats WHERE date = ?", (day,)).fetchone()
            return self._row_to_stat(row) if row else None

    def put_daily_stat(self, stat: DailyStat) -> None:
        """Insert or replace the stat row for its date."""
        with self._connection() as conn:
            conn.execute(
                """
                INSERT INTO daily_stats (
                    date, review_count, correct_count, new_items_learned, study_minutes
                ) VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(date) DO UPDATE SET
                    review_count = excluded.review_count,
                    correct_count = excluded.correct_count,
                    new_items_learned = excluded.new_items_learned,
                    study_minutes = excluded.study_minutes
                """,
                (
                    stat.date,
                    stat.review_count,
                    stat.correct_count,
                    stat.new_items_learned,
                    stat.study_minutes,
                ),
            )

    def list_daily_stats(self, since: str | None = None) -> list[DailyStat]:
        """List stat rows, newest first, optionally from ``since`` onwards."""
        sql = "SELECT * FROM daily_stats"
        params: tuple = ()
        if since is not None:
            sql += " WHERE date >= ?"
            params = (since,)
        sql += " ORDER BY date DESC"
        with self._connection() as conn:
            return [self._row_to_stat(row) for row in conn.execute(sql, params).fetchall()]

    # ------------------------------------------------------------------
    # Favorites
    # ------------------------------------------------------------------

    @staticmethod
    def _row_to_favorite(row: sqlite3.Row) -> Favorite:
        return Favorite.model_validate(dict(row))

    def list_favorites(self) -> list[Favorite]:
        """List favorites, most recently added first."""
        with self._connection() as conn:
            rows = conn.execute("SELECT * FROM favorites ORDER BY added_at DESC, id DESC").fetchall()
            return [self._row_to_favorite(row) for row in rows]

    def find_favorite(self, word: str, reading: str) -> Favorite | None:
        with self._connection() as conn:
            row = conn.execute(
                "SELECT * FROM favorites WHERE word = ? AND reading = ?", (word, reading)
            ).fetchone()
            return self._row_to_favorite(row) if row else None

    def add_favorite(self, favorite: Favorite) -> Favorite:
        """Insert a favorite. Re-adding the same (word, reading) is a no-op."""
        existing = self.find_favorite(favorite.word, favorite.reading)
        if existing is not None:
            return existing
        if favorite.item_id is None:
            raise StoreError(f"Favorite {favorite.word!r} does not point at an item")
        with self._connection() as conn:
            cursor = conn.execute(
                """
                INSERT INTO favorites (item_id, word, reading, meaning, added_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    favorite.item_id,
                    favorite.word,
                    favorite.reading,
                    favorite.meaning,
                    _ts(favorite.added_at),
                ),
            )
            return favorite.model_copy(update={"id": cursor.lastrowid})

    def remove_favorite(self, item_id: int) -> bool:
        """Remove the favorite pointing at an item."""
        with self._connection() as conn:
            cursor = conn.execute("DELETE FROM favorites WHERE item_id = ?", (item_id,))
            return cursor.rowcount > 0

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    def get_settings(self) -> Settings | None:
        """Get stored settings, or None on first run."""
        with self._connection() as conn:
            row = conn.execute("SELECT data FROM settings WHERE id = 1").fetchone()
            return Settings.model_validate(json.loads(row["data"])) if row else None

    def save_settings(self, settings: Settings) -> None:
        with self._connection() as conn:
            conn.execute(
                """
                INSERT INTO settings (id, data) VALUES (1, ?)
                ON CONFLICT(id) DO UPDATE SET data = excluded.data
                """,
                (json.dumps(settings.model_dump(mode="json")),),
            )

    # ------------------------------------------------------------------
    # Reset
    # ------------------------------------------------------------------

    def delete_all(self) -> None:
        """Delete every record. Only used for an explicit full reset."""
        with self._connection() as conn:
            conn.execute("DELETE FROM items")
            conn.execute("DELETE FROM daily_stats")
            conn.execute("DELETE FROM favorites")
            conn.execute("DELETE FROM settings")
        logger.info("Deleted all records from %s", self.db_path)
