"""
SQLite Event Store - the organization's append-only history

The event store is the persistence substrate for the whole engine:
- Append-only semantics (events never modified or deleted)
- Idempotency via command_id (same command = same events)
- Optimistic locking via stream versioning
- A global position column giving one total order for replay
"""

import json
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from simple_dao.kernel.errors import (
    CommandIdempotencyViolation,
    EventStoreError,
    StreamVersionConflict,
)
from simple_dao.kernel.events import Event
from simple_dao.kernel.logging import get_logger
from simple_dao.kernel.metrics import (
    events_appended_total,
    events_loaded_total,
    stream_version_conflicts_total,
)
from simple_dao.kernel.retry import retry_on_sqlite_lock

logger = get_logger(__name__)

_COLUMNS = """
    position, event_id, stream_id, stream_type, version,
    command_id, event_type, block, actor_id, payload_json
"""


class SQLiteEventStore:
    """
    SQLite-based event store with append-only semantics

    Schema:
    - events table: append-only event log, ``position`` is the global order
    - Unique constraints: event_id, (stream_id, version)
    - Indices: stream, event type, block, command_id
    """

    def __init__(self, db_path: str | Path) -> None:
        """
        Initialize event store with SQLite database

        Args:
            db_path: Path to SQLite database file (created if missing)
        """
        self.db_path = Path(db_path)
        self._initialize_schema()

    def _initialize_schema(self) -> None:
        """Create tables and indices if they don't exist"""
        with self._connect() as conn:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA synchronous=NORMAL")

            conn.execute("""
                CREATE TABLE IF NOT EXISTS events (
                    position INTEGER PRIMARY KEY AUTOINCREMENT,
                    event_id TEXT NOT NULL UNIQUE,
                    stream_id TEXT NOT NULL,
                    stream_type TEXT NOT NULL,
                    version INTEGER NOT NULL,
                    command_id TEXT NOT NULL,
                    event_type TEXT NOT NULL,
                    block INTEGER NOT NULL,
                    actor_id TEXT,
                    payload_json TEXT NOT NULL,

                    UNIQUE(stream_id, version)
                )
            """)

            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_events_stream ON events(stream_id, version)"
            )
            conn.execute("CREATE INDEX IF NOT EXISTS idx_events_type ON events(event_type)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_events_block ON events(block)")
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_events_command ON events(command_id)"
            )

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """
        Context manager for database connections

        Connections run in autocommit mode; append() opens its own
        IMMEDIATE transaction so the version check and the inserts are
        serialized against other writers.
        """
        conn = sqlite3.connect(str(self.db_path), isolation_level=None)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    @retry_on_sqlite_lock()
    def append(
        self,
        stream_id: str,
        expected_version: int,
        events: list[Event],
    ) -> list[Event]:
        """
        Append events to a stream with optimistic locking

        Guarantees:
        1. Idempotency: a command_id already recorded (on any stream)
           returns the recorded events instead of writing new ones
        2. Consistency: stream version must match expected
        3. Atomicity: all events append together or none do

        Args:
            stream_id: Aggregate identifier
            expected_version: Current stream version the caller built on
            events: Events to append (sequential versions from expected+1)

        Returns:
            The appended events (or the previously recorded ones)

        Raises:
            StreamVersionConflict: If stream version doesn't match expected
            CommandIdempotencyViolation: If the command_id was used before
                for a different kind of event, or its events cannot be
                recovered
            EventStoreError: On other database errors
        """
        if not events:
            return []

        command_id = events[0].command_id

        with self._connect() as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                existing = self._events_for_command(conn, command_id)
                if existing:
                    conn.execute("ROLLBACK")
                    if existing[0].event_type != events[0].event_type:
                        raise CommandIdempotencyViolation(
                            command_id,
                            f"Command {command_id} was already used for "
                            f"{existing[0].event_type}, not {events[0].event_type}",
                        )
                    logger.info(
                        "Command already recorded, returning original events",
                        command_id=command_id,
                        stream_id=stream_id,
                    )
                    return existing

                current_version = self._get_stream_version(conn, stream_id)
                if current_version != expected_version:
                    stream_version_conflicts_total.labels(
                        stream_type=events[0].stream_type
                    ).inc()
                    raise StreamVersionConflict(stream_id, expected_version, current_version)

                for event in events:
                    conn.execute(
                        """
                        INSERT INTO events (
                            event_id, stream_id, stream_type, version,
                            command_id, event_type, block, actor_id, payload_json
                        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                        """,
                        (
                            event.event_id,
                            event.stream_id,
                            event.stream_type,
                            event.version,
                            event.command_id,
                            event.event_type,
                            event.block,
                            event.actor_id,
                            json.dumps(event.payload),
                        ),
                    )

                conn.execute("COMMIT")

            except StreamVersionConflict:
                conn.execute("ROLLBACK")
                raise

            except CommandIdempotencyViolation:
                raise

            except sqlite3.IntegrityError as e:
                conn.execute("ROLLBACK")
                error_msg = str(e).lower()
                if "stream_id" in error_msg and "version" in error_msg:
                    current = self._get_stream_version(conn, stream_id)
                    raise StreamVersionConflict(stream_id, expected_version, current) from e
                if "event_id" in error_msg:
                    raise CommandIdempotencyViolation(command_id) from e
                raise EventStoreError(f"Failed to append events: {e}") from e

            except sqlite3.OperationalError:
                # Lock contention: let the retry decorator have another go
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                raise

            except Exception as e:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                raise EventStoreError(f"Unexpected error appending events: {e}") from e

        for event in events:
            events_appended_total.labels(
                stream_type=event.stream_type, event_type=event.event_type
            ).inc()
        return events

    def load_stream(self, stream_id: str) -> list[Event]:
        """
        Load all events for a stream in version order

        Args:
            stream_id: Aggregate identifier

        Returns:
            List of events (empty if stream doesn't exist)
        """
        with self._connect() as conn:
            cursor = conn.execute(
                f"SELECT {_COLUMNS} FROM events WHERE stream_id = ? ORDER BY version ASC",
                (stream_id,),
            )
            events = [self._row_to_event(row) for row in cursor.fetchall()]

        if events:
            events_loaded_total.labels(stream_type=events[0].stream_type).inc(len(events))
        return events

    def load_all_events(self) -> list[Event]:
        """Load every event in commit order (for projection rebuilding)"""
        with self._connect() as conn:
            cursor = conn.execute(f"SELECT {_COLUMNS} FROM events ORDER BY position ASC")
            return [self._row_to_event(row) for row in cursor.fetchall()]

    def load_command(self, command_id: str) -> list[Event]:
        """Events recorded for a command id, empty if it was never committed"""
        with self._connect() as conn:
            return self._events_for_command(conn, command_id)

    def latest_block(self) -> int:
        """Highest block recorded in the log (0 for an empty log)"""
        with self._connect() as conn:
            row = conn.execute("SELECT MAX(block) FROM events").fetchone()
            return row[0] if row[0] is not None else 0

    def count_events(self) -> int:
        """Get total number of events in store"""
        with self._connect() as conn:
            return conn.execute("SELECT COUNT(*) FROM events").fetchone()[0]

    def count_streams(self) -> int:
        """Get total number of distinct streams"""
        with self._connect() as conn:
            return conn.execute("SELECT COUNT(DISTINCT stream_id) FROM events").fetchone()[0]

    def _get_stream_version(self, conn: sqlite3.Connection, stream_id: str) -> int:
        row = conn.execute(
            "SELECT MAX(version) FROM events WHERE stream_id = ?",
            (stream_id,),
        ).fetchone()
        return row[0] if row[0] is not None else 0

    def _events_for_command(self, conn: sqlite3.Connection, command_id: str) -> list[Event]:
        cursor = conn.execute(
            f"SELECT {_COLUMNS} FROM events WHERE command_id = ? ORDER BY position ASC",
            (command_id,),
        )
        return [self._row_to_event(row) for row in cursor.fetchall()]

    def _row_to_event(self, row: sqlite3.Row) -> Event:
        """Convert SQLite row to Event object"""
        return Event(
            event_id=row["event_id"],
            stream_id=row["stream_id"],
            stream_type=row["stream_type"],
            version=row["version"],
            command_id=row["command_id"],
            event_type=row["event_type"],
            block=row["block"],
            actor_id=row["actor_id"],
            payload=json.loads(row["payload_json"]),
        )
