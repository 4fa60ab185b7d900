"""Repository layer responsible for all database access."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from datetime import date, datetime, time, timezone
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Sequence

from backend.domain.errors import ReservationBusyError
from backend.domain.models import (
    DirectBooking,
    Hall,
    Notification,
    RequestStatus,
    Reservation,
    ReservationRequest,
    Role,
    TimeWindow,
)
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)


_REQUEST_COLUMNS = """
    br.id,
    br.requester_id,
    br.requester_role,
    br.event_name,
    br.purpose,
    br.contact_email,
    br.start_date,
    br.end_date,
    br.start_time,
    br.end_time,
    br.attendee_count,
    br.status,
    br.rejection_reason,
    br.admin_notes,
    br.created_at,
    br.updated_at,
    (
        SELECT GROUP_CONCAT(brh.hall_id)
        FROM booking_request_halls AS brh
        WHERE brh.request_id = br.id
    ) AS hall_ids
"""

_DIRECT_COLUMNS = """
    db.id,
    db.booked_by,
    db.event_name,
    db.purpose,
    db.start_date,
    db.end_date,
    db.start_time,
    db.end_time,
    db.is_blackout,
    db.attendee_count,
    db.created_at,
    (
        SELECT GROUP_CONCAT(dbh.hall_id)
        FROM direct_booking_halls AS dbh
        WHERE dbh.booking_id = db.id
    ) AS hall_ids
"""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _placeholders(values: Sequence[object]) -> str:
    return ",".join("?" for _ in values)


def _parse_hall_ids(raw: Optional[str]) -> frozenset[int]:
    if not raw:
        return frozenset()
    return frozenset(int(item) for item in str(raw).split(","))


class DataRepository:
    """Encapsulates SQLite access so business logic stays storage-agnostic.

    A repository created by :meth:`atomic` is bound to one open transaction;
    every read and write it performs runs inside that transaction.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        connection: Optional[sqlite3.Connection] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._db_path = Path(self._settings.database_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._connection = connection

    @property
    def database_path(self) -> Path:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        connection = sqlite3.connect(
            self._db_path,
            timeout=self._settings.database_timeout_seconds,
        )
        connection.row_factory = sqlite3.Row
        connection.execute("PRAGMA foreign_keys = ON;")
        return connection

    @contextmanager
    def _session(self) -> Iterator[sqlite3.Connection]:
        if self._connection is not None:
            yield self._connection
            return
        conn = self._connect()
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    @contextmanager
    def atomic(self) -> Iterator["DataRepository"]:
        """Run a unit of work under the database write lock.

        ``BEGIN IMMEDIATE`` takes the reserved lock up front, so two
        check-then-write sequences never interleave even across processes.
        """
        if self._connection is not None:
            yield self
            return
        conn = self._connect()
        conn.isolation_level = None
        try:
            try:
                conn.execute("BEGIN IMMEDIATE;")
            except sqlite3.OperationalError as exc:
                logger.warning(
                    "Write lock unavailable | database=%s | error=%s", self._db_path, exc
                )
                raise ReservationBusyError(
                    "database is busy; retry the operation",
                    database=str(self._db_path),
                ) from exc
            try:
                yield DataRepository(self._settings, connection=conn)
            except BaseException:
                conn.execute("ROLLBACK;")
                raise
            conn.execute("COMMIT;")
        finally:
            conn.close()

    def initialize_database(self) -> None:
        """Create all persistence artifacts before API startup."""
        try:
            with self._session() as conn:
                cursor = conn.cursor()

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS halls (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        name TEXT NOT NULL UNIQUE,
                        capacity INTEGER NOT NULL CHECK (capacity > 0),
                        is_active INTEGER NOT NULL DEFAULT 1 CHECK (is_active IN (0,1)),
                        location TEXT,
                        description TEXT,
                        created_at TEXT NOT NULL
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS booking_requests (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        requester_id TEXT NOT NULL,
                        requester_role TEXT NOT NULL,
                        event_name TEXT,
                        purpose TEXT NOT NULL,
                        contact_email TEXT,
                        start_date TEXT NOT NULL,
                        end_date TEXT NOT NULL,
                        start_time TEXT NOT NULL,
                        end_time TEXT NOT NULL,
                        attendee_count INTEGER NOT NULL CHECK (attendee_count > 0),
                        status TEXT NOT NULL DEFAULT 'pending'
                            CHECK (status IN ('pending','approved','rejected')),
                        rejection_reason TEXT,
                        admin_notes TEXT,
                        created_at TEXT NOT NULL,
                        updated_at TEXT NOT NULL
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS booking_request_halls (
                        request_id INTEGER NOT NULL,
                        hall_id INTEGER NOT NULL,
                        PRIMARY KEY (request_id, hall_id),
                        FOREIGN KEY (request_id) REFERENCES booking_requests(id) ON DELETE CASCADE,
                        FOREIGN KEY (hall_id) REFERENCES halls(id)
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS direct_bookings (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        booked_by TEXT NOT NULL,
                        event_name TEXT,
                        purpose TEXT NOT NULL,
                        start_date TEXT NOT NULL,
                        end_date TEXT NOT NULL,
                        start_time TEXT NOT NULL,
                        end_time TEXT NOT NULL,
                        is_blackout INTEGER NOT NULL DEFAULT 0 CHECK (is_blackout IN (0,1)),
                        attendee_count INTEGER NOT NULL DEFAULT 0 CHECK (attendee_count >= 0),
                        created_at TEXT NOT NULL
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS direct_booking_halls (
                        booking_id INTEGER NOT NULL,
                        hall_id INTEGER NOT NULL,
                        PRIMARY KEY (booking_id, hall_id),
                        FOREIGN KEY (booking_id) REFERENCES direct_bookings(id) ON DELETE CASCADE,
                        FOREIGN KEY (hall_id) REFERENCES halls(id)
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS notifications (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        user_id TEXT NOT NULL,
                        title TEXT NOT NULL,
                        message TEXT NOT NULL,
                        type TEXT NOT NULL DEFAULT 'info',
                        related_request_id INTEGER,
                        is_read INTEGER NOT NULL DEFAULT 0 CHECK (is_read IN (0,1)),
                        created_at TEXT NOT NULL
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_requests_dates_status
                    ON booking_requests(start_date, end_date, status);
                    """
                )
                cursor.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_request_halls_hall
                    ON booking_request_halls(hall_id, request_id);
                    """
                )
                cursor.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_direct_bookings_dates
                    ON direct_bookings(start_date, end_date);
                    """
                )
                cursor.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_direct_halls_hall
                    ON direct_booking_halls(hall_id, booking_id);
                    """
                )
                cursor.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_notifications_user
                    ON notifications(user_id, is_read, created_at);
                    """
                )
            logger.info("Database initialized at %s", self._db_path)
        except sqlite3.Error as exc:
            raise RuntimeError(f"Database initialization failed: {exc}") from exc

    def seed_default_halls(self) -> int:
        """Seed the configured hall catalog only when it is empty."""
        try:
            with self._session() as conn:
                cursor = conn.cursor()
                cursor.execute("SELECT COUNT(*) AS count FROM halls;")
                if int(cursor.fetchone()["count"]) > 0:
                    logger.info("Hall catalog already present; skipping seed")
                    return 0

                created_at = _utcnow().isoformat()
                cursor.executemany(
                    """
                    INSERT INTO halls (name, capacity, is_active, location, description, created_at)
                    VALUES (?, ?, 1, ?, ?, ?);
                    """,
                    [
                        (hall.name, hall.capacity, hall.location, hall.description, created_at)
                        for hall in self._settings.default_halls
                    ],
                )
            seeded = len(self._settings.default_halls)
            logger.info("Hall seed completed with %s halls", seeded)
            return seeded
        except sqlite3.Error as exc:
            raise RuntimeError(f"Hall seeding failed: {exc}") from exc

    # ------------------------------------------------------------------
    # Hall catalog
    # ------------------------------------------------------------------

    def create_hall(
        self,
        name: str,
        capacity: int,
        *,
        is_active: bool = True,
        location: Optional[str] = None,
        description: Optional[str] = None,
    ) -> int:
        """Insert hall reference data and return the created id."""
        with self._session() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO halls (name, capacity, is_active, location, description, created_at)
                VALUES (?, ?, ?, ?, ?, ?);
                """,
                (name, capacity, int(is_active), location, description, _utcnow().isoformat()),
            )
            return int(cursor.lastrowid)

    @staticmethod
    def _row_to_hall(row: sqlite3.Row) -> Hall:
        return Hall(
            hall_id=int(row["id"]),
            name=str(row["name"]),
            capacity=int(row["capacity"]),
            is_active=bool(row["is_active"]),
            location=row["location"],
            description=row["description"],
        )

    def get_halls(self, hall_ids: Iterable[int]) -> dict[int, Hall]:
        ids = sorted({int(hall_id) for hall_id in hall_ids})
        if not ids:
            return {}
        with self._session() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"""
                SELECT id, name, capacity, is_active, location, description
                FROM halls
                WHERE id IN ({_placeholders(ids)});
                """,
                tuple(ids),
            )
            return {int(row["id"]): self._row_to_hall(row) for row in cursor.fetchall()}

    def list_halls(self, active: Optional[bool] = None) -> List[Hall]:
        query = """
            SELECT id, name, capacity, is_active, location, description
            FROM halls
        """
        params: tuple[object, ...] = ()
        if active is not None:
            query += " WHERE is_active = ?"
            params = (int(active),)
        query += " ORDER BY name ASC, id ASC;"
        with self._session() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return [self._row_to_hall(row) for row in cursor.fetchall()]

    # ------------------------------------------------------------------
    # Reservation reads
    # ------------------------------------------------------------------

    def _row_to_request(self, row: sqlite3.Row) -> ReservationRequest:
        return ReservationRequest(
            request_id=int(row["id"]),
            requester_id=str(row["requester_id"]),
            requester_role=Role(str(row["requester_role"])),
            hall_ids=_parse_hall_ids(row["hall_ids"]),
            window=self._row_to_window(row),
            status=RequestStatus(str(row["status"])),
            purpose=str(row["purpose"]),
            attendee_count=int(row["attendee_count"]),
            created_at=datetime.fromisoformat(str(row["created_at"])),
            updated_at=datetime.fromisoformat(str(row["updated_at"])),
            event_name=row["event_name"],
            contact_email=row["contact_email"],
            rejection_reason=row["rejection_reason"],
            admin_notes=row["admin_notes"],
        )

    def _row_to_direct(self, row: sqlite3.Row) -> DirectBooking:
        return DirectBooking(
            booking_id=int(row["id"]),
            booked_by=str(row["booked_by"]),
            hall_ids=_parse_hall_ids(row["hall_ids"]),
            window=self._row_to_window(row),
            purpose=str(row["purpose"]),
            created_at=datetime.fromisoformat(str(row["created_at"])),
            is_blackout=bool(row["is_blackout"]),
            event_name=row["event_name"],
            attendee_count=int(row["attendee_count"]),
        )

    @staticmethod
    def _row_to_window(row: sqlite3.Row) -> TimeWindow:
        return TimeWindow(
            start_date=date.fromisoformat(str(row["start_date"])),
            end_date=date.fromisoformat(str(row["end_date"])),
            start_time=time.fromisoformat(str(row["start_time"])),
            end_time=time.fromisoformat(str(row["end_time"])),
        )

    def _format_time(self, value: time) -> str:
        return value.strftime(self._settings.time_format)

    def find_reservations(
        self,
        hall_ids: Optional[Iterable[int]],
        start_date: date,
        end_date: date,
    ) -> List[Reservation]:
        """Return live requests and direct bookings touching halls within dates.

        Only ``pending``/``approved`` requests are returned. Time-of-day
        filtering is left to the caller's overlap check.
        """
        ids = None if hall_ids is None else sorted({int(hall_id) for hall_id in hall_ids})
        if ids is not None and not ids:
            return []

        request_query = f"""
            SELECT {_REQUEST_COLUMNS}
            FROM booking_requests AS br
            WHERE br.status IN ('pending', 'approved')
              AND br.start_date <= ?
              AND br.end_date >= ?
        """
        direct_query = f"""
            SELECT {_DIRECT_COLUMNS}
            FROM direct_bookings AS db
            WHERE db.start_date <= ?
              AND db.end_date >= ?
        """
        request_params: list[object] = [end_date.isoformat(), start_date.isoformat()]
        direct_params: list[object] = [end_date.isoformat(), start_date.isoformat()]
        if ids is not None:
            request_query += f"""
              AND EXISTS (
                  SELECT 1 FROM booking_request_halls AS h
                  WHERE h.request_id = br.id AND h.hall_id IN ({_placeholders(ids)})
              )
            """
            direct_query += f"""
              AND EXISTS (
                  SELECT 1 FROM direct_booking_halls AS h
                  WHERE h.booking_id = db.id AND h.hall_id IN ({_placeholders(ids)})
              )
            """
            request_params.extend(ids)
            direct_params.extend(ids)
        request_query += " ORDER BY br.created_at DESC, br.id DESC;"
        direct_query += " ORDER BY db.created_at DESC, db.id DESC;"

        with self._session() as conn:
            cursor = conn.cursor()
            cursor.execute(direct_query, tuple(direct_params))
            records: List[Reservation] = [self._row_to_direct(row) for row in cursor.fetchall()]
            cursor.execute(request_query, tuple(request_params))
            records.extend(self._row_to_request(row) for row in cursor.fetchall())
            return records

    def get_request(self, request_id: int) -> Optional[ReservationRequest]:
        with self._session() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"SELECT {_REQUEST_COLUMNS} FROM booking_requests AS br WHERE br.id = ?;",
                (request_id,),
            )
            row = cursor.fetchone()
            if row is None:
                return None
            return self._row_to_request(row)

    def list_requests(
        self,
        *,
        requester_id: Optional[str] = None,
        status: Optional[RequestStatus] = None,
        hall_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[ReservationRequest]:
        """Return requests newest first, narrowed by the given filters."""
        query = f"SELECT {_REQUEST_COLUMNS} FROM booking_requests AS br WHERE 1 = 1"
        params: list[object] = []
        if requester_id is not None:
            query += " AND br.requester_id = ?"
            params.append(requester_id)
        if status is not None:
            query += " AND br.status = ?"
            params.append(RequestStatus(status).value)
        if hall_id is not None:
            query += """
                AND EXISTS (
                    SELECT 1 FROM booking_request_halls AS h
                    WHERE h.request_id = br.id AND h.hall_id = ?
                )
            """
            params.append(int(hall_id))
        if start_date is not None:
            query += " AND br.start_date >= ?"
            params.append(start_date.isoformat())
        if end_date is not None:
            query += " AND br.end_date <= ?"
            params.append(end_date.isoformat())
        query += " ORDER BY br.created_at DESC, br.id DESC;"
        with self._session() as conn:
            cursor = conn.cursor()
            cursor.execute(query, tuple(params))
            return [self._row_to_request(row) for row in cursor.fetchall()]

    def get_direct_booking(self, booking_id: int) -> Optional[DirectBooking]:
        with self._session() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"SELECT {_DIRECT_COLUMNS} FROM direct_bookings AS db WHERE db.id = ?;",
                (booking_id,),
            )
            row = cursor.fetchone()
            if row is None:
                return None
            return self._row_to_direct(row)

    def list_direct_bookings(self, hall_id: Optional[int] = None) -> List[DirectBooking]:
        query = f"SELECT {_DIRECT_COLUMNS} FROM direct_bookings AS db"
        params: tuple[object, ...] = ()
        if hall_id is not None:
            query += """
                WHERE EXISTS (
                    SELECT 1 FROM direct_booking_halls AS h
                    WHERE h.booking_id = db.id AND h.hall_id = ?
                )
            """
            params = (int(hall_id),)
        query += " ORDER BY db.created_at DESC, db.id DESC;"
        with self._session() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return [self._row_to_direct(row) for row in cursor.fetchall()]

    # ------------------------------------------------------------------
    # Reservation writes
    # ------------------------------------------------------------------

    def insert_request(
        self,
        *,
        requester_id: str,
        requester_role: Role,
        hall_ids: Iterable[int],
        window: TimeWindow,
        purpose: str,
        attendee_count: int,
        event_name: Optional[str] = None,
        contact_email: Optional[str] = None,
    ) -> ReservationRequest:
        """Insert a pending request together with its hall associations."""
        ids = sorted({int(hall_id) for hall_id in hall_ids})
        timestamp = _utcnow().isoformat()
        with self._session() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO booking_requests (
                    requester_id,
                    requester_role,
                    event_name,
                    purpose,
                    contact_email,
                    start_date,
                    end_date,
                    start_time,
                    end_time,
                    attendee_count,
                    status,
                    created_at,
                    updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 'pending', ?, ?);
                """,
                (
                    requester_id,
                    Role(requester_role).value,
                    event_name,
                    purpose,
                    contact_email,
                    window.start_date.isoformat(),
                    window.end_date.isoformat(),
                    self._format_time(window.start_time),
                    self._format_time(window.end_time),
                    attendee_count,
                    timestamp,
                    timestamp,
                ),
            )
            request_id = int(cursor.lastrowid)
            cursor.executemany(
                "INSERT INTO booking_request_halls (request_id, hall_id) VALUES (?, ?);",
                [(request_id, hall_id) for hall_id in ids],
            )
            cursor.execute(
                f"SELECT {_REQUEST_COLUMNS} FROM booking_requests AS br WHERE br.id = ?;",
                (request_id,),
            )
            return self._row_to_request(cursor.fetchone())

    def update_request_status(
        self,
        request_id: int,
        status: RequestStatus,
        *,
        rejection_reason: Optional[str] = None,
        admin_notes: Optional[str] = None,
    ) -> ReservationRequest:
        with self._session() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                UPDATE booking_requests
                SET status = ?,
                    rejection_reason = COALESCE(?, rejection_reason),
                    admin_notes = COALESCE(?, admin_notes),
                    updated_at = ?
                WHERE id = ?;
                """,
                (
                    RequestStatus(status).value,
                    rejection_reason,
                    admin_notes,
                    _utcnow().isoformat(),
                    request_id,
                ),
            )
            if cursor.rowcount == 0:
                raise LookupError(f"booking request {request_id} does not exist")
            cursor.execute(
                f"SELECT {_REQUEST_COLUMNS} FROM booking_requests AS br WHERE br.id = ?;",
                (request_id,),
            )
            return self._row_to_request(cursor.fetchone())

    def delete_request(self, request_id: int) -> bool:
        """Remove a request and its hall associations in one transaction."""
        with self._session() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "DELETE FROM booking_request_halls WHERE request_id = ?;",
                (request_id,),
            )
            cursor.execute("DELETE FROM booking_requests WHERE id = ?;", (request_id,))
            return cursor.rowcount > 0

    def insert_direct_booking(
        self,
        *,
        booked_by: str,
        hall_ids: Iterable[int],
        window: TimeWindow,
        purpose: str,
        is_blackout: bool = False,
        event_name: Optional[str] = None,
        attendee_count: int = 0,
    ) -> DirectBooking:
        ids = sorted({int(hall_id) for hall_id in hall_ids})
        with self._session() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO direct_bookings (
                    booked_by,
                    event_name,
                    purpose,
                    start_date,
                    end_date,
                    start_time,
                    end_time,
                    is_blackout,
                    attendee_count,
                    created_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
                """,
                (
                    booked_by,
                    event_name,
                    purpose,
                    window.start_date.isoformat(),
                    window.end_date.isoformat(),
                    self._format_time(window.start_time),
                    self._format_time(window.end_time),
                    int(is_blackout),
                    attendee_count,
                    _utcnow().isoformat(),
                ),
            )
            booking_id = int(cursor.lastrowid)
            cursor.executemany(
                "INSERT INTO direct_booking_halls (booking_id, hall_id) VALUES (?, ?);",
                [(booking_id, hall_id) for hall_id in ids],
            )
            cursor.execute(
                f"SELECT {_DIRECT_COLUMNS} FROM direct_bookings AS db WHERE db.id = ?;",
                (booking_id,),
            )
            return self._row_to_direct(cursor.fetchone())

    def delete_direct_booking(self, booking_id: int) -> bool:
        with self._session() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "DELETE FROM direct_booking_halls WHERE booking_id = ?;",
                (booking_id,),
            )
            cursor.execute("DELETE FROM direct_bookings WHERE id = ?;", (booking_id,))
            return cursor.rowcount > 0

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def create_notification(
        self,
        user_id: str,
        title: str,
        message: str,
        notification_type: str = "info",
        related_request_id: Optional[int] = None,
    ) -> int:
        with self._session() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO notifications (
                    user_id, title, message, type, related_request_id, is_read, created_at
                )
                VALUES (?, ?, ?, ?, ?, 0, ?);
                """,
                (
                    user_id,
                    title,
                    message,
                    notification_type,
                    related_request_id,
                    _utcnow().isoformat(),
                ),
            )
            return int(cursor.lastrowid)

    def list_notifications(
        self,
        user_id: str,
        *,
        is_read: Optional[bool] = None,
        limit: int = 50,
    ) -> List[Notification]:
        query = """
            SELECT id, user_id, title, message, type, related_request_id, is_read, created_at
            FROM notifications
            WHERE user_id = ?
        """
        params: list[object] = [user_id]
        if is_read is not None:
            query += " AND is_read = ?"
            params.append(int(is_read))
        query += " ORDER BY created_at DESC, id DESC LIMIT ?;"
        params.append(int(limit))
        with self._session() as conn:
            cursor = conn.cursor()
            cursor.execute(query, tuple(params))
            return [
                Notification(
                    notification_id=int(row["id"]),
                    user_id=str(row["user_id"]),
                    title=str(row["title"]),
                    message=str(row["message"]),
                    notification_type=str(row["type"]),
                    is_read=bool(row["is_read"]),
                    created_at=datetime.fromisoformat(str(row["created_at"])),
                    related_request_id=(
                        int(row["related_request_id"])
                        if row["related_request_id"] is not None
                        else None
                    ),
                )
                for row in cursor.fetchall()
            ]

    def mark_notifications_read(self, user_id: str, notification_ids: Sequence[int]) -> int:
        """Mark the caller's notifications read and return the updated count."""
        if not notification_ids:
            return 0
        ids = [int(item) for item in notification_ids]
        with self._session() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"""
                UPDATE notifications
                SET is_read = 1
                WHERE user_id = ? AND id IN ({_placeholders(ids)});
                """,
                (user_id, *ids),
            )
            return int(cursor.rowcount)

    def count_requests(self, status: Optional[RequestStatus] = None) -> int:
        """Return persisted request count for diagnostics and tests."""
        query = "SELECT COUNT(*) AS count FROM booking_requests"
        params: tuple[object, ...] = ()
        if status is not None:
            query += " WHERE status = ?"
            params = (RequestStatus(status).value,)
        with self._session() as conn:
            cursor = conn.cursor()
            cursor.execute(query + ";", params)
            return int(cursor.fetchone()["count"])

    def count_request_hall_links(self, request_id: int) -> int:
        with self._session() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT COUNT(*) AS count FROM booking_request_halls WHERE request_id = ?;",
                (request_id,),
            )
            return int(cursor.fetchone()["count"])
