"""Database access for cities and their recorded weather conditions.

The store talks DB-API directly (SQLite by default, MySQL through PyMySQL) and
relies on the database's own UNIQUE constraints for idempotence: a duplicate
city name or a duplicate ``(city, time)`` observation is rejected by the
engine and surfaced as :class:`ConstraintViolation`.
"""
from __future__ import annotations

import os
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple
from urllib.parse import unquote, urlparse

from citywatch.core.entities import City, Conditions

try:  # Optional import for MySQL support
    import pymysql
    from pymysql.cursors import DictCursor
except ImportError:  # pragma: no cover - pymysql is optional
    pymysql = None  # type: ignore
    DictCursor = None  # type: ignore


class StoreError(RuntimeError):
    """Base error for every persistence failure."""


class ConstraintViolation(StoreError):
    """Raised when a write would duplicate a uniqueness-protected key."""


class NotFound(StoreError):
    """Raised when a name does not resolve to exactly one city."""

    def __init__(self, name: str, matches: int = 0) -> None:
        self.name = name
        self.matches = matches
        if matches:
            message = f"{matches} cities named {name!r}, expected exactly one"
        else:
            message = f"no city named {name!r}"
        super().__init__(message)


class DatabaseSession:
    """One DB-API connection; ``?`` placeholders are rewritten per driver."""

    def __init__(self, connection, placeholder: str):
        self.connection = connection
        self.placeholder = placeholder

    def execute(self, sql: str, params: tuple = ()):
        if self.placeholder != "?":
            sql = sql.replace("?", self.placeholder)
        cursor = self.connection.cursor()
        cursor.execute(sql, params)
        return cursor

    def fetchone(self, sql: str, params: tuple = ()):
        cursor = self.execute(sql, params)
        try:
            return cursor.fetchone()
        finally:
            cursor.close()

    def fetchall(self, sql: str, params: tuple = ()):
        cursor = self.execute(sql, params)
        try:
            return cursor.fetchall()
        finally:
            cursor.close()

    def commit(self) -> None:
        self.connection.commit()

    def rollback(self) -> None:
        self.connection.rollback()

    def close(self) -> None:
        self.connection.close()


@dataclass(frozen=True)
class SessionFactory:
    """Opens a fresh :class:`DatabaseSession` on ``url`` for every call."""

    url: str
    driver: str
    placeholder: str

    @classmethod
    def from_url(cls, url: str) -> "SessionFactory":
        driver, placeholder = detect_driver(url)
        return cls(url=url, driver=driver, placeholder=placeholder)

    def __call__(self) -> DatabaseSession:
        if self.driver == "sqlite":
            return DatabaseSession(_connect_sqlite(self.url), self.placeholder)
        return DatabaseSession(_connect_mysql(self.url), self.placeholder)


# ---------------------------------------------------------------------------

def default_database_url() -> str:
    return os.getenv("CITYWATCH_DATABASE_URL", "sqlite:///./citywatch.db")


def configure_engine(url: Optional[str] = None) -> SessionFactory:
    """Build the session factory for ``url`` and apply the schema.

    The caller owns the returned factory and hands it to whatever needs the
    store. Connectivity problems propagate, so an unreachable store at
    startup is fatal.
    """
    factory = SessionFactory.from_url(url or default_database_url())
    run_migrations(factory)
    return factory


def detect_driver(url: str) -> Tuple[str, str]:
    scheme = urlparse(url).scheme
    if scheme.startswith("mysql"):
        if pymysql is None:
            raise RuntimeError("PyMySQL is required for MySQL connections")
        return "mysql", "%s"
    if scheme.startswith("sqlite") or scheme == "":
        return "sqlite", "?"
    raise ValueError(f"Unsupported database scheme: {scheme}")


def _connect_sqlite(url: str) -> sqlite3.Connection:
    parsed = urlparse(url)
    # sqlite:///relative.db and sqlite:////absolute.db
    path = unquote(parsed.path or parsed.netloc or ":memory:")
    if path.startswith("/"):
        path = path[1:]
    if path != ":memory:":
        path = os.path.abspath(path)
    connection = sqlite3.connect(path, timeout=30, check_same_thread=False)
    connection.row_factory = sqlite3.Row
    connection.execute("PRAGMA foreign_keys=ON")
    return connection


def _connect_mysql(url: str):
    assert pymysql is not None and DictCursor is not None
    parsed = urlparse(url)
    return pymysql.connect(
        host=parsed.hostname or "localhost",
        port=parsed.port or 3306,
        user=parsed.username,
        password=parsed.password,
        database=parsed.path.lstrip("/") or None,
        charset="utf8mb4",
        cursorclass=DictCursor,
        autocommit=False,
    )


@contextmanager
def session_scope(session_factory: SessionFactory) -> Iterator[DatabaseSession]:
    session = session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


# ---------------------------------------------------------------------------

SCHEMA: Dict[str, Sequence[str]] = {
    "sqlite": (
        """
        CREATE TABLE IF NOT EXISTS cities (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL UNIQUE,
            latitude REAL NOT NULL,
            longitude REAL NOT NULL
        )
        """,
        """
        CREATE TABLE IF NOT EXISTS conditions (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            city_id INTEGER NOT NULL,
            temperature REAL NOT NULL,
            time TEXT NOT NULL,
            FOREIGN KEY(city_id) REFERENCES cities(id) ON DELETE CASCADE
        )
        """,
        """
        CREATE UNIQUE INDEX IF NOT EXISTS uniq_conditions_city_time
        ON conditions (city_id, time)
        """,
    ),
    # utf8mb4_bin keeps name comparisons case-sensitive
    "mysql": (
        """
        CREATE TABLE IF NOT EXISTS cities (
            id INTEGER PRIMARY KEY AUTO_INCREMENT,
            name VARCHAR(255) COLLATE utf8mb4_bin NOT NULL,
            latitude DOUBLE NOT NULL,
            longitude DOUBLE NOT NULL,
            UNIQUE KEY uniq_cities_name (name)
        ) CHARACTER SET utf8mb4
        """,
        """
        CREATE TABLE IF NOT EXISTS conditions (
            id INTEGER PRIMARY KEY AUTO_INCREMENT,
            city_id INTEGER NOT NULL,
            temperature DOUBLE NOT NULL,
            time VARCHAR(64) NOT NULL,
            UNIQUE KEY uniq_conditions_city_time (city_id, time),
            FOREIGN KEY (city_id) REFERENCES cities(id) ON DELETE CASCADE
        ) CHARACTER SET utf8mb4
        """,
    ),
}


def run_migrations(session_factory: SessionFactory) -> None:
    session = session_factory()
    try:
        for statement in SCHEMA[session_factory.driver]:
            session.execute(statement).close()
        session.commit()
    finally:
        session.close()


# ---------------------------------------------------------------------------

def _is_unique_violation(exc: BaseException) -> bool:
    if isinstance(exc, sqlite3.IntegrityError):
        return "UNIQUE constraint failed" in str(exc)
    if pymysql is not None and isinstance(exc, pymysql.err.IntegrityError):
        # ER_DUP_ENTRY
        return bool(exc.args) and exc.args[0] == 1062
    return False


def _is_driver_error(exc: BaseException) -> bool:
    if isinstance(exc, sqlite3.Error):
        return True
    return pymysql is not None and isinstance(exc, pymysql.MySQLError)


def _conditions_from_row(row) -> Conditions:
    return Conditions(temperature=float(row["temperature"]), time=row["time"])


def _city_from_row(row, conditions: Optional[List[Conditions]] = None) -> City:
    return City(
        name=row["name"],
        latitude=float(row["latitude"]),
        longitude=float(row["longitude"]),
        conditions=tuple(conditions) if conditions is not None else None,
    )


def count_cities(session: DatabaseSession) -> int:
    row = session.fetchone("SELECT COUNT(*) AS cnt FROM cities")
    return int(row["cnt"])


def count_conditions(session: DatabaseSession, city_name: Optional[str] = None) -> int:
    if city_name is None:
        row = session.fetchone("SELECT COUNT(*) AS cnt FROM conditions")
    else:
        row = session.fetchone(
            """
            SELECT COUNT(*) AS cnt FROM conditions
            JOIN cities ON cities.id = conditions.city_id
            WHERE cities.name = ?
            """,
            (city_name,),
        )
    return int(row["cnt"])


class CityStore:
    """Typed insert/query/delete operations on cities and conditions.

    Every call opens its own session, so a single instance can be shared by
    request handlers and the synchronizer thread.  Reads always return fresh
    immutable snapshots.
    """

    def __init__(self, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory

    @property
    def session_factory(self) -> SessionFactory:
        return self._session_factory

    # Writes -------------------------------------------------------------
    def insert_city(self, name: str, latitude: float, longitude: float) -> None:
        with self._session() as session:
            session.execute(
                "INSERT INTO cities (name, latitude, longitude) VALUES (?, ?, ?)",
                (name, float(latitude), float(longitude)),
            ).close()

    def insert_conditions(self, city_name: str, temperature: float, time: str) -> None:
        with self._session() as session:
            city_id = self._resolve_city_id(session, city_name)
            session.execute(
                "INSERT INTO conditions (city_id, temperature, time) VALUES (?, ?, ?)",
                (city_id, float(temperature), time),
            ).close()

    def delete_city(self, name: str) -> int:
        """Delete the city called ``name`` and, by cascade, its conditions."""
        with self._session() as session:
            cursor = session.execute("DELETE FROM cities WHERE name = ?", (name,))
            removed = cursor.rowcount
            cursor.close()
        return max(removed, 0)

    # Reads --------------------------------------------------------------
    def list_cities(self, include_conditions: bool = False) -> List[City]:
        with self._session() as session:
            rows = session.fetchall("SELECT id, name, latitude, longitude FROM cities ORDER BY name")
            grouped: Dict[Any, List[Conditions]] = {}
            if include_conditions:
                for row in session.fetchall(
                    "SELECT city_id, temperature, time FROM conditions ORDER BY city_id, time"
                ):
                    grouped.setdefault(row["city_id"], []).append(_conditions_from_row(row))
        if not include_conditions:
            return [_city_from_row(row) for row in rows]
        return [_city_from_row(row, grouped.get(row["id"], [])) for row in rows]

    def list_city_names(self) -> List[str]:
        with self._session() as session:
            rows = session.fetchall("SELECT name FROM cities ORDER BY name")
        return [row["name"] for row in rows]

    def find_city_with_conditions(self, name: str) -> City:
        with self._session() as session:
            rows = session.fetchall(
                "SELECT id, name, latitude, longitude FROM cities WHERE name = ?",
                (name,),
            )
            if len(rows) != 1:
                raise NotFound(name, len(rows))
            conditions = session.fetchall(
                "SELECT temperature, time FROM conditions WHERE city_id = ? ORDER BY time",
                (rows[0]["id"],),
            )
        return _city_from_row(rows[0], [_conditions_from_row(row) for row in conditions])

    # helpers ------------------------------------------------------------
    @contextmanager
    def _session(self) -> Iterator[DatabaseSession]:
        try:
            with session_scope(self._session_factory) as session:
                yield session
        except StoreError:
            raise
        except Exception as exc:
            if _is_unique_violation(exc):
                raise ConstraintViolation(str(exc)) from exc
            if _is_driver_error(exc):
                raise StoreError(str(exc)) from exc
            raise

    @staticmethod
    def _resolve_city_id(session: DatabaseSession, name: str):
        rows = session.fetchall("SELECT id FROM cities WHERE name = ?", (name,))
        if len(rows) != 1:
            raise NotFound(name, len(rows))
        return rows[0]["id"]


__all__ = [
    "CityStore",
    "ConstraintViolation",
    "DatabaseSession",
    "NotFound",
    "SessionFactory",
    "StoreError",
    "configure_engine",
    "count_cities",
    "count_conditions",
    "default_database_url",
    "session_scope",
]
