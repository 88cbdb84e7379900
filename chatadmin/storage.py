"""Database access for users, groups and live sockets.

The admin module only reads identities and socket addresses; the write
helpers exist for the chat gateway and for tests. Any driver error is
re-raised as :class:`~chatadmin.services.exceptions.CollaboratorUnavailable`.
"""
import sqlite3
from pathlib import Path
from typing import Dict, Generator, Iterable, List
from contextlib import contextmanager
from urllib.parse import urlparse

import psycopg2
import psycopg2.extras

from .config import DB_FILE, get_database_url
from .models import User, Group, Socket
from .services.exceptions import CollaboratorUnavailable


class _PgCursor:
    def __init__(self, cursor):
        self._c = cursor

    def execute(self, query, params=None):
        q = query.replace("?", "%s")
        self._c.execute(q, params or [])
        return self

    def executemany(self, query, seq):
        q = query.replace("?", "%s")
        self._c.executemany(q, seq)
        return self

    def fetchone(self):
        return self._c.fetchone()

    def fetchall(self):
        return self._c.fetchall()

    def __iter__(self):
        return iter(self._c)

    def __getattr__(self, name):
        return getattr(self._c, name)


class _PgConnection:
    def __init__(self, conn):
        self._conn = conn

    def cursor(self, *a, **kw):
        return _PgCursor(self._conn.cursor(*a, **kw))

    def execute(self, query, params=None):
        return self.cursor().execute(query, params)

    def commit(self):
        self._conn.commit()

    def rollback(self):
        self._conn.rollback()

    def close(self):
        self._conn.close()

    def __getattr__(self, name):
        return getattr(self._conn, name)


def _is_pg(url: str) -> bool:
    return url.startswith("postgres")


def _connect():
    """Return a DB connection based on ``DATABASE_URL``."""
    url = get_database_url()
    if _is_pg(url):
        conn = psycopg2.connect(url, cursor_factory=psycopg2.extras.RealDictCursor)
        conn = _PgConnection(conn)
    else:
        path = DB_FILE
        if url.startswith("sqlite://"):
            path = Path(urlparse(url).path)
        conn = sqlite3.connect(path)
        conn.row_factory = sqlite3.Row
    try:
        _init_schema(conn)
    except Exception:
        conn.close()
        raise
    return conn


@contextmanager
def transaction() -> Generator[object, None, None]:
    """Context manager yielding a connection with an active transaction."""
    try:
        conn = _connect()
    except (sqlite3.Error, psycopg2.Error) as exc:
        raise CollaboratorUnavailable(f"Database unavailable: {exc}") from exc
    try:
        yield conn
        conn.commit()
    except (sqlite3.Error, psycopg2.Error) as exc:
        conn.rollback()
        raise CollaboratorUnavailable(f"Database error: {exc}") from exc
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def _init_schema(conn) -> None:
    cur = conn.cursor()
    cur.execute(
        "CREATE TABLE IF NOT EXISTS users (user_id TEXT PRIMARY KEY, username TEXT UNIQUE, avatar TEXT)"
    )
    cur.execute(
        "CREATE TABLE IF NOT EXISTS chat_groups (group_id TEXT PRIMARY KEY, name TEXT UNIQUE, avatar TEXT)"
    )
    cur.execute(
        """CREATE TABLE IF NOT EXISTS group_members (
        group_id TEXT,
        user_id TEXT,
        PRIMARY KEY (group_id, user_id)
    )"""
    )
    if _is_pg(get_database_url()):
        cur.execute(
            "CREATE TABLE IF NOT EXISTS sockets (id SERIAL PRIMARY KEY, socket_id TEXT UNIQUE, user_id TEXT, ip TEXT)"
        )
    else:
        cur.execute(
            "CREATE TABLE IF NOT EXISTS sockets (id INTEGER PRIMARY KEY AUTOINCREMENT, socket_id TEXT UNIQUE, user_id TEXT, ip TEXT)"
        )
    conn.commit()


def _user_from_row(row) -> User:
    return User(user_id=row["user_id"], username=row["username"], avatar=row["avatar"])


def create_user(user: User, conn=None) -> None:
    if conn is None:
        with transaction() as conn:
            return create_user(user, conn=conn)
    conn.cursor().execute(
        "INSERT INTO users(user_id, username, avatar) VALUES (?,?,?)",
        (user.user_id, user.username, user.avatar),
    )


def create_group(group: Group, conn=None) -> None:
    """Insert a group together with its member rows."""
    if conn is None:
        with transaction() as conn:
            return create_group(group, conn=conn)
    cur = conn.cursor()
    cur.execute(
        "INSERT INTO chat_groups(group_id, name, avatar) VALUES (?,?,?)",
        (group.group_id, group.name, group.avatar),
    )
    cur.executemany(
        "INSERT INTO group_members(group_id, user_id) VALUES (?,?)",
        [(group.group_id, uid) for uid in group.members],
    )


def create_socket(socket: Socket, conn=None) -> None:
    if conn is None:
        with transaction() as conn:
            return create_socket(socket, conn=conn)
    conn.cursor().execute(
        "INSERT INTO sockets(socket_id, user_id, ip) VALUES (?,?,?)",
        (socket.socket_id, socket.user_id, socket.ip),
    )


def delete_socket(socket_id: str) -> None:
    with transaction() as conn:
        conn.cursor().execute("DELETE FROM sockets WHERE socket_id = ?", (socket_id,))


def find_user_by_name(username: str) -> User | None:
    """Return the user with exactly this username, or ``None``."""
    with transaction() as conn:
        row = conn.cursor().execute(
            "SELECT user_id, username, avatar FROM users WHERE username = ?",
            (username,),
        ).fetchone()
    return _user_from_row(row) if row else None


def find_users_by_ids(user_ids: Iterable[str]) -> List[User]:
    ids = list(user_ids)
    if not ids:
        return []
    marks = ",".join("?" for _ in ids)
    with transaction() as conn:
        rows = conn.cursor().execute(
            f"SELECT user_id, username, avatar FROM users WHERE user_id IN ({marks})",
            ids,
        ).fetchall()
    return [_user_from_row(r) for r in rows]


def find_sockets_by_user(user_id: str) -> List[Socket]:
    """Return the live sockets owned by ``user_id`` in connection order."""
    with transaction() as conn:
        rows = conn.cursor().execute(
            "SELECT socket_id, user_id, ip FROM sockets WHERE user_id = ? ORDER BY id",
            (user_id,),
        ).fetchall()
    return [Socket(socket_id=r["socket_id"], user_id=r["user_id"], ip=r["ip"]) for r in rows]


def search_users(keywords: str) -> List[User]:
    with transaction() as conn:
        rows = conn.cursor().execute(
            "SELECT user_id, username, avatar FROM users WHERE username LIKE ? ORDER BY username",
            (f"%{keywords}%",),
        ).fetchall()
    return [_user_from_row(r) for r in rows]


def search_groups(keywords: str) -> List[Dict]:
    """Return matching groups with their member count instead of the members."""
    with transaction() as conn:
        rows = conn.cursor().execute(
            """
            SELECT g.group_id, g.name, g.avatar, COUNT(m.user_id) AS members
            FROM chat_groups g LEFT JOIN group_members m ON m.group_id = g.group_id
            WHERE g.name LIKE ?
            GROUP BY g.group_id, g.name, g.avatar
            ORDER BY g.name
            """,
            (f"%{keywords}%",),
        ).fetchall()
    return [
        {
            "_id": r["group_id"],
            "avatar": r["avatar"],
            "name": r["name"],
            "members": int(r["members"]),
        }
        for r in rows
    ]
