"""SQLAlchemy engine factory, session class, and Connection bridge.

Manifesto:
    Generated statements must run unchanged whether the caller holds a
    raw ``sqlite3``/PyMySQL connection or a SQLAlchemy ``Session``.
    ``SAConnectionBridge`` wraps a SA Session to satisfy the
    ``tagmap.core.protocols.Connection`` protocol.

This module provides:

* ``create_tagmap_engine``   -- Create a SA engine from a URL (defaults from settings).
* ``TagmapSession``          -- A pre-configured ``Session`` subclass.
* ``SAConnectionBridge``     -- Wraps a SA ``Session`` so that
  :class:`~tagmap.core.engine.TableEngine` can execute through it.

Tags:
    tagmap, orm, sqlalchemy, session, engine, bridge, connection

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from sqlalchemy import create_engine as _sa_create_engine
from sqlalchemy import event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from tagmap.core.settings import get_settings


def create_tagmap_engine(
    url: str | None = None,
    *,
    echo: bool | None = None,
    pool_size: int | None = None,
    max_overflow: int | None = None,
    pool_timeout: int | None = None,
    **kwargs: Any,
) -> Engine:
    """Create a SQLAlchemy engine with sane defaults.

    Parameters
    ----------
    url:
        Database URL (``mysql+pymysql://…``, ``sqlite:///…``).  Defaults to
        ``TAGMAP_DATABASE_URL``.
    echo:
        If ``True``, log all SQL.  Defaults to ``TAGMAP_DATABASE_ECHO``.
    pool_size, max_overflow, pool_timeout:
        Connection pool parameters (ignored for SQLite).
    **kwargs:
        Extra arguments forwarded to ``sqlalchemy.create_engine``.
    """
    settings = get_settings()
    url = url or settings.database_url
    echo = settings.database_echo if echo is None else echo

    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
        engine = _sa_create_engine(url, echo=echo, **kwargs)

        @event.listens_for(engine, "connect")
        def _set_sqlite_pragma(dbapi_connection: Any, _rec: Any) -> None:
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine

    pool_kwargs: dict[str, Any] = {}
    if pool_size is not None:
        pool_kwargs["pool_size"] = pool_size
    if max_overflow is not None:
        pool_kwargs["max_overflow"] = max_overflow
    if pool_timeout is not None:
        pool_kwargs["pool_timeout"] = pool_timeout

    return _sa_create_engine(url, echo=echo, **pool_kwargs, **kwargs)


class TagmapSession(Session):
    """Pre-configured session with ``expire_on_commit=False``."""

    def __init__(self, bind: Engine | None = None, **kwargs: Any) -> None:
        kwargs.setdefault("expire_on_commit", False)
        super().__init__(bind=bind, **kwargs)


def tagmap_session_factory(engine: Engine) -> sessionmaker[TagmapSession]:
    """Return a ``sessionmaker`` bound to *engine* that produces ``TagmapSession`` instances."""
    return sessionmaker(bind=engine, class_=TagmapSession)


def rewrite_positional(sql: str) -> str:
    """Rewrite ``?`` tokens outside quoted literals to ``:p0, :p1, ...``."""
    rewritten: list[str] = []
    idx = 0
    quote: str | None = None
    for ch in sql:
        if quote is not None:
            if ch == quote:
                quote = None
        elif ch in ("'", '"', "`"):
            quote = ch
        elif ch == "?":
            rewritten.append(f":p{idx}")
            idx += 1
            continue
        rewritten.append(ch)
    return "".join(rewritten)


class SAConnectionBridge:
    """Adapter that makes a SQLAlchemy ``Session`` look like ``tagmap.core.protocols.Connection``.

    ``execute`` returns the bridge itself, which then serves as the cursor.

    Implements: ``execute``, ``fetchone``, ``fetchall``, ``commit``,
    ``rollback``, plus the cursor attributes ``description`` and ``rowcount``.
    """

    def __init__(self, session: Session) -> None:
        self._session = session
        self._last_result: Any = None

    # --- execute ---

    def execute(
        self,
        sql: str,
        parameters: Sequence[Any] | Mapping[str, Any] | None = None,
    ) -> SAConnectionBridge:
        if isinstance(parameters, Mapping):
            self._last_result = self._session.execute(text(sql), dict(parameters))
        elif parameters:
            mapping = {f"p{i}": v for i, v in enumerate(parameters)}
            self._last_result = self._session.execute(text(rewrite_positional(sql)), mapping)
        else:
            self._last_result = self._session.execute(text(sql))
        return self

    # --- fetch ---

    def fetchone(self) -> tuple[Any, ...] | None:
        if self._last_result is None:
            return None
        row = self._last_result.fetchone()
        return tuple(row) if row is not None else None

    def fetchall(self) -> list[tuple[Any, ...]]:
        if self._last_result is None:
            return []
        return [tuple(r) for r in self._last_result.fetchall()]

    # --- transaction ---

    def commit(self) -> None:
        self._session.commit()

    def rollback(self) -> None:
        self._session.rollback()

    # --- properties ---

    @property
    def description(self) -> list[tuple[str, ...]] | None:
        """DB-API 2.0 compatible description from the last result.

        Only the column name (first element) is read by the engine.
        """
        if self._last_result is None or not self._last_result.returns_rows:
            return None
        keys = list(self._last_result.keys())
        return [(k, None, None, None, None, None, None) for k in keys]

    @property
    def rowcount(self) -> int:
        if self._last_result is None:
            return -1
        return self._last_result.rowcount

    @property
    def session(self) -> Session:
        """Access the underlying SA session."""
        return self._session


__all__ = [
    "create_tagmap_engine",
    "TagmapSession",
    "tagmap_session_factory",
    "rewrite_positional",
    "SAConnectionBridge",
]
