"""SQLAlchemy execution layer for tagmap.

Manifesto:
    tagmap only generates SQL; something else has to run it.  A raw
    DB-API connection is enough for tests and scripts, while services
    usually already hold a SQLAlchemy ``Session``.  ``SAConnectionBridge``
    lets :class:`~tagmap.core.engine.TableEngine` run over either.

Modules
-------
session     Engine factory, TagmapSession, SAConnectionBridge

Tags:
    tagmap, orm, sqlalchemy, session, bridge

Doc-Types:
    package-overview, module-index
"""

from __future__ import annotations

from tagmap.core.orm.session import (
    SAConnectionBridge,
    TagmapSession,
    create_tagmap_engine,
    tagmap_session_factory,
)

__all__ = [
    "SAConnectionBridge",
    "TagmapSession",
    "create_tagmap_engine",
    "tagmap_session_factory",
]
