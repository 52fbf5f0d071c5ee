"""Tests for the Dialect abstraction layer."""

from __future__ import annotations

import pytest

from tagmap.core.dialect import (
    Dialect,
    MySQLDialect,
    SQLiteDialect,
    get_dialect,
    register_dialect,
)
from tagmap.core.errors import ConfigError


# =========================================================================
# Fixtures
# =========================================================================


@pytest.fixture(params=["mysql", "mysql-format", "sqlite"])
def dialect(request: pytest.FixtureRequest) -> Dialect:
    """Parametric fixture: run each test against every dialect."""
    return get_dialect(request.param)


# =========================================================================
# Protocol conformance
# =========================================================================


class TestProtocol:
    def test_is_dialect(self, dialect: Dialect) -> None:
        assert isinstance(dialect, Dialect)

    def test_limit_keeps_offset_first(self, dialect: Dialect) -> None:
        assert dialect.limit("A", "B") == "LIMIT A, B"


class TestMySQL:
    def test_qmark(self) -> None:
        d = MySQLDialect()
        assert d.name == "mysql"
        assert d.placeholder(0) == "?"
        assert d.named("id") == ":id"
        assert d.binary_id("?") == "UUID_TO_BIN(?)"

    def test_format(self) -> None:
        d = MySQLDialect(paramstyle="format")
        assert d.placeholder(3) == "%s"
        assert d.named("id") == "%(id)s"
        assert d.binary_id("%s") == "UUID_TO_BIN(%s)"

    def test_unknown_paramstyle(self) -> None:
        with pytest.raises(ConfigError):
            MySQLDialect(paramstyle="numeric")


class TestSQLite:
    def test_identifiers_are_plain(self) -> None:
        d = SQLiteDialect()
        assert d.binary_id(":id") == ":id"
        assert d.placeholder(1) == "?"


class TestRegistry:
    def test_default_from_settings(self) -> None:
        assert get_dialect().name == "mysql"

    def test_setting_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TAGMAP_DIALECT", "sqlite")
        assert get_dialect().name == "sqlite"

    def test_case_insensitive(self) -> None:
        assert isinstance(get_dialect("MySQL"), MySQLDialect)

    def test_unknown(self) -> None:
        with pytest.raises(ConfigError):
            get_dialect("oracle")

    def test_register(self) -> None:
        custom = SQLiteDialect()
        register_dialect("Custom", custom)
        assert get_dialect("custom") is custom
