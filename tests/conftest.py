"""Shared fixtures for SQLHelper tests."""

from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from sqlhelper.config import SQLHelperConfig, set_config
from sqlhelper.db import DataConnection, EngineCache

SCHEMA = """
    CREATE TABLE Orders (
        Id INTEGER PRIMARY KEY AUTOINCREMENT,
        Name TEXT NOT NULL,
        Amount INTEGER
    );

    CREATE TABLE Users (
        Id INTEGER PRIMARY KEY AUTOINCREMENT,
        Email TEXT UNIQUE,
        Active INTEGER
    );

    CREATE TABLE Settings (
        SettingId INTEGER PRIMARY KEY,
        SettingValue TEXT
    );

    CREATE VIEW ActiveUsers AS
    SELECT Id, Email FROM Users WHERE Active = 1;
"""


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch):
    """Isolate tests from process configuration and SQLHELPER_* variables."""
    monkeypatch.delenv("SQLHELPER_GLOBAL_TIMEOUT_OVERRIDE", raising=False)
    monkeypatch.delenv("SQLHELPER_CONFIG_FILE", raising=False)
    set_config(None)
    yield
    set_config(None)


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    """A SQLite database file with the Orders, Users and Settings tables."""
    path = tmp_path / "sqlhelper_test.db"
    conn = sqlite3.connect(path)
    conn.executescript(SCHEMA)
    conn.commit()
    conn.close()
    return path


@pytest.fixture
def connection_string(db_path: Path) -> str:
    return f"sqlite:///{db_path}"


@pytest.fixture
def engine_cache():
    cache = EngineCache()
    yield cache
    cache.dispose_all()


@pytest.fixture
def settings() -> SQLHelperConfig:
    return SQLHelperConfig()


@pytest.fixture
def db(connection_string: str, engine_cache: EngineCache, settings: SQLHelperConfig):
    """An open DataConnection on the test database."""
    connection = DataConnection(connection_string, settings=settings, engine_cache=engine_cache)
    yield connection
    connection.close()


@pytest.fixture
def row_count(db_path: Path):
    """Row count of a table, read through a separate sqlite3 connection."""

    def count(table: str) -> int:
        conn = sqlite3.connect(db_path)
        try:
            return conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
        finally:
            conn.close()

    return count
