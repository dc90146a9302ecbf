import logging
import sqlite3

import pytest
from sqlalchemy import inspect

import podparts.db as db
from podparts.errors import NotFound
from podparts.factory import run_migrations
from podparts.models import Base, InventoryUnit


@pytest.fixture
def isolated_engine(tmp_path):
    original_engine = db.engine
    original_session_local = db.SessionLocal
    try:
        db.configure_engine(str(tmp_path / "isolated.db"))
        db.init_db()
        yield db.engine
    finally:
        if db.engine is not None and db.engine is not original_engine:
            db.engine.dispose()
        db.engine = original_engine
        db.SessionLocal = original_session_local


def test_configure_engine_enables_wal_mode(isolated_engine):
    with isolated_engine.connect() as conn:
        journal_mode = conn.exec_driver_sql("PRAGMA journal_mode").scalar_one()
        foreign_keys = conn.exec_driver_sql("PRAGMA foreign_keys").scalar_one()
    assert journal_mode.lower() == "wal"
    assert foreign_keys == 1


def test_configure_sqlite_connection_readonly(tmp_path, caplog):
    db_file = tmp_path / "readonly.db"

    # create the database so SQLite can open it in read-only mode later
    with sqlite3.connect(str(db_file)) as conn:
        conn.execute("CREATE TABLE IF NOT EXISTS t (id INTEGER PRIMARY KEY)")

    readonly_uri = f"file:{db_file}?mode=ro"
    caplog.set_level(logging.WARNING, logger="podparts.db")

    readonly_conn = sqlite3.connect(readonly_uri, uri=True, check_same_thread=False)
    try:
        db._configure_sqlite_connection(readonly_conn)
        busy_timeout = readonly_conn.execute("PRAGMA busy_timeout").fetchone()[0]
    finally:
        readonly_conn.close()

    warning_messages = [record.getMessage() for record in caplog.records]
    assert any("journal_mode" in message for message in warning_messages)
    assert busy_timeout == db.SQLITE_BUSY_TIMEOUT_MS


def test_get_session_rolls_back_on_domain_error(isolated_engine):
    with pytest.raises(NotFound):
        with db.get_session() as session:
            session.add(InventoryUnit(security_barcode="RB1", status="in_stock"))
            session.flush()
            raise NotFound("nothing here")

    with db.get_session() as session:
        assert session.query(InventoryUnit).count() == 0


def test_get_session_requires_configured_engine(monkeypatch):
    monkeypatch.setattr(db, "SessionLocal", None)
    with pytest.raises(RuntimeError):
        with db.get_session():
            pass


def test_migrations_create_schema(app):
    Base.metadata.drop_all(db.engine)
    with db.engine.begin() as conn:
        conn.exec_driver_sql("DROP TABLE IF EXISTS alembic_version")

    run_migrations(app)

    with db.engine.connect() as conn:
        revision = conn.exec_driver_sql("SELECT version_num FROM alembic_version").scalar_one()
    assert revision == "b4d2f6a8c0e3"
    tables = set(inspect(db.engine).get_table_names())
    assert {
        "inventory_units",
        "unit_status_history",
        "stock_takes",
        "stock_take_scans",
        "discrepancy_resolutions",
    } <= tables
