import pytest
from collections import OrderedDict

from podparts.factory import create_app
from podparts.db import reset_db
from podparts.settings_store import settings_store


@pytest.fixture
def test_settings(tmp_path):
    # Settings should be strings, just like when loaded from a .env file
    return OrderedDict([
        ("DB_PATH", str(tmp_path / "test.db")),
        ("LOG_FILE", str(tmp_path / "test.log")),
        ("LOG_LEVEL", "DEBUG"),
        ("SECRET_KEY", "test-secret-key"),
        ("FLASK_DEBUG", "0"),
        (
            "PRODUCT_STATUS_OPTIONS",
            "in_stock,active,pending,sold,delivered_no_warranty,returned,faulty,written_off",
        ),
        ("ENABLE_CANCELLED_STOCK_TAKE_HISTORY", "0"),
        ("LOW_ACCURACY_THRESHOLD", "95"),
    ])


@pytest.fixture
def app(test_settings, monkeypatch):
    """Create and configure a new app instance for each test."""

    # 1. Prevent reading from .env files by patching the loader
    from podparts import settings_io

    def _fake_load_settings(*, example_path=settings_io.EXAMPLE_PATH, env_path=settings_io.ENV_PATH):
        return OrderedDict(test_settings)

    monkeypatch.setattr("podparts.settings_io.load_settings", _fake_load_settings)
    for key in test_settings:
        monkeypatch.delenv(key, raising=False)

    # 2. Reset the internal state of the global settings_store singleton for test isolation
    monkeypatch.setattr(settings_store, "_loaded", False)
    monkeypatch.setattr(settings_store, "_values", OrderedDict())
    monkeypatch.setattr(settings_store, "_namespace", None)

    # 3. Create the app. This will trigger the settings to be loaded via our patch.
    app = create_app({"TESTING": True, "SERVER_NAME": "localhost"})

    # 4. Ensure the test database schema is freshly created for each test
    with app.app_context():
        reset_db()
        yield app


@pytest.fixture
def client(app):
    """A test client for the app."""
    return app.test_client()


@pytest.fixture
def make_unit(app):
    """Register an inventory unit with sensible defaults."""
    from podparts.domain.products import create_unit

    def _make(barcode, status="in_stock", **kwargs):
        kwargs.setdefault("product_name", f"AirPods part {barcode}")
        kwargs.setdefault("generation", "Pro 2nd Gen")
        return create_unit(barcode, status=status, **kwargs)

    return _make
