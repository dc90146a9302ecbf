"""Application factory for the podparts package."""

from __future__ import annotations

import logging
import os
from typing import Any, Mapping, Optional

import click
import pandas as pd
from alembic import command
from alembic.config import Config
from flask import Flask

from .blueprints import handle_console_error, products_bp, stocktake_bp
from .config import db_path, load_config
from .db import configure_engine, init_db
from .diagnostics import bp as diagnostics_bp
from .domain.products import import_from_dataframe
from .errors import ConsoleError
from .log_config import configure_logging

logger = logging.getLogger(__name__)


def _check_db_path(app: Flask) -> None:
    path = db_path()
    if os.path.isdir(path):
        app.logger.error(
            f"Database path {path} is a directory. Please fix the mount."
        )
        raise SystemExit(1)
    if os.path.exists(path) and not os.path.isfile(path):
        app.logger.error(f"Database path {path} is not a file.")
        raise SystemExit(1)


def run_migrations(app: Flask) -> None:
    """Bring the database schema to the latest Alembic revision."""
    alembic_ini_path = os.path.join(app.root_path, "..", "alembic.ini")
    alembic_cfg = Config(alembic_ini_path) if os.path.exists(alembic_ini_path) else Config()
    alembic_cfg.set_main_option("script_location", os.path.join(app.root_path, "migrations"))
    alembic_cfg.set_main_option("sqlalchemy.url", f"sqlite:///{db_path()}")
    command.upgrade(alembic_cfg, "head")


def create_app(config: Optional[Mapping[str, Any]] = None) -> Flask:
    """Create and configure a :class:`Flask` application instance."""

    app = Flask(__name__)
    cfg = load_config()
    app.secret_key = cfg.SECRET_KEY

    if config:
        app.config.update(config)

    configure_logging(cfg.LOG_LEVEL, cfg.LOG_FILE)
    configure_engine(cfg.DB_PATH)

    app.register_blueprint(stocktake_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(diagnostics_bp)
    app.register_error_handler(ConsoleError, handle_console_error)

    with app.app_context():
        _check_db_path(app)
        run_migrations(app)

    @app.after_request
    def apply_security_headers(response):
        """Attach security headers to every response."""

        response.headers.setdefault(
            "Content-Security-Policy", "default-src 'none'; frame-ancestors 'none'"
        )
        response.headers.setdefault(
            "Strict-Transport-Security", "max-age=31536000; includeSubDomains"
        )
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        return response

    @app.cli.command("init-db")
    def init_db_command() -> None:
        """Initialize the application database."""
        init_db()
        click.echo(f"Database ready at {db_path()}")

    @app.cli.command("import-units")
    @click.argument("path", type=click.Path(exists=True, dir_okay=False))
    def import_units_command(path: str) -> None:
        """Import inventory units from an .xlsx or .csv spreadsheet."""
        if path.lower().endswith(".csv"):
            df = pd.read_csv(path, dtype=str)
        else:
            df = pd.read_excel(path, dtype=str)
        counts = import_from_dataframe(df)
        click.echo(
            f"{counts['created']} created, {counts['updated']} updated, "
            f"{counts['skipped']} skipped"
        )

    logger.debug("Application created with database %s", cfg.DB_PATH)
    return app
