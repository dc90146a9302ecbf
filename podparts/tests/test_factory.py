import pandas as pd
import pytest

from podparts import factory
from podparts.settings_store import settings_store
from podparts.domain.products import get_unit


def test_directory_db_path_aborts(app, tmp_path):
    settings_store.update({"DB_PATH": str(tmp_path)})
    with pytest.raises(SystemExit):
        factory._check_db_path(app)


def test_init_db_command(app):
    result = app.test_cli_runner().invoke(args=["init-db"])
    assert result.exit_code == 0
    assert "Database ready" in result.output


def test_import_units_command(app, tmp_path):
    path = tmp_path / "units.xlsx"
    pd.DataFrame([
        {"Security Barcode": "CLI1", "Status": "in_stock", "Product Name": "Case"},
        {"Security Barcode": "CLI2", "Status": "returned"},
    ]).to_excel(path, index=False)

    result = app.test_cli_runner().invoke(args=["import-units", str(path)])

    assert result.exit_code == 0, result.output
    assert "2 created, 0 updated, 0 skipped" in result.output
    assert get_unit("CLI2")["status"] == "returned"
