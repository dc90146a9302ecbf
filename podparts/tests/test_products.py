from io import BytesIO

import pandas as pd
import pytest

from podparts.domain import products
from podparts.errors import NotFound, ValidationError


def test_create_and_get_unit(app):
    unit = products.create_unit(" ab12 ", product_name="Left bud", generation="3rd Gen")
    assert unit["security_barcode"] == "AB12"
    assert unit["status"] == "in_stock"

    fetched = products.get_unit("ab12")
    assert fetched["product_name"] == "Left bud"
    assert fetched["status_history"] == []


def test_create_unit_rejects_duplicates(app, make_unit):
    make_unit("AB12")
    with pytest.raises(ValidationError):
        products.create_unit("ab12")
    with pytest.raises(ValidationError):
        products.create_unit("   ")


def test_get_unknown_unit(app):
    with pytest.raises(NotFound):
        products.get_unit("NOPE")


def test_status_change_is_recorded(app, make_unit):
    make_unit("AB12")
    unit = products.update_product_status("AB12", "returned", "customer return")

    assert unit["status"] == "returned"
    history = unit["status_history"]
    assert len(history) == 1
    assert history[0]["from_status"] == "in_stock"
    assert history[0]["to_status"] == "returned"
    assert history[0]["reason"] == "customer return"


def test_status_must_be_allowed(app, make_unit):
    make_unit("AB12")
    with pytest.raises(ValidationError):
        products.update_product_status("AB12", "misplaced")
    assert products.get_unit("AB12")["status"] == "in_stock"


def test_import_from_dataframe(app, make_unit):
    make_unit("EXISTING", status="in_stock")
    df = pd.DataFrame([
        {"Security Barcode": "new1", "Status": "active", "Product Name": "Case",
         "Generation": "Pro", "Part Type": "case"},
        {"Security Barcode": "EXISTING", "Status": "sold", "Product Name": None},
        {"Security Barcode": None, "Status": "in_stock"},
        {"Security Barcode": 123456.0, "Status": None},
    ])

    counts = products.import_from_dataframe(df)

    assert counts == {"created": 2, "updated": 1, "skipped": 1}
    assert products.get_unit("NEW1")["part_type"] == "case"
    assert products.get_unit("123456")["status"] == "in_stock"
    existing = products.get_unit("EXISTING")
    assert existing["status"] == "sold"
    assert existing["product_name"] == "AirPods part EXISTING"
    assert existing["status_history"][0]["reason"] == "Spreadsheet import"


def test_import_requires_barcode_column(app):
    with pytest.raises(ValidationError):
        products.import_from_dataframe(pd.DataFrame([{"Status": "in_stock"}]))


def test_import_route_accepts_csv(client):
    csv = b"Security Barcode,Status,Product Name\nC1,in_stock,Left bud\nC2,sold,Right bud\n"
    resp = client.post(
        "/products/import",
        data={"file": (BytesIO(csv), "units.csv")},
        content_type="multipart/form-data",
    )
    assert resp.status_code == 200
    assert resp.get_json()["created"] == 2
    assert client.get("/products/C2").get_json()["unit"]["status"] == "sold"


def test_import_route_requires_file(client):
    resp = client.post("/products/import", data={}, content_type="multipart/form-data")
    assert resp.status_code == 400
    assert resp.get_json()["kind"] == "validation_error"


def test_export_products(client, make_unit):
    make_unit("B2", part_type="case")
    make_unit("A1", status="sold")

    resp = client.get("/products/export")
    assert resp.status_code == 200

    df = pd.read_excel(BytesIO(resp.data))
    assert list(df.columns) == list(products.SPREADSHEET_COLUMNS)
    assert list(df["Security Barcode"]) == ["A1", "B2"]
    assert df.loc[1, "Part Type"] == "case"


def test_product_routes(client):
    resp = client.post("/products", json={"security_barcode": "R1", "product_name": "Right bud"})
    assert resp.status_code == 201

    resp = client.post("/products", json={"security_barcode": "R1"})
    assert resp.status_code == 400

    resp = client.put("/products/R1/status", json={"status": "returned", "return_reason": "faulty mic"})
    assert resp.status_code == 200
    assert resp.get_json()["unit"]["status_history"][0]["reason"] == "faulty mic"

    assert client.get("/products/MISSING").status_code == 404
