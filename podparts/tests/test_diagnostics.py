from podparts import metrics


def test_healthz_returns_ok(client):
    response = client.get("/healthz")

    assert response.status_code == 200
    payload = response.get_json()
    assert payload["status"] == "ok"
    assert payload["checks"]["database"]["status"] == "ok"


def test_metrics_endpoint(client):
    metrics.STOCK_TAKE_LAST_ACCURACY.set(87.5)

    try:
        response = client.get("/metrics")

        assert response.status_code == 200
        body = response.data.decode()
        assert "podparts_stock_take_last_accuracy_percent 87.5" in body
        assert "podparts_stock_take_scans_total" in body
    finally:
        metrics.STOCK_TAKE_LAST_ACCURACY.set(0)


def test_scan_results_are_counted(client, make_unit):
    make_unit("M1")
    before = metrics.STOCK_TAKE_SCANS_TOTAL.labels(result="found")._value.get()

    stock_take_id = client.post("/stock-take/start").get_json()["stock_take"]["id"]
    client.post(f"/stock-take/{stock_take_id}/scan", json={"barcode": "M1"})

    after = metrics.STOCK_TAKE_SCANS_TOTAL.labels(result="found")._value.get()
    assert after == before + 1
