import csv
import io

import pytest

from conftest import make_product


def entry(client, headers, product_id, quantity, invoice="F-001"):
    return client.post(
        "/api/movements/entries",
        json={"product_id": product_id, "quantity": quantity, "invoice_number": invoice},
        headers=headers,
    )


def exit_(client, headers, product_id, quantity, destination="Tienda centro"):
    return client.post(
        "/api/movements/exits",
        json={"product_id": product_id, "quantity": quantity, "destination": destination},
        headers=headers,
    )


class TestEntriesAndExits:
    def test_entry_updates_stock_and_status(self, client, db, operator_headers):
        p = make_product(db, stock=0, min_stock=5, max_stock=100)

        r = entry(client, operator_headers, p.id, 10)

        assert r.status_code == 201
        body = r.json()
        assert body["state"] == "complete"
        assert body["product"]["stock"] == 10
        assert body["product"]["status"] == "In Stock"
        assert body["movement"]["action_type"] == "Entrada"
        assert body["movement"]["quantity"] == 10
        assert body["movement"]["details"] == {"invoice_number": "F-001"}
        assert body["movement"]["user_name"] == "Operator"

    def test_exit_over_available_stock_is_a_conflict(self, client, db, operator_headers):
        p = make_product(db, stock=3)

        r = exit_(client, operator_headers, p.id, 5)

        assert r.status_code == 409
        body = r.json()
        assert body["code"] == "INSUFFICIENT_STOCK"
        assert body["available"] == 3
        assert "Available: 3" in body["detail"]

        assert client.get(f"/api/products/{p.id}", headers=operator_headers).json()["stock"] == 3
        assert client.get("/api/movements", headers=operator_headers).json()["total_count"] == 0

    def test_exit_needs_a_destination(self, client, db, operator_headers):
        p = make_product(db, stock=3)

        r = exit_(client, operator_headers, p.id, 1, destination="")

        assert r.status_code == 422

    @pytest.mark.parametrize("quantity", [0, -1])
    def test_quantity_must_be_positive(self, client, db, operator_headers, quantity):
        p = make_product(db, stock=3)

        assert entry(client, operator_headers, p.id, quantity).status_code == 422

    def test_unknown_product(self, client, operator_headers):
        r = entry(client, operator_headers, 404, 1)

        assert r.status_code == 404
        assert r.json()["entity"] == "Product"

    def test_viewer_cannot_register_movements(self, client, db, viewer_headers):
        p = make_product(db, stock=3)

        assert entry(client, viewer_headers, p.id, 1).status_code == 403
        assert exit_(client, viewer_headers, p.id, 1).status_code == 403


@pytest.fixture()
def history(client, db, operator_headers):
    flour = make_product(db, name="Harina", stock=0)
    sugar = make_product(db, name="Azúcar", stock=0)

    entry(client, operator_headers, flour.id, 30, invoice="F-1")
    entry(client, operator_headers, sugar.id, 12, invoice="F-2")
    exit_(client, operator_headers, flour.id, 8, destination="Sucursal norte")
    entry(client, operator_headers, flour.id, 5, invoice="")
    exit_(client, operator_headers, sugar.id, 2, destination="Cliente")
    return flour, sugar


class TestHistory:
    def test_newest_first(self, client, history, viewer_headers):
        body = client.get("/api/movements", headers=viewer_headers).json()

        assert body["total_count"] == 5
        assert [m["quantity"] for m in body["rows"]] == [2, 5, 8, 12, 30]

    def test_filter_by_action_type(self, client, history, viewer_headers):
        body = client.get("/api/movements", params={"action_type": "Salida"}, headers=viewer_headers).json()

        assert body["total_count"] == 2
        assert {m["action_type"] for m in body["rows"]} == {"Salida"}

    def test_unknown_action_type(self, client, history, viewer_headers):
        r = client.get("/api/movements", params={"action_type": "Transfer"}, headers=viewer_headers)
        assert r.status_code == 422

    def test_search_by_product_name(self, client, history, viewer_headers):
        body = client.get("/api/movements", params={"search": "azú"}, headers=viewer_headers).json()

        assert body["total_count"] == 2
        assert {m["product_name"] for m in body["rows"]} == {"Azúcar"}

    def test_pagination(self, client, history, viewer_headers):
        body = client.get("/api/movements", params={"page": 2, "page_size": 2}, headers=viewer_headers).json()

        assert body["total_pages"] == 3
        assert [m["quantity"] for m in body["rows"]] == [8, 12]

    def test_blank_invoice_is_stored_as_null(self, client, history, viewer_headers):
        rows = client.get("/api/movements", headers=viewer_headers).json()["rows"]

        assert rows[1]["details"] == {"invoice_number": None}

    def test_recent_movements_for_one_product(self, client, history, viewer_headers):
        flour, _ = history

        rows = client.get(f"/api/products/{flour.id}/movements", headers=viewer_headers).json()
        assert [m["quantity"] for m in rows] == [5, 8, 30]

        exits = client.get(
            f"/api/products/{flour.id}/movements",
            params={"action_type": "Salida"},
            headers=viewer_headers,
        ).json()
        assert [m["quantity"] for m in exits] == [8]

    def test_metrics(self, client, history, viewer_headers):
        body = client.get("/api/movements/metrics", headers=viewer_headers).json()

        assert body == {"today_movements": 5, "total_entries": 47, "total_exits": 10}

    def test_metrics_filtered_to_entries(self, client, history, viewer_headers):
        body = client.get(
            "/api/movements/metrics", params={"action_type": "Entrada"}, headers=viewer_headers
        ).json()

        assert body["total_entries"] == 47
        assert body["total_exits"] == 0


class TestExport:
    def test_full_export(self, client, history, viewer_headers):
        r = client.get("/api/movements.csv", headers=viewer_headers)

        assert r.status_code == 200
        assert r.headers["content-type"].startswith("text/csv")
        assert 'filename="Reporte_Historial_Completo.csv"' in r.headers["content-disposition"]

        rows = list(csv.reader(io.StringIO(r.text)))
        assert rows[0] == ["Fecha", "Hora", "Usuario", "Producto", "Acción", "Cantidad", "Detalles"]
        assert len(rows) == 6
        assert rows[1][2:] == ["Operator", "Azúcar", "Salida", "2", "Destino: Cliente"]
        assert rows[2][6] == "Factura: N/A"

    def test_filtered_export(self, client, history, viewer_headers):
        r = client.get("/api/movements.csv", params={"action_type": "Entrada"}, headers=viewer_headers)

        assert 'filename="Reporte_Historial_Entrada.csv"' in r.headers["content-disposition"]
        rows = list(csv.reader(io.StringIO(r.text)))
        assert len(rows) == 4
        assert {row[4] for row in rows[1:]} == {"Entrada"}


class TestDashboard:
    def test_counts_and_rankings(self, client, history, db, viewer_headers):
        make_product(db, name="Sal", stock=0)

        body = client.get("/api/reports/dashboard", headers=viewer_headers).json()

        assert body["total_products"] == 3
        assert body["out_of_stock_count"] == 1
        assert body["total_movements"] == 5
        assert body["top_entries"][0] == {"product_name": "Harina", "total": 35}
        assert body["top_exits"][0] == {"product_name": "Harina", "total": 8}
        assert len(body["monthly_entries"]) == 1
        assert body["monthly_entries"][0]["total"] == 47

    def test_empty_store(self, client, viewer_headers):
        body = client.get("/api/reports/dashboard", headers=viewer_headers).json()

        assert body["total_products"] == 0
        assert body["monthly_entries"] == []
        assert body["top_exits"] == []


def test_notifications_list_products_outside_the_normal_range(client, db, viewer_headers):
    low = make_product(db, name="Azúcar", stock=2, min_stock=5, max_stock=50)
    make_product(db, name="Harina", stock=20, min_stock=5, max_stock=50)
    empty = make_product(db, name="Sal", stock=0)
    over = make_product(db, name="Levadura", stock=80, min_stock=5, max_stock=60)

    alerts = client.get("/api/notifications", headers=viewer_headers).json()

    assert [(a["id"], a["type"]) for a in alerts] == [
        (f"low_stock_{low.id}", "low_stock"),
        (f"out_of_stock_{empty.id}", "out_of_stock"),
        (f"over_stock_{over.id}", "over_stock"),
    ]
    assert alerts[0]["stock"] == 2


def test_blank_destination_is_rejected_after_trimming(client, db, operator_headers):
    p = make_product(db, stock=3)

    r = exit_(client, operator_headers, p.id, 1, destination="   ")

    assert r.status_code == 422
    assert client.get("/api/movements", headers=operator_headers).json()["total_count"] == 0
