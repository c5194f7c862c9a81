"""
Sales transaction API tests.

Verifies the PENDING -> APPROVED/REJECTED lifecycle and that only approved
transactions move stock and system counts.
"""

from colporter.models import Book
from conftest import make_book

DAY = "2024-06-10"


def create_txn(client, headers, lines, on=DAY):
    return client.post(
        "/api/transactions",
        json={"transaction_date": on, "lines": lines},
        headers=headers,
    )


class TestTransactionLifecycle:

    def test_viewer_creates_pending(self, client, viewer_headers, book):
        resp = create_txn(client, viewer_headers, [{"book_id": book.id, "quantity": 3}])
        assert resp.status_code == 201, resp.json
        assert resp.json["status"] == "PENDING"
        assert resp.json["lines"] == [{"book_id": book.id, "quantity": 3}]
        assert resp.json["transaction_date"] == DAY

    def test_approve_moves_stock(self, client, db_session, viewer_headers, admin_headers, book):
        txn = create_txn(client, viewer_headers, [{"book_id": book.id, "quantity": 30}]).json
        resp = client.patch(f"/api/transactions/{txn['id']}/approve", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["status"] == "APPROVED"

        stored = db_session.get(Book, book.id)
        assert stored.sold == 30
        assert stored.stock == 70

        sheet = client.get(f"/api/books/counts/{DAY}/sheet", headers=admin_headers).json
        assert sheet["rows"][0]["system_count"] == 70

    def test_reject_leaves_stock(self, client, db_session, viewer_headers, admin_headers, book):
        txn = create_txn(client, viewer_headers, [{"book_id": book.id, "quantity": 30}]).json
        resp = client.patch(f"/api/transactions/{txn['id']}/reject", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["status"] == "REJECTED"
        assert db_session.get(Book, book.id).stock == 100

    def test_pending_does_not_affect_system_count(self, client, viewer_headers, admin_headers, book):
        create_txn(client, viewer_headers, [{"book_id": book.id, "quantity": 30}])
        sheet = client.get(f"/api/books/counts/{DAY}/sheet", headers=admin_headers).json
        assert sheet["rows"][0]["system_count"] == 100

    def test_decided_transaction_is_immutable(self, client, viewer_headers, admin_headers, book):
        txn = create_txn(client, viewer_headers, [{"book_id": book.id, "quantity": 1}]).json
        client.patch(f"/api/transactions/{txn['id']}/approve", headers=admin_headers)
        assert client.patch(f"/api/transactions/{txn['id']}/approve", headers=admin_headers).status_code == 409
        assert client.patch(f"/api/transactions/{txn['id']}/reject", headers=admin_headers).status_code == 409

    def test_oversold_stock_clamps_to_zero(self, client, db_session, program, viewer_headers, admin_headers):
        small = make_book(db_session, program, "Tract", 10)
        txn = create_txn(client, viewer_headers, [{"book_id": small.id, "quantity": 15}]).json
        client.patch(f"/api/transactions/{txn['id']}/approve", headers=admin_headers)
        stored = db_session.get(Book, small.id)
        assert stored.stock == 0
        assert stored.sold == 15


class TestTransactionValidation:

    def test_rejects_bad_lines(self, client, viewer_headers, book):
        for lines in (
            [],
            None,
            [{"book_id": book.id, "quantity": 0}],
            [{"book_id": book.id, "quantity": -2}],
            [{"quantity": 1}],
            [{"book_id": book.id, "quantity": 1}, {"book_id": book.id, "quantity": 2}],
        ):
            resp = create_txn(client, viewer_headers, lines)
            assert resp.status_code == 400, lines

    def test_rejects_inactive_book(self, client, db_session, viewer_headers, book):
        book.is_active = False
        db_session.commit()
        resp = create_txn(client, viewer_headers, [{"book_id": book.id, "quantity": 1}])
        assert resp.status_code == 400

    def test_rejects_bad_date(self, client, viewer_headers, book):
        resp = create_txn(client, viewer_headers, [{"book_id": book.id, "quantity": 1}], on="10/06/2024")
        assert resp.status_code == 400


class TestTransactionListing:

    def test_filters(self, client, viewer_headers, admin_headers, book):
        first = create_txn(client, viewer_headers, [{"book_id": book.id, "quantity": 1}], on="2024-06-09").json
        create_txn(client, viewer_headers, [{"book_id": book.id, "quantity": 2}], on="2024-06-10")
        create_txn(client, viewer_headers, [{"book_id": book.id, "quantity": 3}], on="2024-06-11")
        client.patch(f"/api/transactions/{first['id']}/approve", headers=admin_headers)

        def ids(**params):
            resp = client.get("/api/transactions", query_string=params, headers=viewer_headers)
            assert resp.status_code == 200
            return [t["transaction_date"] for t in resp.json]

        assert ids() == ["2024-06-11", "2024-06-10", "2024-06-09"]
        assert ids(date="2024-06-10") == ["2024-06-10"]
        assert ids(until="2024-06-10") == ["2024-06-10", "2024-06-09"]
        assert ids(status="APPROVED") == ["2024-06-09"]

    def test_invalid_status(self, client, viewer_headers):
        resp = client.get("/api/transactions", query_string={"status": "LOST"}, headers=viewer_headers)
        assert resp.status_code == 400

    def test_get_transaction(self, client, viewer_headers, book):
        txn = create_txn(client, viewer_headers, [{"book_id": book.id, "quantity": 1}]).json
        resp = client.get(f"/api/transactions/{txn['id']}", headers=viewer_headers)
        assert resp.status_code == 200
        assert resp.json["id"] == txn["id"]
        assert client.get("/api/transactions/987654", headers=viewer_headers).status_code == 404
