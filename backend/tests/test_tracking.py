"""
Reconciliation page controller tests.
"""

from datetime import date

import httpx
import pytest

from colporter.client import ApiClient, Capabilities, InventoryStore, InventoryTracking, ReconciliationError
from colporter.client.tracking import MSG_COUNT_CONFIRMED, MSG_COUNT_SAVED
from conftest import PASSWORD, make_approved_transaction

DAY = date(2024, 6, 10)


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def page_for(app, clock, db_session, program, admin_user, supervisor_user, viewer_user, book):
    """Build a loaded page for a user; book has 70 of 100 left on DAY."""
    make_approved_transaction(db_session, program, admin_user, DAY, [(book, 30)])
    clients = []

    def _page(username: str) -> InventoryTracking:
        api = ApiClient("http://testserver", transport=httpx.WSGITransport(app=app))
        clients.append(api)
        payload = api.login(username, PASSWORD)
        page = InventoryTracking.for_session(InventoryStore(api), payload, selected_date=DAY, clock=clock)
        assert page.open() is True
        return page

    yield _page
    for api in clients:
        api.close()


class TestCapabilities:

    @pytest.mark.parametrize(
        "role,can_edit,can_confirm",
        [
            ("ADMIN", True, True),
            ("SUPERVISOR", True, True),
            ("VIEWER", False, False),
            ("UNKNOWN", False, False),
        ],
    )
    def test_for_role(self, role, can_edit, can_confirm):
        caps = Capabilities.for_role(role)
        assert caps.can_edit_counts is can_edit
        assert caps.can_confirm_discrepancies is can_confirm

    def test_confirm_needs_record_permission_too(self):
        caps = Capabilities.from_permissions(["CONFIRM_DISCREPANCIES"])
        assert caps.can_confirm_discrepancies is False


class TestEditFlow:

    def test_save_and_confirm(self, page_for, clock, book):
        page = page_for("supervisor")
        row = page.rows[0]
        assert page.can_edit(row)
        assert not page.can_confirm(row)

        edit = page.begin_edit(book.id)
        assert edit.system_count == 70
        page.set_edit_value("65")
        record = page.save()

        assert record.status == "DISCREPANCY"
        assert page.editing is None
        assert page.page_error is None
        assert page.success_message == MSG_COUNT_SAVED

        row = page.rows[0]
        assert page.can_confirm(row)
        page.request_confirmation(book.id)
        assert page.pending_confirmation == book.id
        count, updated = page.confirm()

        assert count.status == "VERIFIED"
        assert updated.stock == 65
        assert page.pending_confirmation is None
        assert page.success_message == MSG_COUNT_CONFIRMED
        assert page.summary.verified == 1
        assert not page.can_confirm(page.rows[0])

    def test_success_notice_expires(self, page_for, clock, book):
        page = page_for("supervisor")
        page.begin_edit(book.id)
        page.set_edit_value(70)
        page.save()

        clock.advance(2.9)
        assert page.success_message == MSG_COUNT_SAVED
        clock.advance(0.2)
        assert page.success_message is None

    def test_invalid_value_keeps_edit_open(self, page_for, book):
        page = page_for("supervisor")
        page.begin_edit(book.id)
        page.set_edit_value("-3")
        assert page.save() is None
        assert page.editing is not None
        assert page.page_error
        assert page.store.state.counts == ()

    def test_cancel_edit(self, page_for, book):
        page = page_for("supervisor")
        page.begin_edit(book.id)
        page.set_edit_value(12)
        page.cancel_edit()
        assert page.editing is None
        assert page.store.state.counts == ()

    def test_edit_snapshot_is_kept(self, page_for, book, db_session, program, admin_user):
        page = page_for("supervisor")
        page.begin_edit(book.id)
        # A delivery is approved while the operator is typing
        make_approved_transaction(db_session, program, admin_user, DAY, [(book, 2)])
        page.set_edit_value(66)
        record = page.save()
        assert record.system_count == 70
        assert record.discrepancy == -4

    def test_cancel_confirmation(self, page_for, book):
        page = page_for("supervisor")
        page.begin_edit(book.id)
        page.set_edit_value(60)
        page.save()
        page.request_confirmation(book.id)
        page.cancel_confirmation()
        assert page.pending_confirmation is None
        assert page.store.book(book.id).stock == 70

    def test_confirm_failure_keeps_pending(self, page_for, book):
        page = page_for("supervisor")
        page.begin_edit(book.id)
        page.set_edit_value(60)
        page.save()
        page.request_confirmation(book.id)

        other = page_for("admin")
        other.request_confirmation(book.id)
        other.confirm()

        assert page.confirm() is None
        assert page.pending_confirmation == book.id
        assert page.page_error

    def test_select_date_reloads_and_clears_edit(self, page_for, book):
        page = page_for("supervisor")
        page.begin_edit(book.id)
        assert page.select_date(date(2024, 6, 9)) is True
        assert page.editing is None
        assert page.rows[0].system_count == 100


class TestViewerPage:

    def test_viewer_has_no_affordances(self, page_for, book):
        page = page_for("viewer")
        row = page.rows[0]
        assert not page.can_edit(row)
        assert not page.can_confirm(row)
        with pytest.raises(ReconciliationError):
            page.begin_edit(book.id)
        with pytest.raises(ReconciliationError):
            page.request_confirmation(book.id)
