import unittest
from datetime import date, timedelta

from colporter import create_app
from colporter.extensions import db
from colporter.models import (
    Program,
    User,
    Book,
    InventoryCount,
    InventoryMovement,
    Transaction,
    TransactionLine,
    SessionToken,
)
from colporter.reconciliation import COUNT_STATUS_DISCREPANCY, COUNT_STATUS_VERIFIED, DerivedRow, PersistedRow
from colporter.services import count_service, transaction_service
from colporter.services.auth_service import hash_password
from colporter.services.program_service import BookNotFoundError
from colporter.validation import ConflictError, ValidationError

DAY = date(2024, 6, 10)


class CountServiceTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.app = create_app({
            "SECRET_KEY": "test",
            "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
            "SQLALCHEMY_TRACK_MODIFICATIONS": False,
            "TESTING": True,
        })
        cls.ctx = cls.app.app_context()
        cls.ctx.push()
        db.create_all()

    @classmethod
    def tearDownClass(cls):
        db.session.remove()
        db.drop_all()
        cls.ctx.pop()

    def setUp(self):
        db.session.query(InventoryMovement).delete()
        db.session.query(InventoryCount).delete()
        db.session.query(TransactionLine).delete()
        db.session.query(Transaction).delete()
        db.session.query(Book).delete()
        db.session.query(SessionToken).delete()
        db.session.query(User).delete()
        db.session.query(Program).delete()
        db.session.commit()

        self.program = Program(name="Summer Program")
        self.other_program = Program(name="Winter Program")
        db.session.add_all([self.program, self.other_program])
        db.session.flush()

        self.user = User(
            program_id=self.program.id,
            username="supervisor",
            email="supervisor@colporter.test",
            password_hash=hash_password("Password123!", rounds=4),
            role="SUPERVISOR",
        )
        db.session.add(self.user)
        db.session.flush()

        self.book = Book(program_id=self.program.id, title="Steps to Christ", size="SMALL",
                         price_cents=900, initial_stock=100, stock=100)
        db.session.add(self.book)
        db.session.commit()

    def _deliver(self, quantity: int, on: date = DAY, book: Book | None = None) -> Transaction:
        book = book or self.book
        txn = transaction_service.create_transaction(
            program_id=self.program.id,
            user_id=self.user.id,
            transaction_date=on,
            lines=[(book.id, quantity)],
        )
        return transaction_service.approve_transaction(txn.id, self.program.id, self.user.id)

    def _save(self, manual: int, **kwargs) -> InventoryCount:
        kwargs.setdefault("count_date", DAY)
        return count_service.record_manual_count(
            book_id=self.book.id,
            program_id=self.program.id,
            user_id=self.user.id,
            manual_count=manual,
            **kwargs,
        )

    def _confirm(self, manual: int, count_date: date = DAY):
        return count_service.confirm_discrepancy(
            book_id=self.book.id,
            program_id=self.program.id,
            user_id=self.user.id,
            count_date=count_date,
            manual_count=manual,
        )

    def test_lost_books_scenario(self):
        self._deliver(30)
        self.assertEqual(count_service.derive_system_count_for(self.book, DAY), 70)
        self.assertEqual(self.book.stock, 70)

        record = self._save(65, system_count=70)
        self.assertEqual(record.status, COUNT_STATUS_DISCREPANCY)
        self.assertEqual(record.discrepancy, -5)
        self.assertFalse(record.confirmed)
        # Saving never touches stock
        self.assertEqual(db.session.get(Book, self.book.id).stock, 70)

        record, book = self._confirm(65)
        self.assertEqual(record.status, COUNT_STATUS_VERIFIED)
        self.assertTrue(record.confirmed)
        self.assertEqual(record.system_count, 70)
        self.assertEqual(record.discrepancy, -5)
        self.assertEqual(book.stock, 65)
        self.assertEqual(book.initial_stock, 65)
        self.assertEqual(book.baseline_date, DAY)
        self.assertEqual(book.sold, 30)

        movement = db.session.query(InventoryMovement).filter_by(book_id=self.book.id).one()
        self.assertEqual(movement.movement_type, "OUT")
        self.assertEqual(movement.quantity, 5)

    def test_found_books_write_in_movement(self):
        self._save(104)
        _, book = self._confirm(104)
        self.assertEqual(book.stock, 104)
        movement = db.session.query(InventoryMovement).filter_by(book_id=self.book.id).one()
        self.assertEqual(movement.movement_type, "IN")
        self.assertEqual(movement.quantity, 4)

    def test_matching_count_is_verified_without_stock_change(self):
        self.book.initial_stock = 50
        self.book.stock = 50
        db.session.commit()

        record = self._save(50, system_count=50, set_verified=True)
        self.assertEqual(record.status, COUNT_STATUS_VERIFIED)
        self.assertEqual(record.discrepancy, 0)
        self.assertEqual(db.session.get(Book, self.book.id).stock, 50)
        self.assertEqual(db.session.query(InventoryMovement).count(), 0)

    def test_oversold_book_derives_zero(self):
        self.book.initial_stock = 10
        self.book.stock = 10
        db.session.commit()
        self._deliver(15)
        self.assertEqual(count_service.derive_system_count_for(self.book, DAY), 0)
        self.assertEqual(self.book.stock, 0)

    def test_system_count_derived_when_omitted(self):
        self._deliver(12)
        record = self._save(88)
        self.assertEqual(record.system_count, 88)
        self.assertEqual(record.status, COUNT_STATUS_VERIFIED)

    def test_resave_keeps_original_system_count(self):
        self._deliver(30)
        self._save(65, system_count=70)
        # Another delivery is approved between the two saves
        self._deliver(2)

        record = self._save(66, system_count=68)
        self.assertEqual(record.system_count, 70)
        self.assertEqual(record.discrepancy, -4)
        self.assertEqual(record.status, COUNT_STATUS_DISCREPANCY)
        self.assertEqual(db.session.query(InventoryCount).count(), 1)

    def test_resave_can_turn_discrepancy_into_verified(self):
        self._save(90, system_count=100)
        record = self._save(100, set_verified=True)
        self.assertEqual(record.status, COUNT_STATUS_VERIFIED)
        self.assertEqual(record.discrepancy, 0)

    def test_set_verified_with_differing_counts_is_rejected(self):
        with self.assertRaises(ValidationError):
            self._save(90, system_count=100, set_verified=True)
        db.session.rollback()
        self.assertEqual(db.session.query(InventoryCount).count(), 0)

    def test_negative_manual_count_is_rejected(self):
        with self.assertRaises(ValidationError):
            self._save(-1)

    def test_book_from_other_program_is_not_found(self):
        foreign = Book(program_id=self.other_program.id, title="Foreign", initial_stock=5, stock=5)
        db.session.add(foreign)
        db.session.commit()
        with self.assertRaises(BookNotFoundError):
            count_service.record_manual_count(
                book_id=foreign.id,
                program_id=self.program.id,
                user_id=self.user.id,
                count_date=DAY,
                manual_count=5,
            )

    def test_confirm_requires_open_discrepancy(self):
        with self.assertRaises(ConflictError):
            self._confirm(90)
        db.session.rollback()

        self._save(100)
        with self.assertRaises(ConflictError):
            self._confirm(100)
        db.session.rollback()

    def test_confirm_rejects_changed_manual_count(self):
        self._save(90)
        with self.assertRaises(ConflictError):
            self._confirm(91)
        db.session.rollback()
        self.assertEqual(db.session.get(Book, self.book.id).stock, 100)

    def test_confirmed_record_cannot_be_resaved_or_reconfirmed(self):
        self._save(90)
        self._confirm(90)

        with self.assertRaises(ConflictError):
            self._save(95)
        db.session.rollback()
        with self.assertRaises(ConflictError):
            self._confirm(90)
        db.session.rollback()

        stored = db.session.query(InventoryCount).one()
        self.assertEqual(stored.manual_count, 90)
        self.assertEqual(db.session.get(Book, self.book.id).stock, 90)

    def test_confirm_before_baseline_is_rejected(self):
        earlier = DAY - timedelta(days=3)
        self._save(97, count_date=earlier)
        self._save(90)
        self._confirm(90)

        with self.assertRaises(ConflictError):
            self._confirm(97, count_date=earlier)
        db.session.rollback()

    def test_later_derivation_starts_from_confirmed_baseline(self):
        self._deliver(30)
        self._save(65)
        self._confirm(65)

        next_day = DAY + timedelta(days=1)
        self._deliver(5, on=next_day)
        self.assertEqual(db.session.get(Book, self.book.id).stock, 60)
        self.assertEqual(count_service.derive_system_count_for(self.book, next_day), 60)

    def test_count_sheet_mixes_stored_and_derived_rows(self):
        second = Book(program_id=self.program.id, title="Desire of Ages", size="LARGE",
                      price_cents=2500, initial_stock=20, stock=20)
        inactive = Book(program_id=self.program.id, title="Retired", initial_stock=3, stock=3, is_active=False)
        db.session.add_all([second, inactive])
        db.session.commit()

        self._deliver(30)
        self._save(65)

        sheet = count_service.get_count_sheet(self.program.id, DAY)
        by_book = {row.book_id: row for row in sheet.rows}
        self.assertEqual(set(by_book), {self.book.id, second.id})
        self.assertIsInstance(by_book[self.book.id], PersistedRow)
        self.assertIsInstance(by_book[second.id], DerivedRow)
        self.assertEqual(by_book[second.id].system_count, 20)
        self.assertEqual(sheet.summary.total_books, 2)
        self.assertEqual(sheet.summary.discrepancies, 1)
        self.assertEqual(sheet.summary.verified, 0)
        self.assertEqual(sheet.summary.total_lost_found, 5)

    def test_list_counts_filters_by_program_and_date(self):
        self._save(100)
        self._save(99, count_date=DAY + timedelta(days=1))
        self.assertEqual(len(count_service.list_counts(self.program.id, DAY)), 1)
        self.assertEqual(len(count_service.list_counts(self.program.id)), 2)
        self.assertEqual(count_service.list_counts(self.other_program.id, DAY), [])

    def test_date_before_confirmed_baseline_keeps_its_own_count(self):
        self._deliver(30)
        later = DAY + timedelta(days=5)
        self._save(65, count_date=later)
        self._confirm(65, count_date=later)

        between = DAY + timedelta(days=2)
        self.assertEqual(count_service.derive_system_count_for(self.book, between), 70)
        sheet = count_service.get_count_sheet(self.program.id, between)
        self.assertEqual(sheet.rows[0].system_count, 70)
        self.assertEqual(
            count_service.derive_system_count_for(self.book, DAY - timedelta(days=1)), 100
        )

        # A matching count on the earlier date is verified, not a discrepancy
        record = self._save(70, count_date=between)
        self.assertEqual(record.system_count, 70)
        self.assertEqual(record.status, COUNT_STATUS_VERIFIED)
        self.assertEqual(db.session.get(Book, self.book.id).stock, 65)

    def test_dates_between_two_confirmations_use_the_earlier_baseline(self):
        self._deliver(30)
        self._save(65)
        self._confirm(65)
        self._deliver(5, on=DAY + timedelta(days=1))

        third = DAY + timedelta(days=3)
        self._save(58, count_date=third)
        record, book = self._confirm(58, count_date=third)
        self.assertEqual(record.system_count, 60)
        self.assertEqual(record.previous_initial_stock, 65)
        self.assertEqual(record.previous_baseline_date, DAY)
        self.assertEqual(book.stock, 58)

        self.assertEqual(count_service.derive_system_count_for(self.book, DAY + timedelta(days=2)), 60)
        self.assertEqual(count_service.derive_system_count_for(self.book, DAY - timedelta(days=1)), 100)
        self.assertEqual(count_service.derive_system_count_for(self.book, third + timedelta(days=1)), 58)


if __name__ == "__main__":
    unittest.main()
