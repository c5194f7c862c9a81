"""
Pytest fixtures for colporter backend tests.

Provides test database setup, program isolation fixtures, role users and
the test client.
"""

from datetime import date

import pytest
from colporter import create_app
from colporter.extensions import db
from colporter.models import Program, User, Book, Transaction, TransactionLine
from colporter.permissions import ROLE_ADMIN, ROLE_SUPERVISOR, ROLE_VIEWER
from colporter.reconciliation import TXN_STATUS_APPROVED
from colporter.services.auth_service import hash_password
from colporter.services.book_service import recalculate_stock

PASSWORD = "Password123!"

# bcrypt's minimum cost keeps the suite fast
TEST_BCRYPT_ROUNDS = 4


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def program(db_session):
    """The main colporter program (first tenant)."""
    program = Program(name="Summer Program", is_active=True)
    db_session.add(program)
    db_session.commit()
    return program


@pytest.fixture(scope='function')
def other_program(db_session):
    """A second program whose data must stay invisible."""
    program = Program(name="Winter Program", is_active=True)
    db_session.add(program)
    db_session.commit()
    return program


def make_user(session, program, username: str, role: str) -> User:
    user = User(
        program_id=program.id,
        username=username,
        email=f"{username}@colporter.test",
        full_name=username.title(),
        password_hash=hash_password(PASSWORD, rounds=TEST_BCRYPT_ROUNDS),
        role=role,
        is_active=True,
    )
    session.add(user)
    session.commit()
    return user


@pytest.fixture(scope='function')
def admin_user(db_session, program):
    return make_user(db_session, program, "admin", ROLE_ADMIN)


@pytest.fixture(scope='function')
def supervisor_user(db_session, program):
    return make_user(db_session, program, "supervisor", ROLE_SUPERVISOR)


@pytest.fixture(scope='function')
def viewer_user(db_session, program):
    return make_user(db_session, program, "viewer", ROLE_VIEWER)


@pytest.fixture(scope='function')
def other_admin(db_session, other_program):
    return make_user(db_session, other_program, "other_admin", ROLE_ADMIN)


def make_book(session, program, title: str, initial_stock: int, **extra) -> Book:
    book = Book(
        program_id=program.id,
        title=title,
        initial_stock=initial_stock,
        stock=initial_stock,
        sold=0,
        size=extra.pop("size", "LARGE"),
        price_cents=extra.pop("price_cents", 2500),
        **extra,
    )
    session.add(book)
    session.commit()
    return book


def make_approved_transaction(session, program, user, on: date, lines: list[tuple[Book, int]]) -> Transaction:
    """Insert an already-approved transaction and bring book stock up to date."""
    txn = Transaction(
        program_id=program.id,
        transaction_date=on,
        status=TXN_STATUS_APPROVED,
        created_by_user_id=user.id,
        decided_by_user_id=user.id,
    )
    for book, quantity in lines:
        txn.lines.append(TransactionLine(book_id=book.id, quantity=quantity))
    session.add(txn)
    session.flush()
    for book, quantity in lines:
        book.sold = (book.sold or 0) + quantity
        recalculate_stock(book)
    session.commit()
    return txn


@pytest.fixture(scope='function')
def book(db_session, program):
    """A book with 100 copies at the start of the program."""
    return make_book(db_session, program, "The Great Controversy", 100)


@pytest.fixture(scope='function')
def seed(admin_user, supervisor_user, viewer_user, book):
    """One user per role plus a book, for route-level tests."""
    return {
        "admin": admin_user,
        "supervisor": supervisor_user,
        "viewer": viewer_user,
        "book": book,
    }


def get_auth_token(client, username: str, password: str = PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'username': username,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def admin_headers(client, admin_user):
    return auth_headers(get_auth_token(client, admin_user.username))


@pytest.fixture(scope='function')
def supervisor_headers(client, supervisor_user):
    return auth_headers(get_auth_token(client, supervisor_user.username))


@pytest.fixture(scope='function')
def viewer_headers(client, viewer_user):
    return auth_headers(get_auth_token(client, viewer_user.username))


@pytest.fixture(scope='function')
def other_admin_headers(client, other_admin):
    return auth_headers(get_auth_token(client, other_admin.username))
