"""
Program scoping helpers.

Every authenticated request carries g.program_id (set by @require_auth).
Client-supplied program ids and book ids must be checked against it;
records from another program are reported as not found.
"""

from flask import g

from ..extensions import db
from ..models import Book


class ProgramAccessError(Exception):
    """Raised when a request targets a program other than the session's."""
    pass


class BookNotFoundError(Exception):
    """Raised when a book does not exist in the caller's program."""
    pass


def get_current_program_id() -> int:
    program_id = getattr(g, "program_id", None)
    if program_id is None:
        raise ProgramAccessError("Program context not established")
    return program_id


def resolve_program_id(requested) -> int:
    """
    Accept an optional programId from the client.

    Omitted -> the session's program. Anything else must match it.
    """
    current = get_current_program_id()
    if requested in (None, ""):
        return current
    try:
        requested_id = int(requested)
    except (TypeError, ValueError):
        raise ProgramAccessError("Invalid programId")
    if requested_id != current:
        raise ProgramAccessError("Program not found")
    return current


def require_book_in_program(book_id: int, program_id: int) -> Book:
    book = db.session.get(Book, book_id)
    if book is None or book.program_id != program_id:
        raise BookNotFoundError(f"Book {book_id} not found")
    return book
