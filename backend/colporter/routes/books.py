# Overview: Flask API routes for book catalog and inventory counts; parses input and returns JSON responses.

# backend/colporter/routes/books.py
"""
Book catalog and inventory count routes.

PROGRAM SCOPE: Every operation is limited to the caller's program
(g.program_id, set by @require_auth). An explicit programId must match it;
books of another program are reported as not found.

SECURITY:
- Read operations require VIEW_INVENTORY
- Catalog writes require MANAGE_BOOKS (status toggle: TOGGLE_BOOK_STATUS,
  delete: DELETE_BOOKS)
- Manual stock movements require ADJUST_INVENTORY
- Saving a count requires RECORD_COUNTS, confirming one CONFIRM_DISCREPANCIES
"""
from flask import Blueprint, request, jsonify, current_app, g

from ..extensions import db
from ..models import Book
from ..services import book_service, count_service
from ..services import permission_service
from ..services.permission_service import PermissionDeniedError
from ..services.program_service import (
    BookNotFoundError,
    ProgramAccessError,
    resolve_program_id,
)
from ..validation import (
    ModelValidationPolicy,
    ValidationError,
    ConflictError,
    coerce_bool,
    coerce_date,
    coerce_int,
    coerce_non_negative_int,
    enforce_rules_book,
    validate_payload,
)
from ..decorators import require_auth, require_permission

BOOK_POLICY = ModelValidationPolicy(
    writable_fields={"isbn", "title", "author", "category", "size", "price_cents", "initial_stock", "is_active"},
    required_on_create={"title"},
)

books_bp = Blueprint("books", __name__, url_prefix="/api/books")


def _program_id_from_request() -> int:
    requested = request.args.get("programId")
    if requested is None:
        body = request.get_json(silent=True)
        if isinstance(body, dict):
            requested = body.get("programId")
    return resolve_program_id(requested)


@books_bp.get("")
@require_auth
@require_permission("VIEW_INVENTORY")
def list_books_route():
    """
    List books of the caller's program.

    Query params:
    - programId: int (optional) - must be the caller's program
    - active: bool (optional)
    - category: str (optional)
    """
    active = request.args.get("active")
    try:
        program_id = _program_id_from_request()
    except ProgramAccessError:
        return jsonify({"error": "Program not found"}), 404

    books = book_service.list_books(
        program_id,
        active=coerce_bool(active) if active is not None else None,
        category=request.args.get("category"),
    )
    return jsonify([b.to_dict() for b in books]), 200


@books_bp.get("/<int:book_id>")
@require_auth
@require_permission("VIEW_INVENTORY")
def get_book_route(book_id: int):
    try:
        book = book_service.get_book(book_id, g.program_id)
    except BookNotFoundError:
        return jsonify({"error": "Book not found"}), 404
    return jsonify(book.to_dict()), 200


@books_bp.post("")
@require_auth
@require_permission("MANAGE_BOOKS")
def create_book_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Book, payload=payload, policy=BOOK_POLICY, partial=False)
        enforce_rules_book(patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        book = book_service.create_book(patch, g.program_id)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create book")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(book.to_dict()), 201


@books_bp.put("/<int:book_id>")
@require_auth
@require_permission("MANAGE_BOOKS")
def update_book_route(book_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Book, payload=payload, policy=BOOK_POLICY, partial=True)
        enforce_rules_book(patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        book = book_service.update_book(book_id, patch, g.program_id)
    except BookNotFoundError:
        return jsonify({"error": "Book not found"}), 404

    return jsonify(book.to_dict()), 200


@books_bp.patch("/<int:book_id>/toggle-status")
@require_auth
@require_permission("TOGGLE_BOOK_STATUS")
def toggle_book_status_route(book_id: int):
    try:
        book = book_service.toggle_book_status(book_id, g.program_id)
    except BookNotFoundError:
        return jsonify({"error": "Book not found"}), 404
    return jsonify(book.to_dict()), 200


@books_bp.delete("/<int:book_id>")
@require_auth
@require_permission("DELETE_BOOKS")
def delete_book_route(book_id: int):
    """
    Delete a book that was never sold, counted or adjusted.

    Returns 409 when the book has history; deactivate it instead.
    """
    try:
        book_service.delete_book(book_id, g.program_id)
    except BookNotFoundError:
        return jsonify({"error": "Book not found"}), 404
    except ConflictError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 409

    return jsonify({"message": "Book deleted"}), 200


@books_bp.get("/<int:book_id>/movements")
@require_auth
@require_permission("VIEW_INVENTORY")
def list_movements_route(book_id: int):
    try:
        movements = book_service.list_movements(book_id, g.program_id)
    except BookNotFoundError:
        return jsonify({"error": "Book not found"}), 404
    return jsonify([m.to_dict() for m in movements]), 200


@books_bp.post("/<int:book_id>/movements")
@require_auth
@require_permission("ADJUST_INVENTORY")
def create_movement_route(book_id: int):
    """
    Record a manual stock adjustment.

    Request body:
    {
        "movement_type": "IN" | "OUT",
        "quantity": int (> 0),
        "note": str (optional)
    }

    Returns:
        201: {message, movement, book}
        400: Invalid input, or OUT beyond current stock
        404: Book not found
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400

    try:
        quantity = coerce_int(data.get("quantity"), "quantity") if data.get("quantity") is not None else 0
        movement_type = str(data.get("movement_type") or "").strip().upper()
        movement, book = book_service.create_movement(
            book_id=book_id,
            program_id=g.program_id,
            user_id=g.current_user.id,
            movement_type=movement_type,
            quantity=quantity,
            note=data.get("note"),
        )
    except ValidationError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400
    except BookNotFoundError:
        db.session.rollback()
        return jsonify({"error": "Book not found"}), 404
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to record movement for book %s", book_id)
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({
        "message": "Inventory movement created",
        "movement": movement.to_dict(),
        "book": book.to_dict(),
    }), 201


# =============================================================================
# INVENTORY COUNTS
# =============================================================================

@books_bp.get("/counts/<count_date>")
@require_auth
@require_permission("VIEW_INVENTORY")
def list_counts_route(count_date: str):
    """Stored count records for one date (derived rows are not included)."""
    try:
        day = coerce_date(count_date, "date")
        program_id = _program_id_from_request()
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ProgramAccessError:
        return jsonify({"error": "Program not found"}), 404

    counts = count_service.list_counts(program_id, day)
    return jsonify([c.to_dict() for c in counts]), 200


def _row_to_dict(row) -> dict:
    if row.persisted:
        data = row.count.to_dict()
    else:
        data = {
            "id": None,
            "book_id": row.book_id,
            "count_date": row.count_date.isoformat(),
            "system_count": row.system_count,
            "manual_count": None,
            "discrepancy": 0,
            "status": row.status,
        }
    data["persisted"] = row.persisted
    return data


@books_bp.get("/counts/<count_date>/sheet")
@require_auth
@require_permission("VIEW_INVENTORY")
def count_sheet_route(count_date: str):
    """
    Reconciliation sheet for a date: one row per active book plus totals.

    Rows without a stored record carry "persisted": false and no id.
    """
    try:
        day = coerce_date(count_date, "date")
        program_id = _program_id_from_request()
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ProgramAccessError:
        return jsonify({"error": "Program not found"}), 404

    sheet = count_service.get_count_sheet(program_id, day)
    return jsonify({
        "count_date": sheet.count_date.isoformat(),
        "rows": [_row_to_dict(r) for r in sheet.rows],
        "summary": sheet.summary.to_dict(),
    }), 200


@books_bp.post("/<int:book_id>/counts")
@require_auth
@require_permission("RECORD_COUNTS")
def record_count_route(book_id: int):
    """
    Save a manual count, or confirm a recorded discrepancy.

    Request body:
    {
        "manualCount": int,
        "countDate": "YYYY-MM-DD",
        "systemCount": int (optional, snapshot at edit start),
        "confirmDiscrepancy": bool,
        "setVerified": bool,
        "programId": int (optional)
    }

    Returns:
        200: {message, count, book} (book only when confirming)
        400: Invalid input
        403: Missing permission
        404: Book not found
        409: Confirmed record, or no discrepancy to confirm
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400

    try:
        program_id = resolve_program_id(data.get("programId"))
    except ProgramAccessError:
        return jsonify({"error": "Program not found"}), 404

    try:
        manual_count = coerce_non_negative_int(data.get("manualCount"), "manualCount")
        count_date = coerce_date(data.get("countDate"), "countDate")
        system_count = data.get("systemCount")
        if system_count is not None:
            system_count = coerce_int(system_count, "systemCount")
        confirm = coerce_bool(data.get("confirmDiscrepancy", False))
        set_verified = coerce_bool(data.get("setVerified", False))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    if confirm:
        try:
            permission_service.require_permission(
                user=g.current_user,
                permission_code="CONFIRM_DISCREPANCIES",
                resource=request.path,
                ip_address=request.remote_addr,
            )
        except PermissionDeniedError as e:
            return jsonify({
                "error": "Permission denied",
                "required_permission": "CONFIRM_DISCREPANCIES",
                "message": str(e)
            }), 403

    try:
        if confirm:
            count, book = count_service.confirm_discrepancy(
                book_id=book_id,
                program_id=program_id,
                user_id=g.current_user.id,
                count_date=count_date,
                manual_count=manual_count,
            )
            return jsonify({
                "message": "Inventory count updated and stock adjusted",
                "count": count.to_dict(),
                "book": book.to_dict(),
            }), 200

        count = count_service.record_manual_count(
            book_id=book_id,
            program_id=program_id,
            user_id=g.current_user.id,
            count_date=count_date,
            manual_count=manual_count,
            system_count=system_count,
            set_verified=set_verified,
        )
        return jsonify({
            "message": "Inventory count updated",
            "count": count.to_dict(),
            "book": None,
        }), 200

    except ValidationError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400
    except BookNotFoundError:
        db.session.rollback()
        return jsonify({"error": "Book not found"}), 404
    except ConflictError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 409
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to record inventory count for book %s", book_id)
        return jsonify({"error": "Internal server error"}), 500
