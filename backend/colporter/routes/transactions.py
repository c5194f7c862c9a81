# Overview: Flask API routes for sales transactions; parses input and returns JSON responses.

# backend/colporter/routes/transactions.py
"""
Sales transaction routes.

Transactions are created PENDING and decided once (approve/reject).
Only APPROVED transactions count against stock and system counts.
"""
from flask import Blueprint, request, jsonify, current_app, g

from ..extensions import db
from ..services import transaction_service
from ..services.transaction_service import TransactionError, TransactionNotFoundError
from ..validation import ValidationError, coerce_date, enforce_rules_transaction_lines
from ..decorators import require_auth, require_permission
from colporter.time_utils import today

transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")


@transactions_bp.get("")
@require_auth
@require_permission("VIEW_TRANSACTIONS")
def list_transactions_route():
    """
    List transactions of the caller's program.

    Query params:
    - status: PENDING | APPROVED | REJECTED (optional)
    - date: YYYY-MM-DD (optional) - exactly this day
    - until: YYYY-MM-DD (optional) - this day and earlier
    """
    try:
        on_date = request.args.get("date")
        until = request.args.get("until")
        txns = transaction_service.list_transactions(
            g.program_id,
            status=request.args.get("status") or None,
            on_date=coerce_date(on_date, "date") if on_date else None,
            until=coerce_date(until, "until") if until else None,
        )
    except (ValidationError, TransactionError) as e:
        return jsonify({"error": str(e)}), 400

    return jsonify([t.to_dict() for t in txns]), 200


@transactions_bp.post("")
@require_auth
@require_permission("CREATE_TRANSACTIONS")
def create_transaction_route():
    """
    Create a PENDING transaction.

    Request body:
    {
        "transaction_date": "YYYY-MM-DD" (optional, defaults to today),
        "note": str (optional),
        "lines": [{"book_id": int, "quantity": int}, ...]
    }
    """
    data = request.get_json(silent=True) or {}

    try:
        raw_date = data.get("transaction_date")
        transaction_date = coerce_date(raw_date, "transaction_date") if raw_date else today()
        lines = enforce_rules_transaction_lines(data.get("lines"))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        txn = transaction_service.create_transaction(
            program_id=g.program_id,
            user_id=g.current_user.id,
            transaction_date=transaction_date,
            lines=lines,
            note=data.get("note"),
        )
    except TransactionError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400

    return jsonify(txn.to_dict()), 201


@transactions_bp.get("/<int:transaction_id>")
@require_auth
@require_permission("VIEW_TRANSACTIONS")
def get_transaction_route(transaction_id: int):
    try:
        txn = transaction_service.get_transaction(transaction_id, g.program_id)
    except TransactionNotFoundError:
        return jsonify({"error": "Transaction not found"}), 404
    return jsonify(txn.to_dict()), 200


def _decide(decision, transaction_id: int):
    try:
        txn = decision(transaction_id, g.program_id, g.current_user.id)
    except TransactionNotFoundError:
        db.session.rollback()
        return jsonify({"error": "Transaction not found"}), 404
    except TransactionError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 409
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to decide transaction %s", transaction_id)
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(txn.to_dict()), 200


@transactions_bp.patch("/<int:transaction_id>/approve")
@require_auth
@require_permission("APPROVE_TRANSACTIONS")
def approve_transaction_route(transaction_id: int):
    return _decide(transaction_service.approve_transaction, transaction_id)


@transactions_bp.patch("/<int:transaction_id>/reject")
@require_auth
@require_permission("APPROVE_TRANSACTIONS")
def reject_transaction_route(transaction_id: int):
    return _decide(transaction_service.reject_transaction, transaction_id)
