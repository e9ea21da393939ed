from __future__ import annotations

from typing import Any, Dict, List

from flask import Blueprint, current_app, jsonify, request
from loguru import logger

from billsplit.api.validators import ApiValidationError, parse_actions_payload, parse_bill_payload
from billsplit.domain.history import DEFAULT_MAX_DEPTH, BillHistory
from billsplit.domain.schema import bill_to_document, summary_to_dict
from billsplit.domain.split_logic import ReconciliationError, SplitLogicError
from billsplit.domain.summary import summarize

api_bp = Blueprint("api", __name__, url_prefix="/api")


def _json_error(message: str, *, status: int = 400, code: str = "bad_request"):
    return jsonify({"error": {"code": code, "message": message}}), status


def _currency() -> str:
    return current_app.config.get("CURRENCY", "USD")


@api_bp.get("/health")
def health():
    return jsonify({"status": "ok"}), 200


@api_bp.post("/calculate")
def calculate_endpoint():
    """
    JSON body:
      - bill: bill document (older schemas are migrated first)
    Response:
      - summary: person totals, item breakdowns and grand total in cents
    """
    data = request.get_json(silent=True)
    if data is None:
        return _json_error("Request body must be JSON.", status=400)

    try:
        bill = parse_bill_payload(data)
    except ApiValidationError as e:
        return _json_error(str(e), status=400)

    try:
        summary = summarize(bill, currency=_currency())
    except SplitLogicError as e:
        return _json_error(str(e), status=422, code="split_failed")
    except ReconciliationError:
        logger.exception("reconciliation failed for bill {}", bill.id)
        return _json_error("Internal error: totals do not sum to grand total.", status=500, code="internal_mismatch")

    return jsonify({"bill_id": bill.id, "summary": summary_to_dict(summary)}), 200


@api_bp.post("/bills/apply")
def apply_actions_endpoint():
    """
    JSON body:
      - bill: starting bill document
      - actions: [{type, payload}, ...] applied in order
    Response:
      - bill: resulting document
      - results: [{type, applied, reason, field}] one per action
      - can_undo / can_redo
      - summary of the resulting bill
    """
    data = request.get_json(silent=True)
    if data is None:
        return _json_error("Request body must be JSON.", status=400)

    try:
        bill = parse_bill_payload(data)
        actions = parse_actions_payload(data)
    except ApiValidationError as e:
        return _json_error(str(e), status=400)

    history = BillHistory(bill, max_depth=current_app.config.get("MAX_HISTORY_DEPTH", DEFAULT_MAX_DEPTH))
    results: List[Dict[str, Any]] = []
    try:
        for raw, action in zip(data["actions"], actions, strict=True):
            outcome = history.dispatch(action)
            results.append(
                {
                    "type": raw["type"],
                    "applied": outcome.applied,
                    "reason": outcome.reason,
                    "field": outcome.field,
                }
            )
        summary = summarize(history.current, currency=_currency())
    except SplitLogicError as e:
        return _json_error(str(e), status=422, code="split_failed")
    except ReconciliationError:
        logger.exception("reconciliation failed for bill {}", history.current.id)
        return _json_error("Internal error: totals do not sum to grand total.", status=500, code="internal_mismatch")

    return jsonify(
        {
            "bill": bill_to_document(history.current),
            "results": results,
            "can_undo": history.can_undo,
            "can_redo": history.can_redo,
            "summary": summary_to_dict(summary),
        }
    ), 200
