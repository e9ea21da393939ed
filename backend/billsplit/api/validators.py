from __future__ import annotations

from typing import Any, List

from billsplit.domain.actions import Action, ActionError, action_from_dict
from billsplit.domain.models import Bill, ModelValidationError
from billsplit.domain.schema import bill_from_document, migrate_bill_document


class ApiValidationError(ValueError):
    """Raised when request payload validation fails."""


def parse_bill_payload(data: object) -> Bill:
    if not isinstance(data, dict):
        raise ApiValidationError("Request body must be a JSON object.")
    raw_bill = data.get("bill")
    if not isinstance(raw_bill, dict):
        raise ApiValidationError("'bill' must be an object.")

    try:
        return bill_from_document(migrate_bill_document(raw_bill))
    except ModelValidationError as e:
        raise ApiValidationError(f"Invalid bill: {e}") from e


def parse_actions_payload(data: object) -> List[Action]:
    raw_actions: Any = data.get("actions") if isinstance(data, dict) else None
    if not isinstance(raw_actions, list):
        raise ApiValidationError("'actions' must be a list.")

    actions: List[Action] = []
    for idx, raw in enumerate(raw_actions):
        try:
            actions.append(action_from_dict(raw))
        except ActionError as e:
            raise ApiValidationError(f"Action at index {idx} is invalid: {e}") from e
    return actions
