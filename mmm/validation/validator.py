"""
Ledger Validation

DESIGN DECISION: Validation happens before any mutation reaches the store.

STAGE 1 - SCHEMA VALIDATION (pydantic):
- Required fields present, merchant and name non-empty
- Amount non-negative and finite, budget positive
- Date parseable as a calendar date
- Group ownership carries a group id

STAGE 2 - REFERENCE VALIDATION:
- A group transaction's group id names a group that exists

A failure raises InvalidTransaction / InvalidGroup carrying every issue
found, so the caller can show a specific message. The one silent
correction is dropping a stale group id from a personal transaction;
edit forms routinely carry it along and it has no meaning there.
"""

from collections.abc import Iterable, Mapping
from typing import Any, Optional, Union

from pydantic import ValidationError

from mmm.models.ledger import (
    Group,
    Ownership,
    Transaction,
    ValidationIssue,
)


class LedgerError(Exception):
    """Base exception for ledger operations."""
    pass


class _InvalidEntity(LedgerError):
    entity_type = "entity"

    def __init__(self, issues: list[ValidationIssue]):
        self.issues = issues
        super().__init__(self.user_message)

    @property
    def user_message(self) -> str:
        if not self.issues:
            return f"Invalid {self.entity_type}"
        return "; ".join(issue.message for issue in self.issues)

    def issue_dicts(self) -> list[dict]:
        return [
            {"field": i.field, "type": i.issue_type, "message": i.message}
            for i in self.issues
        ]


class InvalidTransaction(_InvalidEntity):
    """Transaction failed validation; the store was not touched."""
    entity_type = "transaction"


class InvalidGroup(_InvalidEntity):
    """Group failed validation; the store was not touched."""
    entity_type = "group"


_FIELD_ALIASES = {
    "groupId": "group_id",
    "slipUrl": "slip_url",
}


def _issues_from_error(error: ValidationError, entity: str) -> list[ValidationIssue]:
    """Flatten a pydantic ValidationError into ValidationIssues."""
    issues = []
    for err in error.errors():
        loc = [str(part) for part in err.get("loc", ())]
        field = ".".join(_FIELD_ALIASES.get(p, p) for p in loc) or entity
        message = err.get("msg", "Invalid value")
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        if loc:
            message = f"{field}: {message}"
        issues.append(ValidationIssue(
            field=field,
            issue_type=err.get("type", "invalid_value"),
            message=message,
            severity="error",
        ))
    return issues


def _as_input(data: Any) -> Any:
    if isinstance(data, (Transaction, Group)):
        # Re-validate from a dump: instances may come from model_construct
        return data.model_dump()
    if isinstance(data, Mapping):
        return dict(data)
    return data


def validate_transaction(
    data: Union[Transaction, Mapping[str, Any]],
    groups: Optional[Iterable[Group]] = None,
) -> Transaction:
    """
    Validate and normalise a transaction.

    Args:
        data: A Transaction or a mapping of its fields (either spelling
              of aliased keys is accepted)
        groups: Known groups. When given, a group transaction must
                reference one of them.

    Returns:
        The normalised Transaction

    Raises:
        InvalidTransaction: With every issue found
    """
    try:
        transaction = Transaction.model_validate(_as_input(data))
    except ValidationError as e:
        raise InvalidTransaction(_issues_from_error(e, "transaction")) from e

    if groups is not None and transaction.ownership == Ownership.GROUP:
        known = {g.id for g in groups}
        if transaction.group_id not in known:
            raise InvalidTransaction([ValidationIssue(
                field="group_id",
                issue_type="unknown_reference",
                message=f"group_id: no group with id '{transaction.group_id}'",
                severity="error",
            )])

    return transaction


def validate_group(data: Union[Group, Mapping[str, Any]]) -> Group:
    """
    Validate a group.

    Raises:
        InvalidGroup: If the name is empty, the budget is not positive,
                      or the id is reserved
    """
    try:
        return Group.model_validate(_as_input(data))
    except ValidationError as e:
        raise InvalidGroup(_issues_from_error(e, "group")) from e
