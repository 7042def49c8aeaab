"""
Core Data Models for MMM

These models define the schemas for everything held in the ledger:
transactions, budget groups, and the candidate records produced by the
receipt scanner.

DESIGN DECISION: We use Pydantic v2 and freeze the ledger entities.
The Ledger Store hands out snapshots of these objects, so an entity must
never change underneath a reader. Updates are full replacements keyed by id.

Persisted JSON uses the camelCase keys of the web client
(``groupId``, ``slipUrl``). Models accept either spelling on input.
"""

import datetime as dt
import math
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """Whether a transaction adds to or takes from the balance."""
    INCOME = "income"
    EXPENSE = "expense"


class Ownership(str, Enum):
    """
    Who a transaction is attributed to.

    GROUP transactions count against a group's budget.
    """
    PERSONAL = "personal"
    GROUP = "group"


DEFAULT_CATEGORY = "Other"

# Suggested in the entry form; categories are otherwise free text
SUGGESTED_CATEGORIES = (
    "Food",
    "Transport",
    "Office",
    "Utilities",
    "Entertainment",
    "Other",
)

# Sentinels of the report group filter, so no group may use them as an id
GROUP_FILTER_ALL = "all"
GROUP_FILTER_PERSONAL = "personal"
RESERVED_GROUP_IDS = frozenset({GROUP_FILTER_ALL, GROUP_FILTER_PERSONAL})


def new_id() -> str:
    """Generate an opaque entity id."""
    return uuid4().hex


def _none_if_blank(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    v = str(v).strip()
    return v or None


# =============================================================================
# LEDGER ENTITIES
# =============================================================================

class Group(BaseModel):
    """
    A shared budget.

    ``budget`` is a spending ceiling for the period. It must be positive:
    budget ratios divide by it.
    """
    model_config = ConfigDict(
        str_strip_whitespace=True,
        frozen=True,
        populate_by_name=True,
    )

    id: str = Field(
        default_factory=new_id,
        min_length=1,
        description="Opaque group id, immutable once created"
    )
    name: str = Field(
        ...,
        min_length=1,
        description="Display name"
    )
    budget: float = Field(
        ...,
        gt=0,
        allow_inf_nan=False,
        description="Period spending ceiling"
    )
    members: int = Field(
        default=1,
        ge=0,
        description="Participant count (informational)"
    )
    icon: str = Field(
        default="🏢",
        description="Display token"
    )

    @field_validator('id')
    @classmethod
    def reject_reserved_id(cls, v: str) -> str:
        """Group ids must not collide with report filter sentinels."""
        if v in RESERVED_GROUP_IDS:
            raise ValueError(f"Group id '{v}' is reserved")
        return v


class Transaction(BaseModel):
    """
    A single income or expense record.

    The sign of a transaction lives in ``type``; ``amount`` is never negative.
    ``group_id`` only means something when ``ownership`` is GROUP. A personal
    transaction arriving with a stale group id has the id dropped rather than
    being rejected, since edit forms may carry old values along.
    """
    model_config = ConfigDict(
        str_strip_whitespace=True,
        frozen=True,
        populate_by_name=True,
    )

    id: str = Field(
        default_factory=new_id,
        min_length=1,
        description="Opaque transaction id; the key for insert-vs-replace"
    )
    date: dt.date = Field(
        ...,
        description="Calendar date of the transaction"
    )
    merchant: str = Field(
        ...,
        min_length=1,
        description="Merchant or payer label"
    )
    amount: float = Field(
        ...,
        ge=0,
        allow_inf_nan=False,
        description="Non-negative amount; direction is carried by type"
    )
    type: TransactionType = Field(
        default=TransactionType.EXPENSE,
    )
    ownership: Ownership = Field(
        default=Ownership.PERSONAL,
    )
    group_id: Optional[str] = Field(
        default=None,
        alias="groupId",
        description="Referenced group when ownership is GROUP"
    )
    category: Optional[str] = Field(
        default=None,
    )
    items: tuple[str, ...] = Field(
        default=(),
        description="Line items read from the slip (informational)"
    )
    note: Optional[str] = Field(
        default=None,
    )
    slip_url: Optional[str] = Field(
        default=None,
        alias="slipUrl",
        description="Attached slip image (URL or data URI)"
    )

    @model_validator(mode='before')
    @classmethod
    def drop_personal_group_id(cls, data: Any) -> Any:
        """Normalise away a group id left on a personal transaction."""
        if not isinstance(data, dict):
            return data
        ownership = data.get("ownership", Ownership.PERSONAL)
        ownership = getattr(ownership, "value", ownership)
        if ownership == Ownership.PERSONAL.value:
            data = {
                k: v for k, v in data.items()
                if k not in ("group_id", "groupId")
            }
        return data

    @field_validator('group_id', 'category', 'note', 'slip_url', mode='before')
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        if v is None or isinstance(v, str):
            return _none_if_blank(v)
        return v

    @field_validator('amount', mode='before')
    @classmethod
    def reject_nan(cls, v: Any) -> Any:
        # allow_inf_nan does not catch "nan" strings coerced in lax mode
        if isinstance(v, str) and v.strip().lower() in {"nan", "inf", "-inf", "infinity"}:
            raise ValueError("Amount must be a finite number")
        if isinstance(v, float) and not math.isfinite(v):
            raise ValueError("Amount must be a finite number")
        return v

    @model_validator(mode='after')
    def require_group_for_group_ownership(self) -> 'Transaction':
        if self.ownership == Ownership.GROUP and not self.group_id:
            raise ValueError("Group transactions must reference a group")
        return self

    @property
    def effective_category(self) -> str:
        """Category used for aggregation; absent means Other."""
        return self.category or DEFAULT_CATEGORY

    @property
    def is_expense(self) -> bool:
        return self.type == TransactionType.EXPENSE

    @property
    def is_income(self) -> bool:
        return self.type == TransactionType.INCOME

    def to_storage_dict(self) -> dict:
        """JSON-ready dict in the persisted camelCase shape."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def group_to_storage_dict(group: Group) -> dict:
    """JSON-ready dict for a group."""
    return group.model_dump(mode="json", by_alias=True)


# =============================================================================
# SCANNING MODELS
# =============================================================================

SCAN_ERROR_MERCHANT = "Error Scanning"
SCAN_UNKNOWN_MERCHANT = "Unknown merchant"


class ScanResult(BaseModel):
    """
    Data read from a receipt image.

    CRITICAL: This is PROPOSED data, NOT a ledger entry.
    The user reviews and edits it before anything is saved.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    merchant: str = Field(
        default=SCAN_UNKNOWN_MERCHANT,
        description="Merchant name as read from the slip"
    )
    amount: float = Field(
        default=0.0,
        ge=0,
        allow_inf_nan=False,
        description="Total amount on the slip"
    )
    date: dt.date = Field(
        ...,
        description="Slip date; today when unreadable"
    )
    category: str = Field(
        default=DEFAULT_CATEGORY,
    )
    items: list[str] = Field(
        default_factory=list,
    )

    @classmethod
    def fallback(cls, today: dt.date) -> 'ScanResult':
        """The safe record returned whenever scanning fails."""
        return cls(
            merchant=SCAN_ERROR_MERCHANT,
            amount=0.0,
            date=today,
            category=DEFAULT_CATEGORY,
            items=[],
        )

    @property
    def is_fallback(self) -> bool:
        return self.merchant == SCAN_ERROR_MERCHANT and self.amount == 0


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'unknown_reference')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        default="error",
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
