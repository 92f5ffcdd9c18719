"""Typed success/failure results returned by every roster-mutating call.

The daily tick must never abort partway, so domain-rule violations come back
as values the caller can inspect instead of exceptions.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class Failure(Enum):
    """Why a roster, slot, site or effect operation was refused."""

    UNKNOWN_VILLAGER = "unknown_villager"
    UNKNOWN_SLOT = "unknown_slot"
    UNKNOWN_BUILDING = "unknown_building"
    UNKNOWN_EFFECT = "unknown_effect"
    DUPLICATE_ID = "duplicate_id"
    SLOT_OCCUPIED = "slot_occupied"
    ALREADY_ASSIGNED = "already_assigned"
    NOT_ASSIGNED = "not_assigned"
    INELIGIBLE_AGE = "ineligible_age"
    UNAVAILABLE = "unavailable"
    SITE_FULL = "site_full"
    ALREADY_BUILT = "already_built"
    SITE_EXISTS = "site_exists"
    INVALID_ATTRIBUTE = "invalid_attribute"


@dataclass(frozen=True)
class Outcome:
    """Result of a fallible operation. Falsy on failure."""

    ok: bool
    reason: Optional[Failure] = None
    message: str = ""
    value: Any = None

    def __bool__(self) -> bool:
        return self.ok

    @classmethod
    def success(cls, value: Any = None) -> Outcome:
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, reason: Failure, message: str = "") -> Outcome:
        return cls(ok=False, reason=reason, message=message)
