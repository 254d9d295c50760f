"""
Base Contracts and Shared Types

These are the foundational types used across the engine and the client.
All types here are IMMUTABLE and represent pure data.
No behavior, no side effects, no dependencies.

BOUNDARY ENFORCEMENT:
=====================
- This module is READ-ONLY from all layers
- Layers may import types but MUST NOT modify this module
- All types are frozen dataclasses for immutability guarantee
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Tuple
from enum import Enum, auto
import uuid


# =============================================================================
# ERROR STATES (Explicit, never silent)
# =============================================================================

class ErrorCode(Enum):
    """
    Explicit error codes for deterministic error handling.
    Every recoverable failure of the pipeline is enumerated here.
    """
    # Growth state errors
    STATE_NOT_FOUND = auto()
    VERSION_CONFLICT = auto()
    ALREADY_APPLIED = auto()

    # Event log errors
    DUPLICATE_EVENT_ID = auto()
    STORAGE_WRITE_FAILED = auto()

    # Trigger errors
    INVALID_TRANSITION = auto()
    MISSING_USER = auto()

    # Client / transport errors
    SOURCE_UNREACHABLE = auto()
    CANCELLED = auto()
    MALFORMED_PAYLOAD = auto()


@dataclass(frozen=True)
class Error:
    """
    Immutable error representation with full context.
    Errors are data, not exceptions - they can be stored and queried.
    """
    code: ErrorCode
    message: str
    timestamp: datetime
    context: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)

    @staticmethod
    def create(code: ErrorCode, message: str, **context: str) -> Error:
        """Build an error stamped with the current UTC time."""
        return Error(
            code=code,
            message=message,
            timestamp=datetime.now(timezone.utc),
            context=tuple((k, str(v)) for k, v in sorted(context.items()))
        )


@dataclass(frozen=True)
class Result:
    """
    Generic result type for operations that can fail.
    Either contains a value OR an error, never both.
    """
    value: Optional[object] = None
    error: Optional[Error] = None

    @property
    def is_success(self) -> bool:
        return self.error is None

    @property
    def is_failure(self) -> bool:
        return self.error is not None

    @staticmethod
    def success(value: object = None) -> Result:
        return Result(value=value, error=None)

    @staticmethod
    def failure(error: Error) -> Result:
        return Result(value=None, error=error)


# =============================================================================
# IDENTITY TYPES
# =============================================================================

def generate_event_id() -> str:
    """Globally unique progression event id, generated at write time."""
    return f"evt_{uuid.uuid4().hex}"


def generate_reflection_id() -> str:
    return f"refl_{uuid.uuid4().hex}"


def derive_event_id(*parts: str) -> str:
    """
    Stable event id for one domain action.

    The same parts always give the same id, so a redelivered notification
    collides with the event it already produced.
    """
    return f"evt_{uuid.uuid5(uuid.NAMESPACE_URL, '/'.join(parts)).hex}"


# =============================================================================
# TEMPORAL TYPES (Immutable, explicit semantics)
# =============================================================================

@dataclass(frozen=True)
class Timestamp:
    """
    Immutable timestamp with explicit semantics.
    All timestamps are UTC, never local time.
    """
    value: datetime

    def __post_init__(self):
        # Ensure UTC timezone
        if self.value.tzinfo is None:
            object.__setattr__(self, 'value', self.value.replace(tzinfo=timezone.utc))
        elif self.value.utcoffset() != timezone.utc.utcoffset(None):
            object.__setattr__(self, 'value', self.value.astimezone(timezone.utc))

    @staticmethod
    def now() -> Timestamp:
        return Timestamp(value=datetime.now(timezone.utc))

    @staticmethod
    def from_iso(iso_string: str) -> Timestamp:
        dt = datetime.fromisoformat(iso_string.replace('Z', '+00:00'))
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return Timestamp(value=dt)

    @staticmethod
    def parse_optional(raw: Optional[str]) -> Optional[Timestamp]:
        """Parse an ISO string, returning None for missing or malformed input."""
        if not raw:
            return None
        try:
            return Timestamp.from_iso(raw)
        except (ValueError, TypeError):
            return None

    def to_iso(self) -> str:
        return self.value.isoformat().replace('+00:00', 'Z')

    def __lt__(self, other: Timestamp) -> bool:
        return self.value < other.value

    def __le__(self, other: Timestamp) -> bool:
        return self.value <= other.value

    def __gt__(self, other: Timestamp) -> bool:
        return self.value > other.value

    def __ge__(self, other: Timestamp) -> bool:
        return self.value >= other.value
