"""
Growth State Contracts

GrowthState is the authoritative, slowly-changing numeric profile of a user.
It is 1:1 with the user, written only by the Interpreter, and never deleted
while the account exists.

INVARIANTS:
===========
- mass and structure never decrease
- vitality stays within the configured bounds after every write
- version increases by exactly one on every successful write
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from typing import Any, Dict, Mapping, Optional

from .base import Timestamp, Error


@dataclass(frozen=True)
class GrowthState:
    """Immutable snapshot of one user's growth state."""
    user_id: str
    mass: float
    structure: float
    vitality: float
    last_updated_at: Timestamp
    version: int = 1

    def evolve(
        self,
        mass: Optional[float] = None,
        structure: Optional[float] = None,
        vitality: Optional[float] = None,
        updated_at: Optional[Timestamp] = None
    ) -> GrowthState:
        """Next revision of this state; unspecified fields carry over."""
        return replace(
            self,
            mass=self.mass if mass is None else mass,
            structure=self.structure if structure is None else structure,
            vitality=self.vitality if vitality is None else vitality,
            last_updated_at=updated_at or self.last_updated_at,
            version=self.version + 1
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "userId": self.user_id,
            "mass": self.mass,
            "structure": self.structure,
            "vitality": self.vitality,
            "lastUpdatedAt": self.last_updated_at.to_iso(),
            "version": self.version,
        }

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> GrowthState:
        return GrowthState(
            user_id=str(data["userId"]),
            mass=float(data["mass"]),
            structure=float(data["structure"]),
            vitality=float(data["vitality"]),
            last_updated_at=Timestamp.from_iso(data["lastUpdatedAt"]),
            version=int(data.get("version", 1))
        )


@dataclass(frozen=True)
class UserProfile:
    """Account profile created alongside the seed growth state."""
    user_id: str
    created_at: Timestamp
    last_active_at: Timestamp
    timezone: str = "UTC"
    locale: str = "en-US"
    account_state: str = "active"
    subscription_tier: str = "free"
    has_completed_onboarding: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "userId": self.user_id,
            "createdAt": self.created_at.to_iso(),
            "lastActiveAt": self.last_active_at.to_iso(),
            "timezone": self.timezone,
            "locale": self.locale,
            "accountState": self.account_state,
            "subscriptionTier": self.subscription_tier,
            "flags": {"hasCompletedOnboarding": self.has_completed_onboarding},
        }

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> UserProfile:
        flags = data.get("flags") or {}
        return UserProfile(
            user_id=str(data["userId"]),
            created_at=Timestamp.from_iso(data["createdAt"]),
            last_active_at=Timestamp.from_iso(data["lastActiveAt"]),
            timezone=data.get("timezone", "UTC"),
            locale=data.get("locale", "en-US"),
            account_state=data.get("accountState", "active"),
            subscription_tier=data.get("subscriptionTier", "free"),
            has_completed_onboarding=bool(flags.get("hasCompletedOnboarding", False))
        )


@dataclass(frozen=True)
class StateWriteResult:
    """Outcome of a conditional state write."""
    success: bool
    state: Optional[GrowthState] = None
    error: Optional[Error] = None
