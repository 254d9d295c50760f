"""
Insight Contracts

A WeeklyInsight is a read-only reflection over a window of already
recorded progression. Insights never cause growth, never emit events and
never touch GrowthState.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple

from .base import Timestamp


@dataclass(frozen=True)
class WeeklyInsight:
    text: str
    from_at: Timestamp
    to_at: Timestamp
    title: Optional[str] = None
    tags: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "title": self.title,
            "fromUtc": self.from_at.to_iso(),
            "toUtc": self.to_at.to_iso(),
            "tags": list(self.tags),
        }

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> WeeklyInsight:
        return WeeklyInsight(
            text=str(data["text"]),
            from_at=Timestamp.from_iso(data["fromUtc"]),
            to_at=Timestamp.from_iso(data["toUtc"]),
            title=data.get("title"),
            tags=tuple(str(t) for t in data.get("tags") or ())
        )
