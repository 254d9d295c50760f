"""
Chaos Fixtures

Explicit delivery-fault scenarios for the event pipeline.

RULES:
======
1. All fixtures are EXPLICIT, not random
2. Each fixture declares its fault type
3. Each fixture documents the invariant it expects to hold
4. Expected output is spelled out per fetch, never computed
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timezone, timedelta
from enum import Enum
from typing import Tuple, Union

from growth_engine.contracts.base import Timestamp
from growth_engine.contracts.events import ProgressionEvent, ProgressionEventType


# =============================================================================
# FAULT TYPES
# =============================================================================

class DeliveryFault(Enum):
    """Type of fault injected between the event log and the client."""
    DUPLICATE_DELIVERY = "duplicate_delivery"
    OUT_OF_ORDER = "out_of_order"
    FLAKY_SOURCE = "flaky_source"
    DELAYED_FLOOD = "delayed_flood"
    UNKNOWN_TYPES = "unknown_types"


class ExpectedInvariant(Enum):
    """What invariant the scenario expects to hold."""
    ONCE_ONLY = "once_only"
    CHRONOLOGICAL = "chronological"
    SILENT_DEGRADATION = "silent_degradation"
    FORWARD_COMPATIBLE = "forward_compatible"


# =============================================================================
# SCENARIO
# =============================================================================

Batch = Union[Tuple[ProgressionEvent, ...], Exception]


@dataclass(frozen=True)
class ChaosScenario:
    """
    One scripted delivery sequence.

    batches[i] is what the source returns on fetch i; expected[i] is the
    exact id sequence the fetcher must surface for that fetch.
    """
    scenario_id: str
    fault: DeliveryFault
    expected_invariant: ExpectedInvariant
    description: str
    batches: Tuple[Batch, ...]
    expected: Tuple[Tuple[str, ...], ...]


BASE = datetime(2026, 1, 15, 10, 0, tzinfo=timezone.utc)


def at(minutes: int) -> Timestamp:
    return Timestamp(BASE + timedelta(minutes=minutes))


def evt(
    event_id: str,
    minutes: int,
    event_type: str = ProgressionEventType.TASK_COMPLETED.value
) -> ProgressionEvent:
    return ProgressionEvent(
        event_id=event_id,
        user_id="user_chaos",
        event_type=event_type,
        occurred_at=at(minutes)
    )


# =============================================================================
# SCENARIO BUILDERS
# =============================================================================

def make_duplicate_delivery() -> ChaosScenario:
    """
    The same events are delivered again and again, alone and mixed with
    new ones.

    EXPECTED: every id surfaces exactly once.
    """
    a, b, c = evt("a", 0), evt("b", 5), evt("c", 10)
    return ChaosScenario(
        scenario_id="duplicate_001",
        fault=DeliveryFault.DUPLICATE_DELIVERY,
        expected_invariant=ExpectedInvariant.ONCE_ONLY,
        description="Overlapping batches with repeated ids",
        batches=((a, a, b), (b, a), (b, c, c), (a, b, c)),
        expected=(("a", "b"), (), ("c",), ()),
    )


def make_out_of_order_batch() -> ChaosScenario:
    """
    A batch arrives newest-first and with interleaved timestamps.

    EXPECTED: surfaced oldest-first; equal timestamps keep arrival order.
    """
    return ChaosScenario(
        scenario_id="out_of_order_001",
        fault=DeliveryFault.OUT_OF_ORDER,
        expected_invariant=ExpectedInvariant.CHRONOLOGICAL,
        description="Reversed batch with a timestamp tie",
        batches=((evt("d", 30), evt("c", 20), evt("b2", 10), evt("b1", 10), evt("a", 0)),),
        expected=(("a", "b2", "b1", "c", "d"),),
    )


def make_flaky_source() -> ChaosScenario:
    """
    The source fails between successful fetches.

    EXPECTED: failed fetches surface nothing and lose nothing.
    """
    return ChaosScenario(
        scenario_id="flaky_001",
        fault=DeliveryFault.FLAKY_SOURCE,
        expected_invariant=ExpectedInvariant.SILENT_DEGRADATION,
        description="Timeouts interleaved with real batches",
        batches=(
            (evt("a", 0),),
            TimeoutError("source timed out"),
            (evt("a", 0), evt("b", 5)),
            ConnectionError("connection reset"),
            (evt("b", 5), evt("c", 10)),
        ),
        expected=(("a",), (), ("b",), (), ("c",)),
    )


def make_delayed_flood() -> ChaosScenario:
    """
    After a long quiet period a large backlog arrives at once, shuffled and
    with every id duplicated.

    EXPECTED: one chronological batch, each id once.
    """
    backlog = tuple(evt(f"e{i:02d}", i) for i in range(25))
    shuffled = backlog[1::2] + backlog[0::2]
    return ChaosScenario(
        scenario_id="flood_001",
        fault=DeliveryFault.DELAYED_FLOOD,
        expected_invariant=ExpectedInvariant.ONCE_ONLY,
        description="Shuffled, duplicated backlog",
        batches=((), (), shuffled + shuffled),
        expected=((), (), tuple(e.event_id for e in backlog)),
    )


def make_unknown_types() -> ChaosScenario:
    """
    The engine has started emitting a type this client does not know.

    EXPECTED: delivered like any other event; routed to on_unknown.
    """
    return ChaosScenario(
        scenario_id="unknown_types_001",
        fault=DeliveryFault.UNKNOWN_TYPES,
        expected_invariant=ExpectedInvariant.FORWARD_COMPATIBLE,
        description="Mixed known and unknown event types",
        batches=((evt("new", 5, "SEASON_CHANGED"), evt("old", 0)),),
        expected=(("old", "new"),),
    )


ALL_SCENARIOS = (
    make_duplicate_delivery,
    make_out_of_order_batch,
    make_flaky_source,
    make_delayed_flood,
    make_unknown_types,
)
