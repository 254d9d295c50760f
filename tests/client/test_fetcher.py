"""
Event Fetcher Tests

Dedup, ordering, high-water mark, cancellation and non-reentrancy.
"""

from datetime import timedelta
import threading

from growth_client.cancellation import CancellationToken
from growth_client.fetcher import EventFetcher
from growth_client.sources import LocalEventSource
from growth_engine.storage import InMemoryEventLog

from tests.fixtures import T1, T2, T3, USER, NEXT_DAY, ScriptedSource, BlockingSource, event


def ids(events):
    return [e.event_id for e in events]


class CancellingSource(ScriptedSource):
    """Cancels the caller's token while the query is in flight."""

    def __init__(self, token, batch):
        super().__init__(batch)
        self._token = token

    def query(self, since=None):
        result = super().query(since)
        self._token.cancel()
        return result


# =============================================================================
# DEDUP AND ORDERING
# =============================================================================

class TestFetchOrderingAndDedup:

    def test_batch_sorted_by_occurred_at(self):
        a, b = event("a", T1), event("b", T2)
        fetcher = EventFetcher(ScriptedSource([b, a]))

        assert ids(fetcher.fetch_new_events()) == ["a", "b"]

    def test_refetch_returns_nothing_new(self):
        a, b = event("a", T1), event("b", T2)
        fetcher = EventFetcher(ScriptedSource([b, a], [a]))

        fetcher.fetch_new_events()

        assert fetcher.fetch_new_events() == []

    def test_duplicates_within_one_batch(self):
        a = event("a", T1)
        fetcher = EventFetcher(ScriptedSource([a, a, a]))

        assert ids(fetcher.fetch_new_events()) == ["a"]

    def test_events_without_id_skipped(self):
        fetcher = EventFetcher(ScriptedSource([event("", T1), event("b", T2)]))
        assert ids(fetcher.fetch_new_events()) == ["b"]

    def test_ties_keep_source_order(self):
        fetcher = EventFetcher(ScriptedSource([event("y", T1), event("x", T1)]))
        assert ids(fetcher.fetch_new_events()) == ["y", "x"]


# =============================================================================
# HIGH-WATER MARK
# =============================================================================

class TestHighWaterMark:

    def test_first_query_has_no_since(self):
        source = ScriptedSource([event("a", T1)])
        EventFetcher(source).fetch_new_events()
        assert source.calls == [None]

    def test_mark_advances_to_newest_event(self):
        source = ScriptedSource([event("b", T2), event("a", T1)], [])
        fetcher = EventFetcher(source)

        fetcher.fetch_new_events()
        fetcher.fetch_new_events()

        assert fetcher.last_fetched_at == T2
        assert source.calls == [None, T2]

    def test_inclusive_bound_with_real_log(self):
        """The boundary event comes back on the next query and is absorbed."""
        log = InMemoryEventLog()
        log.append(event("a", T1))
        fetcher = EventFetcher(LocalEventSource(log, USER))

        assert ids(fetcher.fetch_new_events()) == ["a"]

        log.append(event("b", T1))
        log.append(event("c", T2))
        assert ids(fetcher.fetch_new_events()) == ["b", "c"]
        assert fetcher.fetch_new_events() == []


# =============================================================================
# FAILURE AND CANCELLATION
# =============================================================================

class TestFailureAndCancellation:

    def test_failure_returns_empty_and_keeps_state(self):
        source = ScriptedSource([event("a", T1)], ConnectionError("offline"), [event("b", T2)])
        fetcher = EventFetcher(source)

        fetcher.fetch_new_events()
        assert fetcher.fetch_new_events() == []
        assert fetcher.last_fetched_at == T1
        assert ids(fetcher.fetch_new_events()) == ["b"]

    def test_cancelled_before_call_skips_query(self):
        token = CancellationToken()
        token.cancel()
        source = ScriptedSource([event("a", T1)])

        assert EventFetcher(source).fetch_new_events(token) == []
        assert source.calls == []

    def test_cancelled_during_call_discards_result(self):
        token = CancellationToken()
        source = CancellingSource(token, [event("a", T1)])
        fetcher = EventFetcher(source)

        assert fetcher.fetch_new_events(token) == []
        assert fetcher.last_fetched_at is None
        assert not fetcher.has_processed("a")

        assert ids(fetcher.fetch_new_events()) == ["a"]

    def test_concurrent_fetch_returns_empty(self):
        source = BlockingSource([event("a", T1)])
        fetcher = EventFetcher(source)
        results = {}

        worker = threading.Thread(
            target=lambda: results.setdefault("first", fetcher.fetch_new_events())
        )
        worker.start()
        assert source.entered.wait(5)

        assert fetcher.fetch_new_events() == []

        source.release.set()
        worker.join(5)
        assert ids(results["first"]) == ["a"]


# =============================================================================
# RESET AND RETENTION
# =============================================================================

class TestResetAndRetention:

    def test_reset_replays_processed_events(self):
        a = event("a", T1)
        source = ScriptedSource([a])
        fetcher = EventFetcher(source)

        fetcher.fetch_new_events()
        assert fetcher.fetch_new_events() == []

        fetcher.reset()

        assert ids(fetcher.fetch_new_events()) == ["a"]
        assert source.calls[-1] is None

    def test_unbounded_by_default(self):
        fetcher = EventFetcher(ScriptedSource([event("a", T1)], [event("z", NEXT_DAY)]))
        fetcher.fetch_new_events()
        fetcher.fetch_new_events()
        assert fetcher.processed_count == 2

    def test_retention_prunes_old_ids(self):
        fetcher = EventFetcher(
            ScriptedSource([event("a", T1), event("b", T3)]),
            dedup_retention=timedelta(minutes=5)
        )

        fetcher.fetch_new_events()

        assert not fetcher.has_processed("a")
        assert fetcher.has_processed("b")
