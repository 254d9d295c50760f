"""
Growth Client

Polls the growth engine's progression event stream and delivers each event
once, in chronological order, to a fixed set of consumers.

Building a session:
    config = ClientConfig.from_env()
    api = ApiClient(config)
    fetcher = EventFetcher(HttpEventSource(api, user_id), config.dedup_retention)
    session = SessionManager(fetcher, EventDispatcher([renderer]), config, api.ping)
"""

from .api_client import ApiClient, ApiError
from .cancellation import CancellationToken
from .config import ClientConfig
from .dispatcher import EventConsumer, EventDispatcher
from .fetcher import EventFetcher
from .services import GrowthStateService, InsightService, ReflectionService
from .session import SessionManager, SessionUnavailable
from .sources import EventSource, HttpEventSource, LocalEventSource

__all__ = [
    'ApiClient',
    'ApiError',
    'CancellationToken',
    'ClientConfig',
    'EventConsumer',
    'EventDispatcher',
    'EventFetcher',
    'GrowthStateService',
    'InsightService',
    'ReflectionService',
    'SessionManager',
    'SessionUnavailable',
    'EventSource',
    'HttpEventSource',
    'LocalEventSource',
]
