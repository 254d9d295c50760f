"""Client configuration."""

from __future__ import annotations
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional
import os


ENV_API_URL = "GROWTH_API_URL"
ENV_POLL_INTERVAL = "GROWTH_POLL_INTERVAL"
ENV_API_TOKEN = "GROWTH_API_TOKEN"


@dataclass
class ClientConfig:
    base_url: str = "http://localhost:8000"
    timeout_seconds: float = 10.0
    poll_interval_seconds: float = 5.0

    # None keeps every processed event id for the lifetime of the session
    dedup_retention_seconds: Optional[float] = None

    max_start_attempts: int = 3
    start_retry_delay_seconds: float = 1.0
    auth_token: Optional[str] = None

    def __post_init__(self):
        if self.poll_interval_seconds <= 0:
            raise ValueError("poll_interval_seconds must be positive")
        if self.max_start_attempts < 1:
            raise ValueError("max_start_attempts must be at least 1")

    @property
    def dedup_retention(self) -> Optional[timedelta]:
        if self.dedup_retention_seconds is None:
            return None
        return timedelta(seconds=self.dedup_retention_seconds)

    @staticmethod
    def from_env() -> ClientConfig:
        overrides = {}
        if os.environ.get(ENV_API_URL):
            overrides["base_url"] = os.environ[ENV_API_URL]
        if os.environ.get(ENV_POLL_INTERVAL):
            overrides["poll_interval_seconds"] = float(os.environ[ENV_POLL_INTERVAL])
        return ClientConfig(auth_token=os.environ.get(ENV_API_TOKEN) or None, **overrides)
