"""User profile persistence. Profiles are created once and only read afterwards."""

from __future__ import annotations
from typing import Dict, Optional
import json
import logging
import os
import threading

from ..contracts.base import Error, ErrorCode, Result
from ..contracts.state import UserProfile

logger = logging.getLogger(__name__)


class ProfileStore:

    def get(self, user_id: str) -> Optional[UserProfile]:
        raise NotImplementedError

    def create_if_absent(self, profile: UserProfile) -> Result:
        """Result.value is False if the profile already exists."""
        raise NotImplementedError


class InMemoryProfileStore(ProfileStore):

    def __init__(self):
        self._lock = threading.Lock()
        self._profiles: Dict[str, UserProfile] = {}

    def get(self, user_id: str) -> Optional[UserProfile]:
        with self._lock:
            return self._profiles.get(user_id)

    def create_if_absent(self, profile: UserProfile) -> Result:
        with self._lock:
            if profile.user_id in self._profiles:
                return Result.success(False)
            try:
                self._persist(profile)
            except OSError as e:
                logger.error(f"Profile write failed for {profile.user_id}: {e}")
                return Result.failure(Error.create(
                    ErrorCode.STORAGE_WRITE_FAILED,
                    f"Failed to write profile: {e}",
                    user_id=profile.user_id
                ))
            self._profiles[profile.user_id] = profile
            return Result.success(True)

    def _persist(self, profile: UserProfile) -> None:
        pass


class FileProfileStore(InMemoryProfileStore):

    def __init__(self, storage_dir: str):
        super().__init__()
        self._profiles_file = os.path.join(storage_dir, "profiles.jsonl")
        os.makedirs(storage_dir, exist_ok=True)

        if os.path.exists(self._profiles_file):
            with open(self._profiles_file, 'r') as f:
                for line in f:
                    if not line.strip():
                        continue
                    try:
                        profile = UserProfile.from_dict(json.loads(line))
                    except (ValueError, KeyError, TypeError) as e:
                        logger.warning(f"Skipping corrupt profile record: {e}")
                        continue
                    self._profiles.setdefault(profile.user_id, profile)

    def _persist(self, profile: UserProfile) -> None:
        with open(self._profiles_file, 'a') as f:
            f.write(json.dumps(profile.to_dict()) + '\n')
