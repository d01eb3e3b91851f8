"""Vendor suspicion state with in-memory and Redis backends."""

import json
import os
import threading
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, List, Optional

import redis

from reliefguard.constants import AUTO_SUSPEND_THRESHOLD, VendorStatus
from reliefguard.models.vendor_profile import FraudReport, VendorSuspicionProfile
from reliefguard.utils.errors import StateManagerError, VendorNotFoundError
from reliefguard.utils.logging import get_logger

logger = get_logger(__name__)


class VendorSuspicionStore(ABC):
    """Owner of the vendor suspicion counters"""

    @abstractmethod
    def register(
        self, profile: VendorSuspicionProfile, suspend_threshold: int = AUTO_SUSPEND_THRESHOLD
    ) -> VendorSuspicionProfile:
        """Create or replace a vendor profile (administrative); a count at the threshold is stored suspended"""

    @abstractmethod
    def get(self, vendor_id: str) -> Optional[VendorSuspicionProfile]:
        """Fetch a vendor profile"""

    @abstractmethod
    def record_suspicious_activity(
        self, vendor_id: str, now: datetime, suspend_threshold: int
    ) -> VendorSuspicionProfile:
        """
        Atomically increment the suspicion counter and suspend at the threshold.

        Raises:
            VendorNotFoundError: If the vendor has no profile
        """

    @abstractmethod
    def add_report(self, report: FraudReport) -> None:
        """Persist a fraud report"""

    @abstractmethod
    def reports(self, since: Optional[datetime] = None) -> List[FraudReport]:
        """Fraud reports, optionally since a point in time"""

    @abstractmethod
    def list_profiles(self) -> List[VendorSuspicionProfile]:
        """All vendor profiles"""


def _enforce_threshold(profile: VendorSuspicionProfile, suspend_threshold: int) -> VendorSuspicionProfile:
    if profile.suspicious_activity_count >= suspend_threshold and profile.status != VendorStatus.SUSPENDED:
        return profile.model_copy(update={"status": VendorStatus.SUSPENDED})
    return profile


def _apply_flag(profile: VendorSuspicionProfile, now: datetime, suspend_threshold: int) -> VendorSuspicionProfile:
    count = profile.suspicious_activity_count + 1
    status = VendorStatus.SUSPENDED if count >= suspend_threshold else profile.status
    return profile.model_copy(update={
        "suspicious_activity_count": count,
        "last_suspicious_activity": now,
        "status": status,
    })


class InMemoryVendorSuspicionStore(VendorSuspicionStore):
    """Process-local backend; a single lock makes each flag atomic"""

    def __init__(self):
        self._lock = threading.Lock()
        self._profiles: Dict[str, VendorSuspicionProfile] = {}
        self._reports: List[FraudReport] = []

    def register(
        self, profile: VendorSuspicionProfile, suspend_threshold: int = AUTO_SUSPEND_THRESHOLD
    ) -> VendorSuspicionProfile:
        profile = _enforce_threshold(profile, suspend_threshold)
        with self._lock:
            self._profiles[profile.vendor_id] = profile
        return profile

    def get(self, vendor_id: str) -> Optional[VendorSuspicionProfile]:
        with self._lock:
            return self._profiles.get(vendor_id)

    def record_suspicious_activity(
        self, vendor_id: str, now: datetime, suspend_threshold: int
    ) -> VendorSuspicionProfile:
        with self._lock:
            profile = self._profiles.get(vendor_id)
            if profile is None:
                raise VendorNotFoundError(f"Vendor not found: {vendor_id}")
            updated = _apply_flag(profile, now, suspend_threshold)
            self._profiles[vendor_id] = updated
            return updated

    def add_report(self, report: FraudReport) -> None:
        with self._lock:
            self._reports.append(report)

    def reports(self, since: Optional[datetime] = None) -> List[FraudReport]:
        with self._lock:
            snapshot = list(self._reports)
        return [r for r in snapshot if since is None or r.timestamp >= since]

    def list_profiles(self) -> List[VendorSuspicionProfile]:
        with self._lock:
            return list(self._profiles.values())


class RedisVendorSuspicionStore(VendorSuspicionStore):
    """Redis backend shared across authorizer processes"""

    PROFILE_KEY = "vendor:{vendor_id}:suspicion"
    LOCK_KEY = "vendor:{vendor_id}:lock"
    INDEX_KEY = "vendor:index"
    REPORTS_KEY = "vendor:reports"

    def __init__(self, client: redis.Redis, lock_timeout: int = 5):
        self.client = client
        self.lock_timeout = lock_timeout

    def _profile_key(self, vendor_id: str) -> str:
        return self.PROFILE_KEY.format(vendor_id=vendor_id)

    def _write(self, profile: VendorSuspicionProfile) -> None:
        self.client.set(self._profile_key(profile.vendor_id), profile.model_dump_json())
        self.client.sadd(self.INDEX_KEY, profile.vendor_id)

    def _read(self, vendor_id: str) -> Optional[VendorSuspicionProfile]:
        value = self.client.get(self._profile_key(vendor_id))
        if not value:
            return None
        return VendorSuspicionProfile.model_validate_json(value)

    def register(
        self, profile: VendorSuspicionProfile, suspend_threshold: int = AUTO_SUSPEND_THRESHOLD
    ) -> VendorSuspicionProfile:
        profile = _enforce_threshold(profile, suspend_threshold)
        try:
            self._write(profile)
        except redis.RedisError as e:
            raise StateManagerError(f"Failed to register vendor {profile.vendor_id}: {e}")
        logger.info("Registered vendor profile", vendor_id=profile.vendor_id)
        return profile

    def get(self, vendor_id: str) -> Optional[VendorSuspicionProfile]:
        try:
            return self._read(vendor_id)
        except redis.RedisError as e:
            raise StateManagerError(f"Failed to read vendor {vendor_id}: {e}")

    def record_suspicious_activity(
        self, vendor_id: str, now: datetime, suspend_threshold: int
    ) -> VendorSuspicionProfile:
        lock = self.client.lock(
            self.LOCK_KEY.format(vendor_id=vendor_id),
            timeout=self.lock_timeout,
            blocking_timeout=self.lock_timeout,
        )
        try:
            with lock:
                profile = self._read(vendor_id)
                if profile is None:
                    raise VendorNotFoundError(f"Vendor not found: {vendor_id}")
                updated = _apply_flag(profile, now, suspend_threshold)
                self._write(updated)
                return updated
        except redis.exceptions.LockError as e:
            raise StateManagerError(f"Could not lock vendor {vendor_id}: {e}")
        except redis.RedisError as e:
            raise StateManagerError(f"Failed to flag vendor {vendor_id}: {e}")

    def add_report(self, report: FraudReport) -> None:
        try:
            self.client.rpush(self.REPORTS_KEY, report.model_dump_json())
        except redis.RedisError as e:
            raise StateManagerError(f"Failed to save fraud report: {e}")

    def reports(self, since: Optional[datetime] = None) -> List[FraudReport]:
        try:
            raw = self.client.lrange(self.REPORTS_KEY, 0, -1)
        except redis.RedisError as e:
            raise StateManagerError(f"Failed to read fraud reports: {e}")
        reports = [FraudReport.model_validate_json(value) for value in raw]
        return [r for r in reports if since is None or r.timestamp >= since]

    def list_profiles(self) -> List[VendorSuspicionProfile]:
        try:
            vendor_ids = self.client.smembers(self.INDEX_KEY)
            profiles = [self._read(vendor_id) for vendor_id in sorted(vendor_ids)]
        except redis.RedisError as e:
            raise StateManagerError(f"Failed to list vendors: {e}")
        return [p for p in profiles if p is not None]

    def check_health(self) -> bool:
        """
        Check if Redis connection is healthy.

        Returns:
            True if Redis is reachable, False otherwise
        """
        try:
            self.client.ping()
            return True
        except redis.RedisError:
            return False


def get_suspicion_store(backend: Optional[str] = None) -> VendorSuspicionStore:
    """
    Build the vendor suspicion store selected by STATE_BACKEND ("memory" or "redis").

    Raises:
        StateManagerError: If the Redis backend is requested but misconfigured or unreachable
    """
    backend = backend or os.getenv("STATE_BACKEND", "memory")

    if backend == "memory":
        logger.info("Using in-memory vendor suspicion store")
        return InMemoryVendorSuspicionStore()

    if backend != "redis":
        raise StateManagerError(f"Unknown STATE_BACKEND: {backend}")

    try:
        redis_host, redis_port = os.getenv("REDIS_HOST", "localhost:6379").split(':')
        client = redis.Redis(
            host=redis_host,
            port=int(redis_port),
            db=int(os.getenv("REDIS_DB", 0)),
            decode_responses=True,
            socket_keepalive=True,
            socket_connect_timeout=5
        )
    except ValueError as e:
        raise StateManagerError(f"REDIS_HOST must be host:port: {e}")

    store = RedisVendorSuspicionStore(client)
    if not store.check_health():
        raise StateManagerError(f"Redis connection failed: {redis_host}:{redis_port} is unreachable")

    logger.info("Connected to Redis", host=redis_host, port=redis_port)
    return store
