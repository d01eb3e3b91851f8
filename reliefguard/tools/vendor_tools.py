"""Vendor suspicion tracking"""

from datetime import datetime
from typing import List, Optional
from reliefguard.constants import (
    AUTO_SUSPEND_THRESHOLD,
    NotificationEvent,
    SeverityLevel,
    VendorFlagAction,
    VendorStatus,
)
from reliefguard.models.vendor_profile import FlagVendorResult, FraudReport, VendorSuspicionProfile
from reliefguard.stores.suspicion_store import VendorSuspicionStore
from reliefguard.tools.notification_tools import Notifier, notify
from reliefguard.utils.logging import get_logger
from reliefguard.utils.metrics import vendor_flags

logger = get_logger(__name__)


class VendorSuspicionTracker:
    """Maintains vendor suspicion counters and auto-suspends repeat offenders"""

    def __init__(
        self,
        store: VendorSuspicionStore,
        notifier: Optional[Notifier] = None,
        auto_suspend_threshold: int = AUTO_SUSPEND_THRESHOLD,
    ):
        self.store = store
        self.notifier = notifier or Notifier()
        self.auto_suspend_threshold = auto_suspend_threshold

    def register_vendor(self, vendor_id: str, status: VendorStatus = VendorStatus.PENDING) -> VendorSuspicionProfile:
        return self.store.register(
            VendorSuspicionProfile(vendor_id=vendor_id, status=status), self.auto_suspend_threshold
        )

    def get_profile(self, vendor_id: str) -> Optional[VendorSuspicionProfile]:
        return self.store.get(vendor_id)

    def flag_vendor(
        self,
        vendor_id: str,
        reason: str,
        severity: SeverityLevel = SeverityLevel.MEDIUM,
        reported_by: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> FlagVendorResult:
        """
        Flag a vendor for suspicious activity

        Increments the vendor's suspicion counter; reaching the auto-suspend
        threshold suspends the vendor with no separate approval step.

        Args:
            vendor_id: Vendor party identifier
            reason: Why the vendor is flagged
            severity: Report severity
            reported_by: Reporter identifier (None for system-generated flags)
            now: Flag time (defaults to now)

        Returns:
            FlagVendorResult with the updated profile, the fraud report and
            whether the vendor was auto-suspended

        Raises:
            VendorNotFoundError: If the vendor has no profile
        """
        now = now or datetime.now()
        profile = self.store.record_suspicious_activity(vendor_id, now, self.auto_suspend_threshold)

        report = FraudReport(
            vendor_id=vendor_id,
            reason=reason,
            severity=severity,
            reported_by=reported_by,
            timestamp=now,
            auto_generated=reported_by is None,
        )
        self.store.add_report(report)

        action = (
            VendorFlagAction.AUTO_SUSPENDED
            if profile.status == VendorStatus.SUSPENDED
            else VendorFlagAction.FLAGGED
        )
        vendor_flags.labels(action=action.value).inc()

        logger.info(
            "Vendor flagged",
            vendor_id=vendor_id,
            severity=severity.value,
            suspicious_activity_count=profile.suspicious_activity_count,
            action=action.value,
        )

        if severity in (SeverityLevel.HIGH, SeverityLevel.CRITICAL):
            notify(self.notifier, NotificationEvent.VENDOR_FLAGGED, {
                'vendor_id': vendor_id,
                'reason': reason,
                'severity': severity.value,
                'action': action.value,
            })

        return FlagVendorResult(profile=profile, report=report, action=action)

    def list_flagged_vendors(self, since: Optional[datetime] = None) -> List[VendorSuspicionProfile]:
        """Vendors with at least one flag, optionally flagged since a point in time"""
        return [
            p for p in self.store.list_profiles()
            if p.suspicious_activity_count > 0
            and (since is None or (p.last_suspicious_activity is not None and p.last_suspicious_activity >= since))
        ]
