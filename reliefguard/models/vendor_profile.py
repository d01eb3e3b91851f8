"""Vendor suspicion profile data model"""

import uuid
from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional
from reliefguard.constants import SeverityLevel, VendorFlagAction, VendorStatus


class VendorSuspicionProfile(BaseModel):
    """Vendor-side suspicion state"""

    vendor_id: str = Field(..., description="Vendor party identifier")
    suspicious_activity_count: int = Field(default=0, ge=0, description="Number of suspicion flags")
    last_suspicious_activity: Optional[datetime] = Field(None, description="Time of the latest flag")
    status: VendorStatus = Field(default=VendorStatus.PENDING, description="Verification status")

    class Config:
        json_schema_extra = {
            "example": {
                "vendor_id": "0xvendor",
                "suspicious_activity_count": 2,
                "last_suspicious_activity": "2025-02-01T12:30:00",
                "status": "approved"
            }
        }


class FraudReport(BaseModel):
    """Report filed when a vendor is flagged"""

    report_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    vendor_id: str
    reason: str
    severity: SeverityLevel
    reported_by: Optional[str] = None
    timestamp: datetime = Field(default_factory=datetime.now)
    status: str = "pending_review"
    auto_generated: bool = Field(..., description="True when no reporter was given")


class FlagVendorResult(BaseModel):
    """Returned to the caller of flag_vendor for notification purposes"""

    profile: VendorSuspicionProfile
    report: FraudReport
    action: VendorFlagAction
