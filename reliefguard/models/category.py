"""Category limit and derived category balance models"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import List, Optional
from reliefguard.constants import AidCategory, LimitType


class EmergencyOverride(BaseModel):
    """Administrator override that suspends limit enforcement"""

    active: bool = Field(default=False, description="Whether the override is set")
    reason: Optional[str] = Field(None, description="Why the override was set")
    expiry: Optional[datetime] = Field(None, description="When the override lapses (None = until cleared)")

    class Config:
        frozen = True


class CategoryLimit(BaseModel):
    """Per-category spending ceilings (minor units)"""

    category: AidCategory = Field(..., description="Aid category")
    per_transaction_limit: int = Field(..., ge=0, description="Maximum single spend")
    daily_limit: int = Field(..., ge=0, description="Maximum spend since local midnight")
    weekly_limit: int = Field(..., ge=0, description="Maximum spend over trailing 7 days")
    monthly_limit: int = Field(..., ge=0, description="Maximum spend since first of month")
    is_active: bool = Field(default=True, description="Inactive limits are ignored")
    emergency_override: EmergencyOverride = Field(default_factory=EmergencyOverride)

    class Config:
        frozen = True
        json_schema_extra = {
            "example": {
                "category": "Food",
                "per_transaction_limit": 200,
                "daily_limit": 500,
                "weekly_limit": 2000,
                "monthly_limit": 8000,
                "is_active": True,
                "emergency_override": {"active": False}
            }
        }

    def is_emergency_override_active(self, now: Optional[datetime] = None) -> bool:
        override = self.emergency_override
        if not override.active:
            return False
        if override.expiry is None:
            return True
        return (now or datetime.now()) < override.expiry

    def limit_for(self, limit_type: LimitType) -> int:
        return {
            LimitType.PER_TRANSACTION: self.per_transaction_limit,
            LimitType.DAILY: self.daily_limit,
            LimitType.WEEKLY: self.weekly_limit,
            LimitType.MONTHLY: self.monthly_limit,
        }[limit_type]


class LimitViolation(BaseModel):
    """Structured rejection payload for a failed limit check"""

    category: AidCategory
    limit_type: LimitType
    limit_value: int
    already_spent: int
    requested: int
    remaining: int


class LimitCheckResult(BaseModel):
    """Outcome of checking a spend against category limits"""

    ok: bool
    violation: Optional[LimitViolation] = None
    violations: List[LimitViolation] = Field(default_factory=list)
    skipped_reason: Optional[str] = Field(None, description="Why limits were not enforced")


class CategoryBalance(BaseModel):
    """Derived balance for one (beneficiary, category) pair"""

    category: AidCategory
    total_received: int = Field(..., ge=0, description="Confirmed earmarked donations")
    total_spent: int = Field(..., ge=0, description="Confirmed spends in this category")
    available_balance: int = Field(..., ge=0, description="Usable balance for this category")
    uses_fallback_allocation: bool = Field(default=False, description="Funded from the unallocated share")


class CategoryBalanceReport(BaseModel):
    """All category balances for a beneficiary at one point in time"""

    beneficiary: str
    total_wallet_balance: int
    balances: List[CategoryBalance]
    unallocated_balance: int = Field(..., description="Wallet balance not covered by earmarked donations")
    discrepancy: int = Field(..., ge=0, description="|wallet - sum(available)|")
    computed_at: datetime = Field(default_factory=datetime.now)

    def for_category(self, category: AidCategory) -> CategoryBalance:
        for balance in self.balances:
            if balance.category == category:
                return balance
        raise KeyError(category)
