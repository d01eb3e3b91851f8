"""Spend request and result models"""

from pydantic import BaseModel, Field
from typing import Optional
from reliefguard.constants import ReasonCode, RiskLevel, TransactionStatus


class SpendRequest(BaseModel):
    """Incoming spend request (amount in major units as a decimal string)"""

    beneficiary: str = Field(..., description="Spending beneficiary")
    vendor: Optional[str] = Field(None, description="Vendor being paid")
    amount: str = Field(..., description="Decimal amount in major units")
    category: str = Field(..., description="Aid category name")
    description: Optional[str] = Field(None, description="Purchase description")
    receipt_hash: Optional[str] = Field(None, description="Receipt hash")

    class Config:
        json_schema_extra = {
            "example": {
                "beneficiary": "0xbeneficiary",
                "vendor": "0xvendor",
                "amount": "25.50",
                "category": "Food",
                "description": "Rice and beans",
                "receipt_hash": None
            }
        }


class CategoryBalanceSnapshot(BaseModel):
    """Category balance before and after the spend (minor units)"""

    available_before_spending: int
    available_after_spending: int
    spent_amount: int


class SpendResult(BaseModel):
    """Successful (recorded) spend"""

    transaction_id: str
    status: TransactionStatus
    risk_level: RiskLevel
    requires_review: bool
    reason_code: Optional[ReasonCode] = Field(None, description="Set when the spend failed closed")
    category_balance: Optional[CategoryBalanceSnapshot] = None
