"""Transaction data model"""

import uuid
from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional
from reliefguard.constants import AidCategory, TransactionStatus, TransactionType


class Transaction(BaseModel):
    """Transaction entity (immutable once recorded)"""

    transaction_id: str = Field(default_factory=lambda: str(uuid.uuid4()), description="Unique transaction ID")
    type: TransactionType = Field(..., description="donation, spending or vendor_payment")
    sender: str = Field(..., description="Sending party identifier")
    recipient: str = Field(..., description="Receiving party identifier")
    amount: int = Field(..., ge=0, description="Amount in minor units")
    category: Optional[AidCategory] = Field(None, description="Aid category (None for unearmarked donations)")
    status: TransactionStatus = Field(default=TransactionStatus.PENDING, description="Settlement status")
    created_at: datetime = Field(default_factory=datetime.now, description="Creation timestamp")
    description: Optional[str] = Field(None, description="Free-text description")
    receipt_hash: Optional[str] = Field(None, description="Hash of the purchase receipt")

    class Config:
        frozen = True
        json_schema_extra = {
            "example": {
                "transaction_id": "3f0e8c1a-51c7-4c55-9d0b-7d2b2f1d9a10",
                "type": "spending",
                "sender": "0xbeneficiary",
                "recipient": "0xvendor",
                "amount": 25000000000000000000,
                "category": "Food",
                "status": "confirmed",
                "created_at": "2025-02-03T10:00:00",
                "description": "Weekly groceries"
            }
        }

    @property
    def is_spend(self) -> bool:
        return self.type in (TransactionType.SPENDING, TransactionType.VENDOR_PAYMENT)
