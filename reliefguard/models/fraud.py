"""Fraud finding, analysis result and annotation models"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, Dict, Any, List
from reliefguard.constants import FraudPattern, SeverityLevel, RiskLevel, RecommendedAction


class FraudFinding(BaseModel):
    """A flag or warning raised by one detector"""

    pattern: FraudPattern = Field(..., description="Detector pattern id")
    severity: SeverityLevel = Field(..., description="Finding severity")
    description: str = Field(..., description="Human-readable explanation")
    details: Dict[str, Any] = Field(default_factory=dict, description="Counts, thresholds and ratios for audit")

    class Config:
        frozen = True
        json_schema_extra = {
            "example": {
                "pattern": "duplicate_transaction",
                "severity": "high",
                "description": "Potential duplicate transaction detected",
                "details": {"count": 1, "time_window_minutes": 5}
            }
        }


class Recommendation(BaseModel):
    """Action derived from the aggregated risk level"""

    action: RecommendedAction
    message: str
    requires_review: bool
    auto_flag: bool

    class Config:
        frozen = True


class FraudAnalysisResult(BaseModel):
    """Transient output of one fraud evaluation"""

    flags: List[FraudFinding] = Field(default_factory=list)
    warnings: List[FraudFinding] = Field(default_factory=list)
    risk_level: RiskLevel
    recommendation: Recommendation

    @property
    def is_suspicious(self) -> bool:
        return len(self.flags) > 0


class FraudAnnotation(BaseModel):
    """Decision record stored alongside a transaction"""

    transaction_id: str = Field(..., description="Annotated transaction")
    flags: List[FraudFinding] = Field(default_factory=list)
    warnings: List[FraudFinding] = Field(default_factory=list)
    risk_level: RiskLevel
    action: RecommendedAction
    requires_review: bool
    system_error: Optional[str] = Field(None, description="Set when the decision failed closed")
    category_balance: Optional[Dict[str, int]] = Field(None, description="Balance snapshot at authorization time")
    annotated_at: datetime = Field(default_factory=datetime.now)

    class Config:
        frozen = True
