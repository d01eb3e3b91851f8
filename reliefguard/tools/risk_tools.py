"""Risk aggregation and recommendation rules"""

from typing import List, Tuple
from reliefguard.constants import RecommendedAction, RiskLevel, SeverityLevel
from reliefguard.models.fraud import FraudFinding, Recommendation

HIGH_SEVERITIES = (SeverityLevel.HIGH, SeverityLevel.CRITICAL)

RECOMMENDATIONS = {
    RiskLevel.CRITICAL: Recommendation(
        action=RecommendedAction.BLOCK,
        message="Transaction blocked due to critical fraud risk",
        requires_review=True,
        auto_flag=True,
    ),
    RiskLevel.HIGH: Recommendation(
        action=RecommendedAction.REVIEW,
        message="Transaction requires manual review before processing",
        requires_review=True,
        auto_flag=True,
    ),
    RiskLevel.MEDIUM: Recommendation(
        action=RecommendedAction.MONITOR,
        message="Transaction flagged for monitoring",
        requires_review=False,
        auto_flag=True,
    ),
    RiskLevel.LOW: Recommendation(
        action=RecommendedAction.ALLOW,
        message="Transaction appears normal",
        requires_review=False,
        auto_flag=False,
    ),
}


def calculate_risk_level(flags: List[FraudFinding], warnings: List[FraudFinding]) -> RiskLevel:
    """
    Fold detector output into a risk level.

    Rules, in priority order:
    - CRITICAL: two or more high-severity flags
    - HIGH: one high-severity flag
    - MEDIUM: two or more medium flags, any flag at all, or three or more warnings
    - LOW: otherwise
    """
    high_count = sum(1 for f in flags if f.severity in HIGH_SEVERITIES)
    medium_count = sum(1 for f in flags if f.severity == SeverityLevel.MEDIUM)

    if high_count >= 2:
        return RiskLevel.CRITICAL
    if high_count >= 1:
        return RiskLevel.HIGH
    if medium_count >= 2:
        return RiskLevel.MEDIUM
    if flags or len(warnings) >= 3:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def get_recommendation(risk_level: RiskLevel) -> Recommendation:
    return RECOMMENDATIONS[risk_level]


def aggregate(flags: List[FraudFinding], warnings: List[FraudFinding]) -> Tuple[RiskLevel, Recommendation]:
    """Risk level and recommended action for a set of findings"""
    risk_level = calculate_risk_level(flags, warnings)
    return risk_level, get_recommendation(risk_level)


def is_elevated(risk_level: RiskLevel) -> bool:
    """High and critical risk feed the vendor suspicion tracker"""
    return risk_level in (RiskLevel.HIGH, RiskLevel.CRITICAL)
