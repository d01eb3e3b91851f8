"""Spend Authorizer - runs a spend attempt through the authorization pipeline"""

import time
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional, Tuple

from reliefguard.constants import (
    AidCategory,
    NotificationEvent,
    ReasonCode,
    RecommendedAction,
    RiskLevel,
    SeverityLevel,
    TransactionStatus,
    TransactionType,
)
from reliefguard.models.fraud import FraudAnalysisResult, FraudAnnotation
from reliefguard.models.spend import CategoryBalanceSnapshot, SpendRequest, SpendResult
from reliefguard.models.transaction import Transaction
from reliefguard.orchestrator.key_locks import KeyedLockManager
from reliefguard.stores.balance_oracle import BalanceOracle
from reliefguard.stores.category_limit_store import CategoryLimitStore, InMemoryCategoryLimitStore
from reliefguard.stores.suspicion_store import VendorSuspicionStore, get_suspicion_store
from reliefguard.stores.transaction_store import TransactionStore
from reliefguard.tools.balance_tools import compute_category_balances
from reliefguard.tools.fraud_tools import FraudPatternAnalyzer
from reliefguard.tools.limit_tools import SpendingLimitEnforcer
from reliefguard.tools.notification_tools import Notifier, notify
from reliefguard.tools.risk_tools import is_elevated
from reliefguard.tools.vendor_tools import VendorSuspicionTracker
from reliefguard.utils.config_loader import (
    AuthorizationSettings,
    FraudThresholds,
    get_authorization_settings,
    get_default_category_limits,
    get_fraud_thresholds,
    scale_exact,
)
from reliefguard.utils.errors import (
    FraudBlockedError,
    InsufficientCategoryBalanceError,
    ReliefGuardError,
    SpendingLimitExceededError,
    StateManagerError,
    StoreUnavailableError,
    ValidationError,
    VendorNotFoundError,
)
from reliefguard.utils.logging import get_logger
from reliefguard.utils.metrics import (
    authorization_latency,
    insufficient_balance_rejections,
    limit_rejections,
    spend_authorizations,
)
from reliefguard.utils.retry_handler import call_with_timeout, retry_with_exponential_backoff

logger = get_logger(__name__)


def parse_category(value: Any) -> AidCategory:
    """Match a category by value ("Emergency Supplies") or name ("emergency_supplies")"""
    if isinstance(value, AidCategory):
        return value
    text = str(value or "").strip().lower()
    for category in AidCategory:
        if text in (category.value.lower(), category.name.lower()):
            return category
    raise ValidationError(f"Unknown aid category: {value!r}", details={"category": value})


def parse_amount(value: Any, token_decimals: int) -> int:
    """Convert a decimal major-unit string to positive integer minor units"""
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationError(f"Amount is not a decimal number: {value!r}", details={"amount": value})

    if not amount.is_finite():
        raise ValidationError(f"Amount must be finite: {value!r}", details={"amount": value})

    scaled = scale_exact(amount, token_decimals)
    if scaled is None:
        raise ValidationError(
            f"Amount has more than {token_decimals} decimal places: {value!r}",
            details={"amount": value},
        )
    if scaled <= 0:
        raise ValidationError(f"Amount must be positive: {value!r}", details={"amount": value})
    return scaled


class SpendAuthorizer:
    """
    Master coordinator for spend authorization.

    Balance allocation -> limit enforcement -> fraud analysis -> risk
    aggregation -> persistence with annotation -> vendor suspicion. Each
    (beneficiary, category) pair is serialized for the whole read-decide-append
    sequence so concurrent spends cannot jointly overspend.
    """

    def __init__(
        self,
        transaction_store: TransactionStore,
        limit_store: CategoryLimitStore,
        balance_oracle: BalanceOracle,
        suspicion_tracker: VendorSuspicionTracker,
        thresholds: Optional[FraudThresholds] = None,
        settings: Optional[AuthorizationSettings] = None,
        notifier: Optional[Notifier] = None,
        analyzer: Optional[FraudPatternAnalyzer] = None,
        locks: Optional[KeyedLockManager] = None,
    ):
        self.settings = settings or AuthorizationSettings()
        self.transaction_store = transaction_store
        self.balance_oracle = balance_oracle
        self.suspicion_tracker = suspicion_tracker
        self.notifier = notifier or Notifier()
        self.limit_enforcer = SpendingLimitEnforcer(transaction_store, limit_store)
        self.analyzer = analyzer or FraudPatternAnalyzer(
            transaction_store,
            thresholds or FraudThresholds.defaults(self.settings.token_decimals),
            query_timeout_seconds=self.settings.query_timeout_seconds,
            max_workers=self.settings.detector_workers,
        )
        self.locks = locks or KeyedLockManager()

    @classmethod
    def from_config(
        cls,
        config: Dict[str, Any],
        transaction_store: TransactionStore,
        balance_oracle: BalanceOracle,
        suspicion_store: Optional[VendorSuspicionStore] = None,
        notifier: Optional[Notifier] = None,
    ) -> "SpendAuthorizer":
        """Wire an authorizer from a loaded configuration"""
        settings = get_authorization_settings(config)
        notifier = notifier or Notifier()
        tracker = VendorSuspicionTracker(
            suspicion_store or get_suspicion_store(),
            notifier=notifier,
            auto_suspend_threshold=settings.auto_suspend_threshold,
        )
        return cls(
            transaction_store=transaction_store,
            limit_store=InMemoryCategoryLimitStore(get_default_category_limits(config)),
            balance_oracle=balance_oracle,
            suspicion_tracker=tracker,
            thresholds=get_fraud_thresholds(config),
            settings=settings,
            notifier=notifier,
        )

    def authorize_spend(self, request: SpendRequest, now: Optional[datetime] = None) -> SpendResult:
        """
        Beneficiary-initiated spend.

        Only a critical risk level (recommendation `block`) is rejected;
        otherwise the spend is recorded as confirmed, or pending when review
        is required.

        Raises:
            ValidationError, InsufficientCategoryBalanceError,
            SpendingLimitExceededError, FraudBlockedError,
            StoreUnavailableError (only if the transaction cannot be recorded)
        """
        return self._authorize(request, request.vendor, TransactionType.SPENDING, now)

    def validate_purchase(
        self, request: SpendRequest, vendor_id: str, now: Optional[datetime] = None
    ) -> SpendResult:
        """
        Vendor-initiated purchase on behalf of a beneficiary.

        A `block` recommendation is returned to the vendor as FraudBlockedError
        before anything is recorded.
        """
        return self._authorize(request, vendor_id, TransactionType.VENDOR_PAYMENT, now)

    def parse_request(self, request: SpendRequest, vendor: Optional[str]) -> Tuple[AidCategory, int]:
        """
        Validate a request before any store access.

        Raises:
            ValidationError: Missing parties, unknown category or bad amount
        """
        if not request.beneficiary:
            raise ValidationError("Beneficiary is required")
        if not vendor:
            raise ValidationError("Vendor is required")
        if vendor == request.beneficiary:
            raise ValidationError("Beneficiary cannot pay itself", details={"vendor": vendor})
        category = parse_category(request.category)
        amount = parse_amount(request.amount, self.settings.token_decimals)
        return category, amount

    def _authorize(
        self,
        request: SpendRequest,
        vendor: Optional[str],
        txn_type: TransactionType,
        now: Optional[datetime],
    ) -> SpendResult:
        start = time.time()
        now = now or datetime.now()

        try:
            category, amount = self.parse_request(request, vendor)
        except ValidationError:
            spend_authorizations.labels(outcome='rejected').inc()
            raise

        candidate = Transaction(
            type=txn_type,
            sender=request.beneficiary,
            recipient=vendor,
            amount=amount,
            category=category,
            status=TransactionStatus.PENDING,
            created_at=now,
            description=request.description,
            receipt_hash=request.receipt_hash,
        )

        try:
            with self.locks.hold((request.beneficiary, category)):
                return self._decide(candidate, now)
        finally:
            authorization_latency.observe(time.time() - start)

    def _decide(self, candidate: Transaction, now: datetime) -> SpendResult:
        snapshot = None
        try:
            snapshot = self._check_category_balance(candidate, now)
            self._check_limits(candidate, now)
            analysis = self.analyzer.analyze(candidate, now)
        except StoreUnavailableError as e:
            return self._fail_closed(candidate, snapshot, e)

        if analysis.recommendation.action == RecommendedAction.BLOCK:
            spend_authorizations.labels(outcome='blocked').inc()
            notify(self.notifier, NotificationEvent.SPEND_BLOCKED, {
                'beneficiary': candidate.sender,
                'vendor': candidate.recipient,
                'amount': candidate.amount,
                'category': candidate.category.value,
                'risk_level': analysis.risk_level.value,
            })
            logger.warning("Spend blocked by fraud analysis", beneficiary=candidate.sender,
                           vendor=candidate.recipient, risk_level=analysis.risk_level.value)
            raise FraudBlockedError(analysis.risk_level.value, [f.description for f in analysis.flags])

        return self._record(candidate, analysis, snapshot)

    def _read_wallet_balance(self, beneficiary: str) -> int:
        return retry_with_exponential_backoff(
            call_with_timeout,
            self.balance_oracle.get_balance,
            self.settings.query_timeout_seconds,
            "balance_oracle",
            beneficiary,
            max_retries=self.settings.oracle_max_retries,
            base_delay=self.settings.oracle_retry_base_delay,
            retry_on=(StoreUnavailableError,),
        )

    def _check_category_balance(self, candidate: Transaction, now: datetime) -> CategoryBalanceSnapshot:
        wallet_balance = self._read_wallet_balance(candidate.sender)
        report = call_with_timeout(
            compute_category_balances,
            self.settings.query_timeout_seconds,
            "category_balances",
            self.transaction_store,
            candidate.sender,
            wallet_balance,
            now,
        )
        available = report.for_category(candidate.category).available_balance

        if candidate.amount > available:
            insufficient_balance_rejections.labels(category=candidate.category.value).inc()
            spend_authorizations.labels(outcome='rejected').inc()
            logger.info("Insufficient category balance", beneficiary=candidate.sender,
                        category=candidate.category.value, available=available, requested=candidate.amount)
            raise InsufficientCategoryBalanceError(candidate.category.value, available, candidate.amount)

        return CategoryBalanceSnapshot(
            available_before_spending=available,
            available_after_spending=available - candidate.amount,
            spent_amount=candidate.amount,
        )

    def _check_limits(self, candidate: Transaction, now: datetime) -> None:
        result = call_with_timeout(
            self.limit_enforcer.check_spending_limits,
            self.settings.query_timeout_seconds,
            "spending_limits",
            candidate.sender,
            candidate.category,
            candidate.amount,
            now,
        )
        if not result.ok:
            violation = result.violation
            limit_rejections.labels(limit_type=violation.limit_type.value, category=violation.category.value).inc()
            spend_authorizations.labels(outcome='rejected').inc()
            raise SpendingLimitExceededError(violation)

    def _append(self, transaction: Transaction, annotation: FraudAnnotation) -> None:
        try:
            self.transaction_store.append(transaction)
            self.transaction_store.attach_annotation(annotation)
        except ReliefGuardError:
            raise
        except Exception as e:
            logger.error("Failed to record transaction", transaction_id=transaction.transaction_id, error=str(e))
            raise StoreUnavailableError("transaction_append", str(e))

    def _record(
        self,
        candidate: Transaction,
        analysis: FraudAnalysisResult,
        snapshot: CategoryBalanceSnapshot,
    ) -> SpendResult:
        requires_review = analysis.recommendation.requires_review
        status = TransactionStatus.PENDING if requires_review else TransactionStatus.CONFIRMED
        transaction = candidate.model_copy(update={"status": status})

        self._append(transaction, FraudAnnotation(
            transaction_id=transaction.transaction_id,
            flags=analysis.flags,
            warnings=analysis.warnings,
            risk_level=analysis.risk_level,
            action=analysis.recommendation.action,
            requires_review=requires_review,
            category_balance=snapshot.model_dump(),
            annotated_at=transaction.created_at,
        ))
        spend_authorizations.labels(outcome=status.value).inc()

        if is_elevated(analysis.risk_level):
            self._flag_vendor(transaction, analysis.risk_level)

        if requires_review:
            notify(self.notifier, NotificationEvent.SPEND_REQUIRES_REVIEW, {
                'transaction_id': transaction.transaction_id,
                'beneficiary': transaction.sender,
                'vendor': transaction.recipient,
                'risk_level': analysis.risk_level.value,
                'flags': [f.pattern.value for f in analysis.flags],
            })

        logger.info(
            "Spend recorded",
            transaction_id=transaction.transaction_id,
            type=transaction.type.value,
            status=status.value,
            risk_level=analysis.risk_level.value,
        )
        return SpendResult(
            transaction_id=transaction.transaction_id,
            status=status,
            risk_level=analysis.risk_level,
            requires_review=requires_review,
            category_balance=snapshot,
        )

    def _flag_vendor(self, transaction: Transaction, risk_level: RiskLevel) -> None:
        try:
            self.suspicion_tracker.flag_vendor(
                transaction.recipient,
                "Suspicious transaction pattern detected",
                severity=SeverityLevel(risk_level.value),
                reported_by=None,
                now=transaction.created_at,
            )
        except (VendorNotFoundError, StateManagerError) as e:
            # Spend stays recorded
            logger.error("Could not flag vendor", vendor_id=transaction.recipient,
                         transaction_id=transaction.transaction_id, error=str(e))

    def _fail_closed(
        self,
        candidate: Transaction,
        snapshot: Optional[CategoryBalanceSnapshot],
        error: StoreUnavailableError,
    ) -> SpendResult:
        """Record the spend as pending manual review instead of approving it"""
        logger.error(
            "Authorization dependency unavailable, failing closed",
            beneficiary=candidate.sender,
            category=candidate.category.value,
            operation=error.operation,
            error=error.message,
        )

        self._append(candidate, FraudAnnotation(
            transaction_id=candidate.transaction_id,
            risk_level=RiskLevel.HIGH,
            action=RecommendedAction.REVIEW,
            requires_review=True,
            system_error=error.message,
            category_balance=snapshot.model_dump() if snapshot else None,
            annotated_at=candidate.created_at,
        ))
        spend_authorizations.labels(outcome='fail_closed').inc()

        notify(self.notifier, NotificationEvent.SPEND_REQUIRES_REVIEW, {
            'transaction_id': candidate.transaction_id,
            'beneficiary': candidate.sender,
            'vendor': candidate.recipient,
            'reason_code': ReasonCode.SYSTEM_ERROR.value,
        })

        return SpendResult(
            transaction_id=candidate.transaction_id,
            status=TransactionStatus.PENDING,
            risk_level=RiskLevel.HIGH,
            requires_review=True,
            reason_code=ReasonCode.SYSTEM_ERROR,
            category_balance=snapshot,
        )
