"""Append-only transaction store interface and in-memory implementation"""

import threading
from abc import ABC, abstractmethod
from collections import defaultdict
from datetime import datetime
from typing import Dict, Iterable, List, Optional
from reliefguard.constants import AidCategory, TransactionStatus, TransactionType
from reliefguard.models.fraud import FraudAnnotation
from reliefguard.models.transaction import Transaction
from reliefguard.utils.errors import ValidationError
from reliefguard.utils.logging import get_logger

logger = get_logger(__name__)


class TransactionStore(ABC):
    """
    Append-only transaction history.

    Transactions are never edited except for the pending -> confirmed/failed
    status transition. Fraud annotations live next to the records, keyed by
    transaction id.
    """

    @abstractmethod
    def append(self, transaction: Transaction) -> Transaction:
        """Record a new transaction"""

    @abstractmethod
    def update_status(self, transaction_id: str, status: TransactionStatus) -> Transaction:
        """Move a pending transaction to confirmed or failed"""

    @abstractmethod
    def get(self, transaction_id: str) -> Optional[Transaction]:
        """Fetch a single transaction"""

    @abstractmethod
    def find(
        self,
        sender: Optional[str] = None,
        recipient: Optional[str] = None,
        types: Optional[Iterable[TransactionType]] = None,
        statuses: Optional[Iterable[TransactionStatus]] = None,
        category: Optional[AidCategory] = None,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        amount: Optional[int] = None,
    ) -> List[Transaction]:
        """Query transactions ordered by created_at ascending"""

    @abstractmethod
    def attach_annotation(self, annotation: FraudAnnotation) -> None:
        """Store the fraud decision alongside its transaction"""

    @abstractmethod
    def get_annotation(self, transaction_id: str) -> Optional[FraudAnnotation]:
        """Fetch the fraud decision for a transaction"""

    @abstractmethod
    def annotations(self, since: Optional[datetime] = None) -> List[FraudAnnotation]:
        """All annotations, optionally since a point in time"""

    def sum_amount(self, **filters) -> int:
        """Sum of amounts matching the find() filters"""
        return sum(txn.amount for txn in self.find(**filters))

    def sum_by_category(self, **filters) -> Dict[AidCategory, int]:
        """Sum of amounts matching the find() filters, grouped by category"""
        totals: Dict[AidCategory, int] = defaultdict(int)
        for txn in self.find(**filters):
            if txn.category is not None:
                totals[txn.category] += txn.amount
        return dict(totals)


class InMemoryTransactionStore(TransactionStore):
    """Thread-safe in-memory store for tests and local development"""

    def __init__(self, transactions: Optional[Iterable[Transaction]] = None):
        self._lock = threading.RLock()
        self._transactions: Dict[str, Transaction] = {}
        self._annotations: Dict[str, FraudAnnotation] = {}
        for txn in transactions or []:
            self.append(txn)

    def append(self, transaction: Transaction) -> Transaction:
        with self._lock:
            if transaction.transaction_id in self._transactions:
                raise ValidationError(f"Transaction already recorded: {transaction.transaction_id}")
            self._transactions[transaction.transaction_id] = transaction

        logger.debug("Transaction appended", transaction_id=transaction.transaction_id,
                     type=transaction.type.value, status=transaction.status.value)
        return transaction

    def update_status(self, transaction_id: str, status: TransactionStatus) -> Transaction:
        with self._lock:
            current = self._transactions.get(transaction_id)
            if current is None:
                raise ValidationError(f"Unknown transaction: {transaction_id}")
            if current.status != TransactionStatus.PENDING or status == TransactionStatus.PENDING:
                raise ValidationError(
                    f"Illegal status transition {current.status.value} -> {status.value}"
                )
            updated = current.model_copy(update={"status": status})
            self._transactions[transaction_id] = updated
            return updated

    def get(self, transaction_id: str) -> Optional[Transaction]:
        with self._lock:
            return self._transactions.get(transaction_id)

    def find(
        self,
        sender: Optional[str] = None,
        recipient: Optional[str] = None,
        types: Optional[Iterable[TransactionType]] = None,
        statuses: Optional[Iterable[TransactionStatus]] = None,
        category: Optional[AidCategory] = None,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        amount: Optional[int] = None,
    ) -> List[Transaction]:
        types = set(types) if types is not None else None
        statuses = set(statuses) if statuses is not None else None

        with self._lock:
            snapshot = list(self._transactions.values())

        matches = [
            txn for txn in snapshot
            if (sender is None or txn.sender == sender)
            and (recipient is None or txn.recipient == recipient)
            and (types is None or txn.type in types)
            and (statuses is None or txn.status in statuses)
            and (category is None or txn.category == category)
            and (since is None or txn.created_at >= since)
            and (until is None or txn.created_at <= until)
            and (amount is None or txn.amount == amount)
        ]
        return sorted(matches, key=lambda txn: txn.created_at)

    def attach_annotation(self, annotation: FraudAnnotation) -> None:
        with self._lock:
            if annotation.transaction_id not in self._transactions:
                raise ValidationError(f"Unknown transaction: {annotation.transaction_id}")
            self._annotations[annotation.transaction_id] = annotation

    def get_annotation(self, transaction_id: str) -> Optional[FraudAnnotation]:
        with self._lock:
            return self._annotations.get(transaction_id)

    def annotations(self, since: Optional[datetime] = None) -> List[FraudAnnotation]:
        with self._lock:
            snapshot = list(self._annotations.values())
        return [a for a in snapshot if since is None or a.annotated_at >= since]
