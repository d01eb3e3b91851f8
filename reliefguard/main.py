"""Main entry point: wires the authorization core and runs a sample spend"""

import sys
from datetime import datetime, timedelta
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables FIRST, before any other imports
# Find the .env file in the project root
env_path = Path(__file__).parent.parent / '.env'
load_dotenv(dotenv_path=env_path)

from reliefguard.constants import AidCategory, TransactionStatus, TransactionType, VendorStatus
from reliefguard.models.spend import SpendRequest
from reliefguard.models.transaction import Transaction
from reliefguard.orchestrator.spend_authorizer import SpendAuthorizer
from reliefguard.stores.balance_oracle import LedgerBalanceOracle
from reliefguard.stores.transaction_store import InMemoryTransactionStore
from reliefguard.tools.statistics_tools import get_fraud_statistics
from reliefguard.utils.config_loader import get_token_decimals, load_config, to_minor_units
from reliefguard.utils.errors import ReliefGuardError
from reliefguard.utils.logging import get_logger

logger = get_logger(__name__)

DEMO_BENEFICIARY = "beneficiary-demo"
DEMO_VENDOR = "vendor-demo"
DEMO_DONOR = "donor-demo"


def seed_demo_ledger(store: InMemoryTransactionStore, decimals: int, now: datetime) -> None:
    """One earmarked Food donation plus an unearmarked donation"""
    store.append(Transaction(
        type=TransactionType.DONATION,
        sender=DEMO_DONOR,
        recipient=DEMO_BENEFICIARY,
        amount=to_minor_units(300, decimals),
        category=AidCategory.FOOD,
        status=TransactionStatus.CONFIRMED,
        created_at=now - timedelta(days=2),
    ))
    store.append(Transaction(
        type=TransactionType.DONATION,
        sender=DEMO_DONOR,
        recipient=DEMO_BENEFICIARY,
        amount=to_minor_units(500, decimals),
        status=TransactionStatus.CONFIRMED,
        created_at=now - timedelta(days=1),
    ))


def main(config_path: str = None):
    """Main entry point"""
    logger.info("=" * 60)
    logger.info("RELIEFGUARD - Spend Authorization Core")
    logger.info("=" * 60)

    try:
        config = load_config(config_path)
        decimals = get_token_decimals(config)
        now = datetime.now()

        store = InMemoryTransactionStore()
        seed_demo_ledger(store, decimals, now)

        authorizer = SpendAuthorizer.from_config(config, store, LedgerBalanceOracle(store))
        authorizer.suspicion_tracker.register_vendor(DEMO_VENDOR, VendorStatus.APPROVED)

        requests = [
            SpendRequest(beneficiary=DEMO_BENEFICIARY, vendor=DEMO_VENDOR, amount="45.50",
                         category="Food", description="Rice and beans"),
            SpendRequest(beneficiary=DEMO_BENEFICIARY, vendor=DEMO_VENDOR, amount="150",
                         category="Clothing", description="Winter coats"),
        ]

        results = []
        for request in requests:
            try:
                result = authorizer.authorize_spend(request, now=now)
                results.append({'category': request.category, **result.model_dump(mode="json")})
            except ReliefGuardError as e:
                results.append({'category': request.category, **e.to_dict()})

        stats = get_fraud_statistics(store, authorizer.suspicion_tracker, '30d', now=now)

        # Print summary
        logger.info("=" * 60)
        logger.info("AUTHORIZATION SUMMARY")
        logger.info("=" * 60)
        for outcome in results:
            logger.info(f"{outcome['category']}: {outcome.get('status') or outcome.get('reason_code')}", outcome=outcome)
        logger.info(f"Suspicious transactions: {stats['suspicious_transactions']['total']}")
        logger.info(f"Flagged vendors: {stats['flagged_vendors']['total']}")
        logger.info("=" * 60)

        return results

    except Exception as e:
        logger.error(f"Main execution failed: {e}")
        raise


if __name__ == "__main__":
    main(sys.argv[1] if len(sys.argv) > 1 else None)
