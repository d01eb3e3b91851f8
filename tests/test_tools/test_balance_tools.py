"""Unit tests for category balance allocation"""

import pytest
from reliefguard.constants import AidCategory, TransactionStatus, TransactionType
from reliefguard.tools.balance_tools import allocate_category_balances, compute_category_balances
from conftest import BENEFICIARY, make_donation, make_txn


def test_fallback_share_split_across_unfunded_categories():
    """Wallet 1000 with 600 earmarked for Food and Medical: 4 unfunded categories get 100 each"""
    received = {AidCategory.FOOD: 400, AidCategory.MEDICAL: 200}
    balances = allocate_category_balances(received, {}, 1000)
    by_category = {b.category: b for b in balances}

    assert by_category[AidCategory.FOOD].available_balance == 400
    assert by_category[AidCategory.MEDICAL].available_balance == 200
    for category in (AidCategory.SHELTER, AidCategory.WATER, AidCategory.CLOTHING,
                     AidCategory.EMERGENCY_SUPPLIES):
        assert by_category[category].available_balance == 100
        assert by_category[category].uses_fallback_allocation is True
    assert by_category[AidCategory.FOOD].uses_fallback_allocation is False


def test_funded_category_balance_is_received_minus_spent():
    """Earmarked category balance is received minus confirmed spend"""
    balances = allocate_category_balances({AidCategory.FOOD: 300}, {AidCategory.FOOD: 120}, 180)
    food = next(b for b in balances if b.category == AidCategory.FOOD)

    assert food.total_received == 300
    assert food.total_spent == 120
    assert food.available_balance == 180


def test_balances_never_negative():
    """Overspent categories and wallets below earmarked totals clamp to zero"""
    balances = allocate_category_balances({AidCategory.FOOD: 100}, {AidCategory.FOOD: 150}, 50)

    assert all(b.available_balance >= 0 for b in balances)
    food = next(b for b in balances if b.category == AidCategory.FOOD)
    assert food.available_balance == 0


def test_no_fallback_when_wallet_fully_earmarked():
    """Unfunded categories get nothing when there is no unallocated balance"""
    balances = allocate_category_balances({AidCategory.FOOD: 500}, {}, 500)
    unfunded = [b for b in balances if b.category != AidCategory.FOOD]

    assert all(b.available_balance == 0 for b in unfunded)


def test_fallback_remainder_stays_unallocated():
    """Integer division remainder is not handed out"""
    balances = allocate_category_balances({AidCategory.FOOD: 100}, {}, 107)
    clothing = next(b for b in balances if b.category == AidCategory.CLOTHING)

    assert clothing.available_balance == 1  # 7 // 5
    assert sum(b.available_balance for b in balances) == 105


def test_compute_category_balances_sums_match_wallet_when_all_funded(store):
    """With every category earmarked and in sync, balances sum to the wallet"""
    for category in AidCategory:
        store.append(make_donation(100, category=category))
    store.append(make_txn(30, category=AidCategory.WATER))

    report = compute_category_balances(store, BENEFICIARY, 570)

    assert sum(b.available_balance for b in report.balances) == 570
    assert report.discrepancy == 0
    assert report.for_category(AidCategory.WATER).available_balance == 70


def test_compute_category_balances_ignores_pending_and_other_parties(store):
    """Only confirmed transactions of the beneficiary count"""
    store.append(make_donation(300, category=AidCategory.FOOD))
    store.append(make_donation(900, category=AidCategory.FOOD, recipient="someone-else"))
    store.append(make_txn(50, status=TransactionStatus.PENDING))
    store.append(make_txn(20, type=TransactionType.VENDOR_PAYMENT))

    report = compute_category_balances(store, BENEFICIARY, 280)
    food = report.for_category(AidCategory.FOOD)

    assert food.total_received == 300
    assert food.total_spent == 20
    assert food.available_balance == 280


def test_compute_category_balances_reports_discrepancy(store):
    """Wallet drift from the category total is reported, not corrected"""
    store.append(make_donation(300, category=AidCategory.FOOD))

    report = compute_category_balances(store, BENEFICIARY, 250)

    assert report.for_category(AidCategory.FOOD).available_balance == 300
    assert report.unallocated_balance == -50
    assert report.discrepancy == 50


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
