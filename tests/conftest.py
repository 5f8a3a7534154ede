"""
conftest.py - Shared pytest fixtures for taxledger tests

Provides common fixtures used across unit, conformance and functional tests:
- Ledgers (empty, funded)
- Policy snapshots (untaxed, the 5% / 60-40 split)
- Orchestrator under the taxed snapshot
"""

import pytest

from taxledger import Ledger, PolicySnapshot

from tests.fake_policy import WEALTH, CHARITY, make_orchestrator


# =============================================================================
# BASIC FIXTURES
# =============================================================================

@pytest.fixture
def ledger():
    """Fresh ledger with no balances."""
    return Ledger("test")


@pytest.fixture
def funded_ledger():
    """Ledger with alice holding 10,000 and bob holding 500."""
    ledger = Ledger("test")
    ledger.mint("alice", 10_000)
    ledger.mint("bob", 500)
    return ledger


@pytest.fixture
def plain_snapshot():
    """Trading on, no tax, no ceilings."""
    return PolicySnapshot(wealth_fund=WEALTH, charity_fund=CHARITY)


@pytest.fixture
def taxed_snapshot():
    """5% tax split 60/40 between the wealth and charity funds."""
    return PolicySnapshot(
        transfer_tax_bps=500,
        wealth_share_bps=6_000,
        charity_share_bps=4_000,
        wealth_fund=WEALTH,
        charity_fund=CHARITY,
    )


@pytest.fixture
def taxed_orchestrator(taxed_snapshot):
    """Orchestrator under the taxed snapshot with alice holding 100,000."""
    return make_orchestrator(taxed_snapshot, balances={"alice": 100_000})
