"""
test_orchestrator.py - Unit tests for TransferOrchestrator

Tests:
- State machine and last_error bookkeeping
- Mint/burn path bypasses guard and tax
- Policy is read exactly once per request
- Guard rejections, ceiling semantics, null funds
- All-or-nothing settlement when a late leg fails
- History, events and verbose output
- Serialized access from several threads
"""

import threading

import pytest

from taxledger import (
    Ledger, TransferOrchestrator, PolicySnapshot, AccountFlags, EventLog,
    TransferState, TransferKind, TaxSplit, TransferEvent,
    TradingDisabled, MaxTxExceeded, MaxWalletExceeded,
    InsufficientBalance, InvalidAccount,
)

from tests.fake_policy import FakePolicySource, WEALTH, CHARITY, make_orchestrator, balances_of


PARTIES = ["alice", "bob", WEALTH, CHARITY]


def _boom(*args, **kwargs):
    raise AssertionError("must not be called on the mint/burn path")


class TestConstruction:

    def test_initial_state(self):
        fresh = TransferOrchestrator(Ledger("x"), FakePolicySource())
        assert fresh.state == TransferState.IDLE
        assert fresh.last_error is None
        assert fresh.history == []

    def test_policy_must_be_a_policy_source(self):
        with pytest.raises(TypeError):
            TransferOrchestrator(Ledger("x"), object())


class TestStateTracking:

    def test_commit_sets_committed(self, taxed_orchestrator):
        taxed_orchestrator.submit_transfer("alice", "bob", 1_000)
        assert taxed_orchestrator.state == TransferState.COMMITTED
        assert taxed_orchestrator.last_error is None

    def test_rejection_sets_rejected_and_error(self, taxed_orchestrator):
        with pytest.raises(InsufficientBalance) as exc:
            taxed_orchestrator.submit_transfer("bob", "alice", 1)
        assert taxed_orchestrator.state == TransferState.REJECTED
        assert taxed_orchestrator.last_error is exc.value

    def test_success_clears_previous_error(self, taxed_orchestrator):
        with pytest.raises(InsufficientBalance):
            taxed_orchestrator.submit_transfer("bob", "alice", 1)
        taxed_orchestrator.submit_transfer("alice", "bob", 1)
        assert taxed_orchestrator.last_error is None

    def test_malformed_amount_raises_before_pipeline(self, taxed_orchestrator):
        with pytest.raises(ValueError):
            taxed_orchestrator.submit_transfer("alice", "bob", -5)
        assert taxed_orchestrator.state == TransferState.COMMITTED  # from the initial mint
        assert taxed_orchestrator.last_error is None


class TestMintAndBurn:

    def test_mint_bypasses_guard_and_tax(self, monkeypatch):
        source = FakePolicySource(PolicySnapshot(trading_enabled=False, max_tx_amount=1, max_wallet_amount=1))
        orchestrator = TransferOrchestrator(Ledger("x"), source)
        monkeypatch.setattr("taxledger.orchestrator.compute_tax", _boom)
        monkeypatch.setattr("taxledger.orchestrator.check_trading_gate", _boom)
        monkeypatch.setattr("taxledger.orchestrator.check_max_tx", _boom)
        monkeypatch.setattr("taxledger.orchestrator.check_max_wallet", _boom)

        record = orchestrator.submit_transfer(None, "alice", 5_000)
        assert record.kind == TransferKind.MINT
        assert record.split == TaxSplit(principal=5_000)
        assert orchestrator.balance_of("alice") == 5_000
        assert orchestrator.total_supply() == 5_000

        record = orchestrator.submit_transfer("alice", None, 2_000)
        assert record.kind == TransferKind.BURN
        assert orchestrator.balance_of("alice") == 3_000
        assert orchestrator.total_supply() == 3_000

    def test_mint_and_burn_never_read_policy(self):
        source = FakePolicySource()
        orchestrator = TransferOrchestrator(Ledger("x"), source)
        orchestrator.submit_transfer(None, "alice", 10)
        orchestrator.submit_transfer("alice", None, 10)
        assert source.snapshot_reads == 0
        assert source.flag_reads == []

    def test_burn_insufficient(self, taxed_orchestrator):
        with pytest.raises(InsufficientBalance):
            taxed_orchestrator.submit_transfer("bob", None, 1)
        assert taxed_orchestrator.total_supply() == 100_000

    def test_both_sides_null_rejected(self, taxed_orchestrator):
        with pytest.raises(InvalidAccount):
            taxed_orchestrator.submit_transfer(None, None, 1)
        assert taxed_orchestrator.state == TransferState.REJECTED


class TestPolicyReads:

    def test_snapshot_and_flags_read_once(self):
        ledger = Ledger("x")
        ledger.mint("alice", 1_000)
        source = FakePolicySource()
        orchestrator = TransferOrchestrator(ledger, source)
        orchestrator.submit_transfer("alice", "bob", 10)
        assert source.snapshot_reads == 1
        assert source.flag_reads == ["alice", "bob"]

    def test_policy_change_mid_request_not_observed(self):
        ledger = Ledger("x")
        ledger.mint("alice", 1_000)
        source = FakePolicySource(PolicySnapshot(wealth_fund=WEALTH, charity_fund=CHARITY))

        def raise_tax(account):
            source.snapshot = PolicySnapshot(
                transfer_tax_bps=500, wealth_fund=WEALTH, charity_fund=CHARITY,
            )

        source.on_flags_read = raise_tax
        orchestrator = TransferOrchestrator(ledger, source)
        record = orchestrator.submit_transfer("alice", "bob", 1_000)
        assert record.split.tax == 0
        assert ledger.balance_of("bob") == 1_000

        source.on_flags_read = None
        record = orchestrator.submit_transfer("bob", "alice", 1_000)
        assert record.split.tax == 50


class TestTaxedTransfer:

    def test_sixty_forty_split(self, taxed_orchestrator):
        record = taxed_orchestrator.submit_transfer("alice", "bob", 1_000)
        assert record.kind == TransferKind.TRANSFER
        assert record.split == TaxSplit(principal=950, wealth_cut=30, charity_cut=20)
        assert balances_of(taxed_orchestrator.ledger, PARTIES) == {
            "alice": 99_000, "bob": 950, WEALTH: 30, CHARITY: 20,
        }
        assert taxed_orchestrator.total_supply() == 100_000

    def test_fee_exempt_party_pays_nothing(self, taxed_snapshot):
        orchestrator = make_orchestrator(
            taxed_snapshot,
            flags={"bob": AccountFlags(fee_exempt=True)},
            balances={"alice": 10_000},
        )
        orchestrator.submit_transfer("alice", "bob", 1_000)
        assert orchestrator.balance_of("bob") == 1_000
        assert orchestrator.balance_of(WEALTH) == 0

    def test_tax_legs_are_journaled_before_principal(self, taxed_orchestrator):
        postings = len(taxed_orchestrator.ledger.journal)
        taxed_orchestrator.submit_transfer("alice", "bob", 1_000)
        new = taxed_orchestrator.ledger.journal[postings:]
        assert [(p.recipient, p.amount) for p in new] == [(WEALTH, 30), (CHARITY, 20), ("bob", 950)]

    def test_dust_transfer_untaxed(self, taxed_orchestrator):
        record = taxed_orchestrator.submit_transfer("alice", "bob", 19)
        assert record.split.tax == 0
        assert taxed_orchestrator.balance_of("bob") == 19

    def test_transfer_to_fund_counts_tax(self, taxed_orchestrator):
        taxed_orchestrator.submit_transfer("alice", WEALTH, 1_000)
        assert taxed_orchestrator.balance_of(WEALTH) == 980
        assert taxed_orchestrator.balance_of(CHARITY) == 20

    def test_self_transfer_pays_tax(self, taxed_orchestrator):
        taxed_orchestrator.submit_transfer("alice", "alice", 1_000)
        assert taxed_orchestrator.balance_of("alice") == 99_950
        assert taxed_orchestrator.total_supply() == 100_000

    def test_zero_amount_commits_empty_record(self, taxed_orchestrator):
        version = taxed_orchestrator.ledger.version
        record = taxed_orchestrator.submit_transfer("alice", "bob", 0)
        assert record.split == TaxSplit(principal=0)
        assert taxed_orchestrator.state == TransferState.COMMITTED
        assert taxed_orchestrator.ledger.version == version

    def test_null_fund_with_nonzero_cut_rejected(self):
        snapshot = PolicySnapshot(transfer_tax_bps=500, wealth_fund=None, charity_fund=CHARITY)
        orchestrator = make_orchestrator(snapshot, balances={"alice": 10_000})
        with pytest.raises(InvalidAccount):
            orchestrator.submit_transfer("alice", "bob", 1_000)
        assert orchestrator.balance_of("alice") == 10_000
        assert orchestrator.balance_of(CHARITY) == 0

    def test_null_fund_with_zero_cut_allowed(self):
        # 20 * 5% = 1, wealth floor(0.5) = 0, charity takes 1
        snapshot = PolicySnapshot(transfer_tax_bps=500, wealth_fund=None, charity_fund=CHARITY)
        orchestrator = make_orchestrator(snapshot, balances={"alice": 10_000})
        orchestrator.submit_transfer("alice", "bob", 20)
        assert orchestrator.balance_of(CHARITY) == 1
        assert orchestrator.balance_of("bob") == 19

    def test_empty_account_id_rejected(self, taxed_orchestrator):
        with pytest.raises(InvalidAccount):
            taxed_orchestrator.submit_transfer("alice", "", 1)


class TestGuardIntegration:

    def test_trading_disabled(self):
        orchestrator = make_orchestrator(PolicySnapshot(trading_enabled=False), balances={"alice": 100})
        with pytest.raises(TradingDisabled):
            orchestrator.submit_transfer("alice", "bob", 10)
        assert orchestrator.balance_of("alice") == 100

    def test_trading_disabled_limit_exempt_sender(self):
        orchestrator = make_orchestrator(
            PolicySnapshot(trading_enabled=False),
            flags={"alice": AccountFlags(limit_exempt=True)},
            balances={"alice": 100},
        )
        orchestrator.submit_transfer("alice", "bob", 10)
        assert orchestrator.balance_of("bob") == 10

    def test_max_tx_applies_to_gross(self):
        snapshot = PolicySnapshot(
            max_tx_amount=1_000, transfer_tax_bps=500,
            wealth_share_bps=6_000, charity_share_bps=4_000,
            wealth_fund=WEALTH, charity_fund=CHARITY,
        )
        orchestrator = make_orchestrator(snapshot, balances={"alice": 10_000})
        orchestrator.submit_transfer("alice", "bob", 1_000)
        with pytest.raises(MaxTxExceeded) as exc:
            orchestrator.submit_transfer("alice", "bob", 1_001)
        assert exc.value.amount == 1_001

    def test_max_wallet_uses_principal(self):
        snapshot = PolicySnapshot(
            max_wallet_amount=1_000, transfer_tax_bps=500,
            wealth_fund=WEALTH, charity_fund=CHARITY,
        )
        orchestrator = make_orchestrator(snapshot, balances={"alice": 10_000, "bob": 950})
        # 52 gross -> 2 tax, principal 50 lands bob exactly on the ceiling
        orchestrator.submit_transfer("alice", "bob", 52)
        assert orchestrator.balance_of("bob") == 1_000

    def test_max_wallet_failure_rolls_back_tax_legs(self):
        snapshot = PolicySnapshot(
            max_wallet_amount=1_000, transfer_tax_bps=500,
            wealth_fund=WEALTH, charity_fund=CHARITY,
        )
        orchestrator = make_orchestrator(snapshot, balances={"alice": 10_000, "bob": 950})
        before = balances_of(orchestrator.ledger, PARTIES)
        version = orchestrator.ledger.version
        with pytest.raises(MaxWalletExceeded) as exc:
            orchestrator.submit_transfer("alice", "bob", 60)
        assert exc.value.projected == 950 + 57
        assert balances_of(orchestrator.ledger, PARTIES) == before
        assert orchestrator.ledger.version == version
        assert len(orchestrator.history) == 2

    def test_principal_failure_rolls_back_tax_legs(self, taxed_snapshot):
        orchestrator = make_orchestrator(taxed_snapshot, balances={"alice": 100})
        # wealth 30 and charity 20 fit in 100, principal 950 does not
        with pytest.raises(InsufficientBalance):
            orchestrator.submit_transfer("alice", "bob", 1_000)
        assert balances_of(orchestrator.ledger, PARTIES) == {
            "alice": 100, "bob": 0, WEALTH: 0, CHARITY: 0,
        }

    def test_rejected_request_emits_no_event(self, taxed_orchestrator):
        count = len(taxed_orchestrator.events)
        with pytest.raises(InsufficientBalance):
            taxed_orchestrator.submit_transfer("bob", "alice", 1)
        assert len(taxed_orchestrator.events) == count


class TestHistoryAndEvents:

    def test_history_sequence(self, taxed_orchestrator):
        taxed_orchestrator.submit_transfer("alice", "bob", 10)
        with pytest.raises(InsufficientBalance):
            taxed_orchestrator.submit_transfer("carol", "bob", 10)
        taxed_orchestrator.submit_transfer("bob", "alice", 5)
        assert [r.sequence for r in taxed_orchestrator.history] == [0, 1, 2]
        assert [r.kind for r in taxed_orchestrator.history] == [
            TransferKind.MINT, TransferKind.TRANSFER, TransferKind.TRANSFER,
        ]

    def test_transfer_event_matches_record(self, taxed_orchestrator):
        record = taxed_orchestrator.submit_transfer("alice", "bob", 1_000)
        event = taxed_orchestrator.events.transfers()[-1]
        assert event == TransferEvent.from_record(record)
        assert event.gross_amount == 1_000
        assert (event.principal, event.wealth_cut, event.charity_cut) == (950, 30, 20)

    def test_listener_may_submit_nested_transfer(self, taxed_snapshot):
        events = EventLog()
        ledger = Ledger("x")
        ledger.mint("alice", 10_000)
        orchestrator = TransferOrchestrator(ledger, FakePolicySource(taxed_snapshot), events=events)

        def forward(event):
            if event.recipient == "relay":
                orchestrator.submit_transfer("relay", "carol", event.principal)

        events.subscribe(forward)
        orchestrator.submit_transfer("alice", "relay", 1_000)
        assert orchestrator.balance_of("relay") == 0
        assert orchestrator.balance_of("carol") == 950 - 47
        assert len(orchestrator.history) == 2

    def test_raising_listener_does_not_fail_commit(self, taxed_orchestrator):
        seen = []

        def broken(event):
            raise RuntimeError("listener down")

        taxed_orchestrator.events.subscribe(broken)
        taxed_orchestrator.events.subscribe(seen.append)

        record = taxed_orchestrator.submit_transfer("alice", "bob", 1_000)
        assert record.split.principal == 950
        assert taxed_orchestrator.state == TransferState.COMMITTED
        assert taxed_orchestrator.last_error is None
        assert taxed_orchestrator.balance_of("bob") == 950
        assert seen == [TransferEvent.from_record(record)]

        [failure] = taxed_orchestrator.events.failures
        assert failure.listener is broken
        assert isinstance(failure.error, RuntimeError)
        assert failure.event == seen[0]

    def test_verbose_output(self, capsys, taxed_snapshot):
        ledger = Ledger("x")
        ledger.mint("alice", 100)
        orchestrator = TransferOrchestrator(ledger, FakePolicySource(taxed_snapshot), verbose=True)
        orchestrator.submit_transfer("alice", "bob", 10)
        with pytest.raises(InsufficientBalance):
            orchestrator.submit_transfer("bob", "alice", 1_000)
        out = capsys.readouterr().out
        assert "COMMITTED" in out
        assert "REJECTED" in out
        assert "InsufficientBalance" in out


class TestConcurrency:

    def test_parallel_submitters_are_serialized(self, taxed_snapshot):
        orchestrator = make_orchestrator(taxed_snapshot, balances={"alice": 1_000_000})
        errors = []

        def worker(name):
            try:
                for _ in range(50):
                    orchestrator.submit_transfer("alice", name, 100)
            except Exception as e:  # surfaced below
                errors.append(e)

        threads = [threading.Thread(target=worker, args=(f"r{i}",)) for i in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert len(orchestrator.history) == 1 + 200
        assert [r.sequence for r in orchestrator.history] == list(range(201))
        assert orchestrator.balance_of("alice") == 1_000_000 - 200 * 100
        for i in range(4):
            assert orchestrator.balance_of(f"r{i}") == 50 * 95
        assert orchestrator.ledger.verify_conservation(expected_supply=1_000_000)['valid']
