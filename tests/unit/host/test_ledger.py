"""Tests for the host ledger: transactions, signatures, invocation and deposits."""

import pytest

from flipper.config import FlipperConfig
from flipper.errors import (
    AccountAlreadyExists,
    AccountNotFound,
    CallDepthExceeded,
    ComputeBudgetExceeded,
    InsufficientFunds,
    InvalidAccountData,
    MissingSignature,
    UnknownProgram,
)
from flipper.events import OperatorAdded
from flipper.host.addresses import address_for, derive_address
from flipper.host.instruction import AccountMeta, Instruction
from flipper.host.ledger import Ledger
from flipper.models.accounts import GlobalManager, PoolInfo

ALICE = address_for("alice")
BOB = address_for("bob")
PROGRAM = address_for("program:test")
OTHER_PROGRAM = address_for("program:other")
TARGET = address_for("account:target")


@pytest.fixture
def ledger() -> Ledger:
    ledger = Ledger()
    ledger.airdrop(ALICE, 10**12)
    return ledger


class TestTransactions:
    """Tests for the atomic operation boundary."""

    def test_failure_rolls_back_accounts_and_events(self, ledger):
        """Everything written inside a failed transaction disappears."""
        before = ledger.lamports(ALICE)
        with pytest.raises(RuntimeError), ledger.transaction(signers=[ALICE]):
            ledger.create_account(TARGET, PROGRAM, 10, GlobalManager(manager=ALICE), ALICE)
            ledger.emit(OperatorAdded(operator=BOB))
            raise RuntimeError("abort")

        assert not ledger.exists(TARGET)
        assert ledger.lamports(ALICE) == before
        assert ledger.events == []

    def test_success_commits(self, ledger):
        with ledger.transaction(signers=[ALICE]):
            ledger.create_account(TARGET, PROGRAM, 10, GlobalManager(manager=ALICE), ALICE)
        assert ledger.read(TARGET, GlobalManager).manager == ALICE

    def test_in_place_mutation_rolls_back(self, ledger):
        """Models mutated in place are restored from the snapshot."""
        with ledger.transaction(signers=[ALICE]):
            ledger.create_account(TARGET, PROGRAM, 10, GlobalManager(manager=ALICE), ALICE)

        with pytest.raises(RuntimeError), ledger.transaction(signers=[ALICE]):
            ledger.read(TARGET, GlobalManager).manager = BOB
            raise RuntimeError("abort")

        assert ledger.read(TARGET, GlobalManager).manager == ALICE

    def test_nested_transaction_joins_and_adds_signers(self, ledger):
        with ledger.transaction(signers=[ALICE]):
            assert not ledger.is_signer(BOB)
            with ledger.transaction(signers=[BOB]):
                assert ledger.is_signer(ALICE)
                assert ledger.is_signer(BOB)
            assert not ledger.is_signer(BOB)

    def test_no_signers_outside_transaction(self, ledger):
        with pytest.raises(MissingSignature):
            ledger.require_signer(ALICE)


class TestAccounts:
    """Tests for allocation, typed reads and storage deposits."""

    def test_create_debits_storage_deposit(self, ledger):
        before = ledger.lamports(ALICE)
        with ledger.transaction(signers=[ALICE]):
            ledger.create_account(TARGET, PROGRAM, 100, GlobalManager(manager=ALICE), ALICE)
        deposit = (128 + 100) * 6960
        assert ledger.lamports(ALICE) == before - deposit
        assert ledger.lamports(TARGET) == deposit

    def test_create_requires_payer_signature(self, ledger):
        with pytest.raises(MissingSignature), ledger.transaction(signers=[BOB]):
            ledger.create_account(TARGET, PROGRAM, 10, None, ALICE)

    def test_create_requires_funds(self, ledger):
        with pytest.raises(InsufficientFunds), ledger.transaction(signers=[BOB]):
            ledger.create_account(TARGET, PROGRAM, 10, None, BOB)

    def test_create_twice_rejected(self, ledger):
        with ledger.transaction(signers=[ALICE]):
            ledger.create_account(TARGET, PROGRAM, 10, None, ALICE)
        with pytest.raises(AccountAlreadyExists), ledger.transaction(signers=[ALICE]):
            ledger.create_account(TARGET, PROGRAM, 10, None, ALICE)

    def test_close_returns_deposit(self, ledger):
        with ledger.transaction(signers=[ALICE]):
            ledger.create_account(TARGET, PROGRAM, 10, None, ALICE)
        deposit = ledger.lamports(TARGET)
        with ledger.transaction():
            assert ledger.close_account(TARGET, BOB) == deposit
        assert ledger.lamports(BOB) == deposit
        assert not ledger.exists(TARGET)

    def test_read_checks_kind_and_owner(self, ledger):
        with ledger.transaction(signers=[ALICE]):
            ledger.create_account(TARGET, PROGRAM, 10, GlobalManager(manager=ALICE), ALICE)
        with pytest.raises(InvalidAccountData):
            ledger.read(TARGET, PoolInfo)
        with pytest.raises(InvalidAccountData):
            ledger.read(TARGET, GlobalManager, owner=OTHER_PROGRAM)
        with pytest.raises(AccountNotFound):
            ledger.read(address_for("missing"), GlobalManager)


class TestInvoke:
    """Tests for nested program invocation."""

    def test_unknown_program(self, ledger):
        with pytest.raises(UnknownProgram), ledger.transaction():
            ledger.invoke(Instruction(OTHER_PROGRAM))

    def test_signer_seeds_sign_for_derived_address(self, ledger):
        """A caller can sign for its own derived address when invoking."""
        seen = []

        def handler(ledger_, accounts, data):
            seen.append(ledger_.is_signer(accounts[0].pubkey))

        ledger.register_program(OTHER_PROGRAM, handler)
        derived = derive_address(PROGRAM, b"seed")
        with ledger.transaction(program_id=PROGRAM):
            ledger.invoke(
                Instruction(OTHER_PROGRAM, [AccountMeta.readonly(derived, is_signer=True)]),
                signer_seeds=[(b"seed",)],
            )
        assert seen == [True]

    def test_unsigned_signer_meta_rejected(self, ledger):
        ledger.register_program(OTHER_PROGRAM, lambda *_: None)
        with pytest.raises(MissingSignature), ledger.transaction(program_id=PROGRAM):
            ledger.invoke(Instruction(OTHER_PROGRAM, [AccountMeta.readonly(BOB, is_signer=True)]))

    def test_caller_signatures_carry_into_callee(self, ledger):
        seen = []
        ledger.register_program(OTHER_PROGRAM, lambda ledger_, *_: seen.append(ledger_.is_signer(ALICE)))
        with ledger.transaction(signers=[ALICE]):
            ledger.invoke(Instruction(OTHER_PROGRAM))
        assert seen == [True]

    def test_depth_limit(self, ledger):
        """Recursion stops at the configured invocation depth."""
        depths = []

        def recurse(ledger_, accounts, data):
            depths.append(ledger_.depth)
            ledger_.invoke(Instruction(OTHER_PROGRAM))

        ledger.register_program(OTHER_PROGRAM, recurse)
        with pytest.raises(CallDepthExceeded), ledger.transaction():
            ledger.invoke(Instruction(OTHER_PROGRAM))
        assert depths == [2, 3, 4]

    def test_compute_budget(self):
        ledger = Ledger(FlipperConfig(compute_units=2_500, invoke_cost=1_000))
        ledger.register_program(OTHER_PROGRAM, lambda *_: None)
        with pytest.raises(ComputeBudgetExceeded), ledger.transaction():
            for _ in range(3):
                ledger.invoke(Instruction(OTHER_PROGRAM))

    def test_budget_resets_per_operation(self):
        ledger = Ledger(FlipperConfig(compute_units=2_500, invoke_cost=1_000))
        ledger.register_program(OTHER_PROGRAM, lambda *_: None)
        for _ in range(3):
            with ledger.transaction():
                ledger.invoke(Instruction(OTHER_PROGRAM))
                ledger.invoke(Instruction(OTHER_PROGRAM))


class TestEvents:
    def test_emit_records_and_filters(self, ledger):
        with ledger.transaction():
            ledger.emit(OperatorAdded(operator=BOB))
        assert ledger.events_of(OperatorAdded) == [OperatorAdded(operator=BOB)]
        assert OperatorAdded.event_name() == "operator_added"
