"""In-memory host ledger.

The ledger stands in for the chain the program runs on. It provides:

- An account directory keyed by address; each account has an owning
  program, a lamport balance (its storage deposit) and typed data
- A clock used for order expiry
- A program registry and nested invocation with a signer stack, a depth
  limit and a shared compute meter
- ``transaction()``, the all-or-nothing boundary every operation runs in:
  state is snapshotted on entry and restored if anything raises
- An event log

Operations on one ledger are serialized by a re-entrant lock, which is the
host-level write serialization the program relies on; the program itself
never locks.
"""

from __future__ import annotations

import copy
import threading
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol, TypeVar

import structlog

from flipper.config import DEFAULT_CONFIG, FlipperConfig
from flipper.constants import SYSTEM_PROGRAM_ID
from flipper.errors import (
    AccountAlreadyExists,
    AccountNotFound,
    CallDepthExceeded,
    InsufficientFunds,
    InvalidAccountData,
    MissingSignature,
    UnknownProgram,
)
from flipper.host.addresses import derive_address
from flipper.host.budget import ComputeMeter
from flipper.host.instruction import AccountMeta, Instruction
from flipper.host.token import TokenProgram
from flipper.models.types import normalize_address

if TYPE_CHECKING:
    from flipper.events import Event

logger = structlog.get_logger()

T = TypeVar("T")


class ProgramHandler(Protocol):
    """Entry point of a deployed program."""

    def __call__(self, ledger: Ledger, accounts: list[AccountMeta], data: bytes) -> None:
        """Process one instruction."""
        ...


@dataclass
class Account:
    """One ledger account."""

    owner: str
    lamports: int = 0
    space: int = 0
    data: Any = None


@dataclass(frozen=True)
class _Frame:
    program_id: str
    signers: frozenset[str]


class Ledger:
    """Account store, program host and transaction boundary."""

    def __init__(self, config: FlipperConfig = DEFAULT_CONFIG, clock: int = 0) -> None:
        self.config = config
        self.clock = clock
        self.events: list[Event] = []
        self._accounts: dict[str, Account] = {}
        self._programs: dict[str, ProgramHandler] = {}
        self._frames: list[_Frame] = []
        self._lock = threading.RLock()
        self.meter: ComputeMeter | None = None
        self.token = TokenProgram(self)

    # --- Transactions ---

    @contextmanager
    def transaction(
        self, signers: Iterable[str] = (), program_id: str | None = None
    ) -> Iterator[Ledger]:
        """Run a block as one atomic operation.

        The outermost transaction snapshots accounts and the event log and
        restores both if the block raises; it also starts a fresh compute
        meter. A nested transaction joins the enclosing one, adding its
        signers for the duration of the block.

        Args:
            signers: Addresses that signed the operation
            program_id: Program the operation is addressed to
                (default: the configured program id)
        """
        frame_signers = frozenset(normalize_address(s, validate=True) for s in signers)
        with self._lock:
            if self._frames:
                parent = self._frames[-1]
                self._frames.append(
                    _Frame(program_id or parent.program_id, parent.signers | frame_signers)
                )
                try:
                    yield self
                finally:
                    self._frames.pop()
                return

            accounts_before = copy.deepcopy(self._accounts)
            events_before = len(self.events)
            self.meter = ComputeMeter(self.config.compute_units)
            self._frames.append(_Frame(program_id or self.config.program_id, frame_signers))
            try:
                yield self
            except BaseException as err:
                self._accounts = accounts_before
                del self.events[events_before:]
                logger.debug("transaction_rolled_back", error=type(err).__name__)
                raise
            finally:
                self._frames.clear()
                self.meter = None

    @property
    def current_program(self) -> str:
        if not self._frames:
            return self.config.program_id
        return self._frames[-1].program_id

    @property
    def depth(self) -> int:
        return len(self._frames)

    def consume(self, units: int) -> None:
        """Draw compute units from the running operation's budget."""
        if self.meter is not None:
            self.meter.consume(units)

    # --- Signatures ---

    def is_signer(self, address: str) -> bool:
        if not self._frames:
            return False
        return normalize_address(address) in self._frames[-1].signers

    def require_signer(self, address: str) -> None:
        """Raise MissingSignature unless ``address`` signed the current frame."""
        if not self.is_signer(address):
            raise MissingSignature(address)

    @contextmanager
    def sign_with(self, *seeds: bytes) -> Iterator[str]:
        """Sign as the current program's derived address for ``seeds``.

        Yields the derived address, which is a signer until the block exits.
        """
        if not self._frames:
            raise MissingSignature(derive_address(self.current_program, *seeds))
        parent = self._frames[-1]
        address = derive_address(parent.program_id, *seeds)
        self._frames.append(_Frame(parent.program_id, parent.signers | {address}))
        try:
            yield address
        finally:
            self._frames.pop()

    # --- Programs ---

    def register_program(self, program_id: str, handler: ProgramHandler) -> None:
        """Deploy a program at ``program_id``."""
        program_id = normalize_address(program_id, validate=True)
        self._programs[program_id] = handler
        if program_id not in self._accounts:
            self._accounts[program_id] = Account(owner=SYSTEM_PROGRAM_ID, data=b"program")

    def invoke(self, instruction: Instruction, signer_seeds: Iterable[tuple[bytes, ...]] = ()) -> None:
        """Invoke another program from the current one.

        Signatures held by the caller carry into the callee. Each seed tuple
        in ``signer_seeds`` adds the caller's derived address for it as an
        extra signer.

        Raises:
            UnknownProgram: If nothing is deployed at the target
            CallDepthExceeded: If the nesting limit would be exceeded
            MissingSignature: If an account flagged as signer did not sign
        """
        program_id = normalize_address(instruction.program_id, validate=True)
        handler = self._programs.get(program_id)
        if handler is None:
            raise UnknownProgram(f"No program deployed at {program_id}")
        if self.depth >= self.config.max_cpi_depth:
            raise CallDepthExceeded(
                f"Invocation depth {self.depth + 1} exceeds {self.config.max_cpi_depth}"
            )
        self.consume(self.config.invoke_cost)

        caller = self._frames[-1] if self._frames else _Frame(self.current_program, frozenset())
        signers = set(caller.signers)
        for seeds in signer_seeds:
            signers.add(derive_address(caller.program_id, *seeds))
        for meta in instruction.accounts:
            if meta.is_signer and meta.pubkey not in signers:
                raise MissingSignature(meta.pubkey)

        logger.debug(
            "program_invoked",
            program_id=program_id,
            depth=self.depth + 1,
            accounts=len(instruction.accounts),
        )
        self._frames.append(_Frame(program_id, frozenset(signers)))
        try:
            handler(self, list(instruction.accounts), instruction.data)
        finally:
            self._frames.pop()

    # --- Accounts ---

    def exists(self, address: str) -> bool:
        return normalize_address(address) in self._accounts

    def get_account(self, address: str) -> Account:
        address = normalize_address(address)
        account = self._accounts.get(address)
        if account is None:
            raise AccountNotFound(address)
        return account

    def read(self, address: str, kind: type[T], owner: str | None = None) -> T:
        """Return an account's data, checking its type and owning program.

        Raises:
            AccountNotFound: If no account exists at ``address``
            InvalidAccountData: If the data is not a ``kind`` or the owner differs
        """
        account = self.get_account(address)
        if owner is not None and account.owner != normalize_address(owner):
            raise InvalidAccountData(f"Account {address} is not owned by {owner}")
        if not isinstance(account.data, kind):
            raise InvalidAccountData(
                f"Account {address} holds {type(account.data).__name__}, expected {kind.__name__}"
            )
        return account.data

    def create_account(self, address: str, owner: str, space: int, data: Any, payer: str) -> Account:
        """Allocate an account funded with its storage deposit by ``payer``.

        Raises:
            AccountAlreadyExists: If the address is in use
            MissingSignature: If the payer did not sign
            InsufficientFunds: If the payer cannot cover the deposit
        """
        address = normalize_address(address, validate=True)
        if address in self._accounts:
            raise AccountAlreadyExists(address)
        deposit = self.config.storage_deposit(space)
        self.debit_lamports(payer, deposit)
        account = Account(owner=normalize_address(owner), lamports=deposit, space=space, data=data)
        self._accounts[address] = account
        logger.debug("account_created", address=address, owner=owner, space=space, deposit=deposit)
        return account

    def put_account(self, address: str, account: Account) -> None:
        """Place an account directly, bypassing deposits (state restore)."""
        self._accounts[normalize_address(address, validate=True)] = account

    def close_account(self, address: str, destination: str) -> int:
        """Delete an account and move its lamports to ``destination``.

        Returns:
            Lamports reclaimed
        """
        account = self.get_account(address)
        del self._accounts[normalize_address(address)]
        self.credit_lamports(destination, account.lamports)
        logger.debug("account_closed", address=address, destination=destination, lamports=account.lamports)
        return account.lamports

    # --- Lamports ---

    def lamports(self, address: str) -> int:
        account = self._accounts.get(normalize_address(address))
        return 0 if account is None else account.lamports

    def airdrop(self, address: str, lamports: int) -> None:
        """Credit lamports to a wallet (test and bootstrap helper)."""
        self.credit_lamports(address, lamports)

    def credit_lamports(self, address: str, lamports: int) -> None:
        address = normalize_address(address, validate=True)
        account = self._accounts.get(address)
        if account is None:
            account = self._accounts[address] = Account(owner=SYSTEM_PROGRAM_ID)
        account.lamports += lamports

    def debit_lamports(self, address: str, lamports: int) -> None:
        """Debit a signing wallet.

        Raises:
            MissingSignature: If ``address`` did not sign
            InsufficientFunds: If the balance is too small
        """
        self.require_signer(address)
        account = self._accounts.get(normalize_address(address))
        balance = 0 if account is None else account.lamports
        if account is None or balance < lamports:
            raise InsufficientFunds(f"{address} holds {balance} lamports, needs {lamports}")
        account.lamports -= lamports

    # --- Clock and events ---

    def advance_clock(self, seconds: int) -> int:
        self.clock += seconds
        return self.clock

    def emit(self, event: Event) -> None:
        """Record an event and mirror it to the log."""
        self.events.append(event)
        logger.info(event.event_name(), **event.model_dump(mode="json"))

    def events_of(self, kind: type[T]) -> list[T]:
        return [event for event in self.events if isinstance(event, kind)]

    def addresses(self) -> list[str]:
        return list(self._accounts)


__all__ = ["Ledger", "Account", "ProgramHandler"]
