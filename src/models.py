from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_EVEN
from enum import Enum
from typing import Optional

DECIMAL_PLACES = 4
_QUANTUM = Decimal(1).scaleb(-DECIMAL_PLACES)


def round_amount(value: Decimal) -> Decimal:
    """
    Round to 4 decimal places, ties to even.

    Raises decimal.InvalidOperation if the result needs more than the
    context precision (28 significant digits).
    """
    return value.quantize(_QUANTUM, rounding=ROUND_HALF_EVEN)


class TransactionType(Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    DISPUTE = "dispute"
    RESOLVE = "resolve"
    CHARGEBACK = "chargeback"


class TransactionState(Enum):
    NORMAL = "normal"
    DISPUTED = "disputed"
    RESOLVED = "resolved"
    CHARGED_BACK = "charged_back"


class ProcessingResult(Enum):
    SUCCESS = "success"
    IGNORED = "ignored"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class Transaction:
    transaction_type: TransactionType
    client_id: int
    transaction_id: int
    amount: Optional[Decimal] = None

    def __repr__(self) -> str:
        return f"Transaction({self.transaction_type.value}, client={self.client_id}, tx={self.transaction_id}, amount={self.amount})"


@dataclass
class LedgerEntry:
    """A deposit remembered so it can be disputed later."""

    client_id: int
    amount: Decimal
    state: TransactionState = TransactionState.NORMAL


@dataclass(frozen=True)
class AccountSnapshot:
    client_id: int
    available: Decimal
    held: Decimal
    total: Decimal
    locked: bool


@dataclass
class ClientAccount:
    client_id: int
    available: Decimal = Decimal("0")
    held: Decimal = Decimal("0")
    locked: bool = False

    @property
    def total(self) -> Decimal:
        return self.available + self.held

    def credit(self, amount: Decimal) -> None:
        self.available = round_amount(self.available + amount)

    def debit(self, amount: Decimal) -> None:
        self.available = round_amount(self.available - amount)

    def hold(self, amount: Decimal) -> None:
        available, held = round_amount(self.available - amount), round_amount(self.held + amount)
        self.available, self.held = available, held

    def release_hold(self, amount: Decimal) -> None:
        held, available = round_amount(self.held - amount), round_amount(self.available + amount)
        self.held, self.available = held, available

    def remove_held(self, amount: Decimal) -> None:
        self.held = round_amount(self.held - amount)

    def snapshot(self) -> AccountSnapshot:
        return AccountSnapshot(
            client_id=self.client_id,
            available=self.available,
            held=self.held,
            total=self.total,
            locked=self.locked,
        )


class ProcessingStats:
    """Counters for a single engine run."""

    def __init__(self):
        self.processed = 0
        self.ignored = 0
        self.failed = 0
        self.skipped = 0
        self.rejected_rows = 0

    def record(self, result: ProcessingResult) -> None:
        if result == ProcessingResult.SUCCESS:
            self.processed += 1
        elif result == ProcessingResult.IGNORED:
            self.ignored += 1
        elif result == ProcessingResult.FAILED:
            self.failed += 1
        elif result == ProcessingResult.SKIPPED:
            self.skipped += 1

    def record_rejected_row(self) -> None:
        self.rejected_rows += 1

    def __str__(self) -> str:
        return (
            f"Processed: {self.processed}, "
            f"Ignored: {self.ignored}, "
            f"Failed: {self.failed}, "
            f"Skipped (locked): {self.skipped}, "
            f"Rejected rows: {self.rejected_rows}"
        )
