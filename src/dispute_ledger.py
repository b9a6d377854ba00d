import logging
from decimal import Decimal
from enum import Enum
from typing import Dict, Optional, Tuple

from account_book import AccountBook
from errors import ReferentialMismatch, UnknownTransaction
from models import LedgerEntry, ProcessingResult, Transaction, TransactionState, TransactionType

logger = logging.getLogger(__name__)


class AccountAction(Enum):
    """AccountBook operation a dispute transition applies."""

    HOLD = "hold"
    RELEASE = "release"
    CHARGEBACK = "chargeback"


_TRANSITIONS: Dict[Tuple[TransactionState, TransactionType], Tuple[TransactionState, AccountAction]] = {
    (TransactionState.NORMAL, TransactionType.DISPUTE): (TransactionState.DISPUTED, AccountAction.HOLD),
    (TransactionState.DISPUTED, TransactionType.RESOLVE): (TransactionState.RESOLVED, AccountAction.RELEASE),
    (TransactionState.DISPUTED, TransactionType.CHARGEBACK): (TransactionState.CHARGED_BACK, AccountAction.CHARGEBACK),
}


def transition(
    state: TransactionState,
    transaction_type: TransactionType,
    referential_match: bool,
) -> Tuple[TransactionState, Optional[AccountAction]]:
    """
    Pure dispute state machine step.

    Returns the state to move to and the AccountBook action that must succeed
    first. Any combination not in the table, and any record from a client
    other than the owner, leaves the state unchanged with no action.
    """
    if not referential_match:
        return state, None
    return _TRANSITIONS.get((state, transaction_type), (state, None))


class DisputeLedger:
    """
    Remembers deposits by tx id together with their dispute state.
    Withdrawals are never recorded, so they can never be disputed.
    """

    def __init__(self):
        self._entries: Dict[int, LedgerEntry] = {}

    def record_deposit(self, transaction_id: int, client_id: int, amount: Decimal) -> LedgerEntry:
        """Store an applied deposit in the NORMAL state. Callers reject duplicate ids via contains()."""
        entry = LedgerEntry(client_id=client_id, amount=amount)
        self._entries[transaction_id] = entry
        return entry

    def contains(self, transaction_id: int) -> bool:
        return transaction_id in self._entries

    def get_entry(self, transaction_id: int) -> Optional[LedgerEntry]:
        return self._entries.get(transaction_id)

    def apply(self, transaction: Transaction, book: AccountBook) -> ProcessingResult:
        """
        Drive a dispute, resolve or chargeback record through the state machine.

        The entry only changes state after the AccountBook call succeeds; if it
        raises, the error propagates and the entry keeps its current state.
        """
        entry = self._entries.get(transaction.transaction_id)
        if entry is None:
            raise UnknownTransaction(transaction.client_id, transaction.transaction_id)

        referential_match = entry.client_id == transaction.client_id
        next_state, action = transition(entry.state, transaction.transaction_type, referential_match)

        if action is None:
            if not referential_match:
                raise ReferentialMismatch(transaction.client_id, transaction.transaction_id, entry.client_id)
            logger.info(
                f"{transaction.transaction_type.value.capitalize()} for tx {transaction.transaction_id}: "
                f"no transition from {entry.state.value}, ignoring"
            )
            return ProcessingResult.IGNORED

        match action:
            case AccountAction.HOLD:
                book.dispute_hold(entry.client_id, entry.amount)
            case AccountAction.RELEASE:
                book.resolve_release(entry.client_id, entry.amount)
            case AccountAction.CHARGEBACK:
                book.chargeback_apply(entry.client_id, entry.amount)
        entry.state = next_state
        return ProcessingResult.SUCCESS

    def __len__(self) -> int:
        return len(self._entries)
