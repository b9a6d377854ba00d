import logging
from decimal import Decimal, InvalidOperation
from typing import Iterable, List, Optional

from account_book import AccountBook
from csv_io import read_transactions
from dispute_ledger import DisputeLedger
from errors import DuplicateTransaction, EngineError, ReferentialMismatch, UnknownTransaction
from models import AccountSnapshot, ProcessingResult, ProcessingStats, Transaction, TransactionType, round_amount

logger = logging.getLogger(__name__)


class PaymentsEngine:
    """
    Applies transactions to client accounts strictly in input order.
    Business errors drop the offending record and never abort the run.
    """

    def __init__(self, book: Optional[AccountBook] = None, ledger: Optional[DisputeLedger] = None):
        self._book = book if book is not None else AccountBook()
        self._ledger = ledger if ledger is not None else DisputeLedger()
        self._stats = ProcessingStats()

    @property
    def stats(self) -> ProcessingStats:
        return self._stats

    def process_file(self, filepath: str) -> List[AccountSnapshot]:
        """Process CSV file and return final account snapshots."""
        logger.info(f"Processing {filepath}")
        with open(filepath, "r", newline="") as f:
            return self.process(read_transactions(f, self._stats))

    def process(self, transactions: Iterable[Transaction]) -> List[AccountSnapshot]:
        for transaction in transactions:
            result = self.process_transaction(transaction)
            self._stats.record(result)

        logger.info(f"Processing complete: {self._stats}")
        return self._book.snapshots()

    def process_transaction(self, transaction: Transaction) -> ProcessingResult:
        account = self._book.get_or_create_account(transaction.client_id)

        if account.locked:
            logger.debug(f"Skipping {transaction}: account {transaction.client_id} is locked")
            return ProcessingResult.SKIPPED

        try:
            match transaction.transaction_type:
                case TransactionType.DEPOSIT:
                    return self._handle_deposit(transaction)
                case TransactionType.WITHDRAWAL:
                    return self._handle_withdrawal(transaction)
                case TransactionType.DISPUTE | TransactionType.RESOLVE | TransactionType.CHARGEBACK:
                    return self._ledger.apply(transaction, self._book)
                case _:
                    return ProcessingResult.FAILED
        except (UnknownTransaction, ReferentialMismatch) as e:
            logger.info(f"{transaction.transaction_type.value.capitalize()} for tx {transaction.transaction_id}: {e}, ignoring")
            return ProcessingResult.IGNORED
        except EngineError as e:
            logger.warning(f"Could not process {transaction}: {e}")
            return ProcessingResult.FAILED

    def _handle_deposit(self, transaction: Transaction) -> ProcessingResult:
        amount = self._rounded_amount(transaction)
        if amount is None:
            return ProcessingResult.FAILED

        if self._ledger.contains(transaction.transaction_id):
            raise DuplicateTransaction(transaction.client_id, transaction.transaction_id)

        self._book.deposit(transaction.client_id, amount)
        self._ledger.record_deposit(transaction.transaction_id, transaction.client_id, amount)
        return ProcessingResult.SUCCESS

    def _handle_withdrawal(self, transaction: Transaction) -> ProcessingResult:
        amount = self._rounded_amount(transaction)
        if amount is None:
            return ProcessingResult.FAILED

        self._book.withdraw(transaction.client_id, amount)
        return ProcessingResult.SUCCESS

    @staticmethod
    def _rounded_amount(transaction: Transaction) -> Optional[Decimal]:
        """Amount rounded to 4 places, or None if it is missing, non-finite, non-positive or too large."""
        amount = None
        if transaction.amount is not None and transaction.amount.is_finite():
            try:
                amount = round_amount(transaction.amount)
            except InvalidOperation:
                amount = None

        if amount is None or amount <= 0:
            logger.warning(
                f"{transaction.transaction_type.value.capitalize()} tx {transaction.transaction_id}: "
                f"invalid amount {transaction.amount}"
            )
            return None
        return amount
