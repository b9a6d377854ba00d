import sys
import os
from decimal import Decimal

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from account_book import AccountBook
from dispute_ledger import AccountAction, DisputeLedger, transition
from errors import AccountLocked, InsufficientFunds, ReferentialMismatch, UnknownTransaction
from models import ProcessingResult, Transaction, TransactionState, TransactionType


class TestTransition:
    @pytest.mark.parametrize("state, transaction_type, expected", [
        (TransactionState.NORMAL, TransactionType.DISPUTE, (TransactionState.DISPUTED, AccountAction.HOLD)),
        (TransactionState.DISPUTED, TransactionType.RESOLVE, (TransactionState.RESOLVED, AccountAction.RELEASE)),
        (TransactionState.DISPUTED, TransactionType.CHARGEBACK, (TransactionState.CHARGED_BACK, AccountAction.CHARGEBACK)),
    ])
    def test_valid_transitions(self, state, transaction_type, expected):
        assert transition(state, transaction_type, True) == expected

    @pytest.mark.parametrize("state, transaction_type", [
        (TransactionState.NORMAL, TransactionType.RESOLVE),
        (TransactionState.NORMAL, TransactionType.CHARGEBACK),
        (TransactionState.DISPUTED, TransactionType.DISPUTE),
        (TransactionState.RESOLVED, TransactionType.DISPUTE),
        (TransactionState.RESOLVED, TransactionType.RESOLVE),
        (TransactionState.RESOLVED, TransactionType.CHARGEBACK),
        (TransactionState.CHARGED_BACK, TransactionType.DISPUTE),
        (TransactionState.CHARGED_BACK, TransactionType.RESOLVE),
        (TransactionState.CHARGED_BACK, TransactionType.CHARGEBACK),
    ])
    def test_other_combinations_are_noops(self, state, transaction_type):
        assert transition(state, transaction_type, True) == (state, None)

    def test_foreign_client_is_noop(self):
        assert transition(TransactionState.NORMAL, TransactionType.DISPUTE, False) == (TransactionState.NORMAL, None)
        assert transition(TransactionState.DISPUTED, TransactionType.CHARGEBACK, False) == (TransactionState.DISPUTED, None)


def dispute(client_id, tx_id):
    return Transaction(TransactionType.DISPUTE, client_id=client_id, transaction_id=tx_id)


def resolve(client_id, tx_id):
    return Transaction(TransactionType.RESOLVE, client_id=client_id, transaction_id=tx_id)


def chargeback(client_id, tx_id):
    return Transaction(TransactionType.CHARGEBACK, client_id=client_id, transaction_id=tx_id)


class TestDisputeLedger:
    def setup_method(self):
        self.book = AccountBook()
        self.ledger = DisputeLedger()

    def deposit(self, client_id, tx_id, amount):
        self.book.deposit(client_id, Decimal(amount))
        self.ledger.record_deposit(tx_id, client_id, Decimal(amount))

    def state_of(self, tx_id):
        return self.ledger.get_entry(tx_id).state

    def test_record_deposit(self):
        entry = self.ledger.record_deposit(1, 1, Decimal("5"))
        assert entry.state == TransactionState.NORMAL
        assert self.ledger.contains(1)
        assert len(self.ledger) == 1

    def test_dispute_holds_funds(self):
        self.deposit(1, 1, "100")
        result = self.ledger.apply(dispute(1, 1), self.book)

        assert result == ProcessingResult.SUCCESS
        assert self.state_of(1) == TransactionState.DISPUTED
        account = self.book.get_account(1)
        assert account.available == Decimal("0")
        assert account.held == Decimal("100")

    def test_resolve_releases_funds(self):
        self.deposit(1, 1, "100")
        self.ledger.apply(dispute(1, 1), self.book)
        result = self.ledger.apply(resolve(1, 1), self.book)

        assert result == ProcessingResult.SUCCESS
        assert self.state_of(1) == TransactionState.RESOLVED
        assert self.book.get_account(1).available == Decimal("100")
        assert self.book.get_account(1).held == Decimal("0")

    def test_chargeback_removes_funds_and_locks(self):
        self.deposit(1, 1, "100")
        self.ledger.apply(dispute(1, 1), self.book)
        result = self.ledger.apply(chargeback(1, 1), self.book)

        assert result == ProcessingResult.SUCCESS
        assert self.state_of(1) == TransactionState.CHARGED_BACK
        account = self.book.get_account(1)
        assert account.total == Decimal("0")
        assert account.locked is True

    def test_unknown_transaction(self):
        with pytest.raises(UnknownTransaction):
            self.ledger.apply(dispute(1, 99), self.book)

    def test_foreign_client_cannot_dispute(self):
        self.deposit(1, 1, "100")
        self.deposit(2, 2, "50")
        with pytest.raises(ReferentialMismatch) as exc:
            self.ledger.apply(dispute(2, 1), self.book)

        assert exc.value.owner_id == 1
        assert self.state_of(1) == TransactionState.NORMAL
        assert self.book.get_account(1).held == Decimal("0")
        assert self.book.get_account(2).held == Decimal("0")

    def test_repeated_dispute_is_ignored(self):
        self.deposit(1, 1, "100")
        self.deposit(1, 2, "100")
        self.ledger.apply(dispute(1, 1), self.book)

        assert self.ledger.apply(dispute(1, 1), self.book) == ProcessingResult.IGNORED
        assert self.book.get_account(1).held == Decimal("100")
        assert self.book.get_account(1).available == Decimal("100")

    def test_resolve_without_dispute_is_ignored(self):
        self.deposit(1, 1, "100")
        assert self.ledger.apply(resolve(1, 1), self.book) == ProcessingResult.IGNORED
        assert self.ledger.apply(chargeback(1, 1), self.book) == ProcessingResult.IGNORED
        assert self.state_of(1) == TransactionState.NORMAL

    def test_resolved_is_terminal(self):
        self.deposit(1, 1, "100")
        self.ledger.apply(dispute(1, 1), self.book)
        self.ledger.apply(resolve(1, 1), self.book)

        assert self.ledger.apply(dispute(1, 1), self.book) == ProcessingResult.IGNORED
        assert self.ledger.apply(chargeback(1, 1), self.book) == ProcessingResult.IGNORED
        assert self.state_of(1) == TransactionState.RESOLVED
        assert self.book.get_account(1).available == Decimal("100")

    def test_failed_dispute_stays_normal_and_can_retry(self):
        self.deposit(1, 1, "10")
        self.book.withdraw(1, Decimal("5"))

        with pytest.raises(InsufficientFunds):
            self.ledger.apply(dispute(1, 1), self.book)
        assert self.state_of(1) == TransactionState.NORMAL

        self.deposit(1, 3, "5")
        assert self.ledger.apply(dispute(1, 1), self.book) == ProcessingResult.SUCCESS
        assert self.state_of(1) == TransactionState.DISPUTED
        assert self.book.get_account(1).available == Decimal("0")
        assert self.book.get_account(1).held == Decimal("10")

    def test_locked_account_leaves_state_unchanged(self):
        self.deposit(1, 1, "10")
        self.deposit(1, 2, "10")
        self.ledger.apply(dispute(1, 1), self.book)
        self.ledger.apply(chargeback(1, 1), self.book)

        with pytest.raises(AccountLocked):
            self.ledger.apply(dispute(1, 2), self.book)
        assert self.state_of(2) == TransactionState.NORMAL
