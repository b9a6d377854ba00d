from decimal import Decimal, InvalidOperation
from typing import Callable, Dict, List, Optional

from errors import AccountLocked, BalanceOverflow, InsufficientFunds, InsufficientHeldFunds
from models import AccountSnapshot, ClientAccount


class AccountBook:
    """
    Owns one ClientAccount per client id and applies balance mutations.
    Accounts are created lazily on first reference and never removed.
    Every operation either succeeds completely or raises without side effects.
    """

    def __init__(self):
        self._accounts: Dict[int, ClientAccount] = {}

    def get_or_create_account(self, client_id: int) -> ClientAccount:
        """Get existing account or create new one."""
        if client_id not in self._accounts:
            self._accounts[client_id] = ClientAccount(client_id=client_id)
        return self._accounts[client_id]

    def get_account(self, client_id: int) -> Optional[ClientAccount]:
        return self._accounts.get(client_id)

    def is_locked(self, client_id: int) -> bool:
        account = self._accounts.get(client_id)
        return account is not None and account.locked

    def deposit(self, client_id: int, amount: Decimal) -> None:
        account = self._unlocked_account(client_id)
        self._mutate(account, account.credit, amount)

    def withdraw(self, client_id: int, amount: Decimal) -> None:
        account = self._unlocked_account(client_id)
        if account.available < amount:
            raise InsufficientFunds(client_id)
        self._mutate(account, account.debit, amount)

    def dispute_hold(self, client_id: int, amount: Decimal) -> None:
        """Move amount from available to held. Funds already withdrawn cannot be held."""
        account = self._unlocked_account(client_id)
        if account.available < amount:
            raise InsufficientFunds(client_id)
        self._mutate(account, account.hold, amount)

    def resolve_release(self, client_id: int, amount: Decimal) -> None:
        account = self._unlocked_account(client_id)
        if account.held < amount:
            raise InsufficientHeldFunds(client_id)
        self._mutate(account, account.release_hold, amount)

    def chargeback_apply(self, client_id: int, amount: Decimal) -> None:
        """Remove held funds permanently and lock the account."""
        account = self._unlocked_account(client_id)
        if account.held < amount:
            raise InsufficientHeldFunds(client_id)
        self._mutate(account, account.remove_held, amount)
        account.locked = True

    def snapshots(self) -> List[AccountSnapshot]:
        return [account.snapshot() for account in self._accounts.values()]

    def __len__(self) -> int:
        return len(self._accounts)

    def _unlocked_account(self, client_id: int) -> ClientAccount:
        account = self.get_or_create_account(client_id)
        if account.locked:
            raise AccountLocked(client_id)
        return account

    @staticmethod
    def _mutate(account: ClientAccount, mutation: Callable[[Decimal], None], amount: Decimal) -> None:
        # ClientAccount mutators assign only after every rounding succeeded
        try:
            mutation(amount)
        except InvalidOperation:
            raise BalanceOverflow(account.client_id)
