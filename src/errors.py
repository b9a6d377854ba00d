from typing import Optional


class EngineError(Exception):
    """Base class for per-record business errors. Never fatal to a run."""

    def __init__(self, message: str, client_id: int, transaction_id: Optional[int] = None):
        super().__init__(message)
        self.client_id = client_id
        self.transaction_id = transaction_id


class AccountLocked(EngineError):
    """Raised for any balance mutation on an account frozen by a chargeback."""

    def __init__(self, client_id: int):
        super().__init__(f"Account {client_id} is locked", client_id)


class InsufficientFunds(EngineError):
    """Raised when available funds cannot cover a withdrawal or dispute hold."""

    def __init__(self, client_id: int):
        super().__init__(f"Insufficient funds for client {client_id}", client_id)


class InsufficientHeldFunds(EngineError):
    """Raised when held funds cannot cover a resolve or chargeback."""

    def __init__(self, client_id: int):
        super().__init__(f"Insufficient funds held for client {client_id}", client_id)


class UnknownTransaction(EngineError):
    def __init__(self, client_id: int, transaction_id: int):
        super().__init__(f"Transaction {transaction_id} not found", client_id, transaction_id)


class ReferentialMismatch(EngineError):
    def __init__(self, client_id: int, transaction_id: int, owner_id: int):
        super().__init__(
            f"Transaction {transaction_id} belongs to client {owner_id}, not {client_id}",
            client_id,
            transaction_id,
        )
        self.owner_id = owner_id


class DuplicateTransaction(EngineError):
    def __init__(self, client_id: int, transaction_id: int):
        super().__init__(f"Transaction {transaction_id} already recorded", client_id, transaction_id)


class BalanceOverflow(EngineError):
    """Raised when a balance would exceed the supported decimal precision."""

    def __init__(self, client_id: int):
        super().__init__(f"Balance of client {client_id} exceeds supported precision", client_id)
