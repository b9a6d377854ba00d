import csv
import logging
from decimal import Decimal, InvalidOperation
from typing import Iterable, Iterator, List, Optional, TextIO

from models import AccountSnapshot, ProcessingStats, Transaction, TransactionType, round_amount

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("type", "client", "tx", "amount")
OUTPUT_HEADER = ("client", "available", "held", "total", "locked")

MAX_CLIENT_ID = 2**16 - 1
MAX_TRANSACTION_ID = 2**32 - 1

_AMOUNT_TYPES = {TransactionType.DEPOSIT, TransactionType.WITHDRAWAL}


class MalformedInput(ValueError):
    """The input cannot be read at all (e.g. missing header columns)."""


class RowError(ValueError):
    pass


def read_transactions(source: Iterable[str], stats: Optional[ProcessingStats] = None) -> Iterator[Transaction]:
    """
    Lazily decode CSV rows into Transactions.

    Malformed rows are logged, counted on stats and skipped; they never reach
    the engine. Raises MalformedInput if the header lacks a required column.
    """
    reader = csv.reader(source)
    header = next(reader, None)
    if header is None:
        return

    columns = [name.strip().lower() for name in header]
    missing = [name for name in REQUIRED_COLUMNS if name not in columns]
    if missing:
        raise MalformedInput(f"Missing required column(s): {', '.join(missing)}")
    index = {name: columns.index(name) for name in REQUIRED_COLUMNS}

    for row in reader:
        if not row:
            continue
        try:
            yield _parse_row(row, index, len(columns))
        except RowError as e:
            logger.warning(f"Line {reader.line_num}: skipping row {row}: {e}")
            if stats is not None:
                stats.record_rejected_row()


def _parse_row(row: List[str], index: dict, width: int) -> Transaction:
    if len(row) != width:
        raise RowError(f"expected {width} fields, got {len(row)}")
    fields = {name: row[i].strip() for name, i in index.items()}

    try:
        transaction_type = TransactionType(fields["type"].lower())
    except ValueError:
        raise RowError(f"unknown transaction type {fields['type']!r}")

    client_id = _parse_id(fields["client"], "client", MAX_CLIENT_ID)
    transaction_id = _parse_id(fields["tx"], "tx", MAX_TRANSACTION_ID)

    amount = None
    if transaction_type in _AMOUNT_TYPES:
        amount = _parse_amount(fields["amount"])

    return Transaction(
        transaction_type=transaction_type,
        client_id=client_id,
        transaction_id=transaction_id,
        amount=amount,
    )


def _parse_id(value: str, name: str, maximum: int) -> int:
    try:
        parsed = int(value)
    except ValueError:
        raise RowError(f"{name} {value!r} is not an integer")
    if not 0 <= parsed <= maximum:
        raise RowError(f"{name} {parsed} out of range")
    return parsed


def _parse_amount(value: str) -> Decimal:
    if not value:
        raise RowError("missing amount")
    try:
        amount = Decimal(value)
    except InvalidOperation:
        raise RowError(f"amount {value!r} is not a number")
    if not amount.is_finite():
        raise RowError(f"amount {value!r} is not a number")
    try:
        amount = round_amount(amount)
    except InvalidOperation:
        raise RowError(f"amount {value!r} is too large")
    if amount <= 0:
        raise RowError(f"amount {value!r} must be positive")
    return amount


def format_decimal(value: Decimal) -> str:
    """Format decimal with up to 4 decimal places, removing trailing zeros."""
    normalized = value.normalize()
    return f"{normalized:f}"


def write_accounts(snapshots: Iterable[AccountSnapshot], sink: TextIO) -> None:
    writer = csv.writer(sink, lineterminator="\n")
    writer.writerow(OUTPUT_HEADER)
    for snapshot in sorted(snapshots, key=lambda s: s.client_id):
        writer.writerow([
            snapshot.client_id,
            format_decimal(snapshot.available),
            format_decimal(snapshot.held),
            format_decimal(snapshot.total),
            str(snapshot.locked).lower(),
        ])
