import csv
import logging
from decimal import Decimal, InvalidOperation
from typing import Dict, Iterator, Optional, TextIO

from models import MAX_MANTISSA, MAX_SCALE, ClientAccount, ProcessingStats, Transaction, TransactionType

logger = logging.getLogger(__name__)

MAX_CLIENT_ID = 2**16 - 1
MAX_TRANSACTION_ID = 2**32 - 1

OUTPUT_COLUMNS = ("client", "available", "held", "total", "locked")


def _parse_bounded_int(value: str, upper: int) -> int:
    parsed = int(value)
    if not 0 <= parsed <= upper:
        raise ValueError(f"{parsed} outside 0..{upper}")
    return parsed


def _parse_amount(value: str) -> Decimal:
    """
    Parse a deposit or withdraw amount.

    Negative amounts are rejected as malformed instead of being assumed away.
    The unscaled value must fit in 96 bits, with at most 28 fractional digits.
    """
    try:
        amount = Decimal(value)
    except InvalidOperation:
        raise ValueError(f"invalid amount {value!r}")
    if not amount.is_finite() or amount < 0:
        raise ValueError(f"invalid amount {value!r}")

    _, digits, exponent = amount.as_tuple()
    if -exponent > MAX_SCALE or len(digits) + max(exponent, 0) > len(str(MAX_MANTISSA)):
        raise ValueError(f"amount {value!r} out of range")
    mantissa = int("".join(map(str, digits))) * 10 ** max(exponent, 0)
    if mantissa > MAX_MANTISSA:
        raise ValueError(f"amount {value!r} out of range")
    return amount


def parse_record(row: Dict[Optional[str], Optional[str]]) -> Optional[Transaction]:
    """Parse one CSV row into a Transaction, or None if the row is malformed."""
    try:
        normalized = {k.strip(): (v or "").strip() for k, v in row.items() if k is not None}

        transaction_type = TransactionType(normalized["type"].lower())
        client_id = _parse_bounded_int(normalized["client"], MAX_CLIENT_ID)
        transaction_id = _parse_bounded_int(normalized["tx"], MAX_TRANSACTION_ID)

        amount = None
        if transaction_type.carries_amount:
            amount = _parse_amount(normalized.get("amount", ""))

        return Transaction(
            transaction_type=transaction_type,
            client_id=client_id,
            transaction_id=transaction_id,
            amount=amount,
        )
    except (KeyError, ValueError) as e:
        logger.info(f"Skipping record {row}: {e}")
        return None


def read_transactions(stream: TextIO, stats: Optional[ProcessingStats] = None) -> Iterator[Transaction]:
    """
    Yield transactions from CSV text in input order, dropping malformed records.

    Columns are located by header name, so a header lacking a required
    column makes every record malformed. Raises csv.Error if the stream
    is not valid CSV.
    """
    reader = csv.DictReader(stream)
    for row in reader:
        transaction = parse_record(row)
        if transaction is not None:
            yield transaction
        elif stats is not None:
            stats.record_skipped()


def format_decimal(value: Decimal) -> str:
    """Plain positional notation, keeping whatever scale the arithmetic produced."""
    return f"{value:f}"


def write_accounts(accounts: Dict[int, ClientAccount], stream: TextIO) -> None:
    """Write one row per client, ordered by client id."""
    writer = csv.writer(stream, lineterminator="\n")
    writer.writerow(OUTPUT_COLUMNS)
    for client_id in sorted(accounts.keys()):
        account = accounts[client_id]
        writer.writerow([
            client_id,
            format_decimal(account.available),
            format_decimal(account.held),
            format_decimal(account.total),
            str(account.locked).lower(),
        ])
