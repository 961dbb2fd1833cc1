import sys
import os
import io
from decimal import Decimal

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from csv_io import format_decimal, parse_record, read_transactions, write_accounts
from models import ClientAccount, ProcessingStats, TransactionType


def read(text: str, stats=None):
    return list(read_transactions(io.StringIO(text), stats))


class TestParseRecord:
    def test_deposit(self):
        transaction = parse_record({"type": "deposit", "client": "1", "tx": "2", "amount": "1.5"})
        assert transaction.transaction_type == TransactionType.DEPOSIT
        assert transaction.client_id == 1
        assert transaction.transaction_id == 2
        assert transaction.amount == Decimal("1.5")

    def test_whitespace_is_trimmed(self):
        transaction = parse_record({" type": " withdraw ", " client": " 1", " tx": " 2", " amount": " 0.25"})
        assert transaction.transaction_type == TransactionType.WITHDRAW
        assert transaction.amount == Decimal("0.25")

    def test_dispute_ignores_amount(self):
        transaction = parse_record({"type": "dispute", "client": "1", "tx": "2", "amount": "9"})
        assert transaction.transaction_type == TransactionType.DISPUTE
        assert transaction.amount is None

    def test_dispute_without_amount_column(self):
        transaction = parse_record({"type": "chargeback", "client": "1", "tx": "2"})
        assert transaction.transaction_type == TransactionType.CHARGEBACK

    @pytest.mark.parametrize("row", [
        {"type": "withdrawal", "client": "1", "tx": "1", "amount": "1"},
        {"type": "transfer", "client": "1", "tx": "1", "amount": "1"},
        {"type": "deposit", "client": "1", "tx": "1", "amount": ""},
        {"type": "deposit", "client": "1", "tx": "1"},
        {"type": "withdraw", "client": "1", "tx": "1", "amount": "abc"},
        {"type": "deposit", "client": "1", "tx": "1", "amount": "NaN"},
        {"type": "deposit", "client": "1", "tx": "1", "amount": "Infinity"},
        {"type": "deposit", "client": "1", "tx": "1", "amount": "9E+999999"},
        {"type": "deposit", "client": "1", "tx": "1", "amount": "79228162514264337593543950336"},
        {"type": "deposit", "client": "1", "tx": "1", "amount": "0.00000000000000000000000000001"},
        {"type": "deposit", "client": "1", "tx": "1", "amount": "-5"},
        {"type": "deposit", "client": "65536", "tx": "1", "amount": "1"},
        {"type": "deposit", "client": "-1", "tx": "1", "amount": "1"},
        {"type": "deposit", "client": "1", "tx": "4294967296", "amount": "1"},
        {"type": "deposit", "client": "x", "tx": "1", "amount": "1"},
        {"type": "dispute", "client": "1", "tx": None},
        {"client": "1", "tx": "1", "amount": "1"},
    ])
    def test_malformed_records_are_skipped(self, row):
        assert parse_record(row) is None

    def test_amount_bounds_are_inclusive(self):
        largest = parse_record({"type": "deposit", "client": "1", "tx": "1", "amount": "79228162514264337593543950335"})
        finest = parse_record({"type": "deposit", "client": "1", "tx": "2", "amount": "0.0000000000000000000000000001"})
        assert largest.amount == Decimal(2**96 - 1)
        assert finest.amount == Decimal("1E-28")

    def test_negative_amount_is_malformed(self):
        assert parse_record({"type": "withdraw", "client": "1", "tx": "1", "amount": "-0.5"}) is None

    def test_id_bounds_are_inclusive(self):
        transaction = parse_record({"type": "deposit", "client": "65535", "tx": "4294967295", "amount": "0"})
        assert transaction.client_id == 65535
        assert transaction.transaction_id == 4294967295
        assert transaction.amount == Decimal("0")


class TestReadTransactions:
    def test_reads_in_input_order(self):
        transactions = read("\n".join([
            "type, client, tx, amount",
            "deposit, 2, 1, 1.0",
            "deposit, 1, 2, 2.0",
            "dispute, 2, 1,",
        ]))
        assert [tx.transaction_id for tx in transactions] == [1, 2, 1]
        assert [tx.client_id for tx in transactions] == [2, 1, 2]

    def test_columns_located_by_name(self):
        transactions = read("\n".join([
            "amount,tx,client,type",
            "3.5,9,4,deposit",
        ]))
        assert transactions[0].transaction_id == 9
        assert transactions[0].client_id == 4
        assert transactions[0].amount == Decimal("3.5")

    def test_bad_records_do_not_abort(self):
        stats = ProcessingStats()
        transactions = read("\n".join([
            "type,client,tx,amount",
            "deposit,1,1,1.0",
            "bogus,1,2,1.0",
            "deposit,1",
            "withdraw,1,3,oops",
            "deposit,1,4,2.0",
        ]), stats)
        assert [tx.transaction_id for tx in transactions] == [1, 4]
        assert stats.skipped_records == 3

    def test_empty_input(self):
        assert read("") == []

    def test_missing_required_column_skips_every_record(self):
        stats = ProcessingStats()
        transactions = read("type,client,amount\ndeposit,1,1.0\ndeposit,2,3.0\n", stats)
        assert transactions == []
        assert stats.skipped_records == 2


class TestWriteAccounts:
    def test_format_decimal(self):
        assert format_decimal(Decimal("5.0")) == "5.0"
        assert format_decimal(Decimal("1.2345")) == "1.2345"
        assert format_decimal(Decimal("1E+2")) == "100"
        assert format_decimal(Decimal("-30")) == "-30"

    def test_rows_sorted_by_client(self):
        accounts = {
            4: ClientAccount(client_id=4, available=Decimal("5.0"), held=Decimal("0.0")),
            2: ClientAccount(client_id=2, available=Decimal("1.5"), held=Decimal("2"), locked=True),
        }
        stream = io.StringIO()
        write_accounts(accounts, stream)

        assert stream.getvalue() == "\n".join([
            "client,available,held,total,locked",
            "2,1.5,2,3.5,true",
            "4,5.0,0.0,5.0,false",
            "",
        ])

    def test_header_only_when_no_accounts(self):
        stream = io.StringIO()
        write_accounts({}, stream)
        assert stream.getvalue() == "client,available,held,total,locked\n"
