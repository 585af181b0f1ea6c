"""
Tests for the statement query engine

Entries are built directly; the engine never looks at the store.
"""

import csv
import io

import pytest
from datetime import date
from decimal import Decimal

from gemledger.ledger.assembler import apply_running_balance
from gemledger.models.ledger import LedgerEntry, TransactionType
from gemledger.queries import (
    CSV_HEADERS,
    LedgerQuery,
    QueryExecutor,
    distinct_module_names,
    distinct_transaction_types,
    export_csv,
    group_totals,
    summarize,
)


def make_entry(entry_id, entry_date, transaction_type, debit="0", credit="0", **kwargs):
    fields = {
        "module_id": "vision-gems",
        "module_name": "Vision Gems",
        "tab_id": "Approval",
        "tab_name": "Approval",
        "description": "",
        "reference": "",
    }
    fields.update(kwargs)
    return LedgerEntry(
        id=entry_id,
        date=entry_date,
        transaction_type=transaction_type,
        debit=Decimal(debit),
        credit=Decimal(credit),
        **fields,
    )


@pytest.fixture
def entries():
    ledger = [
        make_entry("expense-1", "2024-01-03", TransactionType.EXPENSE, debit="200",
                   description="Office rent"),
        make_entry("stone-sale-1", "2024-01-10", TransactionType.INCOME, credit="1500",
                   description="Sapphire sale", reference="VG-001"),
        make_entry("capital-1", "2024-02-01", TransactionType.CAPITAL, credit="5000",
                   module_id="bkk", module_name="BKK", tab_id="BKK", tab_name="BKK"),
        make_entry("expense-2", "2024-02-15", TransactionType.EXPENSE, debit="300",
                   module_id="bkk", module_name="BKK", tab_id="BkkExpenses", tab_name="BKK Expenses",
                   description="Flight", original_currency="USD", original_amount=Decimal("1")),
    ]
    return apply_running_balance(ledger)


@pytest.fixture
def executor(entries):
    return QueryExecutor(lambda: entries)


class TestFilters:
    """Tests for query filters."""

    def test_no_filters_returns_everything(self, executor, entries):
        result = executor.execute(LedgerQuery())
        assert result.success is True
        assert result.data_found is True
        assert [e.id for e in result.entries] == [e.id for e in entries]

    def test_search_is_case_insensitive(self, executor):
        """Test search over description, reference, module and tab names."""
        assert [e.id for e in executor.execute(LedgerQuery(search="RENT")).entries] == ["expense-1"]
        assert [e.id for e in executor.execute(LedgerQuery(search="vg-001")).entries] == ["stone-sale-1"]
        assert len(executor.execute(LedgerQuery(search="bkk")).entries) == 2

    def test_module_and_type(self, executor):
        result = executor.execute(LedgerQuery(
            module_name="BKK",
            transaction_type=TransactionType.EXPENSE,
        ))
        assert [e.id for e in result.entries] == ["expense-2"]

    def test_date_range_is_inclusive(self, executor):
        result = executor.execute(LedgerQuery(
            date_from=date(2024, 1, 10),
            date_to=date(2024, 2, 1),
        ))
        assert [e.id for e in result.entries] == ["stone-sale-1", "capital-1"]

    def test_filtering_keeps_running_balance(self, executor):
        """Test that a filtered entry still shows its balance in the full ledger."""
        result = executor.execute(LedgerQuery(transaction_type=TransactionType.CAPITAL))
        assert result.entries[0].balance == Decimal("6300")

    def test_no_match(self, executor):
        result = executor.execute(LedgerQuery(search="nothing like this"))
        assert result.success is True
        assert result.data_found is False
        assert result.summary.count == 0

    def test_reuse_given_entries(self):
        """Test that passed-in entries bypass the entry source."""

        def fail():
            raise AssertionError("source should not be called")

        entry = make_entry("e", "2024-01-01", TransactionType.EXPENSE, debit="1")
        result = QueryExecutor(fail).execute(LedgerQuery(), entries=[entry])
        assert result.entries == [entry]

    def test_source_failure_is_reported(self):
        """Test that a failing source gives success=False, not an exception."""

        def broken():
            raise RuntimeError("store unavailable")

        result = QueryExecutor(broken).execute(LedgerQuery())
        assert result.success is False
        assert result.data_found is False
        assert "store unavailable" in result.error_message

    def test_invalid_group_by(self):
        with pytest.raises(ValueError):
            LedgerQuery(group_by="weekday")


class TestSummary:
    """Tests for totals."""

    def test_summary(self, entries):
        summary = summarize(entries)
        assert summary.total_debits == Decimal("500")
        assert summary.total_credits == Decimal("6500")
        assert summary.net_balance == Decimal("6000")
        assert summary.final_balance == Decimal("6000")
        assert summary.count == 4

    def test_empty_summary(self):
        summary = summarize([])
        assert summary.final_balance == Decimal("0")
        assert summary.count == 0

    def test_group_by_month(self, entries):
        groups = group_totals(entries, "month")
        assert list(groups) == ["2024-01", "2024-02"]
        assert groups["2024-01"].net == Decimal("1300")
        assert groups["2024-02"].count == 2

    def test_group_by_type_through_executor(self, executor):
        result = executor.execute(LedgerQuery(group_by="transaction_type"))
        assert result.groups["Expense"].debits == Decimal("500")
        assert result.groups["Income"].credits == Decimal("1500")
        assert "grouped by transaction_type" in result.query_description

    def test_distinct_values(self, entries):
        assert distinct_module_names(entries) == ["BKK", "Vision Gems"]
        assert distinct_transaction_types(entries) == ["Capital", "Expense", "Income"]


class TestDescription:
    """Tests for the human-readable query description."""

    def test_same_month_range(self, executor):
        result = executor.execute(LedgerQuery(date_from=date(2024, 1, 1), date_to=date(2024, 1, 31)))
        assert "in January 2024" in result.query_description

    def test_single_day(self, executor):
        result = executor.execute(LedgerQuery(date_from=date(2024, 1, 3), date_to=date(2024, 1, 3)))
        assert "on 03 Jan 2024" in result.query_description


class TestCsvExport:
    """Tests for the statement CSV."""

    def test_rows(self, entries):
        rows = list(csv.reader(io.StringIO(export_csv(entries))))
        assert rows[0] == CSV_HEADERS
        assert len(rows) == 5
        assert rows[1] == [
            "2024-01-03", "Vision Gems", "Approval", "Expense", "Office rent", "",
            "200.00", "0.00", "-200.00", "LKR", "200.00",
        ]

    def test_original_currency_kept(self, entries):
        rows = list(csv.reader(io.StringIO(export_csv(entries))))
        assert rows[4][-2:] == ["USD", "1.00"]

    def test_every_cell_quoted(self, entries):
        first_line = export_csv(entries).splitlines()[0]
        assert first_line.startswith('"Date","Module"')


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
