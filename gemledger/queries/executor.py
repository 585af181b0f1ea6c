"""
Statement Query Engine

DESIGN DECISION: Every figure the statement view, the chat analytics
and the company metrics show is computed HERE, from the assembled
ledger, and nowhere else. Consumers never re-derive totals from the
store, so they cannot disagree with the statement.

Queries are deterministic filters over the entry list:
- free-text search over description, reference, module and tab name
- module name, transaction type, inclusive date range
- optional grouped totals (by transaction type, module, tab or month)
"""

import csv
import io
from datetime import date
from decimal import Decimal
from typing import Callable, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from gemledger.models.ledger import LedgerEntry, TransactionType


# =============================================================================
# QUERY MODELS
# =============================================================================

class LedgerQuery(BaseModel):
    """Filters applied to the assembled ledger. Unset filters match everything."""

    query_id: UUID = Field(default_factory=uuid4)

    search: Optional[str] = Field(
        default=None,
        description="Case-insensitive substring of description, reference, module or tab name"
    )
    module_name: Optional[str] = None
    transaction_type: Optional[TransactionType] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None

    group_by: Optional[str] = Field(
        default=None,
        pattern="^(transaction_type|module|tab|month)$",
        description="Field to group totals by"
    )


class StatementSummary(BaseModel):
    """Totals over a list of entries, as shown above the statement."""

    total_debits: Decimal = Decimal("0")
    total_credits: Decimal = Decimal("0")
    net_balance: Decimal = Field(
        default=Decimal("0"),
        description="total_credits - total_debits of the entries themselves"
    )
    final_balance: Decimal = Field(
        default=Decimal("0"),
        description="Running balance on the last entry (0 when empty)"
    )
    count: int = Field(default=0, ge=0)


class GroupTotals(BaseModel):
    debits: Decimal = Decimal("0")
    credits: Decimal = Decimal("0")
    net: Decimal = Decimal("0")
    count: int = 0


class LedgerQueryResult(BaseModel):
    """Result of executing a LedgerQuery."""

    query_id: UUID
    success: bool
    error_message: Optional[str] = None

    data_found: bool
    entries: list[LedgerEntry] = Field(default_factory=list)
    summary: StatementSummary = Field(default_factory=StatementSummary)
    groups: Optional[dict[str, GroupTotals]] = None

    query_description: str = ""


# =============================================================================
# PURE HELPERS
# =============================================================================

def matches(entry: LedgerEntry, query: LedgerQuery) -> bool:
    """True when the entry passes every filter of the query."""
    if query.search:
        needle = query.search.lower()
        haystacks = (entry.description, entry.reference, entry.module_name, entry.tab_name)
        if not any(needle in text.lower() for text in haystacks):
            return False

    if query.module_name and entry.module_name != query.module_name:
        return False
    if query.transaction_type and entry.transaction_type != query.transaction_type:
        return False

    # ISO dates compare correctly as strings
    entry_day = entry.date[:10]
    if query.date_from and entry_day < query.date_from.isoformat():
        return False
    if query.date_to and entry_day > query.date_to.isoformat():
        return False

    return True


def summarize(entries: list[LedgerEntry]) -> StatementSummary:
    total_debits = sum((entry.debit for entry in entries), Decimal("0"))
    total_credits = sum((entry.credit for entry in entries), Decimal("0"))
    return StatementSummary(
        total_debits=total_debits,
        total_credits=total_credits,
        net_balance=total_credits - total_debits,
        final_balance=entries[-1].balance if entries else Decimal("0"),
        count=len(entries),
    )


def _group_key(entry: LedgerEntry, group_by: str) -> str:
    if group_by == "transaction_type":
        return entry.transaction_type.value
    elif group_by == "module":
        return entry.module_name
    elif group_by == "tab":
        return entry.tab_name
    elif group_by == "month":
        return entry.date[:7]
    return "other"


def group_totals(entries: list[LedgerEntry], group_by: str) -> dict[str, GroupTotals]:
    """Totals per group, groups in first-seen order."""
    groups: dict[str, GroupTotals] = {}
    for entry in entries:
        key = _group_key(entry, group_by)
        totals = groups.setdefault(key, GroupTotals())
        totals.debits += entry.debit
        totals.credits += entry.credit
        totals.net += entry.net
        totals.count += 1
    return groups


def distinct_module_names(entries: list[LedgerEntry]) -> list[str]:
    return sorted({entry.module_name for entry in entries})


def distinct_transaction_types(entries: list[LedgerEntry]) -> list[str]:
    return sorted({entry.transaction_type.value for entry in entries})


CSV_HEADERS = [
    "Date", "Module", "Tab", "Type", "Description", "Reference",
    "Debit", "Credit", "Balance", "Currency", "Original Amount",
]


def export_csv(entries: list[LedgerEntry], reporting_currency: str = "LKR") -> str:
    """The statement as CSV, amounts to two decimals, every cell quoted."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADERS)

    for entry in entries:
        original_amount = entry.original_amount
        if original_amount is None:
            original_amount = entry.debit if entry.debit > 0 else entry.credit
        writer.writerow([
            entry.date,
            entry.module_name,
            entry.tab_name,
            entry.transaction_type.value,
            entry.description,
            entry.reference,
            f"{entry.debit:.2f}",
            f"{entry.credit:.2f}",
            f"{entry.balance:.2f}",
            entry.original_currency or reporting_currency,
            f"{original_amount:.2f}",
        ])

    return buffer.getvalue()


# =============================================================================
# EXECUTOR
# =============================================================================

class QueryExecutor:
    """
    Executes ledger queries against a freshly assembled ledger.

    GUARANTEES:
    - Only returns entries the assembler produced
    - Filtering never changes an entry's running balance
    - Clear "no data found" if nothing matches
    """

    def __init__(self, entries_source: Callable[[], list[LedgerEntry]]):
        self._entries_source = entries_source

    def execute(
        self,
        query: LedgerQuery,
        entries: Optional[list[LedgerEntry]] = None,
    ) -> LedgerQueryResult:
        """
        Run a query. Pass `entries` to reuse an already assembled ledger.

        Failures are reported in the result, never raised.
        """
        try:
            if entries is None:
                entries = self._entries_source()

            selected = [entry for entry in entries if matches(entry, query)]

            return LedgerQueryResult(
                query_id=query.query_id,
                success=True,
                data_found=len(selected) > 0,
                entries=selected,
                summary=summarize(selected),
                groups=group_totals(selected, query.group_by) if query.group_by else None,
                query_description=self._describe(query),
            )

        except Exception as e:
            return LedgerQueryResult(
                query_id=query.query_id,
                success=False,
                error_message=str(e),
                data_found=False,
                query_description=f"Query failed: {str(e)}",
            )

    def _describe(self, query: LedgerQuery) -> str:
        """Human-readable description of the query."""
        desc_parts = ["Statement entries"]
        if query.search:
            desc_parts.append(f"matching '{query.search}'")
        if query.module_name:
            desc_parts.append(f"module: {query.module_name}")
        if query.transaction_type:
            desc_parts.append(f"type: {query.transaction_type.value}")
        if query.date_from or query.date_to:
            desc_parts.append(self._date_range_str(query.date_from, query.date_to))
        if query.group_by:
            desc_parts.append(f"grouped by {query.group_by}")
        return " | ".join(desc_parts)

    def _date_range_str(
        self,
        date_from: Optional[date],
        date_to: Optional[date],
    ) -> str:
        """Format date range for description."""
        if date_from and date_to:
            if date_from == date_to:
                return f"on {date_from.strftime('%d %b %Y')}"
            elif date_from.month == date_to.month and date_from.year == date_to.year:
                return f"in {date_from.strftime('%B %Y')}"
            else:
                return f"from {date_from.strftime('%d %b %Y')} to {date_to.strftime('%d %b %Y')}"
        elif date_from:
            return f"from {date_from.strftime('%d %b %Y')}"
        elif date_to:
            return f"until {date_to.strftime('%d %b %Y')}"
        return ""
