"""Statement query package."""

from gemledger.queries.executor import (
    CSV_HEADERS,
    GroupTotals,
    LedgerQuery,
    LedgerQueryResult,
    QueryExecutor,
    StatementSummary,
    distinct_module_names,
    distinct_transaction_types,
    export_csv,
    group_totals,
    matches,
    summarize,
)

__all__ = [
    "CSV_HEADERS",
    "GroupTotals",
    "LedgerQuery",
    "LedgerQueryResult",
    "QueryExecutor",
    "StatementSummary",
    "distinct_module_names",
    "distinct_transaction_types",
    "export_csv",
    "group_totals",
    "matches",
    "summarize",
]
