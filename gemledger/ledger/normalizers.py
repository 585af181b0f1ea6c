"""
Record Normalizers

One pure function per record kind, mapping that kind's native shape
onto LedgerEntry objects. The mapping (which column an amount lands in,
which field is the reference, how ids are prefixed) is fixed: it is what
the statement, the chat analytics and the company metrics all agree on.

Rules shared by every arm:
- Amounts go through the currency resolver, never through local math
  (deal records and stone sales are already in the reporting currency)
- A zero amount produces no entry; a negative amount lands in the
  opposite column, so debit/credit stay non-negative and the running
  balance moves the same way
- A record the arm cannot place in time (no date) is rejected, not
  guessed
"""

from decimal import Decimal
from typing import Any, Callable, Optional

import structlog
from pydantic import BaseModel, Field, ValidationError

from gemledger.config import LedgerSettings, ModuleConfig, get_settings
from gemledger.config.modules import APP_MODULES, get_module_name, stone_location_modules
from gemledger.ledger.currency import ConversionRule, resolve_amount
from gemledger.models.ledger import (
    CapitalRecord,
    CutPolishExpenseRecord,
    DealRecord,
    ExpenseRecord,
    ExportChargeRecord,
    HotelChargeRecord,
    LedgerEntry,
    PaymentLedgerRecord,
    PaymentStatus,
    PurchasingRecord,
    RecordKind,
    ServiceRecord,
    SourceRecord,
    StatementLineRecord,
    Stone,
    TicketVisaRecord,
    TransactionType,
)


logger = structlog.get_logger(__name__)

DEBIT = "debit"
CREDIT = "credit"

PAYABLE_MODULE_ID = "payable"
STONE_SOLD_STATUS = "Sold"


class RecordRejectedError(Exception):
    """A source record that cannot become a ledger entry."""

    def __init__(self, record_id: str, reason: str):
        self.record_id = record_id
        self.reason = reason
        super().__init__(f"Record {record_id or '<no id>'} rejected: {reason}")


class NormalizationContext(BaseModel):
    """Everything a normalizer may consult besides the record itself."""

    reporting_currency: str = "LKR"
    strict_currency: bool = False
    modules: list[ModuleConfig] = Field(default_factory=lambda: list(APP_MODULES))
    fallback_module_id: str = "vision-gems"
    fallback_tab_id: str = "Spinel"

    @classmethod
    def from_settings(
        cls,
        settings: Optional[LedgerSettings] = None,
        modules: Optional[list[ModuleConfig]] = None,
    ) -> 'NormalizationContext':
        settings = settings or get_settings().ledger
        return cls(
            reporting_currency=settings.reporting_currency,
            strict_currency=settings.strict_currency,
            modules=list(modules if modules is not None else APP_MODULES),
            fallback_module_id=settings.fallback_module_id,
            fallback_tab_id=settings.fallback_tab_id,
        )


# =============================================================================
# SHARED BUILDING BLOCKS
# =============================================================================

class _Converted(BaseModel):
    amount: Decimal
    original_currency: Optional[str] = None
    original_amount: Optional[Decimal] = None
    fallback: bool = False


def _convert(
    record: SourceRecord,
    amount: Decimal,
    ctx: NormalizationContext,
    currency: Optional[str] = None,
    use_record_conversion: bool = True,
) -> _Converted:
    currency = currency if currency is not None else record.currency
    converted, rule = resolve_amount(
        amount,
        currency,
        record.converted_amount if use_record_conversion else None,
        record.exchange_rate if use_record_conversion else None,
        ctx.reporting_currency,
    )

    foreign = currency is not None and rule != ConversionRule.SAME_CURRENCY
    fallback = foreign and rule == ConversionRule.FALLBACK
    if fallback:
        if ctx.strict_currency:
            raise RecordRejectedError(
                record.id,
                f"no converted amount or exchange rate for {amount} {currency}",
            )
        logger.warning(
            "currency_fallback",
            record_id=record.id,
            currency=currency,
            amount=str(amount),
            reporting_currency=ctx.reporting_currency,
        )

    return _Converted(
        amount=converted,
        original_currency=currency if foreign else None,
        original_amount=amount if foreign else None,
        fallback=fallback,
    )


def _require_date(record_id: str, *candidates: str) -> str:
    for candidate in candidates:
        if candidate and candidate.strip():
            return candidate.strip()
    raise RecordRejectedError(record_id, "no date")


def _entry(
    *,
    entry_id: str,
    date: str,
    module_id: str,
    tab_id: str,
    transaction_type: TransactionType,
    description: str,
    reference: str,
    amount: Decimal,
    direction: str,
    ctx: NormalizationContext,
    metadata: dict[str, Any],
    converted: Optional[_Converted] = None,
) -> Optional[LedgerEntry]:
    """Build one entry, or None for a zero amount."""
    if amount == 0:
        logger.debug("zero_amount_skipped", entry_id=entry_id)
        return None
    if amount < 0:
        direction = CREDIT if direction == DEBIT else DEBIT
        amount = -amount

    return LedgerEntry(
        id=entry_id,
        date=date,
        module_id=module_id,
        module_name=get_module_name(module_id, ctx.modules),
        tab_id=tab_id,
        tab_name=tab_id,
        transaction_type=transaction_type,
        description=description,
        reference=reference,
        debit=amount if direction == DEBIT else Decimal("0"),
        credit=amount if direction == CREDIT else Decimal("0"),
        original_currency=converted.original_currency if converted else None,
        original_amount=converted.original_amount if converted else None,
        conversion_fallback=converted.fallback if converted else False,
        metadata=metadata,
    )


def _single(entry: Optional[LedgerEntry]) -> list[LedgerEntry]:
    return [entry] if entry is not None else []


def _simple_expense(
    record: SourceRecord,
    module_id: str,
    tab_id: str,
    ctx: NormalizationContext,
    *,
    kind: RecordKind,
    description: str,
    transaction_type: TransactionType = TransactionType.EXPENSE,
    amount: Optional[Decimal] = None,
    date: Optional[str] = None,
) -> list[LedgerEntry]:
    """The common "one record, one debit" shape."""
    amount = record.amount if amount is None else amount
    converted = _convert(record, amount, ctx)
    return _single(_entry(
        entry_id=f"{kind.value}-{record.id}",
        date=_require_date(record.id, date or "", record.date),
        module_id=module_id,
        tab_id=tab_id,
        transaction_type=transaction_type,
        description=description,
        reference=record.code,
        amount=converted.amount,
        direction=DEBIT,
        ctx=ctx,
        metadata=record.raw,
        converted=converted,
    ))


# =============================================================================
# NORMALIZERS - one per RecordKind
# =============================================================================

def normalize_expense(
    record: ExpenseRecord, module_id: str, tab_id: str, ctx: NormalizationContext
) -> list[LedgerEntry]:
    return _simple_expense(
        record, module_id, tab_id, ctx,
        kind=RecordKind.EXPENSE,
        description=record.description or record.title,
    )


def normalize_cut_polish(
    record: CutPolishExpenseRecord, module_id: str, tab_id: str, ctx: NormalizationContext
) -> list[LedgerEntry]:
    """Cut & polish jobs carry no conversion fields; no currency means reporting currency."""
    converted = _convert(
        record,
        record.amount,
        ctx,
        currency=record.currency or ctx.reporting_currency,
        use_record_conversion=False,
    )
    return _single(_entry(
        entry_id=f"{RecordKind.CUT_POLISH.value}-{record.id}",
        date=_require_date(record.id, record.date),
        module_id=module_id,
        tab_id=tab_id,
        transaction_type=TransactionType.EXPENSE,
        description=record.description or f"Cut & Polish - {record.name}",
        reference=record.code,
        amount=converted.amount,
        direction=DEBIT,
        ctx=ctx,
        metadata=record.raw,
        converted=converted,
    ))


def normalize_ticket_visa(
    record: TicketVisaRecord, module_id: str, tab_id: str, ctx: NormalizationContext
) -> list[LedgerEntry]:
    return _simple_expense(
        record, module_id, tab_id, ctx,
        kind=RecordKind.TICKET_VISA,
        description=record.description or f"Ticket/Visa - {record.passenger_name}",
    )


def normalize_service(
    record: ServiceRecord, module_id: str, tab_id: str, ctx: NormalizationContext
) -> list[LedgerEntry]:
    return _simple_expense(
        record, module_id, tab_id, ctx,
        kind=RecordKind.SERVICE,
        description=record.description or record.service_name,
    )


def normalize_payment_ledger(
    record: PaymentLedgerRecord, module_id: str, tab_id: str, ctx: NormalizationContext
) -> list[LedgerEntry]:
    """
    Up to two entries per line:
    - the paid amount, as income
    - in the payable module, a settled outstanding amount, as expense
    """
    entries = []
    date = None

    if record.paid_amount > 0:
        date = _require_date(record.id, record.payment_date, record.date)
        converted = _convert(record, record.paid_amount, ctx)
        entries.extend(_single(_entry(
            entry_id=f"payment-credit-{record.id}",
            date=date,
            module_id=module_id,
            tab_id=tab_id,
            transaction_type=TransactionType.INCOME,
            description=f"Payment Received - {record.description}",
            reference=record.code,
            amount=converted.amount,
            direction=CREDIT,
            ctx=ctx,
            metadata=record.raw,
            converted=converted,
        )))

    if (
        module_id == PAYABLE_MODULE_ID
        and record.outstanding_amount > 0
        and record.status == PaymentStatus.PAID.value
    ):
        date = date or _require_date(record.id, record.payment_date, record.date)
        converted = _convert(record, record.outstanding_amount, ctx)
        entries.extend(_single(_entry(
            entry_id=f"payable-debit-{record.id}",
            date=date,
            module_id=module_id,
            tab_id=tab_id,
            transaction_type=TransactionType.EXPENSE,
            description=f"Payable Paid - {record.description}",
            reference=record.code,
            amount=converted.amount,
            direction=DEBIT,
            ctx=ctx,
            metadata=record.raw,
            converted=converted,
        )))

    return entries


def normalize_purchasing(
    record: PurchasingRecord, module_id: str, tab_id: str, ctx: NormalizationContext
) -> list[LedgerEntry]:
    return _simple_expense(
        record, module_id, tab_id, ctx,
        kind=RecordKind.PURCHASING,
        transaction_type=TransactionType.PURCHASE,
        description=record.description or f"Purchase - {record.supplier_name}",
        amount=record.cost,
    )


def normalize_capital(
    record: CapitalRecord, module_id: str, tab_id: str, ctx: NormalizationContext
) -> list[LedgerEntry]:
    """purchased/exchange movements are debits, everything else is a credit."""
    converted = _convert(record, record.amount, ctx)
    description = record.description or (
        f"Capital {record.transaction_type} - {record.vendor_name}".rstrip(" -")
    )
    return _single(_entry(
        entry_id=f"{RecordKind.CAPITAL.value}-{record.id}",
        date=_require_date(record.id, record.date),
        module_id=module_id,
        tab_id=tab_id,
        transaction_type=TransactionType.CAPITAL,
        description=description,
        reference=record.code,
        amount=converted.amount,
        direction=DEBIT if record.is_outflow else CREDIT,
        ctx=ctx,
        metadata=record.raw,
        converted=converted,
    ))


def normalize_export(
    record: ExportChargeRecord, module_id: str, tab_id: str, ctx: NormalizationContext
) -> list[LedgerEntry]:
    return _simple_expense(
        record, module_id, tab_id, ctx,
        kind=RecordKind.EXPORT,
        transaction_type=TransactionType.EXPORT,
        description=record.description,
    )


def normalize_statement(
    record: StatementLineRecord, module_id: str, tab_id: str, ctx: NormalizationContext
) -> list[LedgerEntry]:
    """Bank/Cash lines are deposits (credit); transfers, cheques etc. are debits."""
    converted = _convert(record, record.amount, ctx)
    return _single(_entry(
        entry_id=f"{RecordKind.STATEMENT.value}-{record.id}",
        date=_require_date(record.id, record.date),
        module_id=module_id,
        tab_id=tab_id,
        transaction_type=TransactionType.STATEMENT,
        description=record.description,
        reference=record.code,
        amount=converted.amount,
        direction=CREDIT if record.is_deposit else DEBIT,
        ctx=ctx,
        metadata=record.raw,
        converted=converted,
    ))


def normalize_deal(
    record: DealRecord, module_id: str, tab_id: str, ctx: NormalizationContext
) -> list[LedgerEntry]:
    """Deals are recorded in the reporting currency; the raw amount is income."""
    return _single(_entry(
        entry_id=f"{RecordKind.DEAL.value}-{record.id}",
        date=_require_date(record.id, record.date),
        module_id=module_id,
        tab_id=tab_id,
        transaction_type=TransactionType.INCOME,
        description=record.description or f"Deal - {record.name}",
        reference=record.code,
        amount=record.amount,
        direction=CREDIT,
        ctx=ctx,
        metadata=record.raw,
    ))


def normalize_hotel(
    record: HotelChargeRecord, module_id: str, tab_id: str, ctx: NormalizationContext
) -> list[LedgerEntry]:
    return _simple_expense(
        record, module_id, tab_id, ctx,
        kind=RecordKind.HOTEL,
        description=f"Hotel - {record.hotel_name}",
        date=record.check_in_date,
    )


# =============================================================================
# STONE SALES
# =============================================================================

def resolve_stone_location(stone: Stone, ctx: NormalizationContext) -> tuple[str, str]:
    """
    (module_id, tab_id) a stone sale is shown under.

    The stone's free-text location / original category is matched
    case-insensitively against inventory tabs, substring either way.
    When several modules match, the last one in catalog order wins.

    Blank fields match nothing. Older releases let an empty location
    match every tab (an empty substring is in every string), so a stone
    with no location landed on the last inventory tab; such stones now
    go to the fallback tab instead.
    """
    needles = [
        value.strip().lower()
        for value in (stone.location, stone.original_category)
        if value and value.strip()
    ]

    if needles:
        for module in reversed(stone_location_modules(ctx.modules)):
            for tab in module.tabs:
                tab_lower = tab.lower()
                if any(needle in tab_lower or tab_lower in needle for needle in needles):
                    return module.id, tab

    return (
        ctx.fallback_module_id,
        stone.original_category.strip() or stone.location.strip() or ctx.fallback_tab_id,
    )


def is_recorded_sale(stone: Stone) -> bool:
    return (
        stone.status == STONE_SOLD_STATUS
        and stone.final_price is not None
        and stone.final_price > 0
        and bool(stone.sell_date.strip())
    )


def normalize_stone_sale(stone: Stone, ctx: NormalizationContext) -> list[LedgerEntry]:
    """
    A sold stone yields a sale entry on its sell date and, once the buyer
    has paid, a separate payment entry on the received date.
    """
    if not is_recorded_sale(stone):
        return []

    module_id, tab_id = resolve_stone_location(stone, ctx)
    sale_amount = stone.final_price
    entries = _single(_entry(
        entry_id=f"stone-sale-{stone.id}",
        date=stone.sell_date.strip(),
        module_id=module_id,
        tab_id=tab_id,
        transaction_type=TransactionType.INCOME,
        description=f"Stone Sale - {stone.code_no} ({stone.variety or 'Stone'})",
        reference=stone.code_no,
        amount=sale_amount,
        direction=CREDIT,
        ctx=ctx,
        metadata=stone.raw,
    ))

    if (
        stone.sales_payment_status == PaymentStatus.PAID.value
        and stone.payment_received_date.strip()
    ):
        paid_amount = stone.transaction_amount or sale_amount
        entries.extend(_single(_entry(
            entry_id=f"stone-payment-{stone.id}",
            date=stone.payment_received_date.strip(),
            module_id=module_id,
            tab_id=tab_id,
            transaction_type=TransactionType.INCOME,
            description=f"Payment Received - {stone.code_no} ({stone.buyer or 'Buyer'})",
            reference=f"{stone.code_no}-PAY",
            amount=paid_amount,
            direction=CREDIT,
            ctx=ctx,
            metadata={**stone.raw, "paymentMethod": stone.sales_payment_method},
        )))

    return entries


# =============================================================================
# DISPATCH
# =============================================================================

Normalizer = Callable[[Any, str, str, NormalizationContext], list[LedgerEntry]]

NORMALIZERS: dict[RecordKind, tuple[type[SourceRecord], Normalizer]] = {
    RecordKind.EXPENSE: (ExpenseRecord, normalize_expense),
    RecordKind.CUT_POLISH: (CutPolishExpenseRecord, normalize_cut_polish),
    RecordKind.TICKET_VISA: (TicketVisaRecord, normalize_ticket_visa),
    RecordKind.SERVICE: (ServiceRecord, normalize_service),
    RecordKind.PAYMENT_LEDGER: (PaymentLedgerRecord, normalize_payment_ledger),
    RecordKind.PURCHASING: (PurchasingRecord, normalize_purchasing),
    RecordKind.CAPITAL: (CapitalRecord, normalize_capital),
    RecordKind.EXPORT: (ExportChargeRecord, normalize_export),
    RecordKind.STATEMENT: (StatementLineRecord, normalize_statement),
    RecordKind.DEAL: (DealRecord, normalize_deal),
    RecordKind.HOTEL: (HotelChargeRecord, normalize_hotel),
}


def _record_id(raw: Any) -> str:
    if isinstance(raw, dict) and raw.get("id") is not None:
        return str(raw["id"])
    return ""


def normalize_records(
    kind: RecordKind,
    raw_records: list[Any],
    module_id: str,
    tab_id: str,
    ctx: NormalizationContext,
) -> tuple[list[LedgerEntry], int]:
    """
    Normalize every record of one partition.

    Returns (entries, rejected_count). A rejected record is logged and
    skipped; it never takes the rest of the partition down with it.
    """
    model, normalizer = NORMALIZERS[kind]
    entries: list[LedgerEntry] = []
    rejected = 0

    for raw in raw_records:
        try:
            if not isinstance(raw, dict):
                raise RecordRejectedError("", f"not an object: {type(raw).__name__}")
            record = model.from_store(raw)
            entries.extend(normalizer(record, module_id, tab_id, ctx))
        except (RecordRejectedError, ValidationError) as e:
            rejected += 1
            logger.warning(
                "record_rejected",
                kind=kind.value,
                module_id=module_id,
                tab_id=tab_id,
                record_id=_record_id(raw),
                error=str(e),
            )

    return entries, rejected


def normalize_stones(
    raw_stones: list[Any],
    ctx: NormalizationContext,
) -> tuple[list[LedgerEntry], int]:
    """Stone-sale entries for every sold stone in the registry."""
    entries: list[LedgerEntry] = []
    rejected = 0

    for raw in raw_stones:
        try:
            if not isinstance(raw, dict):
                raise RecordRejectedError("", f"not an object: {type(raw).__name__}")
            entries.extend(normalize_stone_sale(Stone.from_store(raw), ctx))
        except (RecordRejectedError, ValidationError) as e:
            rejected += 1
            logger.warning(
                "record_rejected",
                kind=RecordKind.STONE_SALE.value,
                record_id=_record_id(raw),
                error=str(e),
            )

    return entries, rejected
