"""
Core Data Models for Gem Ledger

Three families of models live here:
1. LedgerEntry - the canonical, derived, single-currency statement line
2. Source records - one model per RecordKind, read from store partitions
3. Owning entities (stones) and the child records embedded in them

DESIGN DECISION: Source records keep the camelCase field names the store
has always used (via alias_generator) and allow unknown fields, because
the store has no schema and old data was never migrated. Validation only
rejects what would make a ledger line meaningless (non-numeric amounts).
"""

from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PrivateAttr,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """Ledger classification of an entry."""
    INCOME = "Income"
    EXPENSE = "Expense"
    PURCHASE = "Purchase"
    CAPITAL = "Capital"
    EXPORT = "Export"
    STATEMENT = "Statement"


class RecordKind(str, Enum):
    """
    Kind of partition a source record was read from.

    The value doubles as the prefix of the ledger entry id.
    Declaration order is the per-tab scan order.
    """
    EXPENSE = "expense"
    CUT_POLISH = "cutpolish"
    TICKET_VISA = "ticket"
    SERVICE = "service"
    PAYMENT_LEDGER = "payment"
    PURCHASING = "purchase"
    CAPITAL = "capital"
    EXPORT = "export"
    STATEMENT = "statement"
    DEAL = "deal"
    HOTEL = "hotel"
    STONE_SALE = "stone"


# =============================================================================
# COERCION HELPERS
# =============================================================================

# Largest accepted amount is just under 10**15; anything beyond is a typo
# or garbage and would overflow the running balance.
MAX_AMOUNT_EXPONENT = 15


def _to_decimal(value: Any) -> Optional[Decimal]:
    """
    Parse a loosely-typed amount. Blank means absent.

    Raises ValueError for text that is not a number, for NaN/Infinity
    and for amounts of 10**15 or more.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip().replace(",", "")
        if not value:
            return None
    if isinstance(value, Decimal):
        parsed = value
    else:
        try:
            parsed = Decimal(str(value))
        except InvalidOperation:
            raise ValueError(f"Not a number: {value!r}")

    if not parsed.is_finite():
        raise ValueError(f"Not a finite number: {value!r}")
    if parsed and parsed.adjusted() >= MAX_AMOUNT_EXPONENT:
        raise ValueError(f"Amount out of range: {value!r}")
    return parsed


def _to_decimal_or_none(value: Any) -> Optional[Decimal]:
    """Like _to_decimal, but anything unparseable reads as absent."""
    try:
        return _to_decimal(value)
    except ValueError:
        return None


def _to_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


# =============================================================================
# LEDGER ENTRY
# =============================================================================

class LedgerEntry(BaseModel):
    """
    One line of the consolidated statement.

    CRITICAL: Never persisted. Built from partitions on every read.
    Exactly one of debit/credit is non-zero; a source record with two
    financial effects becomes two entries.
    """
    model_config = ConfigDict(frozen=False)

    id: str = Field(
        ...,
        min_length=1,
        description="{kind prefix}-{source record id}"
    )
    date: str = Field(
        ...,
        min_length=1,
        description="ISO date (YYYY-MM-DD); sort key"
    )

    # Provenance
    module_id: str
    module_name: str
    tab_id: str
    tab_name: str

    transaction_type: TransactionType
    description: str = ""
    reference: str = Field(
        default="",
        description="Natural key (code) of the originating record"
    )

    # Amounts in the reporting currency
    debit: Decimal = Field(default=Decimal("0"), ge=0)
    credit: Decimal = Field(default=Decimal("0"), ge=0)
    balance: Decimal = Field(
        default=Decimal("0"),
        description="Running balance, assigned by the assembler only"
    )

    # Audit trail of the conversion
    original_currency: Optional[str] = None
    original_amount: Optional[Decimal] = None
    conversion_fallback: bool = Field(
        default=False,
        description="Foreign amount taken unconverted (no converted amount, no rate)"
    )

    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="The source record, for drill-down only"
    )

    @model_validator(mode='after')
    def validate_single_direction(self) -> 'LedgerEntry':
        """An entry moves money in one direction only."""
        if self.debit > 0 and self.credit > 0:
            raise ValueError("Ledger entry cannot carry both a debit and a credit")
        if self.debit == 0 and self.credit == 0:
            raise ValueError("Ledger entry must carry a non-zero debit or credit")
        return self

    @property
    def net(self) -> Decimal:
        """Effect on the running balance."""
        return self.credit - self.debit


# =============================================================================
# SOURCE RECORDS - tagged by RecordKind
# =============================================================================

class SourceRecord(BaseModel):
    """
    Fields every partition record shares.

    Unknown fields are kept (extra="allow") so nothing is lost when a
    record is passed through as entry metadata.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    id: str = Field(..., min_length=1)
    date: str = ""
    code: str = ""
    description: str = ""
    currency: Optional[str] = None
    amount: Decimal = Decimal("0")
    converted_amount: Optional[Decimal] = None
    exchange_rate: Optional[Decimal] = None

    # The record exactly as stored, passed through as entry metadata
    _raw: dict[str, Any] = PrivateAttr(default_factory=dict)

    @classmethod
    def from_store(cls, raw: dict[str, Any]):
        record = cls.model_validate(raw)
        record._raw = dict(raw)
        return record

    @property
    def raw(self) -> dict[str, Any]:
        return self._raw

    @field_validator('id', 'date', 'code', 'description', mode='before')
    @classmethod
    def coerce_text(cls, v: Any) -> str:
        return _to_text(v)

    @field_validator('amount', mode='before')
    @classmethod
    def coerce_amount(cls, v: Any) -> Decimal:
        parsed = _to_decimal(v)
        return parsed if parsed is not None else Decimal("0")

    @field_validator('converted_amount', 'exchange_rate', mode='before')
    @classmethod
    def coerce_optional_amount(cls, v: Any) -> Optional[Decimal]:
        return _to_decimal(v)

    @field_validator('currency', mode='before')
    @classmethod
    def coerce_currency(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        v = str(v).strip().upper()
        return v or None


class ExpenseRecord(SourceRecord):
    title: str = ""
    vendor_name: str = ""


class CutPolishExpenseRecord(SourceRecord):
    name: str = ""
    type: str = ""
    payment_method: str = ""


class TicketVisaRecord(SourceRecord):
    passenger_name: str = ""


class ServiceRecord(SourceRecord):
    service_name: str = ""


class PaymentStatus(str, Enum):
    PAID = "Paid"
    PARTIAL = "Partial"
    PENDING = "Pending"
    OVERDUE = "Overdue"


class PaymentLedgerRecord(SourceRecord):
    customer_name: str = ""
    invoice_amount: Decimal = Decimal("0")
    paid_amount: Decimal = Decimal("0")
    outstanding_amount: Decimal = Decimal("0")
    status: str = ""
    payment_date: str = ""
    due_date: str = ""

    @field_validator('invoice_amount', 'paid_amount', 'outstanding_amount', mode='before')
    @classmethod
    def coerce_ledger_amount(cls, v: Any) -> Decimal:
        parsed = _to_decimal(v)
        return parsed if parsed is not None else Decimal("0")

    @field_validator('payment_date', 'due_date', mode='before')
    @classmethod
    def coerce_dates(cls, v: Any) -> str:
        return _to_text(v)


class PurchasingRecord(SourceRecord):
    supplier_name: str = ""
    cost: Decimal = Decimal("0")

    @field_validator('cost', mode='before')
    @classmethod
    def coerce_cost(cls, v: Any) -> Decimal:
        parsed = _to_decimal(v)
        return parsed if parsed is not None else Decimal("0")


class CapitalRecord(SourceRecord):
    """Capital movement; purchased/exchange draw money, others bring it in."""
    transaction_type: str = ""
    vendor_name: str = ""

    @property
    def is_outflow(self) -> bool:
        return self.transaction_type in ("purchased", "exchange")


class ExportChargeRecord(SourceRecord):
    pass


class StatementLineRecord(SourceRecord):
    """Bank/cash statement line; Bank and Cash lines are deposits."""
    type: str = ""

    @property
    def is_deposit(self) -> bool:
        return self.type in ("Bank", "Cash")


class DealRecord(SourceRecord):
    name: str = ""


class HotelChargeRecord(SourceRecord):
    check_in_date: str = ""
    hotel_name: str = ""

    @field_validator('check_in_date', mode='before')
    @classmethod
    def coerce_check_in(cls, v: Any) -> str:
        return _to_text(v)


# =============================================================================
# OWNING ENTITIES AND CHILD RECORDS
# =============================================================================

class ChildRecord(BaseModel):
    """A record embedded (denormalized) inside an owning entity."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    # Blank ids exist in old data; the sync manager refuses to write one.
    id: str = ""

    # Set for children read from the store; they are written back as read.
    _raw: Optional[dict[str, Any]] = PrivateAttr(default=None)

    @field_validator('id', mode='before')
    @classmethod
    def coerce_id(cls, v: Any) -> str:
        return _to_text(v)

    def to_store_dict(self) -> dict[str, Any]:
        if self._raw is not None:
            return dict(self._raw)
        return self.model_dump(by_alias=True)


class CutPolishType(str, Enum):
    CUT = "cut"
    POLISH = "polish"
    BOTH = "both"


class CutPolishRecord(ChildRecord):
    """Cut & polish job as embedded in a stone."""
    worker: str = ""
    type: CutPolishType = CutPolishType.CUT
    description: str = ""
    amount: Decimal = Field(default=Decimal("0"), description="Amount in the reporting currency")
    payment_method: str = "Cash"


class Stone(BaseModel):
    """
    A stone in the global registry.

    Acts both as the source of stone-sale ledger entries and as the
    owning entity whose cutPolishRecords are kept in sync by code.

    IMPORTANT: Only id and cutPolishRecords can make a stone invalid.
    Every other field is free text from an untyped store; a sale amount
    that does not parse reads as absent, so the stone is simply not a
    recorded sale and can still be matched by code.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    id: str = Field(..., min_length=1)
    code_no: str = ""
    status: str = ""
    variety: str = ""
    buyer: str = ""
    location: str = ""
    original_category: str = ""
    final_price: Optional[Decimal] = None
    sell_date: str = ""
    sales_payment_status: str = ""
    sales_payment_method: str = ""
    payment_received_date: str = ""
    transaction_amount: Optional[Decimal] = None

    child_records: list[ChildRecord] = Field(
        default_factory=list,
        alias="cutPolishRecords",
    )

    _raw: dict[str, Any] = PrivateAttr(default_factory=dict)

    @classmethod
    def from_store(cls, raw: dict[str, Any]) -> 'Stone':
        stone = cls.model_validate(raw)
        stone._raw = dict(raw)
        for child, child_raw in zip(stone.child_records, raw.get("cutPolishRecords") or []):
            if isinstance(child_raw, dict):
                child._raw = dict(child_raw)
        return stone

    @property
    def raw(self) -> dict[str, Any]:
        return self._raw

    @field_validator(
        'id', 'code_no', 'status', 'variety', 'buyer', 'location', 'original_category',
        'sell_date', 'sales_payment_status', 'sales_payment_method',
        'payment_received_date',
        mode='before',
    )
    @classmethod
    def coerce_stone_text(cls, v: Any) -> str:
        return _to_text(v)

    @field_validator('final_price', 'transaction_amount', mode='before')
    @classmethod
    def coerce_stone_amount(cls, v: Any) -> Optional[Decimal]:
        return _to_decimal_or_none(v)

    @field_validator('child_records', mode='before')
    @classmethod
    def coerce_children(cls, v: Any) -> list:
        return v or []

    @property
    def natural_key(self) -> str:
        return normalize_code(self.code_no)

    def find_child(self, child_id: str) -> int:
        """Index of the child record with this id, or -1."""
        for index, child in enumerate(self.child_records):
            if child.id == child_id:
                return index
        return -1

    def remove_child(self, child_id: str) -> bool:
        """Drop every child record with this id. True if any was dropped."""
        kept = [child for child in self.child_records if child.id != child_id]
        removed = len(kept) < len(self.child_records)
        self.child_records = kept
        return removed

    def to_store_dict(self) -> dict[str, Any]:
        """
        The stored blob with only the child collection replaced.

        Every other field, and every child that was read from the store
        and not replaced, is written back exactly as it was read.
        """
        data = dict(self._raw) if self._raw else self.model_dump(
            by_alias=True, exclude={"child_records"}
        )
        if self.original_category:
            data["originalCategory"] = self.original_category
        data["cutPolishRecords"] = [child.to_store_dict() for child in self.child_records]
        return data


def normalize_code(code: Optional[str]) -> str:
    """Natural keys compare trimmed and case-insensitively."""
    return (code or "").strip().upper()


# =============================================================================
# SYNC RESULT
# =============================================================================

class SyncResult(BaseModel):
    """
    Outcome of a child-record upsert/remove.

    not_found is not an error: the caller shows a transient warning and
    the edit of the source record stands on its own.
    """
    updated_count: int = Field(default=0, ge=0)
    not_found: bool = False
    detached_count: int = Field(
        default=0,
        ge=0,
        description="Entities the child record was removed from because it moved to another code"
    )
