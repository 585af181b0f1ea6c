"""
Tests for Gem Ledger models

Test strategy:
1. Unit tests for individual components (models, normalizers, resolvers)
2. Integration tests for flows over an in-memory store
3. No network calls in tests (Google Sheets is never touched)
"""

import pytest
from decimal import Decimal
from uuid import uuid4

from gemledger.models.ledger import (
    CapitalRecord,
    ChildRecord,
    CutPolishRecord,
    CutPolishType,
    ExpenseRecord,
    LedgerEntry,
    PaymentLedgerRecord,
    RecordKind,
    StatementLineRecord,
    Stone,
    SyncResult,
    TransactionType,
    normalize_code,
)
from gemledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


def make_entry(**overrides) -> LedgerEntry:
    data = dict(
        id="expense-1",
        date="2024-01-01",
        module_id="vision-gems",
        module_name="Vision Gems SL",
        tab_id="Approval",
        tab_name="Approval",
        transaction_type=TransactionType.EXPENSE,
        debit=Decimal("100"),
    )
    data.update(overrides)
    return LedgerEntry(**data)


class TestLedgerEntry:
    """Tests for the canonical ledger line."""

    def test_debit_entry_creation(self):
        """Test a plain debit entry."""
        entry = make_entry()
        assert entry.debit == Decimal("100")
        assert entry.credit == Decimal("0")
        assert entry.balance == Decimal("0")
        assert entry.conversion_fallback is False

    def test_net_is_credit_minus_debit(self):
        """Test the effect of an entry on the running balance."""
        assert make_entry().net == Decimal("-100")
        assert make_entry(debit=Decimal("0"), credit=Decimal("40")).net == Decimal("40")

    def test_rejects_both_sides(self):
        """Test that an entry cannot be a debit and a credit at once."""
        with pytest.raises(ValueError, match="both a debit and a credit"):
            make_entry(credit=Decimal("5"))

    def test_rejects_zero_entry(self):
        """Test that an entry must move some money."""
        with pytest.raises(ValueError, match="non-zero"):
            make_entry(debit=Decimal("0"))

    def test_rejects_negative_amounts(self):
        """Test that debit/credit are never negative."""
        with pytest.raises(ValueError):
            make_entry(debit=Decimal("-1"))

    def test_rejects_blank_date(self):
        """Test that the sort key is mandatory."""
        with pytest.raises(ValueError):
            make_entry(date="")


class TestSourceRecords:
    """Tests for the per-kind source record models."""

    def test_camel_case_fields_are_read(self):
        """Test that stored camelCase names map onto the model."""
        record = ExpenseRecord.from_store({
            "id": "e1",
            "date": "2024-01-01",
            "vendorName": "Ravi",
            "convertedAmount": "1,500.50",
            "exchangeRate": 300,
        })
        assert record.vendor_name == "Ravi"
        assert record.converted_amount == Decimal("1500.50")
        assert record.exchange_rate == Decimal("300")

    def test_raw_record_is_kept(self):
        """Test that the stored dict is available unchanged, unknown fields included."""
        raw = {"id": "e1", "amount": 10, "somethingNew": "kept"}
        record = ExpenseRecord.from_store(raw)
        assert record.raw == raw
        assert record.raw is not raw

    def test_blank_amount_is_zero(self):
        """Test that a blank amount reads as zero."""
        assert ExpenseRecord.from_store({"id": "e1", "amount": ""}).amount == Decimal("0")

    def test_non_numeric_amount_rejected(self):
        """Test that garbage in an amount field fails validation."""
        with pytest.raises(ValueError):
            ExpenseRecord.from_store({"id": "e1", "amount": "abc"})

    @pytest.mark.parametrize("amount", ["1e999999999", "1000000000000000", "NaN", "-Infinity"])
    def test_out_of_range_amount_rejected(self, amount):
        """Test that non-finite and absurdly large amounts fail validation."""
        with pytest.raises(ValueError):
            ExpenseRecord.from_store({"id": "e1", "amount": amount})

    def test_large_decimal_amount_rejected(self):
        """Test the bound also applies to amounts already decoded as Decimal."""
        with pytest.raises(ValueError):
            ExpenseRecord.from_store({"id": "e1", "amount": Decimal("1E+999999999")})

    def test_amount_below_bound_accepted(self):
        record = ExpenseRecord.from_store({"id": "e1", "amount": "999999999999999.99"})
        assert record.amount == Decimal("999999999999999.99")

    def test_missing_id_rejected(self):
        """Test that a record without id fails validation."""
        with pytest.raises(ValueError):
            ExpenseRecord.from_store({"amount": 10})

    def test_numeric_id_coerced(self):
        """Test that numeric ids (common in old data) become strings."""
        assert ExpenseRecord.from_store({"id": 17}).id == "17"

    def test_currency_normalized(self):
        """Test that currency codes are trimmed and uppercased; blank means none."""
        assert ExpenseRecord.from_store({"id": "e1", "currency": " usd "}).currency == "USD"
        assert ExpenseRecord.from_store({"id": "e1", "currency": ""}).currency is None

    def test_capital_outflow(self):
        """Test which capital movements draw money."""
        assert CapitalRecord(id="c1", transaction_type="purchased").is_outflow is True
        assert CapitalRecord(id="c1", transaction_type="exchange").is_outflow is True
        assert CapitalRecord(id="c1", transaction_type="received").is_outflow is False

    def test_statement_deposit(self):
        """Test which statement lines are deposits."""
        assert StatementLineRecord(id="s1", type="Bank").is_deposit is True
        assert StatementLineRecord(id="s1", type="Cash").is_deposit is True
        assert StatementLineRecord(id="s1", type="Cheque").is_deposit is False

    def test_payment_amounts_default_to_zero(self):
        """Test that missing payment ledger amounts read as zero."""
        record = PaymentLedgerRecord.from_store({"id": "p1", "paidAmount": None})
        assert record.paid_amount == Decimal("0")
        assert record.outstanding_amount == Decimal("0")


class TestStone:
    """Tests for the owning entity."""

    def test_child_records_alias(self):
        """Test that cutPolishRecords become child records with extras kept."""
        stone = Stone.from_store({
            "id": "s1",
            "codeNo": "vg-001",
            "cutPolishRecords": [{"id": "r1", "worker": "Ravi"}],
        })
        assert stone.natural_key == "VG-001"
        assert stone.child_records[0].id == "r1"
        assert stone.to_store_dict()["cutPolishRecords"] == [{"id": "r1", "worker": "Ravi"}]

    def test_free_text_sale_fields_do_not_invalidate(self):
        """Test that only id and children can make a stone invalid."""
        stone = Stone.from_store({
            "id": "s1", "codeNo": "A", "finalPrice": "TBD", "transactionAmount": "?",
            "exchangeRate": "n/a", "amount": "",
        })
        assert stone.natural_key == "A"
        assert stone.final_price is None
        assert stone.transaction_amount is None
        assert stone.to_store_dict()["exchangeRate"] == "n/a"

    def test_untouched_children_keep_stored_shape(self):
        """Test that children read from the store are written back as read."""
        stone = Stone.from_store({
            "id": "s1",
            "cutPolishRecords": [{"id": 5, "amount": 10}, {"id": "r2"}],
        })
        stone.remove_child("r2")
        assert stone.to_store_dict()["cutPolishRecords"] == [{"id": 5, "amount": 10}]

    def test_null_child_collection(self):
        """Test that a null collection is treated as empty."""
        stone = Stone.from_store({"id": "s1", "cutPolishRecords": None})
        assert stone.child_records == []

    def test_find_and_remove_child(self):
        """Test lookup and removal of embedded records by id."""
        stone = Stone.from_store({
            "id": "s1",
            "cutPolishRecords": [{"id": "r1"}, {"id": "r2"}, {"id": "r1"}],
        })
        assert stone.find_child("r2") == 1
        assert stone.find_child("nope") == -1
        assert stone.remove_child("r1") is True
        assert [child.id for child in stone.child_records] == ["r2"]
        assert stone.remove_child("r1") is False

    def test_store_dict_preserves_other_fields(self):
        """Test that writing a stone back only replaces its child collection."""
        raw = {"id": "s1", "codeNo": "A", "weight": 1.25, "shape": "Oval", "cutPolishRecords": []}
        stone = Stone.from_store(raw)
        stone.child_records.append(CutPolishRecord(id="r1", worker="Ravi", amount=Decimal("500")))

        data = stone.to_store_dict()
        assert data["weight"] == 1.25
        assert data["shape"] == "Oval"
        assert data["cutPolishRecords"][0]["worker"] == "Ravi"
        assert data["cutPolishRecords"][0]["paymentMethod"] == "Cash"
        assert raw["cutPolishRecords"] == []

    def test_cut_polish_record_defaults(self):
        """Test embedded cut & polish job defaults."""
        record = CutPolishRecord(id="r1")
        assert record.type == CutPolishType.CUT
        assert record.payment_method == "Cash"
        assert record.amount == Decimal("0")

    def test_child_record_blank_id_allowed(self):
        """Test that legacy children without id still load."""
        assert ChildRecord.model_validate({"worker": "x"}).id == ""

    def test_normalize_code(self):
        """Test natural key normalization."""
        assert normalize_code("  vg-001 ") == "VG-001"
        assert normalize_code(None) == ""


class TestSyncResult:
    """Tests for SyncResult."""

    def test_defaults(self):
        """Test the empty result."""
        result = SyncResult()
        assert result.updated_count == 0
        assert result.not_found is False
        assert result.detached_count == 0

    def test_negative_count_rejected(self):
        """Test counts are non-negative."""
        with pytest.raises(ValueError):
            SyncResult(updated_count=-1)


class TestRecordKind:
    """Tests for the record kind enum."""

    def test_values_are_entry_id_prefixes(self):
        """Test the entry id prefixes."""
        assert RecordKind.EXPENSE.value == "expense"
        assert RecordKind.CUT_POLISH.value == "cutpolish"
        assert RecordKind.TICKET_VISA.value == "ticket"
        assert RecordKind.PURCHASING.value == "purchase"
        assert RecordKind.STONE_SALE.value == "stone"


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.LEDGER_ASSEMBLED,
            description="Ledger assembled",
        )
        assert event.event_type == AuditEventType.LEDGER_ASSEMBLED
        assert event.severity == AuditSeverity.INFO
        assert event.timestamp.tzinfo is not None

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.CHILD_RECORD_SYNCED,
            description="Child record synced",
            details={"code": "VG-001"},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "child_record_synced"
        assert log_dict["details"]["code"] == "VG-001"

    def test_audit_event_to_sheets_row(self):
        """Test conversion to sheets row."""
        event = AuditEvent(
            event_type=AuditEventType.PARTITION_PARSE_FAILED,
            entity_id="expense_vision-gems_Z",
            description="Partition skipped",
            error_message="invalid JSON",
        )
        row = event.to_sheets_row()
        assert len(row) == 10  # Expected number of columns
        assert row[2] == "partition_parse_failed"
        assert row[5] == "expense_vision-gems_Z"
        assert row[9] == "invalid JSON"

    def test_audit_event_from_sheets_row(self):
        """Test reading an event back from its sheet row."""
        event = AuditEventBuilder.child_record_detached(
            entity_id="s1",
            from_code="A",
            to_code="B",
            child_record_id="r1",
            correlation_id=uuid4(),
        )
        restored = AuditEvent.from_sheets_row(event.to_sheets_row())
        assert restored.event_id == event.event_id
        assert restored.timestamp == event.timestamp
        assert restored.correlation_id == event.correlation_id
        assert restored.details == event.details
        assert restored.error_message is None

    def test_audit_event_from_malformed_row(self):
        """Test that a row that is not an event raises ValueError."""
        with pytest.raises(ValueError):
            AuditEvent.from_sheets_row(["not-a-uuid", "yesterday"])

    def test_audit_event_builder_child_record_synced(self):
        """Test AuditEventBuilder.child_record_synced."""
        correlation_id = uuid4()

        event = AuditEventBuilder.child_record_synced(
            entity_id="s1",
            code="VG-001",
            child_record_id="r1",
            replaced=True,
            correlation_id=correlation_id,
        )

        assert event.event_type == AuditEventType.CHILD_RECORD_SYNCED
        assert event.entity_id == "s1"
        assert event.correlation_id == correlation_id
        assert event.details["action"] == "replaced"

    def test_audit_event_builder_not_found_is_warning(self):
        """Test AuditEventBuilder.owning_entity_not_found."""
        event = AuditEventBuilder.owning_entity_not_found(
            code="NOPE",
            child_record_id="r1",
            operation="upsert",
        )
        assert event.severity == AuditSeverity.WARNING
        assert event.details["operation"] == "upsert"

    def test_ledger_assembled_with_skips_is_warning(self):
        """Test that skipped partitions raise the severity of the summary."""
        clean = AuditEventBuilder.ledger_assembled(10, 3, 0)
        skipped = AuditEventBuilder.ledger_assembled(10, 3, 1)
        assert clean.severity == AuditSeverity.INFO
        assert skipped.severity == AuditSeverity.WARNING


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
