"""
Tests for the ledger's JSON log lines.

Covers the events operators alert on (distribution_allocated,
reconciliation_mismatch, return_credited_to_destroyed_batch), the
``error`` object rendered from ledger exceptions, LogContext nesting and
handler replacement in configure_logging().
"""

import json
import logging
from datetime import UTC, date, datetime
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from distro_engines.reconciliation import ReconciliationStatus, reconcile
from distro_kernel.domain.dtos import DistributionInfo, ProductCategory
from distro_kernel.exceptions import (
    BatchDestroyedError,
    InsufficientStockError,
    RiderNotFoundError,
)
from distro_kernel.logging_config import LogContext, configure_logging, get_logger


def events(records, name):
    return [r for r in records if r["message"] == name]


class TestLedgerEvents:
    def test_allocation_tagged_with_rider_and_batch(
        self, captured_logs, distribution_ledger, create_product, create_rider, create_batch
    ):
        rider = create_rider()
        batch = create_batch(create_product(), quantity=40)

        dist = distribution_ledger.allocate(rider.id, batch.id, 25)

        [line] = events(captured_logs(), "distribution_allocated")
        assert line["level"] == "INFO"
        assert line["logger"] == "distro_kernel.services.distribution_ledger"
        assert line["rider_id"] == str(rider.id)
        assert line["batch_id"] == str(batch.id)
        assert line["distribution_id"] == str(dist.id)
        assert line["quantity"] == 25
        datetime.fromisoformat(line["ts"])

    def test_refused_allocation_logs_quantities(
        self, captured_logs, distribution_ledger, create_product, create_rider, create_batch
    ):
        rider = create_rider()
        batch = create_batch(create_product(), quantity=12)

        with pytest.raises(InsufficientStockError):
            distribution_ledger.allocate(rider.id, batch.id, 30)

        [line] = events(captured_logs(), "batch_insufficient_stock")
        assert line["level"] == "WARNING"
        assert line["requested"] == 30
        assert line["available"] == 12
        assert events(captured_logs(), "distribution_allocated") == []

    def test_return_to_destroyed_batch_is_flagged(
        self,
        captured_logs,
        distribution_ledger,
        batch_ledger,
        create_product,
        create_rider,
        create_batch,
    ):
        rider = create_rider()
        batch = create_batch(create_product(), quantity=20)
        dist = distribution_ledger.allocate(rider.id, batch.id, 8)
        batch_ledger.destroy_batch(batch.id, "fridge failure")

        distribution_ledger.record_outcome(dist.id, "return", 3)

        [line] = events(captured_logs(), "return_credited_to_destroyed_batch")
        assert line["level"] == "WARNING"
        assert line["batch_id"] == str(batch.id)
        assert line["distribution_id"] == str(dist.id)
        assert line["quantity"] == 3

    def test_return_to_live_batch_is_not_flagged(
        self, captured_logs, distribution_ledger, create_product, create_rider, create_batch
    ):
        rider = create_rider()
        dist = distribution_ledger.allocate(rider.id, create_batch(create_product()).id, 8)

        distribution_ledger.record_outcome(dist.id, "return", 3)

        assert events(captured_logs(), "return_credited_to_destroyed_batch") == []

    def test_reconciliation_mismatch_is_an_error_line(self, captured_logs):
        dist = DistributionInfo(
            id=uuid4(),
            rider_id=uuid4(),
            rider_name="Budi",
            batch_id=uuid4(),
            product_id=uuid4(),
            product_name="Kopi Aren",
            product_category=ProductCategory.PRIMARY,
            product_price=Decimal("15000"),
            quantity=10,
            sold_quantity=8,
            returned_quantity=3,
            rejected_quantity=1,
            distributed_at=datetime(2024, 5, 1, 8, tzinfo=UTC),
        )

        assert reconcile(dist).status == ReconciliationStatus.MISMATCH

        [line] = events(captured_logs(), "reconciliation_mismatch")
        assert line["level"] == "ERROR"
        assert line["distribution_id"] == str(dist.id)
        assert line["over_accounted"] == 2
        assert (line["sold"], line["returned"], line["rejected"]) == (8, 3, 1)


class TestErrorObject:
    def test_insufficient_stock_fields(
        self, captured_logs, distribution_ledger, create_product, create_rider, create_batch
    ):
        rider = create_rider()
        batch = create_batch(create_product(), quantity=12)
        log = get_logger("services.allocation_screen")

        try:
            distribution_ledger.allocate(rider.id, batch.id, 30)
        except InsufficientStockError:
            log.error("allocation_failed", exc_info=True)

        [line] = events(captured_logs(), "allocation_failed")
        assert line["error"] == {
            "type": "InsufficientStockError",
            "code": "INSUFFICIENT_STOCK",
            "message": f"Insufficient quantity on batch {batch.id}: requested 30, available 12",
            "field": "quantity",
            "entity_type": "batch",
            "entity_id": str(batch.id),
            "requested": 30,
            "available": 12,
        }
        assert "InsufficientStockError" in line["traceback"]

    def test_destroyed_batch_fields(self, captured_logs):
        try:
            raise BatchDestroyedError("b-7")
        except BatchDestroyedError:
            get_logger("test").warning("allocation_refused", exc_info=True)

        [line] = events(captured_logs(), "allocation_refused")
        assert line["error"]["code"] == "BATCH_DESTROYED"
        assert line["error"]["batch_id"] == "b-7"

    def test_not_found_fields(self, captured_logs):
        try:
            raise RiderNotFoundError("r-9")
        except RiderNotFoundError:
            get_logger("test").warning("rider_lookup_failed", exc_info=True)

        [line] = events(captured_logs(), "rider_lookup_failed")
        assert line["error"]["code"] == "RIDER_NOT_FOUND"
        assert (line["error"]["entity_type"], line["error"]["entity_id"]) == ("rider", "r-9")

    def test_foreign_exception_has_type_and_message_only(self, captured_logs):
        try:
            raise KeyError("price")
        except KeyError:
            get_logger("test").error("report_failed", exc_info=True)

        [line] = events(captured_logs(), "report_failed")
        assert line["error"] == {"type": "KeyError", "message": "'price'"}

    def test_extra_values_serialised(self, captured_logs):
        batch_id = uuid4()
        get_logger("test").info(
            "batch_priced",
            extra={"batch_id": batch_id, "price": Decimal("15000.50"), "expires": date(2024, 5, 4)},
        )

        [line] = events(captured_logs(), "batch_priced")
        assert line["batch_id"] == str(batch_id)
        assert line["price"] == "15000.50"
        assert line["expires"] == "2024-05-04"


class TestLogContext:
    def test_nested_bind_adds_and_restores(self, captured_logs):
        log = get_logger("test")
        rider_id, batch_id = uuid4(), uuid4()

        with LogContext.bind(rider_id=rider_id):
            with LogContext.bind(batch_id=batch_id):
                log.info("inner")
            log.info("outer")
        log.info("after")

        records = captured_logs()
        [inner] = events(records, "inner")
        [outer] = events(records, "outer")
        [after] = events(records, "after")
        assert (inner["rider_id"], inner["batch_id"]) == (str(rider_id), str(batch_id))
        assert outer["rider_id"] == str(rider_id)
        assert "batch_id" not in outer
        assert "rider_id" not in after

    def test_none_values_skipped(self):
        with LogContext.bind(rider_id=None, batch_id="b-1"):
            assert dict(LogContext.current()) == {"batch_id": "b-1"}

    def test_restored_when_block_raises(self):
        with pytest.raises(InsufficientStockError):
            with LogContext.bind(distribution_id="d-1"):
                raise InsufficientStockError("distribution", "d-1", 5, 2)
        assert dict(LogContext.current()) == {}

    def test_unknown_field_rejected(self):
        with pytest.raises(TypeError, match="actor_id"):
            with LogContext.bind(actor_id="u-1"):
                pass


class TestConfigureLogging:
    @pytest.fixture(autouse=True)
    def _restore_suite_handler(self):
        yield
        configure_logging(level=logging.DEBUG, stream=StringIO())

    def test_reconfigure_replaces_handler(self):
        ledger = logging.getLogger("distro_kernel")
        first, second = StringIO(), StringIO()

        configure_logging(stream=first)
        count = len(ledger.handlers)
        configure_logging(stream=second)

        assert len(ledger.handlers) == count
        get_logger("services.batch_ledger").info("batch_created")
        assert first.getvalue() == ""
        assert json.loads(second.getvalue())["message"] == "batch_created"

    def test_level_applies_to_ledger_loggers(self):
        stream = StringIO()
        configure_logging(level=logging.WARNING, stream=stream)

        get_logger("services.distribution_ledger").info("distribution_allocated")
        get_logger("services.batch_ledger").warning("batch_insufficient_stock")

        lines = [json.loads(line) for line in stream.getvalue().splitlines()]
        assert [line["message"] for line in lines] == ["batch_insufficient_stock"]

    def test_ledger_logs_do_not_propagate(self):
        configure_logging(stream=StringIO())
        assert logging.getLogger("distro_kernel").propagate is False
        assert get_logger("engines.tracer").name == "distro_kernel.engines.tracer"
