"""Record builders shared by the tests."""

from datetime import date, datetime
from decimal import Decimal
from zoneinfo import ZoneInfo

from batchlink.models.production import ProductionBatch
from batchlink.services.matching import BatchRecord, OrderRecord

PLANT_TZ = ZoneInfo("Europe/Paris")


def make_batch(**overrides) -> BatchRecord:
    """Batch at 14:00 plant time for ACME Corp, 8 m3 of B25."""
    values = {
        "id": "BATCH-001",
        "timestamp": datetime(2026, 2, 14, 14, 0, tzinfo=PLANT_TZ),
        "client_name": "ACME Corp",
        "formula_code": "B25",
        "total_volume_m3": Decimal("8.0"),
    }
    values.update(overrides)
    return BatchRecord(**values)


def make_order(**overrides) -> OrderRecord:
    """Order that matches make_batch() on every factor."""
    values = {
        "id": "ORD-001",
        "client_name": "ACME Corp",
        "formula_code": "B25",
        "volume_m3": Decimal("8.0"),
        "delivery_date": date(2026, 2, 14),
        "scheduled_time": datetime(2026, 2, 14, 14, 5, tzinfo=PLANT_TZ),
    }
    values.update(overrides)
    return OrderRecord(**values)


def at(hour: int, minute: int = 0) -> datetime:
    """Plant-local time on the batch day."""
    return datetime(2026, 2, 14, hour, minute, tzinfo=PLANT_TZ)


def make_batch_row(**overrides) -> ProductionBatch:
    """Unlinked production_batches row mirroring make_batch()."""
    values = {
        "id": "BATCH-001",
        "batch_number": "001",
        "batch_datetime": datetime(2026, 2, 14, 14, 0),
        "client_name": "ACME Corp",
        "formula": "B25",
        "total_volume_m3": Decimal("8.00"),
        "link_status": "unlinked",
        "link_attempts": 0,
    }
    values.update(overrides)
    return ProductionBatch(**values)
