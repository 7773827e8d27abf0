"""Records compared by the link engine."""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal


@dataclass(frozen=True)
class BatchRecord:
    """Production batch emitted by the batching machine."""

    id: str
    timestamp: datetime
    client_name: str
    formula_code: str
    total_volume_m3: Decimal


@dataclass(frozen=True)
class OrderRecord:
    """Delivery order candidate for a batch.

    scheduled_time is optional; delivery_date never is.
    """

    id: str
    client_name: str
    formula_code: str
    volume_m3: Decimal
    delivery_date: date
    scheduled_time: datetime | None = None
