"""SQLAlchemy models for batch linking."""

from datetime import date, datetime, time
from decimal import Decimal

from sqlalchemy import (
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Time,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class DeliveryOrder(Base):
    """Delivery order created in the commercial system."""

    __tablename__ = "delivery_orders"

    id: Mapped[str] = mapped_column(String(100), primary_key=True)

    client_name: Mapped[str] = mapped_column(String(255), nullable=False)
    formula_code: Mapped[str] = mapped_column(String(50), nullable=False)
    volume_m3: Mapped[Decimal] = mapped_column(Numeric(8, 2), nullable=False)

    # Plant-local calendar date and wall-clock times
    delivery_date: Mapped[date] = mapped_column(Date, nullable=False)
    departure_time: Mapped[time | None] = mapped_column(Time)
    planned_time: Mapped[time | None] = mapped_column(Time)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (Index("idx_orders_delivery_date", "delivery_date"),)

    def __repr__(self) -> str:
        return f"<DeliveryOrder {self.id} {self.delivery_date} {self.volume_m3}m3>"


class ProductionBatch(Base):
    """Batch produced by the batching machine, plus its current link."""

    __tablename__ = "production_batches"

    id: Mapped[str] = mapped_column(String(100), primary_key=True)
    batch_number: Mapped[str | None] = mapped_column(String(50))

    batch_datetime: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    client_name: Mapped[str] = mapped_column(String(255), nullable=False)
    formula: Mapped[str] = mapped_column(String(50), nullable=False)
    total_volume_m3: Mapped[Decimal] = mapped_column(Numeric(8, 2), nullable=False)
    operator_name: Mapped[str | None] = mapped_column(String(255))

    # Link state
    link_status: Mapped[str] = mapped_column(
        String(20), default="unlinked"
    )  # unlinked, auto_linked, pending_review, no_match
    linked_order_id: Mapped[str | None] = mapped_column(
        String(100), ForeignKey("delivery_orders.id", ondelete="SET NULL")
    )
    link_confidence: Mapped[int | None] = mapped_column(Integer)
    linked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    link_attempts: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    candidates: Mapped[list["LinkCandidate"]] = relationship(
        "LinkCandidate",
        back_populates="batch",
        cascade="all, delete-orphan",
        order_by="LinkCandidate.rank",
    )

    __table_args__ = (
        Index("idx_batches_datetime", "batch_datetime"),
        Index("idx_batches_link_status", "link_status"),
        Index("idx_batches_linked_order", "linked_order_id"),
    )

    def __repr__(self) -> str:
        return f"<ProductionBatch {self.id} {self.link_status} {self.link_confidence}>"


class LinkCandidate(Base):
    """Top-ranked candidates kept from the latest run for a batch."""

    __tablename__ = "link_candidates"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    batch_id: Mapped[str] = mapped_column(
        String(100), ForeignKey("production_batches.id", ondelete="CASCADE"), nullable=False
    )
    order_id: Mapped[str] = mapped_column(String(100), nullable=False)
    rank: Mapped[int] = mapped_column(Integer, nullable=False)

    confidence: Mapped[int] = mapped_column(Integer, nullable=False)
    time_score: Mapped[int] = mapped_column(Integer, nullable=False)
    client_score: Mapped[int] = mapped_column(Integer, nullable=False)
    volume_score: Mapped[int] = mapped_column(Integer, nullable=False)
    formula_score: Mapped[int] = mapped_column(Integer, nullable=False)

    # Relationships
    batch: Mapped["ProductionBatch"] = relationship("ProductionBatch", back_populates="candidates")

    __table_args__ = (Index("idx_candidates_batch", "batch_id", "rank"),)

    def __repr__(self) -> str:
        return f"<LinkCandidate {self.batch_id}#{self.rank} {self.order_id} {self.confidence}>"
