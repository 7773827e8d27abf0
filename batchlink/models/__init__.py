"""Database models."""

from .production import Base, DeliveryOrder, LinkCandidate, ProductionBatch

__all__ = ["Base", "DeliveryOrder", "ProductionBatch", "LinkCandidate"]
