"""
SQLAlchemy ORM models for database tables.

These models define the database schema and provide
persistence for domain entities.
"""

from datetime import datetime

from sqlalchemy import DateTime, Float, Index, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class TicketDB(Base):
    """
    Database model for weigh tickets.

    One row per ticket, keyed by the ticket id assigned at inbound.
    Outbound and financial columns stay NULL while the ticket is open.
    """

    __tablename__ = "tickets"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    license_plate: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    company_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    material_type: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(String(10), nullable=False, index=True)

    inbound_weight: Mapped[float] = mapped_column(Float, nullable=False)
    inbound_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    inbound_image: Mapped[str] = mapped_column(String(255), nullable=False, default="")

    outbound_weight: Mapped[float | None] = mapped_column(Float, nullable=True)
    outbound_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    outbound_image: Mapped[str | None] = mapped_column(String(255), nullable=True)

    net_weight: Mapped[float | None] = mapped_column(Float, nullable=True)
    rate_per_kg: Mapped[float | None] = mapped_column(Float, nullable=True)
    total_cost: Mapped[float | None] = mapped_column(Float, nullable=True)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    # Open-ticket lookups by plate
    __table_args__ = (
        Index("ix_tickets_plate_status", "license_plate", "status"),
    )

    def __repr__(self) -> str:
        return f"<Ticket(plate={self.license_plate}, status={self.status})>"
