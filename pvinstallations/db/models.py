"""
SQLAlchemy ORM models for the PV installations database.

Defines PvInstallation, ProductionReport and InstallationLog. Production
reports are the raw power-flow samples the aggregation service reads;
installation logs are an append-only audit trail of installation mutations.

CHANGELOG:
- 2026-10-12: Add InstallationLog audit table
- 2026-10-11: Initial creation (installations and production reports)

TODO:
- None
"""

import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for all ORM models."""

    pass


class PvInstallation(Base):
    """A photovoltaic installation registered with the service.

    Attributes:
        id: Surrogate primary key.
        longitude: Longitude in degrees (-180..180).
        latitude: Latitude in degrees (-90..90).
        address: Postal address of the installation.
        owner_name: Name of the installation owner.
        is_active: False once the installation has been deactivated.
        comments: Free-form notes (nullable).
    """

    __tablename__ = "pv_installations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    address: Mapped[str] = mapped_column(String(1024), nullable=False)
    owner_name: Mapped[str] = mapped_column(String(512), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    comments: Mapped[str | None] = mapped_column(String(1024), nullable=True)

    reports: Mapped[list["ProductionReport"]] = relationship(
        back_populates="installation",
        cascade="all, delete-orphan",
        lazy="raise",
    )
    logs: Mapped[list["InstallationLog"]] = relationship(
        back_populates="installation",
        cascade="all, delete-orphan",
        lazy="raise",
    )

    def describe(self) -> str:
        """Return the one-line snapshot stored in audit log entries."""
        return (
            f"PvInstallation: {self.longitude}/{self.latitude}, {self.address}, "
            f"{self.owner_name}, {self.is_active}, {self.comments}"
        )

    def __repr__(self) -> str:
        """Return string representation of the PvInstallation."""
        return (
            f"PvInstallation(id={self.id!r}, owner_name={self.owner_name!r}, "
            f"is_active={self.is_active!r})"
        )


class ProductionReport(Base):
    """A single power-flow sample reported by an installation.

    Attributes:
        id: Surrogate primary key.
        timestamp: Time the report was received, UTC.
        produced_wattage: PV production in watts.
        household_wattage: Household consumption in watts.
        battery_wattage: Battery power in watts.
        grid_wattage: Grid power in watts.
        installation_id: Owning installation.
    """

    __tablename__ = "production_reports"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    timestamp: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
    )
    produced_wattage: Mapped[float] = mapped_column(Float, nullable=False)
    household_wattage: Mapped[float] = mapped_column(Float, nullable=False)
    battery_wattage: Mapped[float] = mapped_column(Float, nullable=False)
    grid_wattage: Mapped[float] = mapped_column(Float, nullable=False)
    installation_id: Mapped[int] = mapped_column(
        ForeignKey("pv_installations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    installation: Mapped[PvInstallation] = relationship(
        back_populates="reports", lazy="raise"
    )

    def __repr__(self) -> str:
        """Return string representation of the ProductionReport."""
        return (
            f"ProductionReport(installation_id={self.installation_id!r}, "
            f"timestamp={self.timestamp!r}, "
            f"produced_wattage={self.produced_wattage!r})"
        )


class InstallationLog(Base):
    """Append-only audit entry for a change to a PvInstallation.

    Attributes:
        id: Surrogate primary key.
        timestamp: Time of the change, UTC.
        action: "created" or "updated".
        previous_value: Value before the change (empty for creation).
        next_value: Value after the change.
        installation_id: Installation the entry belongs to.
    """

    __tablename__ = "installation_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    timestamp: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    action: Mapped[str] = mapped_column(Text, nullable=False)
    previous_value: Mapped[str] = mapped_column(Text, nullable=False, default="")
    next_value: Mapped[str] = mapped_column(Text, nullable=False, default="")
    installation_id: Mapped[int] = mapped_column(
        ForeignKey("pv_installations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    installation: Mapped[PvInstallation] = relationship(
        back_populates="logs", lazy="raise"
    )
