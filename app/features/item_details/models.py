"""
Chemical item detail and its lookup tables.
"""
from datetime import datetime
from sqlalchemy import String, Text, Float, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database.base import Base, DisableSimpleTableMixin


class Unit(Base, DisableSimpleTableMixin):
    """Measuring unit of an item's size (g, mL, ...)."""
    __tablename__ = "unit"


class ContainerType(Base, DisableSimpleTableMixin):
    """Bottle, bag, cylinder, ..."""
    __tablename__ = "container_type"


class PhysicalState(Base, DisableSimpleTableMixin):
    """Solid, liquid, gas, ..."""
    __tablename__ = "physical_state"


class ItemDetailType(Base, DisableSimpleTableMixin):
    """Category of an item detail (reagent, solvent, consumable, ...)."""
    __tablename__ = "item_detail_type"


class ItemDetail(Base, DisableSimpleTableMixin):
    """
    Description shared by every physical item of one chemical product.

    Attributes:
        prefix: Prefix printed before the serial of each item's label
        cas: CAS registry number
        unit_id / size: Amount in one container
        container_type_id: How the chemical is packed
        physical_state_id: Solid / liquid / gas
        detail_type_id: Category
        msds_date: Date of the material safety data sheet on file
        required: Minimum number of items that should be in stock
        note: Free text
    """
    __tablename__ = "item_detail"

    prefix: Mapped[str] = mapped_column(String(32), default="", nullable=False)
    cas: Mapped[str] = mapped_column(String(32), default="", nullable=False, index=True)
    unit_id: Mapped[int] = mapped_column(ForeignKey("unit.id"), nullable=False)
    size: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    container_type_id: Mapped[int] = mapped_column(ForeignKey("container_type.id"), nullable=False)
    physical_state_id: Mapped[int] = mapped_column(ForeignKey("physical_state.id"), nullable=False)
    detail_type_id: Mapped[int] = mapped_column(ForeignKey("item_detail_type.id"), nullable=False, index=True)
    msds_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    required: Mapped[int] = mapped_column(default=0, nullable=False)
    note: Mapped[str] = mapped_column(Text, default="", nullable=False)

    unit: Mapped[Unit] = relationship(lazy="selectin")
    container_type: Mapped[ContainerType] = relationship(lazy="selectin")
    physical_state: Mapped[PhysicalState] = relationship(lazy="selectin")
    detail_type: Mapped[ItemDetailType] = relationship(lazy="selectin")

    def __repr__(self) -> str:
        return f"<ItemDetail(id={self.id}, name={self.name!r}, cas={self.cas!r})>"
