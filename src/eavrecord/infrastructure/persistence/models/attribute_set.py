"""SQLAlchemy models for the attribute catalog.

Attribute sets and their definitions are managed by an administrative
layer. The engine only reads them.
"""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from eavrecord.infrastructure.persistence.database import Base


class AttributeSetModel(Base):
    """SQLAlchemy model for the eav_set table.

    Attributes:
        id: Auto-incrementing primary key.
        name: Human readable set name.
        created_at: Timestamp when the set was created.
    """

    __tablename__ = "eav_set"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        comment="Attribute set name",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        server_default=func.now(),
    )

    # Relationships
    attributes: Mapped[list["AttributeModel"]] = relationship(
        "AttributeModel",
        back_populates="attribute_set",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<AttributeSet(id={self.id}, name={self.name})>"


class AttributeModel(Base):
    """SQLAlchemy model for the eav_attribute table.

    Attributes:
        id: Auto-incrementing primary key.
        eav_set_id: Foreign key to the owning attribute set.
        name: Attribute name (unique within the set).
        label: Optional display label.
        data_type: Tag selecting the value table (e.g. 'int', 'varchar').
        cardinality: 'single' or 'multiple'.
        rules: JSON list of rule specifications.
    """

    __tablename__ = "eav_attribute"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
    eav_set_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("eav_set.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Foreign key to eav_set table",
    )
    name: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="Attribute name, unique within the set",
    )
    label: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="Display label",
    )
    data_type: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        comment="Value store tag (int, numeric, varchar, text, date, datetime)",
    )
    cardinality: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default="single",
        server_default="single",
        comment="'single' or 'multiple'",
    )
    rules: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="JSON list of rule specifications",
    )

    # Relationships
    attribute_set: Mapped["AttributeSetModel"] = relationship(
        "AttributeSetModel",
        back_populates="attributes",
    )

    __table_args__ = (
        UniqueConstraint("eav_set_id", "name", name="uq_eav_attribute_set_name"),
    )

    def __repr__(self) -> str:
        return f"<Attribute(id={self.id}, name={self.name}, data_type={self.data_type})>"
