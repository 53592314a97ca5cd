"""SQLAlchemy models for attribute value tables.

There is one table per data type. Every table has the same key columns and
differs only in the type of its ``value`` column. A single-valued attribute
has at most one row per (attribute, entity type, entity id); a multi-valued
attribute has any number of rows in no particular order.
"""

from datetime import date, datetime

from sqlalchemy import Date, DateTime, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, declared_attr, mapped_column

from eavrecord.infrastructure.persistence.database import Base


class AttributeValueModel(Base):
    """Columns shared by every value table.

    Attributes:
        id: Auto-incrementing primary key.
        attribute_id: Foreign key to the attribute definition.
        entity_type: Entity type identifier of the owning record.
        entity_id: Primary key of the owning record.
        value: The stored value (typed per table).
    """

    __abstract__ = True

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
    attribute_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("eav_attribute.id", ondelete="CASCADE"),
        nullable=False,
        comment="Foreign key to eav_attribute table",
    )
    entity_type: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        comment="Entity type identifier",
    )
    entity_id: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Primary key of the owning record",
    )

    @declared_attr.directive
    def __table_args__(cls) -> tuple:
        return (
            Index(
                f"ix_{cls.__tablename__}_lookup",
                "attribute_id",
                "entity_type",
                "entity_id",
            ),
        )

    def __repr__(self) -> str:
        return (
            f"<{type(self).__name__}(attribute_id={self.attribute_id}, "
            f"entity={self.entity_type}:{self.entity_id}, value={self.value!r})>"
        )


class IntValueModel(AttributeValueModel):
    __tablename__ = "eav_value_int"

    value: Mapped[int | None] = mapped_column(Integer, nullable=True)


class NumericValueModel(AttributeValueModel):
    __tablename__ = "eav_value_numeric"

    value: Mapped[float | None] = mapped_column(Numeric(20, 6, asdecimal=False), nullable=True)


class VarcharValueModel(AttributeValueModel):
    __tablename__ = "eav_value_varchar"

    value: Mapped[str | None] = mapped_column(String(255), nullable=True)


class TextValueModel(AttributeValueModel):
    __tablename__ = "eav_value_text"

    value: Mapped[str | None] = mapped_column(Text, nullable=True)


class DateValueModel(AttributeValueModel):
    __tablename__ = "eav_value_date"

    value: Mapped[date | None] = mapped_column(Date, nullable=True)


class DateTimeValueModel(AttributeValueModel):
    __tablename__ = "eav_value_datetime"

    value: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
