"""SQLAlchemy models for the attribute catalog and value tables.

All models inherit from the Base class defined in database.py.
"""

from eavrecord.infrastructure.persistence.models.attribute_set import (
    AttributeModel,
    AttributeSetModel,
)
from eavrecord.infrastructure.persistence.models.attribute_value import (
    AttributeValueModel,
    DateTimeValueModel,
    DateValueModel,
    IntValueModel,
    NumericValueModel,
    TextValueModel,
    VarcharValueModel,
)

__all__ = [
    "AttributeModel",
    "AttributeSetModel",
    "AttributeValueModel",
    "DateTimeValueModel",
    "DateValueModel",
    "IntValueModel",
    "NumericValueModel",
    "TextValueModel",
    "VarcharValueModel",
]
