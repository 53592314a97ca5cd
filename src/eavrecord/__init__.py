"""eavrecord - Dynamic attributes for SQLAlchemy records.

Overlays schema-less, per-record attributes (entity-attribute-value) onto
fixed-schema ORM records so they are read and written like static columns.
"""

__version__ = "0.1.0"

from eavrecord.infrastructure.persistence.database import Base
from eavrecord.infrastructure.persistence.eav import (
    EavMixin,
    EavRecordRepository,
    PersistenceCoordinator,
)
from eavrecord.infrastructure.persistence.value_stores import ValueStore, value_stores

__all__ = [
    "Base",
    "EavMixin",
    "EavRecordRepository",
    "PersistenceCoordinator",
    "ValueStore",
    "value_stores",
    "__version__",
]
