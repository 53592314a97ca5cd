"""Dynamic attribute engine.

Host classes mix in ``EavMixin``; records are found through
``EavRecordRepository`` and persisted through ``PersistenceCoordinator``.
"""

from eavrecord.infrastructure.persistence.eav.attribute_store import DynamicAttributeStore
from eavrecord.infrastructure.persistence.eav.coordinator import PersistenceCoordinator
from eavrecord.infrastructure.persistence.eav.loader import EavLoader
from eavrecord.infrastructure.persistence.eav.mixin import EavMixin
from eavrecord.infrastructure.persistence.eav.query import (
    EavQueryContext,
    build_query_context,
    rewrite_condition,
)
from eavrecord.infrastructure.persistence.eav.repository import EavRecordRepository
from eavrecord.infrastructure.persistence.eav.resolver import AttributeResolver

__all__ = [
    "AttributeResolver",
    "DynamicAttributeStore",
    "EavLoader",
    "EavMixin",
    "EavQueryContext",
    "EavRecordRepository",
    "PersistenceCoordinator",
    "build_query_context",
    "rewrite_condition",
]
