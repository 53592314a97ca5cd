"""Repositories for database operations."""

from eavrecord.infrastructure.persistence.repositories.attribute_set_repository import (
    AttributeSetRepository,
)

__all__ = ["AttributeSetRepository"]
