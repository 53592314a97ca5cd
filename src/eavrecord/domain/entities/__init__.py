"""Domain entities for eavrecord.

Entities are pure Python dataclasses that represent core concepts.
They have no dependencies on infrastructure or external frameworks.
"""

from eavrecord.domain.entities.attribute_set import (
    AttributeDefinition,
    AttributeSet,
    Cardinality,
    RuleSpec,
)

__all__ = [
    "AttributeDefinition",
    "AttributeSet",
    "Cardinality",
    "RuleSpec",
]
