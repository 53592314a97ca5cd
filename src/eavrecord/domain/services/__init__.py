"""Domain services for eavrecord.

Services contain logic that doesn't naturally fit within a single entity.
They have no dependencies on infrastructure or external frameworks.
"""

from eavrecord.domain.services.attribute_rules import (
    RULE_TYPES,
    AttributeRule,
    AttributeValidationError,
    create_rule,
    register_rule,
)

__all__ = [
    "RULE_TYPES",
    "AttributeRule",
    "AttributeValidationError",
    "create_rule",
    "register_rule",
]
