"""Attribute catalog entities.

An attribute set is a reusable, named collection of attribute definitions.
Records reference a set and receive its definitions as dynamic attributes.
Both are managed by an administrative layer; the engine only reads them.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Cardinality(str, Enum):
    """How many values an attribute holds per record."""

    SINGLE = "single"
    MULTIPLE = "multiple"


@dataclass(frozen=True)
class RuleSpec:
    """Specification of one validation rule attached to an attribute.

    Attributes:
        kind: Rule kind registered in the rule registry (e.g. "required").
        params: Keyword parameters passed to the rule.
        on: Scenarios the rule applies to. Empty means every scenario.
        except_on: Scenarios the rule never applies to.
        safe: Whether the attribute is safe for mass assignment under this rule.
    """

    kind: str
    params: dict[str, Any] = field(default_factory=dict)
    on: tuple[str, ...] = ()
    except_on: tuple[str, ...] = ()
    safe: bool = True

    def applies_to(self, scenario: str) -> bool:
        """Check whether the rule is active for the given scenario."""
        if scenario in self.except_on:
            return False
        return not self.on or scenario in self.on


@dataclass(frozen=True)
class AttributeDefinition:
    """Schema for one dynamic attribute.

    Attributes:
        id: Primary key of the definition.
        attribute_set_id: Owning attribute set.
        name: Attribute name, unique within the set.
        data_type: Tag selecting the value store (e.g. "int", "varchar").
        cardinality: Single or multiple values per record.
        label: Display label. Falls back to a humanized name when empty.
        rules: Validation rule specifications.
    """

    id: int
    attribute_set_id: int
    name: str
    data_type: str
    cardinality: Cardinality = Cardinality.SINGLE
    label: str | None = None
    rules: tuple[RuleSpec, ...] = ()

    @property
    def is_multivalued(self) -> bool:
        return self.cardinality == Cardinality.MULTIPLE

    def default_value(self) -> Any:
        """Value an attribute holds before anything is stored or assigned."""
        return [] if self.is_multivalued else None

    def is_empty(self, value: Any) -> bool:
        """Check whether a value would produce no stored rows."""
        if self.is_multivalued:
            return value is None or (isinstance(value, (list, tuple, set)) and not value)
        return value is None

    def display_label(self) -> str:
        if self.label:
            return self.label
        return self.name.replace("_", " ").strip().capitalize()


@dataclass(frozen=True)
class AttributeSet:
    """A reusable collection of attribute definitions.

    Attributes:
        id: Primary key of the set.
        name: Human readable set name.
        attributes: Definitions owned by the set (order is irrelevant).
    """

    id: int
    name: str
    attributes: tuple[AttributeDefinition, ...] = ()

    def __post_init__(self) -> None:
        names = [attribute.name for attribute in self.attributes]
        if len(names) != len(set(names)):
            raise ValueError(f"Attribute names must be unique within set {self.id}")
