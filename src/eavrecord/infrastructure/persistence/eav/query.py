"""Query conditions over dynamic attributes.

Conditions may reference dynamic attributes with ``::name`` markers, e.g.
``"::color = :color AND price > 10"``. Each marker is rewritten to
``eav_<name>.value`` and a temporary outer join to the attribute's value
table is added under that alias. The joins belong to one statement only.
"""

import re
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import Select, and_, text
from sqlalchemy.orm import Session, aliased

from eavrecord.core.exceptions import EavQueryError
from eavrecord.core.logging import get_logger
from eavrecord.infrastructure.persistence.eav.resolver import entity_type_of, primary_key_column
from eavrecord.infrastructure.persistence.repositories import AttributeSetRepository
from eavrecord.infrastructure.persistence.value_stores import ValueStoreRegistry, value_stores

logger = get_logger(__name__)

MARKER_PATTERN = re.compile(r"::([A-Za-z_][A-Za-z0-9_]*)")
JOIN_ALIAS_PREFIX = "eav_"


def rewrite_condition(condition: str) -> tuple[str, list[str]]:
    """Rewrite ``::name`` markers to join alias columns.

    Returns:
        The rewritten condition and the referenced names in order of first use.
    """
    names: list[str] = []

    def replace(match: re.Match) -> str:
        name = match.group(1)
        if name not in names:
            names.append(name)
        return f"{JOIN_ALIAS_PREFIX}{name}.value"

    return MARKER_PATTERN.sub(replace, condition), names


@dataclass
class EavQueryContext:
    """Rewritten condition and the outer joins it needs, for one statement."""

    model: type
    condition: str | None = None
    names: list[str] = field(default_factory=list)
    joins: list[tuple[Any, Any]] = field(default_factory=list)
    criteria: list[Any] = field(default_factory=list)

    def apply(self, stmt: Select) -> Select:
        """Add the joins and the condition to a select."""
        for target, onclause in self.joins:
            stmt = stmt.outerjoin(target, onclause)
        if self.condition:
            stmt = stmt.where(text(self.condition))
        if self.criteria:
            stmt = stmt.where(*self.criteria)
        return stmt


def build_query_context(
    session: Session,
    model: type,
    condition: str | None = None,
    attributes: dict[str, Any] | None = None,
    registry: ValueStoreRegistry | None = None,
) -> EavQueryContext:
    """Build the query context for a condition and dynamic attribute matches.

    Args:
        session: Session used to look up attribute definitions.
        model: The host record class being queried.
        condition: SQL condition, optionally holding ``::name`` markers.
        attributes: Dynamic attribute values to match exactly.
        registry: Value store registry.

    Raises:
        EavQueryError: If a referenced name has no definition, or its
            definitions use different data types.
    """
    registry = registry or value_stores
    context = EavQueryContext(model=model)
    names: list[str] = []
    if condition:
        context.condition, names = rewrite_condition(condition)
    for name in attributes or {}:
        if name not in names:
            names.append(name)
    context.names = names
    if not names:
        return context

    repository = AttributeSetRepository(session)
    entity_type = entity_type_of(model)
    pk_column = primary_key_column(model)
    aliases: dict[str, Any] = {}
    for name in names:
        definitions = repository.find_definitions_by_name(name)
        if not definitions:
            raise EavQueryError(f"Unknown dynamic attribute '{name}' in query condition")
        data_types = {definition.data_type for definition in definitions}
        if len(data_types) > 1:
            raise EavQueryError(
                f"Dynamic attribute '{name}' has conflicting data types: {', '.join(sorted(data_types))}"
            )
        value_model = registry.get(data_types.pop()).model
        alias = aliased(value_model, name=f"{JOIN_ALIAS_PREFIX}{name}")
        attribute_ids = [definition.id for definition in definitions]
        if len(attribute_ids) == 1:
            attribute_filter = alias.attribute_id == attribute_ids[0]
        else:
            attribute_filter = alias.attribute_id.in_(attribute_ids)
        onclause = and_(
            alias.entity_id == pk_column,
            alias.entity_type == entity_type,
            attribute_filter,
        )
        context.joins.append((alias, onclause))
        aliases[name] = alias

    for name, value in (attributes or {}).items():
        context.criteria.append(aliases[name].value == value)

    logger.debug("Query context built", model=model.__name__, attributes=names)
    return context
