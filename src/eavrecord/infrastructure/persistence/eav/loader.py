"""Eager loading of dynamic attribute values.

Builds one read covering every (record, attribute) pair of a batch. Pairs
are grouped per attribute into ``entity_id IN (...)`` selects; several
groups are normalized to text and combined with UNION ALL, a single group is
issued as a plain select. Rows are distributed back to their records by
(attribute id, entity type, entity id).
"""

from collections import defaultdict
from typing import Any, Iterable

from sqlalchemy import select, union_all
from sqlalchemy.orm import Session

from eavrecord.core.logging import get_logger
from eavrecord.domain.entities.attribute_set import AttributeDefinition
from eavrecord.infrastructure.persistence.eav.attribute_store import DynamicAttributeStore
from eavrecord.infrastructure.persistence.value_stores import ValueStoreRegistry, value_stores

logger = get_logger(__name__)


class EavLoader:
    """Loads attribute values for batches of records."""

    def __init__(self, session: Session, registry: ValueStoreRegistry | None = None) -> None:
        self.session = session
        self.registry = registry or value_stores

    def load(self, entities: Iterable[Any]) -> int:
        """Eagerly load every unloaded live attribute of the given records.

        Records without a resolvable attribute set are skipped. Attributes
        without stored rows receive their default value.

        Returns:
            Number of (record, attribute) pairs loaded.
        """
        groups: dict[tuple[str, int, str], list[Any]] = {}
        seen: set[tuple[tuple[str, int, str], Any]] = set()
        targets: list[tuple[DynamicAttributeStore, AttributeDefinition, Any]] = []

        for entity in entities:
            store = DynamicAttributeStore.attach(entity, session=self.session)
            if store.is_new():
                continue
            store.sync()
            if store.attribute_set is None:
                continue
            entity_id = store.entity_id
            for name, definition in store.attributes.items():
                if store.is_loaded(name):
                    continue
                key = (definition.data_type, definition.id, store.entity_type)
                if (key, entity_id) not in seen:
                    seen.add((key, entity_id))
                    groups.setdefault(key, []).append(entity_id)
                targets.append((store, definition, entity_id))

        if not targets:
            return 0

        rows = self.session.execute(self.build_statement(groups)).all()
        buckets: dict[tuple[int, str, Any], list[Any]] = defaultdict(list)
        for row in rows:
            buckets[(row.attribute_id, row.entity_type, row.entity_id)].append(row.value)

        for store, definition, entity_id in targets:
            raw_values = buckets.get((definition.id, store.entity_type, entity_id))
            value_store = self.registry.for_definition(definition)
            if not raw_values:
                value = definition.default_value()
            elif definition.is_multivalued:
                value = [value_store.to_python(raw) for raw in raw_values]
            else:
                value = value_store.to_python(raw_values[0])
            store.old_attributes[definition.name] = value

        logger.debug(
            "Attribute values loaded eagerly",
            selects=len(groups),
            pairs=len(targets),
            rows=len(rows),
        )
        return len(targets)

    def build_statement(self, groups: dict[tuple[str, int, str], list[Any]]):
        """Build the single read for grouped (data type, attribute, entity type) keys."""
        if len(groups) == 1:
            ((data_type, attribute_id, entity_type), entity_ids), = groups.items()
            return self.registry.get(data_type).scoped_select(attribute_id, entity_type, entity_ids)

        selects = [
            self.registry.get(data_type).normalized_select(attribute_id, entity_type, entity_ids)
            for (data_type, attribute_id, entity_type), entity_ids in groups.items()
        ]
        combined = union_all(*selects).subquery("t")
        return select(combined)
