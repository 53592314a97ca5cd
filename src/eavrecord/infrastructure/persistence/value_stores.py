"""Value stores: per data type persistence of attribute values.

Each data type tag ("int", "varchar", ...) maps to one value store that
knows its table, how to read, write and delete the rows of one
(attribute, entity type, entity id) key, and how to build the selects the
loader combines for eager loading. Adding a data type means registering a
new store.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Iterable

from sqlalchemy import Select, String, Table, cast, delete, insert, select
from sqlalchemy.orm import Session

from eavrecord.core.exceptions import UnknownDataTypeError
from eavrecord.core.logging import get_logger
from eavrecord.domain.entities.attribute_set import AttributeDefinition
from eavrecord.infrastructure.persistence.models import (
    AttributeValueModel,
    DateTimeValueModel,
    DateValueModel,
    IntValueModel,
    NumericValueModel,
    TextValueModel,
    VarcharValueModel,
)

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class ValueKey:
    """Identifies the value rows of one attribute on one entity."""

    attribute_id: int
    entity_type: str
    entity_id: int


class ValueStore(ABC):
    """Abstract base class for value stores."""

    data_type: str = ""
    model: type[AttributeValueModel]

    @property
    def table(self) -> Table:
        return self.model.__table__

    @abstractmethod
    def to_python(self, raw: Any) -> Any:
        """Convert a stored value (native or normalized to text) to its Python value."""
        ...

    @abstractmethod
    def to_storage(self, value: Any) -> Any:
        """Convert a Python value to what the value column stores."""
        ...

    def _key_filter(self, attribute_id: int, entity_type: str, entity_ids: Iterable[int]) -> list:
        ids = list(entity_ids)
        model = self.model
        criteria = [model.attribute_id == attribute_id, model.entity_type == entity_type]
        if len(ids) == 1:
            criteria.append(model.entity_id == ids[0])
        else:
            criteria.append(model.entity_id.in_(ids))
        return criteria

    def scoped_select(self, attribute_id: int, entity_type: str, entity_ids: Iterable[int]) -> Select:
        """Select the rows of one attribute for some entities with native values."""
        model = self.model
        return select(
            model.id,
            model.attribute_id,
            model.entity_type,
            model.entity_id,
            model.value,
        ).where(*self._key_filter(attribute_id, entity_type, entity_ids))

    def normalized_select(self, attribute_id: int, entity_type: str, entity_ids: Iterable[int]) -> Select:
        """Select the rows of one attribute for some entities with values cast to text.

        Every store produces the same column shape so selects from different
        value tables can be combined with UNION ALL.
        """
        model = self.model
        return select(
            model.id,
            model.attribute_id,
            model.entity_type,
            model.entity_id,
            cast(model.value, String).label("value"),
        ).where(*self._key_filter(attribute_id, entity_type, entity_ids))

    def read(self, session: Session, key: ValueKey, definition: AttributeDefinition) -> Any:
        """Read the value of one attribute on one entity.

        Returns:
            A list for multi-valued attributes, a scalar or None otherwise.
        """
        stmt = select(self.model.value).where(
            *self._key_filter(key.attribute_id, key.entity_type, [key.entity_id])
        )
        if definition.is_multivalued:
            return [self.to_python(raw) for raw in session.execute(stmt).scalars().all()]
        raw = session.execute(stmt.order_by(self.model.id).limit(1)).scalar_one_or_none()
        return None if raw is None else self.to_python(raw)

    def delete(self, session: Session, key: ValueKey, definition: AttributeDefinition) -> int:
        """Delete every row of one attribute on one entity.

        Returns:
            Number of rows deleted.
        """
        result = session.execute(
            delete(self.model).where(
                *self._key_filter(key.attribute_id, key.entity_type, [key.entity_id])
            )
        )
        return result.rowcount

    def write(
        self,
        session: Session,
        key: ValueKey,
        definition: AttributeDefinition,
        value: Any,
        replace: bool = True,
    ) -> None:
        """Store the value of one attribute on one entity.

        With ``replace`` existing rows are deleted first. Empty values (None
        or an empty collection) leave no rows behind.
        """
        if replace:
            self.delete(session, key, definition)
        if definition.is_empty(value):
            return
        if definition.is_multivalued and isinstance(value, (list, tuple, set)):
            values = [item for item in value if item is not None]
        else:
            values = [value]
        if not values:
            return
        session.execute(
            insert(self.model),
            [
                {
                    "attribute_id": key.attribute_id,
                    "entity_type": key.entity_type,
                    "entity_id": key.entity_id,
                    "value": self.to_storage(item),
                }
                for item in values
            ],
        )
        logger.debug(
            "Attribute value written",
            attribute=definition.name,
            data_type=self.data_type,
            entity_type=key.entity_type,
            entity_id=key.entity_id,
            rows=len(values),
        )


class IntValueStore(ValueStore):
    data_type = "int"
    model = IntValueModel

    def to_python(self, raw: Any) -> Any:
        if raw is None or isinstance(raw, int):
            return raw
        return int(float(raw)) if "." in str(raw) else int(raw)

    def to_storage(self, value: Any) -> Any:
        return int(value)


class NumericValueStore(ValueStore):
    data_type = "numeric"
    model = NumericValueModel

    def to_python(self, raw: Any) -> Any:
        if raw is None or isinstance(raw, float):
            return raw
        return float(raw)

    def to_storage(self, value: Any) -> Any:
        return float(value)


class StringValueStore(ValueStore):
    def to_python(self, raw: Any) -> Any:
        return raw if raw is None else str(raw)

    def to_storage(self, value: Any) -> Any:
        return str(value)


class VarcharValueStore(StringValueStore):
    data_type = "varchar"
    model = VarcharValueModel


class TextValueStore(StringValueStore):
    data_type = "text"
    model = TextValueModel


class DateValueStore(ValueStore):
    data_type = "date"
    model = DateValueModel

    def to_python(self, raw: Any) -> Any:
        if raw is None:
            return None
        if isinstance(raw, datetime):
            return raw.date()
        if isinstance(raw, date):
            return raw
        return date.fromisoformat(str(raw)[:10])

    def to_storage(self, value: Any) -> Any:
        return self.to_python(value)


class DateTimeValueStore(ValueStore):
    data_type = "datetime"
    model = DateTimeValueModel

    def to_python(self, raw: Any) -> Any:
        if raw is None or isinstance(raw, datetime):
            return raw
        if isinstance(raw, date):
            return datetime(raw.year, raw.month, raw.day)
        return datetime.fromisoformat(str(raw).replace("Z", "+00:00"))

    def to_storage(self, value: Any) -> Any:
        return self.to_python(value)


class ValueStoreRegistry:
    """Maps data type tags to value stores."""

    def __init__(self) -> None:
        self._stores: dict[str, ValueStore] = {}

    def register(self, store: ValueStore) -> ValueStore:
        """Register a store under its data type, replacing any previous one."""
        if not store.data_type:
            raise ValueError(f"{type(store).__name__} must define a data type")
        self._stores[store.data_type] = store
        return store

    def get(self, data_type: str) -> ValueStore:
        """Get the store for a data type.

        Raises:
            UnknownDataTypeError: If no store is registered for the data type.
        """
        store = self._stores.get(data_type)
        if store is None:
            raise UnknownDataTypeError(data_type)
        return store

    def for_definition(self, definition: AttributeDefinition) -> ValueStore:
        return self.get(definition.data_type)

    def data_types(self) -> list[str]:
        return sorted(self._stores)

    def __contains__(self, data_type: object) -> bool:
        return data_type in self._stores


def create_default_registry() -> ValueStoreRegistry:
    """Create a registry holding the built-in value stores."""
    registry = ValueStoreRegistry()
    for store in (
        IntValueStore(),
        NumericValueStore(),
        VarcharValueStore(),
        TextValueStore(),
        DateValueStore(),
        DateTimeValueStore(),
    ):
        registry.register(store)
    return registry


# Global registry used by the engine
value_stores = create_default_registry()
