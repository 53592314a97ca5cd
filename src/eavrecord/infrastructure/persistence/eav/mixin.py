"""Host mixin giving mapped classes dynamic attributes.

Example:
    class ProductModel(EavMixin, Base):
        __tablename__ = "products"

        id: Mapped[int] = mapped_column(Integer, primary_key=True)
        name: Mapped[str] = mapped_column(String(100))

    product = ProductModel(name="Desk", eav_set_id=1)
    session.add(product)
    product.set_attribute("color", "oak")
    product.save_with_dynamic_attributes()
"""

from typing import Any, ClassVar, Iterable

from sqlalchemy import ForeignKey, Integer, inspect
from sqlalchemy.orm import Mapped, Session, mapped_column, object_session, validates

from eavrecord.core.exceptions import EavNotEnabledError, EavSessionError
from eavrecord.domain.services.attribute_rules import AttributeValidationError
from eavrecord.infrastructure.persistence.eav.attribute_store import DynamicAttributeStore
from eavrecord.infrastructure.persistence.eav.coordinator import PersistenceCoordinator
from eavrecord.infrastructure.persistence.eav.loader import EavLoader
from eavrecord.infrastructure.persistence.eav.resolver import is_static_attribute


class EavMixin:
    """Dynamic attribute support for mapped classes.

    Dynamic attributes are read and written through the same methods as
    static columns. Names that are not live dynamic attributes fall through
    to the mapped class.
    """

    __eav_entity__: ClassVar[str | None] = None

    eav_set_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("eav_set.id"),
        nullable=True,
        index=True,
        comment="Attribute set reference",
    )

    @validates("eav_set_id")
    def _track_attribute_set(self, key: str, value: Any) -> Any:
        # Assigning a reference opts the record in; the live map is rebuilt on next access
        DynamicAttributeStore.attach(self)
        return value

    # Opt-in

    @property
    def eav_store(self) -> DynamicAttributeStore | None:
        return DynamicAttributeStore.of(self)

    @property
    def dynamic_attributes_enabled(self) -> bool:
        return self.eav_store is not None

    def _require_store(self, operation: str) -> DynamicAttributeStore:
        store = self.eav_store
        if store is None:
            raise EavNotEnabledError(operation, type(self).__name__)
        return store

    def enable_dynamic_attributes(self, session: Session | None = None, eager: bool = False) -> "EavMixin":
        """Opt the record in, optionally loading its values eagerly."""
        store = DynamicAttributeStore.attach(self, session=session)
        if eager:
            EavLoader(store.get_session(), store.registry).load([self])
        return self

    def attach_attribute_set(self, set_id: int | None) -> "EavMixin":
        self.eav_set_id = set_id
        return self

    def detach_attribute_set(self) -> "EavMixin":
        self.eav_set_id = None
        return self

    # Attribute access

    def _is_dynamic(self, name: str) -> bool:
        store = self.eav_store
        if store is None or is_static_attribute(type(self), name):
            return False
        return store.has(name)

    def get_attribute(self, name: str) -> Any:
        if self._is_dynamic(name):
            return self.eav_store.get(name)
        return getattr(self, name)

    def set_attribute(self, name: str, value: Any) -> bool:
        """Set a dynamic or static attribute. Returns False for unknown names."""
        if self._is_dynamic(name):
            return self.eav_store.set(name, value)
        if name in inspect(type(self)).attrs:
            setattr(self, name, value)
            return True
        return False

    def has_attribute(self, name: str) -> bool:
        if self._is_dynamic(name):
            return True
        return name in inspect(type(self)).column_attrs

    def unset_attribute(self, name: str) -> bool:
        if self._is_dynamic(name):
            return self.eav_store.unset(name)
        return self.set_attribute(name, None)

    def get_dynamic_attributes(self, names: Iterable[str] | None = None) -> dict[str, Any]:
        return self._require_store("get_dynamic_attributes").values(names)

    def set_attributes(self, values: dict[str, Any], safe_only: bool = True) -> None:
        """Mass-assign attributes.

        With ``safe_only`` dynamic attributes are only assigned when a safe
        rule applies to them in the current scenario.
        """
        store = self.eav_store
        safe = set(store.safe_names()) if store is not None and safe_only else None
        for name, value in values.items():
            if self._is_dynamic(name):
                if safe is None or name in safe:
                    store.set(name, value)
            else:
                self.set_attribute(name, value)

    # Metadata

    def dynamic_attribute_names(self) -> list[str]:
        store = self.eav_store
        return store.names() if store is not None else []

    def is_attribute_multivalued(self, name: str) -> bool:
        return self._is_dynamic(name) and self.eav_store.is_multivalued(name)

    def is_attribute_required(self, name: str) -> bool:
        return self._is_dynamic(name) and self.eav_store.is_required(name)

    def get_attribute_label(self, name: str) -> str:
        if self._is_dynamic(name):
            return self.eav_store.label(name)
        return name.replace("_", " ").strip().capitalize()

    def get_safe_attribute_names(self) -> list[str]:
        return self._require_store("get_safe_attribute_names").safe_names()

    @property
    def eav_scenario(self) -> str:
        return self._require_store("eav_scenario").scenario

    @eav_scenario.setter
    def eav_scenario(self, value: str | None) -> None:
        self._require_store("eav_scenario").scenario = value

    @property
    def eav_errors(self) -> dict[str, list[AttributeValidationError]]:
        store = self.eav_store
        return dict(store.errors) if store is not None else {}

    # Validation and persistence

    def validate_dynamic_attributes(self, names: Iterable[str] | None = None) -> bool:
        return self._require_store("validate_dynamic_attributes").validate(self, names)

    def _coordinator(self, operation: str, session: Session | None) -> PersistenceCoordinator:
        store = self._require_store(operation)
        session = session or store.session or object_session(self)
        if session is None:
            raise EavSessionError(
                f"{operation}() needs a session for '{type(self).__name__}' record; pass one explicitly"
            )
        return PersistenceCoordinator(session, store.registry)

    def save_with_dynamic_attributes(
        self,
        validate: bool | None = None,
        names: Iterable[str] | None = None,
        session: Session | None = None,
    ) -> bool:
        """Validate, then insert or update the record with its dynamic attributes.

        Returns:
            False when validation fails (see ``eav_errors``) or the attribute
            set reference is inconsistent.
        """
        return self._coordinator("save_with_dynamic_attributes", session).save(self, validate, names)

    def insert_with_dynamic_attributes(
        self, names: Iterable[str] | None = None, session: Session | None = None
    ) -> bool:
        return self._coordinator("insert_with_dynamic_attributes", session).insert(self, names)

    def update_with_dynamic_attributes(
        self, names: Iterable[str] | None = None, session: Session | None = None
    ) -> bool:
        return self._coordinator("update_with_dynamic_attributes", session).update(self, names)

    def delete_with_dynamic_attributes(self, session: Session | None = None) -> bool:
        return self._coordinator("delete_with_dynamic_attributes", session).delete(self)
