"""Repository for attribute catalog reads.

Converts catalog rows into domain entities. Sets are fetched through
``Session.get`` so repeated lookups within a session are served from the
identity map.
"""

from sqlalchemy import select
from sqlalchemy.orm import Session

from eavrecord.domain.entities.attribute_set import (
    AttributeDefinition,
    AttributeSet,
    Cardinality,
)
from eavrecord.infrastructure.persistence.models import AttributeModel, AttributeSetModel
from eavrecord.infrastructure.persistence.schemas import parse_rule_specs


class AttributeSetRepository:
    """Repository for attribute set and definition reads."""

    def __init__(self, session: Session) -> None:
        """Initialize the repository with a database session.

        Args:
            session: SQLAlchemy session.
        """
        self.session = session

    def get_by_id(self, set_id: int) -> AttributeSet | None:
        """Get an attribute set with its definitions.

        Args:
            set_id: The attribute set ID.

        Returns:
            The attribute set if found, None otherwise.
        """
        model = self.session.get(AttributeSetModel, set_id)
        if model is None:
            return None
        return self.to_entity(model)

    def find_definitions_by_name(self, name: str) -> list[AttributeDefinition]:
        """Get every definition with the given name across all sets."""
        result = self.session.execute(
            select(AttributeModel).where(AttributeModel.name == name).order_by(AttributeModel.id)
        )
        return [self.definition_to_entity(model) for model in result.scalars().all()]

    def list_all(self) -> list[AttributeSet]:
        """List every attribute set ordered by ID."""
        result = self.session.execute(select(AttributeSetModel).order_by(AttributeSetModel.id))
        return [self.to_entity(model) for model in result.scalars().all()]

    @staticmethod
    def definition_to_entity(model: AttributeModel) -> AttributeDefinition:
        return AttributeDefinition(
            id=model.id,
            attribute_set_id=model.eav_set_id,
            name=model.name,
            data_type=model.data_type,
            cardinality=Cardinality(model.cardinality or Cardinality.SINGLE.value),
            label=model.label,
            rules=parse_rule_specs(model.rules),
        )

    @classmethod
    def to_entity(cls, model: AttributeSetModel) -> AttributeSet:
        return AttributeSet(
            id=model.id,
            name=model.name,
            attributes=tuple(cls.definition_to_entity(attribute) for attribute in model.attributes),
        )
