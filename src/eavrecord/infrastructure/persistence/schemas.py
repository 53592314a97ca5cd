"""Pydantic schemas for JSON stored in the attribute catalog."""

from typing import Any

from pydantic import BaseModel, Field, TypeAdapter, field_validator

from eavrecord.domain.entities.attribute_set import RuleSpec


class RuleSpecSchema(BaseModel):
    """One rule specification as stored in ``eav_attribute.rules``.

    Example:
        {"kind": "numerical", "params": {"min": 0}, "on": "insert, update"}
    """

    kind: str = Field(
        ...,
        min_length=1,
        description="Registered rule kind (required, numerical, length, ...)",
    )
    params: dict[str, Any] = Field(
        default_factory=dict,
        description="Keyword parameters for the rule",
    )
    on: list[str] = Field(
        default_factory=list,
        description="Scenarios the rule applies to (list or comma-separated string)",
    )
    except_on: list[str] = Field(
        default_factory=list,
        alias="except",
        description="Scenarios the rule never applies to (list or comma-separated string)",
    )
    safe: bool = Field(
        default=True,
        description="Whether the attribute is safe for mass assignment under this rule",
    )

    model_config = {"populate_by_name": True}

    @field_validator("kind")
    @classmethod
    def normalize_kind(cls, v: str) -> str:
        """Normalize rule kind to lowercase."""
        return v.strip().lower()

    @field_validator("on", "except_on", mode="before")
    @classmethod
    def split_scenarios(cls, v: Any) -> Any:
        """Accept scenarios as a comma-separated string."""
        if v is None:
            return []
        if isinstance(v, str):
            return [part.strip() for part in v.split(",") if part.strip()]
        return v

    def to_entity(self) -> RuleSpec:
        return RuleSpec(
            kind=self.kind,
            params=dict(self.params),
            on=tuple(self.on),
            except_on=tuple(self.except_on),
            safe=self.safe,
        )


_rule_list_adapter = TypeAdapter(list[RuleSpecSchema])


def parse_rule_specs(raw: str | None) -> tuple[RuleSpec, ...]:
    """Parse the JSON rule list stored on an attribute definition.

    Raises:
        pydantic.ValidationError: If the stored JSON is malformed.
    """
    if not raw:
        return ()
    return tuple(schema.to_entity() for schema in _rule_list_adapter.validate_json(raw))


def dump_rule_specs(rules: list[RuleSpec] | tuple[RuleSpec, ...]) -> str:
    """Serialize rule specifications to the stored JSON form."""
    schemas = [
        RuleSpecSchema(
            kind=rule.kind,
            params=dict(rule.params),
            on=list(rule.on),
            except_on=list(rule.except_on),
            safe=rule.safe,
        )
        for rule in rules
    ]
    return _rule_list_adapter.dump_json(schemas, by_alias=True).decode()
