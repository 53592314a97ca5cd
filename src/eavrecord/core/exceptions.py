"""Exceptions raised by the EAV engine."""


class EavError(Exception):
    """Base class for all EAV-related errors."""
    pass


class EavNotEnabledError(EavError):
    """Raised when a dynamic attribute operation runs on a record that has not opted in."""

    def __init__(self, operation: str, entity_type: str | None = None):
        self.operation = operation
        self.entity_type = entity_type
        target = f" on '{entity_type}'" if entity_type else ""
        super().__init__(
            f"{operation}() cannot be called{target}: the record does not support dynamic attributes. "
            "Call enable_dynamic_attributes() or assign an attribute set first."
        )


class EavRecordStateError(EavError):
    """Raised when a record is in the wrong lifecycle state for an operation."""
    pass


class EavSessionError(EavError):
    """Raised when no database session is available for a record."""
    pass


class UnknownDataTypeError(EavError):
    """Raised when an attribute definition names an unregistered data type."""

    def __init__(self, data_type: str):
        self.data_type = data_type
        super().__init__(f"No value store registered for data type '{data_type}'")


class UnknownRuleError(EavError):
    """Raised when a rule specification names an unregistered rule kind."""

    def __init__(self, kind: str):
        self.kind = kind
        super().__init__(f"Unknown attribute rule '{kind}'")


class EavQueryError(EavError):
    """Raised when a query condition references dynamic attributes that cannot be joined."""
    pass


class UnsupportedPrimaryKeyError(EavError):
    """Raised when a record's primary key cannot key attribute value rows."""
    pass
