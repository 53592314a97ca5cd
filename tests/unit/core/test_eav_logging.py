import structlog

from eavrecord.core.config import Settings
from eavrecord.core.logging import (
    LoggingContext,
    add_logger_name,
    clear_context,
    configure_logging,
    rename_message_field,
)


def test_rename_message_field():
    event_dict = rename_message_field(None, "info", {"event": "Record inserted", "entity_id": 1})
    assert event_dict == {"message": "Record inserted", "entity_id": 1}


def test_add_logger_name_defaults():
    event_dict = add_logger_name(object(), "info", {})
    assert event_dict["logger"] == "eavrecord"


def test_logging_context_binds_and_unbinds():
    clear_context()
    with LoggingContext(entity_type="test_products", entity_id=7):
        bound = structlog.contextvars.get_contextvars()
        assert bound == {"entity_type": "test_products", "entity_id": 7}
    assert structlog.contextvars.get_contextvars() == {}


def test_configure_logging_json_renderer():
    settings = Settings(_env_file=None, environment="production", log_format="json")
    configure_logging(settings)
    processors = structlog.get_config()["processors"]
    assert isinstance(processors[-1], structlog.processors.JSONRenderer)


def test_configure_logging_console_renderer():
    settings = Settings(_env_file=None, environment="testing", log_format="console")
    configure_logging(settings)
    processors = structlog.get_config()["processors"]
    assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)
