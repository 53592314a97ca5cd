"""Pytest configuration for all tests."""

from typing import Generator

import pytest
from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from eav_models import make_attribute_set
from eavrecord.core.config import get_settings
from eavrecord.infrastructure.persistence.database import Base
from eavrecord.infrastructure.persistence.models import AttributeSetModel


@pytest.fixture(autouse=True)
def _fresh_settings() -> Generator[None, None, None]:
    """Settings are cached; reset them around every test."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    """In-memory SQLite engine with every table created."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db_session(engine: Engine) -> Generator[Session, None, None]:
    """Create a test database session."""
    session = Session(engine, autoflush=False, expire_on_commit=False)
    yield session
    session.close()


@pytest.fixture
def value_statements(engine: Engine) -> Generator[list[str], None, None]:
    """Record every statement that touches a value table."""
    statements: list[str] = []

    def before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
        if "eav_value_" in statement:
            statements.append(statement)

    event.listen(engine, "before_cursor_execute", before_cursor_execute)
    yield statements
    event.remove(engine, "before_cursor_execute", before_cursor_execute)


@pytest.fixture
def furniture_set(db_session: Session) -> AttributeSetModel:
    """Attribute set with one attribute of every built-in data type."""
    return make_attribute_set(
        db_session,
        "furniture",
        [
            {"name": "color", "data_type": "varchar", "label": "Colour"},
            {"name": "weight", "data_type": "numeric"},
            {
                "name": "stock",
                "data_type": "int",
                "rules": [
                    {"kind": "numerical", "params": {"integer_only": True, "min": 0}},
                ],
            },
            {"name": "description", "data_type": "text"},
            {"name": "released_on", "data_type": "date"},
            {"name": "restocked_at", "data_type": "datetime"},
            {"name": "tags", "data_type": "varchar", "cardinality": "multiple"},
        ],
    )


@pytest.fixture
def apparel_set(db_session: Session) -> AttributeSetModel:
    """Second set sharing the name 'color' under a different definition."""
    return make_attribute_set(
        db_session,
        "apparel",
        [
            {"name": "color", "data_type": "varchar"},
            {
                "name": "size",
                "data_type": "varchar",
                "rules": [
                    {"kind": "required"},
                    {"kind": "in", "params": {"range": ["S", "M", "L"]}},
                ],
            },
        ],
    )