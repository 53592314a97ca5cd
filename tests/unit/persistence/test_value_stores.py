"""Tests for value store dispatch."""

from datetime import date, datetime

import pytest
from sqlalchemy.dialects import sqlite

from eavrecord.core.exceptions import UnknownDataTypeError
from eavrecord.domain.entities.attribute_set import AttributeDefinition
from eavrecord.infrastructure.persistence.models import IntValueModel
from eavrecord.infrastructure.persistence.value_stores import (
    IntValueStore,
    ValueStoreRegistry,
    VarcharValueStore,
    create_default_registry,
    value_stores,
)


def compile_sql(stmt) -> str:
    return str(stmt.compile(dialect=sqlite.dialect()))


class TestValueStoreRegistry:

    def test_builtin_data_types(self):
        assert value_stores.data_types() == ["date", "datetime", "int", "numeric", "text", "varchar"]

    def test_unknown_data_type(self):
        with pytest.raises(UnknownDataTypeError) as exc_info:
            value_stores.get("blob")
        assert exc_info.value.data_type == "blob"

    def test_for_definition(self):
        definition = AttributeDefinition(id=1, attribute_set_id=1, name="stock", data_type="int")
        store = value_stores.for_definition(definition)
        assert store.model is IntValueModel
        assert store.table.name == "eav_value_int"

    def test_register_replaces_store(self):
        registry = ValueStoreRegistry()
        registry.register(VarcharValueStore())
        assert "varchar" in registry
        assert "int" not in registry

        custom = VarcharValueStore()
        registry.register(custom)
        assert registry.get("varchar") is custom

    def test_default_registries_are_independent(self):
        registry = create_default_registry()
        assert registry is not value_stores
        assert registry.data_types() == value_stores.data_types()


class TestConversions:

    def test_int(self):
        store = value_stores.get("int")
        assert store.to_python("42") == 42
        assert store.to_python(42) == 42
        assert store.to_python(None) is None
        assert store.to_storage("7") == 7

    def test_numeric(self):
        store = value_stores.get("numeric")
        assert store.to_python("12.5") == 12.5
        assert store.to_python("42") == 42.0
        assert store.to_storage(3) == 3.0

    def test_strings(self):
        assert value_stores.get("varchar").to_python("oak") == "oak"
        assert value_stores.get("text").to_storage(12) == "12"

    def test_date(self):
        store = value_stores.get("date")
        assert store.to_python("2024-03-01") == date(2024, 3, 1)
        assert store.to_python(datetime(2024, 3, 1, 10, 30)) == date(2024, 3, 1)
        assert store.to_storage("2024-03-01") == date(2024, 3, 1)

    def test_datetime(self):
        store = value_stores.get("datetime")
        assert store.to_python("2024-03-01 10:30:00.000000") == datetime(2024, 3, 1, 10, 30)
        assert store.to_python(date(2024, 3, 1)) == datetime(2024, 3, 1)


class TestSelects:

    def test_scoped_select_single_entity(self):
        sql = compile_sql(IntValueStore().scoped_select(3, "test_products", [9]))
        assert "FROM eav_value_int" in sql
        assert "eav_value_int.entity_id = " in sql
        assert "CAST" not in sql

    def test_scoped_select_many_entities(self):
        sql = compile_sql(IntValueStore().scoped_select(3, "test_products", [1, 2, 3]))
        assert "eav_value_int.entity_id IN" in sql

    def test_normalized_select_casts_value(self):
        stmt = IntValueStore().normalized_select(3, "test_products", [1, 2])
        assert [column.name for column in stmt.selected_columns] == [
            "id",
            "attribute_id",
            "entity_type",
            "entity_id",
            "value",
        ]
        assert "CAST(eav_value_int.value AS VARCHAR)" in compile_sql(stmt)
