"""Finders with dynamic attribute conditions."""

import pytest

from eav_models import CustomerModel, ProductModel, make_attribute_set
from eavrecord.core.exceptions import EavQueryError
from eavrecord.infrastructure.persistence.eav import EavRecordRepository


@pytest.fixture
def catalog(db_session, furniture_set, apparel_set):
    """Products across two sets; both sets define a varchar 'color'."""
    rows = [
        ("Desk", furniture_set, {"color": "oak", "stock": 2, "tags": ["tag-a", "tag-b"]}),
        ("Chair", furniture_set, {"color": "pine", "stock": 0, "tags": ["tag-c"]}),
        ("Shelf", furniture_set, {"stock": 7}),
        ("Shirt", apparel_set, {"color": "oak", "size": "M"}),
    ]
    for name, attribute_set, values in rows:
        product = ProductModel(name=name, eav_set_id=attribute_set.id)
        db_session.add(product)
        for key, value in values.items():
            product.set_attribute(key, value)
        assert product.save_with_dynamic_attributes() is True
    db_session.expunge_all()
    return EavRecordRepository(db_session, ProductModel)


def names_of(records):
    return [record.name for record in records]


class TestMarkers:

    def test_find_all_by_dynamic_value(self, catalog):
        records = catalog.find_all("::color = :color", {"color": "oak"})
        assert names_of(records) == ["Desk", "Shirt"]
        assert records[0].get_attribute("color") == "oak"

    def test_static_and_dynamic_conditions(self, catalog):
        records = catalog.find_all("::color = :color AND test_products.name LIKE :name", {"color": "oak", "name": "D%"})
        assert names_of(records) == ["Desk"]

    def test_numeric_comparison(self, catalog):
        records = catalog.find_all("::stock > :min", {"min": 1})
        assert names_of(records) == ["Desk", "Shelf"]

    def test_missing_values_outer_join(self, catalog):
        records = catalog.find_all("::color IS NULL")
        assert names_of(records) == ["Shelf"]

    def test_multi_valued_matches_are_unique(self, catalog):
        records = catalog.find_all("::tags LIKE :prefix", {"prefix": "tag-%"})
        assert names_of(records) == ["Desk", "Chair"]
        assert catalog.count("::tags LIKE :prefix", {"prefix": "tag-%"}) == 2

    def test_find_first(self, catalog):
        record = catalog.find("::stock = :stock", {"stock": 0})
        assert record.name == "Chair"
        assert catalog.find("::stock = :stock", {"stock": 100}) is None

    def test_order_limit_offset(self, catalog):
        records = catalog.find_all("::color IS NOT NULL", order_by="test_products.name DESC", limit=2, offset=1)
        assert names_of(records) == ["Desk", "Chair"]

    def test_find_all_by_pk_with_condition(self, catalog):
        everything = catalog.find_all()
        ids = [record.id for record in everything]
        records = catalog.find_all_by_pk(ids, "::color = :color", {"color": "pine"})
        assert names_of(records) == ["Chair"]
        assert catalog.find_by_pk(ids[0], "::color = :color", {"color": "pine"}) is None

    def test_unknown_attribute(self, catalog):
        with pytest.raises(EavQueryError):
            catalog.find_all("::missing = 1")

    def test_conflicting_data_types(self, db_session):
        make_attribute_set(db_session, "ints", [{"name": "code", "data_type": "int"}])
        make_attribute_set(db_session, "strings", [{"name": "code", "data_type": "varchar"}])
        repository = EavRecordRepository(db_session, ProductModel)
        with pytest.raises(EavQueryError) as exc_info:
            repository.find_all("::code = 1")
        assert "int, varchar" in str(exc_info.value)

    def test_entity_type_is_scoped(self, db_session, catalog, furniture_set):
        customer = CustomerModel(email="a@example.com", eav_set_id=furniture_set.id)
        db_session.add(customer)
        customer.set_attribute("color", "oak")
        customer.save_with_dynamic_attributes()

        customers = EavRecordRepository(db_session, CustomerModel)
        assert [record.email for record in customers.find_all("::color = :color", {"color": "oak"})] == [
            "a@example.com"
        ]
        assert catalog.count("::color = :color", {"color": "oak"}) == 2


class TestAttributeFinders:

    def test_find_by_dynamic_and_static_attributes(self, catalog):
        record = catalog.find_by_attributes({"color": "oak", "name": "Shirt"})
        assert record.name == "Shirt"
        assert record.get_attribute("size") == "M"

    def test_find_all_by_attributes(self, catalog):
        assert names_of(catalog.find_all_by_attributes({"color": "oak"})) == ["Desk", "Shirt"]
        assert names_of(catalog.find_all_by_attributes({"name": "Chair"})) == ["Chair"]
        assert catalog.find_all_by_attributes({"color": "teal"}) == []

    def test_attributes_with_condition(self, catalog):
        records = catalog.find_all_by_attributes({"color": "oak"}, "::stock >= :stock", {"stock": 1})
        assert names_of(records) == ["Desk"]


class TestCountAndExists:

    def test_count(self, catalog):
        assert catalog.count() == 4
        assert catalog.count("::stock >= :stock", {"stock": 0}) == 3

    def test_exists(self, catalog):
        assert catalog.exists("::size = :size", {"size": "M"}) is True
        assert catalog.exists("::size = :size", {"size": "XL"}) is False
        assert catalog.exists() is True


class TestSqlFinders:

    def test_find_all_by_sql(self, catalog):
        records = catalog.find_all_by_sql(
            "SELECT * FROM test_products WHERE name IN (:a, :b) ORDER BY id", {"a": "Desk", "b": "Chair"}
        )
        assert names_of(records) == ["Desk", "Chair"]
        assert records[1].dynamic_attributes_enabled is True
        assert records[1].get_attribute("color") == "pine"

    def test_find_by_sql_eager(self, catalog, value_statements):
        record = catalog.find_by_sql("SELECT * FROM test_products WHERE name = :name", {"name": "Desk"}, eager=True)
        reads = len(value_statements)
        assert sorted(record.get_attribute("tags")) == ["tag-a", "tag-b"]
        assert len(value_statements) == reads

    def test_records_without_opt_in(self, catalog):
        (record,) = catalog.find_all_by_sql(
            "SELECT * FROM test_products WHERE name = :name", {"name": "Desk"}, eav=False
        )
        assert record.dynamic_attributes_enabled is False
        assert catalog.find_by_sql("SELECT * FROM test_products WHERE name = 'Nothing'") is None
