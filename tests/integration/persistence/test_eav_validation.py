"""Validation, scenarios and attribute metadata of dynamic attributes."""

import pytest

from eav_models import ProductModel, make_attribute_set
from eavrecord.core.exceptions import UnknownRuleError


@pytest.fixture
def sized_set(db_session):
    return make_attribute_set(
        db_session,
        "sized",
        [
            {
                "name": "sizes",
                "data_type": "varchar",
                "cardinality": "multiple",
                "rules": [{"kind": "in", "params": {"range": ["S", "M", "L"]}}],
            },
            {
                "name": "codes",
                "data_type": "varchar",
                "cardinality": "multiple",
                "rules": [{"kind": "required"}],
            },
        ],
    )


@pytest.fixture
def scenario_set(db_session):
    return make_attribute_set(
        db_session,
        "scenarios",
        [
            {"name": "code", "data_type": "varchar", "rules": [{"kind": "required", "on": "insert"}]},
            {"name": "ref", "data_type": "varchar", "rules": [{"kind": "required", "except": "import"}]},
        ],
    )


@pytest.fixture
def profile_set(db_session):
    return make_attribute_set(
        db_session,
        "profile",
        [
            {"name": "nickname", "data_type": "varchar", "rules": [{"kind": "safe"}]},
            {"name": "secret", "data_type": "varchar", "rules": [{"kind": "required"}, {"kind": "unsafe"}]},
            {"name": "note", "data_type": "text"},
        ],
    )


def error_codes(record, name):
    return [error.code for error in record.eav_errors.get(name, [])]


class TestValidation:

    def test_required_and_in_rules(self, db_session, apparel_set):
        product = ProductModel(name="Shirt", eav_set_id=apparel_set.id)
        db_session.add(product)

        assert product.save_with_dynamic_attributes() is False
        assert error_codes(product, "size") == ["required"]
        assert product.eav_errors["size"][0].message == "Size cannot be blank."

        product.set_attribute("size", "XL")
        assert product.save_with_dynamic_attributes() is False
        assert error_codes(product, "size") == ["not_in_range"]

        product.set_attribute("size", "M")
        assert product.save_with_dynamic_attributes() is True
        assert product.eav_errors == {}

    def test_numerical_rule(self, db_session, furniture_set):
        product = ProductModel(name="Desk", eav_set_id=furniture_set.id)
        db_session.add(product)

        product.set_attribute("stock", -1)
        assert product.validate_dynamic_attributes() is False
        assert error_codes(product, "stock") == ["too_small"]

        product.set_attribute("stock", "many")
        assert product.validate_dynamic_attributes() is False
        assert error_codes(product, "stock") == ["not_integer"]

    def test_validation_can_be_skipped(self, db_session, apparel_set):
        product = ProductModel(name="Shirt", eav_set_id=apparel_set.id)
        db_session.add(product)
        assert product.save_with_dynamic_attributes(validate=False) is True

    def test_validate_selected_names(self, db_session, apparel_set):
        product = ProductModel(name="Shirt", eav_set_id=apparel_set.id)
        db_session.add(product)
        assert product.validate_dynamic_attributes(["color"]) is True
        assert product.validate_dynamic_attributes(["color", "size"]) is False

    def test_unknown_rule_kind(self, db_session):
        attribute_set = make_attribute_set(
            db_session, "broken", [{"name": "code", "data_type": "varchar", "rules": [{"kind": "bogus"}]}]
        )
        product = ProductModel(name="Widget", eav_set_id=attribute_set.id)
        db_session.add(product)
        with pytest.raises(UnknownRuleError):
            product.validate_dynamic_attributes()


class TestMultiValuedValidation:

    def test_each_element_is_validated(self, db_session, sized_set):
        product = ProductModel(name="Shirt", eav_set_id=sized_set.id)
        db_session.add(product)
        product.set_attribute("codes", ["A"])
        product.set_attribute("sizes", ["S", "XL", "M", "XXL"])

        assert product.validate_dynamic_attributes() is False
        assert error_codes(product, "sizes") == ["not_in_range"]
        assert product.get_attribute("sizes") == ["S", "XL", "M", "XXL"]

    def test_valid_elements(self, db_session, sized_set):
        product = ProductModel(name="Shirt", eav_set_id=sized_set.id)
        db_session.add(product)
        product.set_attribute("codes", ["A", "B"])
        product.set_attribute("sizes", ["S", "L"])
        assert product.save_with_dynamic_attributes() is True

    def test_empty_collection_is_checked_once(self, db_session, sized_set):
        product = ProductModel(name="Shirt", eav_set_id=sized_set.id)
        db_session.add(product)
        assert product.validate_dynamic_attributes() is False
        assert error_codes(product, "codes") == ["required"]
        assert "sizes" not in product.eav_errors
        assert product.get_attribute("codes") == []

    def test_non_list_value(self, db_session, sized_set):
        product = ProductModel(name="Shirt", eav_set_id=sized_set.id)
        db_session.add(product)
        product.set_attribute("codes", ["A"])
        product.set_attribute("sizes", "S")

        assert product.validate_dynamic_attributes() is False
        assert error_codes(product, "sizes") == ["invalid"]
        assert product.get_attribute("sizes") == "S"


class TestScenarios:

    def test_rule_limited_to_insert(self, db_session, scenario_set):
        product = ProductModel(name="Widget", eav_set_id=scenario_set.id)
        db_session.add(product)
        product.set_attribute("ref", "R-1")

        assert product.eav_scenario == "insert"
        assert product.is_attribute_required("code") is True
        assert product.save_with_dynamic_attributes() is False

        product.set_attribute("code", "C-1")
        assert product.save_with_dynamic_attributes() is True

        assert product.eav_scenario == "update"
        assert product.is_attribute_required("code") is False
        product.unset_attribute("code")
        assert product.save_with_dynamic_attributes() is True

    def test_excepted_scenario(self, db_session, scenario_set):
        product = ProductModel(name="Widget", eav_set_id=scenario_set.id)
        db_session.add(product)
        product.set_attribute("code", "C-1")
        assert product.is_attribute_required("ref") is True

        product.eav_scenario = "import"
        assert product.is_attribute_required("ref") is False
        assert product.is_attribute_required("code") is False
        assert product.save_with_dynamic_attributes() is True

    def test_scenario_override_can_be_cleared(self, db_session, scenario_set):
        product = ProductModel(name="Widget", eav_set_id=scenario_set.id)
        db_session.add(product)
        product.eav_scenario = "import"
        product.eav_scenario = None
        assert product.eav_scenario == "insert"


class TestMetadata:

    def test_labels(self, db_session, furniture_set):
        product = ProductModel(name="Desk", eav_set_id=furniture_set.id)
        db_session.add(product)
        assert product.get_attribute_label("color") == "Colour"
        assert product.get_attribute_label("released_on") == "Released on"
        assert product.get_attribute_label("supplier_id") == "Supplier id"

    def test_multivalued_and_required_flags(self, db_session, furniture_set, apparel_set):
        product = ProductModel(name="Desk", eav_set_id=furniture_set.id)
        db_session.add(product)
        assert product.is_attribute_multivalued("tags") is True
        assert product.is_attribute_multivalued("color") is False
        assert product.is_attribute_required("color") is False

        product.attach_attribute_set(apparel_set.id)
        assert product.is_attribute_required("size") is True
        assert product.is_attribute_multivalued("tags") is False

    def test_safe_attribute_names(self, db_session, profile_set):
        product = ProductModel(name="Profile", eav_set_id=profile_set.id)
        db_session.add(product)
        assert product.get_safe_attribute_names() == ["nickname"]

    def test_mass_assignment(self, db_session, profile_set):
        product = ProductModel(name="Profile", eav_set_id=profile_set.id)
        db_session.add(product)
        product.set_attributes({"nickname": "nick", "secret": "s3cret", "note": "hello", "name": "Renamed"})

        assert product.get_attribute("nickname") == "nick"
        assert product.get_attribute("secret") is None
        assert product.get_attribute("note") is None
        assert product.name == "Renamed"

        product.set_attributes({"secret": "s3cret", "note": "hello"}, safe_only=False)
        assert product.get_attribute("secret") == "s3cret"
        assert product.get_attribute("note") == "hello"
