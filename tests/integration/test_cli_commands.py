from unittest.mock import patch

import pytest
from click.testing import CliRunner

from eav_models import make_attribute_set
from eavrecord.cli import cli
from eavrecord.core.config import Settings
from eavrecord.infrastructure.persistence.database import DatabaseManager


def make_settings(tmp_path, **overrides):
    values = {
        "environment": "testing",
        "database_url": f"sqlite:///{tmp_path / 'data' / 'eav.db'}",
        "log_format": "console",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def file_db(tmp_path):
    """A file-backed database wired into the CLI."""
    settings = make_settings(tmp_path)
    db = DatabaseManager(settings)
    with patch("eavrecord.cli.get_settings", return_value=settings), patch(
        "eavrecord.infrastructure.persistence.database.get_db_manager", return_value=db
    ):
        yield db
    db.disconnect()


def test_init_db_creates_tables(file_db, tmp_path):
    runner = CliRunner()
    result = runner.invoke(cli, ["init-db", "--force"])

    assert result.exit_code == 0, result.output
    assert "Database initialized successfully." in result.output
    assert (tmp_path / "data" / "eav.db").exists()


def test_init_db_refuses_production(tmp_path):
    settings = make_settings(tmp_path, environment="production")
    runner = CliRunner()
    with patch("eavrecord.cli.get_settings", return_value=settings):
        result = runner.invoke(cli, ["init-db"])

    assert result.exit_code == 1
    assert "Use migrations instead of init-db" in result.output


def test_init_db_aborts_without_confirmation(file_db, tmp_path):
    runner = CliRunner()
    result = runner.invoke(cli, ["init-db"], input="n\n")

    assert result.exit_code == 1
    assert not (tmp_path / "data" / "eav.db").exists()


def test_describe_set(file_db):
    runner = CliRunner()
    assert runner.invoke(cli, ["init-db", "--force"]).exit_code == 0
    with file_db.session() as session:
        attribute_set = make_attribute_set(
            session,
            "furniture",
            [
                {"name": "color", "data_type": "varchar", "label": "Colour"},
                {
                    "name": "stock",
                    "data_type": "int",
                    "rules": [{"kind": "numerical", "params": {"min": 0}}],
                },
                {"name": "tags", "data_type": "varchar", "cardinality": "multiple"},
            ],
        )
        set_id = attribute_set.id

    result = runner.invoke(cli, ["describe-set", str(set_id)])

    assert result.exit_code == 0, result.output
    assert f"Attribute set {set_id}: furniture" in result.output
    lines = result.output.splitlines()
    color = next(line for line in lines if line.strip().startswith("color"))
    assert "varchar" in color and "Colour" in color and "rules: -" in color
    stock = next(line for line in lines if line.strip().startswith("stock"))
    assert "rules: numerical" in stock
    tags = next(line for line in lines if line.strip().startswith("tags"))
    assert "multiple" in tags


def test_describe_missing_set(file_db):
    runner = CliRunner()
    assert runner.invoke(cli, ["init-db", "--force"]).exit_code == 0

    result = runner.invoke(cli, ["describe-set", "99"])

    assert result.exit_code == 1
    assert "Error: Attribute set 99 not found" in result.output


def test_list_sets(file_db):
    runner = CliRunner()
    assert runner.invoke(cli, ["init-db", "--force"]).exit_code == 0

    result = runner.invoke(cli, ["list-sets"])
    assert result.exit_code == 0
    assert "No attribute sets found." in result.output

    with file_db.session() as session:
        make_attribute_set(session, "furniture", [{"name": "color", "data_type": "varchar"}])
        make_attribute_set(session, "apparel", [])

    result = runner.invoke(cli, ["list-sets"])
    assert result.exit_code == 0
    lines = [line for line in result.output.splitlines() if line.strip()]
    assert "furniture" in lines[0] and "1 attributes" in lines[0]
    assert "apparel" in lines[1] and "0 attributes" in lines[1]


def test_info(tmp_path):
    settings = make_settings(tmp_path)
    runner = CliRunner()
    with patch("eavrecord.cli.get_settings", return_value=settings):
        result = runner.invoke(cli, ["info"])

    assert result.exit_code == 0
    assert "Data types:       date, datetime, int, numeric, text, varchar" in result.output
    assert "Eager loading:    False" in result.output
