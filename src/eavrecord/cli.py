"""Command-line interface for eavrecord.

This module provides operational commands for the attribute catalog and
value tables.
"""

from typing import NoReturn

import click

from eavrecord.core.config import get_settings
from eavrecord.core.logging import configure_logging


@click.group()
@click.version_option(version="0.1.0", prog_name="eavrecord")
def cli() -> None:
    """eavrecord - Dynamic attributes for SQLAlchemy records."""


@cli.command()
@click.option(
    "--force",
    is_flag=True,
    help="Skip confirmation prompt",
)
def init_db(force: bool) -> None:
    """Create the attribute catalog and value tables.

    Use this only in development. In production, use migrations instead.
    """
    from eavrecord.infrastructure.persistence.database import get_db_manager, init_database

    settings = get_settings()
    configure_logging(settings)

    if settings.is_production and not force:
        click.echo(
            "ERROR: Running in production mode. Use migrations instead of init-db.",
            err=True,
        )
        raise SystemExit(1)

    if not force:
        click.confirm(
            "This will create all database tables. Continue?",
            abort=True,
            default=False,
        )

    db = get_db_manager()
    try:
        init_database(db)
        click.echo("Database initialized successfully.")
    finally:
        db.disconnect()


@cli.command()
@click.argument("set_id", type=int)
def describe_set(set_id: int) -> None:
    """Print the attribute definitions of an attribute set."""
    from eavrecord.infrastructure.persistence.database import get_db_manager
    from eavrecord.infrastructure.persistence.repositories import AttributeSetRepository

    settings = get_settings()
    configure_logging(settings)

    db = get_db_manager()
    try:
        with db.session() as session:
            attribute_set = AttributeSetRepository(session).get_by_id(set_id)
    finally:
        db.disconnect()

    if attribute_set is None:
        click.echo(f"Error: Attribute set {set_id} not found", err=True)
        raise SystemExit(1)

    click.echo(f"Attribute set {attribute_set.id}: {attribute_set.name}")
    click.echo("=" * 40)
    if not attribute_set.attributes:
        click.echo("  (no attributes)")
    for attribute in sorted(attribute_set.attributes, key=lambda a: a.name):
        rules = ", ".join(rule.kind for rule in attribute.rules) or "-"
        click.echo(
            f"  {attribute.name:<20} {attribute.data_type:<10} "
            f"{attribute.cardinality.value:<9} {attribute.display_label():<20} rules: {rules}"
        )


@cli.command()
def list_sets() -> None:
    """List attribute sets with their attribute counts."""
    from eavrecord.infrastructure.persistence.database import get_db_manager
    from eavrecord.infrastructure.persistence.repositories import AttributeSetRepository

    settings = get_settings()
    configure_logging(settings)

    db = get_db_manager()
    try:
        with db.session() as session:
            attribute_sets = AttributeSetRepository(session).list_all()
    finally:
        db.disconnect()

    if not attribute_sets:
        click.echo("No attribute sets found.")
        return
    for attribute_set in attribute_sets:
        click.echo(f"  {attribute_set.id:>5}  {attribute_set.name:<30} {len(attribute_set.attributes)} attributes")


@cli.command()
def info() -> None:
    """Display eavrecord configuration."""
    from eavrecord.infrastructure.persistence.value_stores import value_stores

    settings = get_settings()

    click.echo(f"""
eavrecord v{settings.app_version}
{'=' * 40}

Configuration:
  Environment:  {settings.environment}

Database:
  URL:          {settings.database_url}
  Echo:         {settings.db_echo}

Dynamic attributes:
  Eager loading:    {settings.eav_eager_loading}
  Validate on save: {settings.eav_validate_on_save}
  Data types:       {', '.join(value_stores.data_types())}

Logging:
  Level:        {settings.log_level}
  Format:       {settings.log_format}
""")


def main() -> NoReturn:
    """Main entry point for the CLI.

    This function is called when the `eavrecord` command is run
    or when using `python -m eavrecord`.
    """
    cli()


if __name__ == "__main__":
    main()
