import os
import click
from flask import current_app
from flask.cli import with_appcontext
from flask_migrate import upgrade as alembic_upgrade, stamp as alembic_stamp, migrate as alembic_migrate

from app.services import vault
from app.services.container import get_services

TRUTHY = ("1", "true", "yes")


def _is_production():
    return bool(current_app.config.get("IS_PRODUCTION")) or (os.getenv("APP_ENV") or "").lower() == "production"


def _guard_production_schema():
    if _is_production() and (os.getenv("ALLOW_DB_MIGRATIONS") or "").lower() not in TRUTHY:
        raise click.ClickException(
            "Refusing to run DB migration in production without ALLOW_DB_MIGRATIONS=true"
        )


@click.command("db-migrate-safe")
@click.option("-m", "--message", default="escrow schema change", help="Migration message")
@with_appcontext
def db_migrate_safe(message):
    """Autogenerate a migration from the settlement models."""
    alembic_migrate(message=message)
    click.echo("Migration script generated.")


@click.command("db-upgrade-safe")
@with_appcontext
def db_upgrade_safe():
    """Upgrade to head; guarded in production."""
    _guard_production_schema()
    alembic_upgrade()
    click.echo("Database upgraded.")


@click.command("db-stamp-safe")
@click.option("--revision", default="head", help="Revision to stamp, default 'head'")
@with_appcontext
def db_stamp_safe(revision):
    _guard_production_schema()
    alembic_stamp(revision)
    click.echo(f"Database stamped at {revision}.")


@click.command("vault-generate-key")
def vault_generate_key():
    """Print a fresh 64 hex character BANK_ENCRYPTION_KEY."""
    click.echo(vault.generate_encryption_key())


@click.command("vault-check-key")
@with_appcontext
def vault_check_key():
    """Encrypt and decrypt a probe value with the configured key."""
    token = vault.encrypt("vault-probe")
    if vault.decrypt(token) != "vault-probe":
        raise click.ClickException("BANK_ENCRYPTION_KEY round trip failed")
    click.echo("BANK_ENCRYPTION_KEY ok.")


@click.command("escrow-summary")
@with_appcontext
def escrow_summary():
    """Print order counts by status and the escrow still held."""
    orders = get_services().orders
    for status, count in sorted(orders.status_counts().items()):
        click.echo(f"{status}: {count}")
    click.echo(f"escrow held: {orders.held_escrow_total():.2f}")


def register_cli(app):
    for command in (
        db_migrate_safe,
        db_upgrade_safe,
        db_stamp_safe,
        vault_generate_key,
        vault_check_key,
        escrow_summary,
    ):
        app.cli.add_command(command)
