# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/inventory_api/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create any missing tables (use `flask db upgrade` for managed schemas).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Account inspection/bootstrap:
# - python -m flask users list
#   List all accounts with role and product count.
# - python -m flask users create --email admin@example.com --password "secret123" --role admin
#   Create a verified account without an OTP (prompts if options are omitted).
# - python -m flask users set-role admin@example.com admin
#   Promote or demote an account. The API never changes roles.
# - python -m flask users backfill-roles
#   Set role=user on accounts created before roles existed.

import click
from flask import current_app
from flask.cli import with_appcontext

from .config import get_auth_settings
from .extensions import db
from .models import Role
from .services import admin_service
from .services.admin_service import AccountNotFoundError
from .services.auth_service import EmailAlreadyRegisteredError
from .validation import ValidationError


ROLE_CHOICES = [r.value for r in Role]


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo(f"PASS Tables ready in {current_app.config['SQLALCHEMY_DATABASE_URI']}")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()
    click.echo("BUILD Recreating schema...")
    db.create_all()
    click.echo("PASS Database reset complete")


@click.group('users')
def users_group():
    """Account inspection and bootstrap commands."""


@users_group.command('list')
@with_appcontext
def list_users():
    """List all accounts, newest first."""
    accounts = admin_service.list_accounts()
    if not accounts:
        click.echo("No accounts found.")
        return

    click.echo(f"{'ID':<6} {'EMAIL':<36} {'ROLE':<8} {'PRODUCTS':>8}  NAME")
    for a in accounts:
        click.echo(f"{a['id']:<6} {a['email']:<36} {a['role']:<8} {a['productCount']:>8}  {a['name'] or ''}")


@users_group.command('create')
@click.option('--name', default=None, help='Display name')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(ROLE_CHOICES), default=Role.USER.value, show_default=True)
@with_appcontext
def create_user_cli(name, email, password, role):
    """Create a verified account directly (no OTP)."""
    try:
        account = admin_service.create_account(
            name=name,
            email=email,
            password=password,
            role=Role(role),
            rounds=get_auth_settings().bcrypt_rounds,
        )
    except (ValidationError, EmailAlreadyRegisteredError) as e:
        raise click.ClickException(str(e))

    click.echo(f"PASS Created account {account.email} (ID: {account.id}) with role '{account.role}'")


@users_group.command('set-role')
@click.argument('email')
@click.argument('role', type=click.Choice(ROLE_CHOICES))
@with_appcontext
def set_role_cli(email, role):
    """Change the role of the account with EMAIL."""
    try:
        account = admin_service.set_role(email, Role(role))
    except AccountNotFoundError:
        raise click.ClickException(f"No account with email {email}")

    click.echo(f"PASS {account.email} is now '{account.role}'")


@users_group.command('backfill-roles')
@with_appcontext
def backfill_roles_cli():
    """Give accounts with no role the default 'user' role."""
    updated = admin_service.backfill_roles()
    click.echo(f"PASS Backfilled role on {updated} account(s)")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
