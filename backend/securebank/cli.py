# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/securebank/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to securebank (PowerShell: $env:FLASK_APP="securebank").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables that do not exist yet.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection:
# - python -m flask users list
#   List all users with their account counts.
#
# Session maintenance:
# - python -m flask sessions purge-expired
#   Delete sessions inside the expiry safety window. Optional: reads
#   already expire sessions lazily.

import click
from flask.cli import with_appcontext
from sqlalchemy import func

from .extensions import db
from .models import Account, User
from .services import session_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database tables created.")


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

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete.")


@click.group('users')
def users_group():
    """User inspection commands."""


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with account counts."""
    rows = (
        db.session.query(User, func.count(Account.id))
        .outerjoin(Account, Account.user_id == User.id)
        .group_by(User.id)
        .order_by(User.id)
        .all()
    )

    if not rows:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*70)
    click.echo(f"{'ID':<5} {'Email':<40} {'State':<6} {'Accounts'}")
    click.echo("="*70)
    for user, account_count in rows:
        click.echo(f"{user.id:<5} {user.email:<40} {user.state:<6} {account_count}")
    click.echo("="*70 + "\n")


@click.group('sessions')
def sessions_group():
    """Session maintenance commands."""


@sessions_group.command('purge-expired')
@with_appcontext
def purge_expired_sessions_cli():
    """Delete sessions that are expired or inside the safety window."""
    deleted = session_service.purge_expired_sessions()
    click.echo(f"Deleted {deleted} expired sessions.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(sessions_group)
