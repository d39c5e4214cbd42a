# Overview: Flask CLI command groups for bootstrap, seeding and user inspection.

# backend/siliconpos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init [--username admin --password "Password123!"]
#   Create tables (if missing) and the first admin account. Idempotent.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Demo data:
# - python -m flask seed demo
#   Sample networking/CCTV/intercom products and installation services.
#
# Users:
# - python -m flask users list
# - python -m flask users create --username jo --name "Jo Doe" --password "Password123!" --role sales

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User
from .permissions import Role
from .services.auth_service import create_user, PasswordValidationError
from .services.seed_service import seed_demo_catalog
from .validation import ConflictError, ValidationError

DEFAULT_ADMIN_PASSWORD = "Password123!"


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--username', default='admin', help='Admin username')
@click.option('--name', default='Administrator', help='Admin display name')
@click.option('--email', default=None, help='Admin email')
@click.option('--password', default=DEFAULT_ADMIN_PASSWORD, help='Admin password')
@with_appcontext
def init_system(username, name, email, password):
    """
    Create all tables and the first admin account.

    Skips the admin if any admin already exists.
    SECURITY: Change the default password immediately in production!
    """
    click.echo("START Initializing SiliconPOS...")
    db.create_all()
    click.echo("PASS Tables created")

    existing_admin = db.session.query(User).filter_by(role=Role.ADMIN.value).first()
    if existing_admin:
        click.echo(f"WARN  Admin '{existing_admin.username}' already exists, skipping...")
        return

    try:
        user = create_user(name=name, username=username, email=email, password=password, role=Role.ADMIN.value)
    except (PasswordValidationError, ValidationError, ConflictError) as e:
        raise click.ClickException(str(e))

    click.echo(f"PASS Created admin: {user.username}")
    if password == DEFAULT_ADMIN_PASSWORD:
        click.echo("WARN  Using the default password. Change it before going live!")


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

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


@click.group('seed')
def seed_group():
    """Sample data for demos and local development."""


@seed_group.command('demo')
@with_appcontext
def seed_demo():
    """Insert the demo catalog. Items already present are skipped."""
    products_added, services_added = seed_demo_catalog()
    click.echo(f"PASS Inserted {products_added} products and {services_added} services")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--name', prompt=True, help='Display name')
@click.option('--email', default=None, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(Role.values()), default=Role.SALES.value, show_default=True, help='Role')
@with_appcontext
def create_user_cli(username, name, email, password, role):
    """
    Create a staff account.

    Password must meet strength requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character
    """
    try:
        user = create_user(name=name, username=username, email=email, password=password, role=role)
    except PasswordValidationError as e:
        raise click.ClickException(f"Password validation failed: {e}")
    except (ValidationError, ConflictError) as e:
        raise click.ClickException(str(e))

    click.echo(f"PASS Created user: {user.username} with role '{user.role}'")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their roles."""
    users = db.session.query(User).order_by(User.id).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<5} {'Username':<20} {'Name':<25} {'Role':<10} {'Active':<8} {'Last login'}")
    click.echo("="*90)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        last_login = user.last_login_at.strftime("%Y-%m-%d %H:%M") if user.last_login_at else "-"
        click.echo(f"{user.id:<5} {user.username:<20} {user.name:<25} {user.role:<10} {active_str:<8} {last_login}")

    click.echo("="*90 + "\n")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(seed_group)
    app.cli.add_command(users_group)
