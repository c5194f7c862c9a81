# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/colporter/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py.
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init [--program "North Field 2026"]
#   Idempotent bootstrap: creates tables, a default program, and admin/supervisor/viewer users.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users list [--program-id 1]
# - python -m flask users create --program-id 1 --username ana --email ana@colporter.local --password "Password123!" --role SUPERVISOR
#
# Books:
# - python -m flask books backfill-sizes [--program-id 1] [--dry-run]
#   Classify legacy books without a size (price >= $20.00 -> LARGE, else SMALL).

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Program, User
from .permissions import ROLES, ROLE_ADMIN, ROLE_SUPERVISOR, ROLE_VIEWER
from .services.auth_service import create_user, PasswordValidationError
from .services.book_service import backfill_legacy_sizes


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--program', 'program_name', default='Default Program', help='Program name')
@with_appcontext
def init_system(program_name):
    """
    Create tables, a default program and one user per role.

    All passwords default to "Password123!". Change them in production.
    """
    click.echo("START Initializing colporter...")
    db.create_all()

    program = db.session.query(Program).first()
    if not program:
        program = Program(name=program_name, is_active=True)
        db.session.add(program)
        db.session.commit()
        click.echo(f"PASS Created program: {program.name} (ID: {program.id})")
    else:
        click.echo(f"PASS Using existing program: {program.name} (ID: {program.id})")

    default_password = "Password123!"
    default_users = [
        ("admin", "admin@colporter.local", ROLE_ADMIN),
        ("supervisor", "supervisor@colporter.local", ROLE_SUPERVISOR),
        ("viewer", "viewer@colporter.local", ROLE_VIEWER),
    ]

    for username, email, role in default_users:
        existing = db.session.query(User).filter_by(program_id=program.id, username=username).first()
        if existing:
            click.echo(f"WARN  User '{username}' already exists in program, skipping...")
            continue
        try:
            create_user(username=username, email=email, password=default_password,
                        program_id=program.id, role=role)
            click.echo(f"PASS Created user: {username} ({email}) with role '{role}'")
        except (PasswordValidationError, ValueError) as e:
            db.session.rollback()
            click.echo(f"FAIL Failed to create user '{username}': {str(e)}")

    click.echo("\nDefault Credentials (CHANGE IN PRODUCTION!):")
    for username, email, _ in default_users:
        click.echo(f"   {username:<10} -> {email:<28} / {default_password}")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()
    click.echo("BUILD  Creating all tables...")
    db.create_all()
    click.echo("PASS Database reset complete")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--program-id', type=int, help='Program ID (uses the first program if omitted)')
@click.option('--username', prompt=True, help='Username')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(ROLES, case_sensitive=False), prompt=True, help='Role')
@click.option('--full-name', default=None, help='Display name')
@with_appcontext
def create_user_cli(program_id, username, email, password, role, full_name):
    """Create a user in a program."""
    if program_id:
        program = db.session.get(Program, program_id)
        if not program:
            click.echo(f"FAIL Program ID {program_id} not found")
            return
    else:
        program = db.session.query(Program).first()
        if not program:
            click.echo("FAIL No program found. Run 'python -m flask system init' first.")
            return

    try:
        user = create_user(
            username=username,
            email=email,
            password=password,
            program_id=program.id,
            role=role.upper(),
            full_name=full_name,
        )
    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {str(e)}")
        click.echo("Requirements: 8+ chars, uppercase, lowercase, digit, special char")
        return
    except ValueError as e:
        db.session.rollback()
        click.echo(f"FAIL Failed to create user: {str(e)}")
        return

    click.echo(f"PASS Created user: {user.username} ({user.email}) with role '{user.role}'")
    click.echo(f"     Program: {program.name} (ID: {program.id})")


@users_group.command('list')
@click.option('--program-id', type=int, help='Filter by program ID')
@with_appcontext
def list_users(program_id):
    """List all users with their roles."""
    query = db.session.query(User)
    if program_id:
        query = query.filter_by(program_id=program_id)
    users = query.order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "=" * 90)
    click.echo(f"{'ID':<5} {'Prog':<5} {'Username':<20} {'Email':<30} {'Active':<8} {'Role'}")
    click.echo("=" * 90)
    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.program_id:<5} {user.username:<20} {user.email:<30} {active_str:<8} {user.role}")
    click.echo("=" * 90 + "\n")


@click.group('books')
def books_group():
    """Book catalog maintenance commands."""


@books_group.command('backfill-sizes')
@click.option('--program-id', type=int, help='Limit to one program')
@click.option('--dry-run', is_flag=True, help='Report changes without saving')
@with_appcontext
def backfill_sizes_cli(program_id, dry_run):
    """Assign LARGE/SMALL to books that have no size, using the legacy price rule."""
    changed = backfill_legacy_sizes(program_id, dry_run=dry_run)
    if not changed:
        click.echo("PASS No books without a size")
        return
    prefix = "WOULD SET" if dry_run else "SET"
    for book_id, title, size in changed:
        click.echo(f"{prefix} book {book_id} ({title}) -> {size}")
    click.echo(f"PASS {len(changed)} book(s) {'to update' if dry_run else 'updated'}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(books_group)
