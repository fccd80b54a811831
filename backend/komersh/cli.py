# Overview: Flask CLI command groups for bootstrap, seeding and user administration.

# backend/komersh/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Export SESSION_SECRET and DATABASE_URL.
# - Set FLASK_APP (export FLASK_APP="komersh:create_app").
#
# System bootstrap:
# - flask system init-db
#   Create all tables that do not exist yet.
# - flask system seed
#   Insert starter bank accounts, potential products and tasks (idempotent).
# - flask system cleanup-sessions --retention-days 30
#   Delete expired or revoked sessions older than the retention window.
#
# Users:
# - flask users list
#   List all users with role and active status.
# - flask users create --email admin@komersh.ae --password "changeme123" --role admin
#   Create a local-password user (prompts if options are omitted).
#
# Invitations:
# - flask invitations create --email new@komersh.ae --role warehouse
#   Invite an email address; the accept link is emailed (or logged without EMAIL_API_TOKEN).

import click
from flask.cli import with_appcontext

from .errors import ApiError
from .extensions import db
from .models import User
from .permissions import ROLE_VALUES
from .services import auth_service, invitation_service, seed_service, session_service


@click.group('system')
def system_group():
    """System bootstrap and maintenance commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create database tables."""
    db.create_all()
    click.echo("PASS Database tables created")


@system_group.command('seed')
@with_appcontext
def seed():
    """Insert starter data that is not already present."""
    counts = seed_service.seed_demo_data()
    for name, created in counts.items():
        click.echo(f"PASS {name}: {created} created")


@system_group.command('cleanup-sessions')
@click.option('--retention-days', type=int, default=30, show_default=True)
@with_appcontext
def cleanup_sessions(retention_days):
    """Delete old expired or revoked sessions."""
    deleted = session_service.cleanup_expired_sessions(retention_days)
    click.echo(f"PASS Deleted {deleted} sessions")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users."""
    users = db.session.query(User).order_by(User.id.asc()).all()
    if not users:
        click.echo("No users found")
        return
    for user in users:
        status = "active" if user.is_active else "inactive"
        sources = []
        if user.password_hash:
            sources.append("local")
        if user.oidc_subject:
            sources.append("oidc")
        click.echo(f"{user.id:>4}  {user.email:<40} {user.role:<10} {status:<8} {','.join(sources) or '-'}")


@users_group.command('create')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(ROLE_VALUES), prompt=True, help='Role')
@click.option('--first-name', default=None, help='First name')
@click.option('--last-name', default=None, help='Last name')
@with_appcontext
def create_user_cli(email, password, role, first_name, last_name):
    """Create a user with a local password (minimum 8 characters)."""
    try:
        user = auth_service.create_user(
            email,
            password=password,
            role=role,
            first_name=first_name,
            last_name=last_name,
        )
        db.session.commit()
    except ApiError as e:
        db.session.rollback()
        raise click.ClickException(e.message)

    click.echo(f"PASS Created user {user.email} (ID: {user.id}) with role '{user.role}'")


@click.group('invitations')
def invitations_group():
    """Invitation commands."""


@invitations_group.command('create')
@click.option('--email', prompt=True, help='Email address to invite')
@click.option('--role', type=click.Choice(ROLE_VALUES), default='viewer', show_default=True)
@with_appcontext
def create_invitation_cli(email, role):
    """Invite an email address with a role."""
    try:
        created = invitation_service.create_invitation(email, role)
    except ApiError as e:
        db.session.rollback()
        raise click.ClickException(e.message)

    click.echo(f"PASS Invited {created['email']} as {created['role']} (expires {created['expiresAt']})")
    if not created["emailSent"]:
        click.echo("WARN Invitation email was not delivered; resend it from the admin screen")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(invitations_group)
