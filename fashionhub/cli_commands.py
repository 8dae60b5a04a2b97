"""
Flask CLI commands.

Commands:
- flask init-db: Create tables and seed the invoice number sequence
- flask create-user: Create a back-office user
"""

import click

from fashionhub.database import init_schema, get_session
from fashionhub.exceptions import FashionHubError
from fashionhub.models import UserRole
from fashionhub.services.user_service import create_user


def init_cli_commands(app):
    """Register CLI commands with Flask app."""

    @app.cli.command('init-db')
    def init_db_command():
        """Create all tables and the invoice sequence row."""
        init_schema()
        click.echo(click.style('Database initialised.', fg='green'))

    @app.cli.command('create-user')
    @click.option('--email', prompt=True, help='User email address')
    @click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='User password')
    @click.option('--role', type=click.Choice([r.value for r in UserRole], case_sensitive=False),
                  default=UserRole.ADMIN.value, show_default=True, help='User role')
    @click.option('--name', 'full_name', default=None, help='Full name')
    def create_user_command(email, password, role, full_name):
        """Create a back-office user."""
        db_session = get_session()
        try:
            create_user(db_session, email, password, role=role, full_name=full_name)
        except FashionHubError as e:
            click.echo(click.style(f'Error: {e.message}', fg='red'))
            raise SystemExit(1)
        finally:
            db_session.remove()

        click.echo(click.style('User created.', fg='green', bold=True))
        click.echo(f'   Email: {email}')
        click.echo(f'   Role: {role}')
