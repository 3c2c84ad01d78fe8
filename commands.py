"""Flask CLI commands.

Scheduled jobs are meant to be driven by the host's crontab, e.g.::

    0 * * * *  flask --app app:create_app alerts generate
    0 2 * * *  flask --app app:create_app alerts cleanup
"""
import click
from flask.cli import AppGroup
from models import db
from models.user import User
from models.alert import cleanup_expired_alerts
from services.alerts import generate_alerts

alerts_cli = AppGroup('alerts', help='Scheduled alert jobs.')
users_cli = AppGroup('users', help='User administration.')


@alerts_cli.command('generate')
def generate_alerts_command():
    """Run the hourly business checks."""
    created = generate_alerts()
    click.echo(f'{len(created)} new alert(s)')
    for alert in created:
        click.echo(f'  [{alert.severity}] {alert.title}')


@alerts_cli.command('cleanup')
def cleanup_alerts_command():
    """Delete alerts past their expiry (daily)."""
    deleted = cleanup_expired_alerts()
    click.echo(f'Deleted {deleted} expired alert(s)')


@users_cli.command('create-admin')
@click.argument('email')
@click.option('--name', default=None, help='Display name.')
@click.password_option()
def create_admin_command(email, name, password):
    """Create the first administrator account."""
    email = email.strip().lower()
    if User.query.filter_by(email=email).first():
        raise click.ClickException(f'User {email} already exists')
    admin = User(email=email, name=name or email.split('@')[0], role='admin', is_active=True)
    admin.set_password(password)
    db.session.add(admin)
    db.session.commit()
    click.echo(f'Created admin {email}')


@click.command('init-db')
def init_db_command():
    """Create all tables."""
    db.create_all()
    click.echo('Database tables created')


def register_commands(app):
    app.cli.add_command(alerts_cli)
    app.cli.add_command(users_cli)
    app.cli.add_command(init_db_command)
