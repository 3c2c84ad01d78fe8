"""Shared pytest fixtures and test helpers for the laundry app tests."""

import smtplib

import pytest

from app import create_app
from config import TestConfig
from models import db
from models.user import User
from models.customer import create_customer
from models.order import create_order

PASSWORD = 'password123'


class FakeSMTP:
    """Stands in for ``smtplib.SMTP``; every sent message lands in ``outbox``."""

    outbox = []
    fail_with = None

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self):
        pass

    def login(self, username, password):
        pass

    def send_message(self, message):
        if FakeSMTP.fail_with is not None:
            raise FakeSMTP.fail_with
        FakeSMTP.outbox.append(message)


@pytest.fixture(autouse=True)
def outbox(monkeypatch):
    """Capture outgoing mail instead of talking to a real SMTP server."""
    FakeSMTP.outbox = []
    FakeSMTP.fail_with = None
    monkeypatch.setattr('services.mailer.smtplib.SMTP', FakeSMTP)
    return FakeSMTP.outbox


@pytest.fixture
def smtp_down():
    """Make every send fail as if the SMTP server refused the login."""
    FakeSMTP.fail_with = smtplib.SMTPAuthenticationError(535, b'Bad credentials')


@pytest.fixture
def app():
    """Application bound to a fresh in-memory database."""
    app = create_app(TestConfig)
    ctx = app.app_context()
    ctx.push()
    db.create_all()
    try:
        yield app
    finally:
        db.session.remove()
        db.drop_all()
        ctx.pop()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def cli_runner(app):
    return app.test_cli_runner()


def make_user(email, role='staff', name=None, password=PASSWORD):
    user = User(email=email, name=name or email.split('@')[0].title(), role=role, is_active=True)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def admin(app):
    return make_user('admin@example.com', role='admin', name='Alice Admin')


@pytest.fixture
def staff(app):
    return make_user('staff@example.com', role='staff', name='Sam Staff')


@pytest.fixture
def customer(staff):
    return create_customer(staff, 'Maria Santos', 'maria@example.com', '09171234567')


def login(client, user, password=PASSWORD):
    """Sign in through the login form, asserting it redirects."""
    response = client.post('/auth/login', data={'email': user.email, 'password': password})
    assert response.status_code == 302, response.data
    return response


@pytest.fixture
def admin_client(client, admin):
    login(client, admin)
    return client


@pytest.fixture
def staff_client(client, staff):
    login(client, staff)
    return client


def make_order(actor, customer, **services):
    """Create an order; defaults to clothes only."""
    services = services or {'clothes': True}
    return create_order(actor, customer.id, services)
