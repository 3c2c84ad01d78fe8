import os


def _env_flag(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'change-me-in-production'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///laundry.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    BABEL_DEFAULT_LOCALE = os.environ.get('BABEL_DEFAULT_LOCALE') or 'en'
    BABEL_DEFAULT_TIMEZONE = os.environ.get('BABEL_DEFAULT_TIMEZONE') or 'UTC'
    LOG_LEVEL = os.environ.get('LOG_LEVEL') or 'INFO'

    SHOP_NAME = os.environ.get('SHOP_NAME') or 'NorthEnd Laundry'
    CURRENCY = os.environ.get('CURRENCY') or 'PHP'
    APP_URL = os.environ.get('APP_URL') or 'http://localhost:5000'

    # SMTP; defaults target Gmail with an app password
    MAIL_SERVER = os.environ.get('MAIL_SERVER') or 'smtp.gmail.com'
    MAIL_PORT = int(os.environ.get('MAIL_PORT') or 587)
    MAIL_USE_TLS = _env_flag('MAIL_USE_TLS', True)
    MAIL_USERNAME = os.environ.get('MAIL_USERNAME')
    MAIL_PASSWORD = os.environ.get('MAIL_PASSWORD')
    MAIL_SENDER_NAME = os.environ.get('MAIL_SENDER_NAME') or SHOP_NAME
    MAIL_TIMEOUT = int(os.environ.get('MAIL_TIMEOUT') or 10)


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    WTF_CSRF_ENABLED = False
    SERVER_NAME = 'localhost'
    MAIL_USERNAME = 'shop@example.com'
    MAIL_PASSWORD = 'secret'
    LOG_LEVEL = 'WARNING'
