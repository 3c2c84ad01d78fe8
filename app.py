from flask import Flask, redirect, url_for
from flask_login import LoginManager, current_user
from flask_babel import Babel, format_currency, format_datetime
from flask_wtf.csrf import CSRFProtect
from config import Config
from models import db
from models.user import User

# Initialize extensions
login_manager = LoginManager()
babel = Babel()
csrf = CSRFProtect()


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)
    app.logger.setLevel(app.config['LOG_LEVEL'])

    db.init_app(app)
    csrf.init_app(app)
    login_manager.init_app(app)
    login_manager.login_view = 'auth.login'
    login_manager.login_message = 'Please sign in to access this page.'
    login_manager.login_message_category = 'warning'

    def get_locale():
        return app.config['BABEL_DEFAULT_LOCALE']

    def get_timezone():
        return app.config['BABEL_DEFAULT_TIMEZONE']

    babel.init_app(app, locale_selector=get_locale, timezone_selector=get_timezone)

    # Flask-Login user loader
    @login_manager.user_loader
    def load_user(user_id):
        user = db.session.get(User, int(user_id))
        return user if user and user.is_active else None

    # Register Blueprints
    from routes.auth import auth_bp
    app.register_blueprint(auth_bp)
    from routes.admin import admin_bp
    app.register_blueprint(admin_bp)
    from routes.staff import staff_bp
    app.register_blueprint(staff_bp)
    from routes.customers import customers_bp
    app.register_blueprint(customers_bp)
    from routes.orders import orders_bp
    app.register_blueprint(orders_bp)
    from routes.track import track_bp
    app.register_blueprint(track_bp)
    from routes.notifications import notifications_bp
    app.register_blueprint(notifications_bp)

    from commands import register_commands
    register_commands(app)

    @app.route("/")
    def index():
        if current_user.is_authenticated:
            return redirect(url_for(current_user.home_endpoint()))
        return redirect(url_for('auth.login'))

    @app.template_filter('currency')
    def currency_filter(amount):
        return format_currency(amount or 0, app.config['CURRENCY'])

    @app.template_filter('datetime')
    def datetime_filter(value, fmt='medium'):
        return format_datetime(value, fmt) if value else '-'

    @app.context_processor
    def inject_shop():
        return {'shop_name': app.config['SHOP_NAME']}

    return app


if __name__ == "__main__":
    app = create_app()
    app.run(debug=True)
