from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

from .user import User
from .customer import Customer
from .order import LaundryOrder
from .pricing import PricingConfig
from .audit_log import AuditLog
from .alert import SystemAlert
