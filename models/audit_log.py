from datetime import datetime, date
from models import db
from models.user import require_admin


def _jsonable(value):
    """Make old/new value snapshots safe for a JSON column."""
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


# append-only record of who did what
class AuditLog(db.Model):
    __tablename__ = 'audit_logs'
    id = db.Column(db.Integer, primary_key=True)
    action = db.Column(db.String(64), nullable=False, index=True)

    performed_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True, index=True)
    performed_by_email = db.Column(db.String(255), nullable=False)
    performed_by_name = db.Column(db.String(128), nullable=False)

    target_order_id = db.Column(db.Integer, db.ForeignKey('laundry_orders.id'), nullable=True, index=True)
    target_customer_id = db.Column(db.Integer, db.ForeignKey('customers.id'), nullable=True, index=True)
    target_user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True, index=True)
    target_user_email = db.Column(db.String(255), nullable=True)

    details = db.Column(db.Text, nullable=True)
    old_values = db.Column(db.JSON, nullable=True)
    new_values = db.Column(db.JSON, nullable=True)
    timestamp = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    performer = db.relationship('User', foreign_keys=[performed_by])
    target_user = db.relationship('User', foreign_keys=[target_user_id])
    target_order = db.relationship('LaundryOrder')
    target_customer = db.relationship('Customer')

    def __repr__(self):
        return f'<AuditLog {self.action} by {self.performed_by_email}>'

    @classmethod
    def record(cls, action, actor, target_order=None, target_customer=None, target_user=None,
               target_user_email=None, details=None, old_values=None, new_values=None):
        entry = cls(
            action=action,
            performed_by=actor.id if actor else None,
            performed_by_email=actor.email if actor else 'system',
            performed_by_name=(actor.name or actor.email) if actor else 'system',
            target_order_id=target_order.id if target_order else None,
            target_customer_id=target_customer.id if target_customer else None,
            target_user_id=target_user.id if target_user else None,
            target_user_email=target_user_email or (target_user.email if target_user else None),
            details=details,
            old_values=_jsonable(old_values) if old_values is not None else None,
            new_values=_jsonable(new_values) if new_values is not None else None,
            timestamp=datetime.utcnow(),
        )
        db.session.add(entry)
        return entry

    def get_action_display(self):
        return self.action.replace('_', ' ').title()

    def get_action_class(self):
        if self.action.endswith('_deleted'):
            return 'danger'
        if self.action.endswith('_created'):
            return 'success'
        if self.action in ('role_changed', 'pricing_updated'):
            return 'warning'
        return 'info'

    def to_dict(self):
        return {
            'id': self.id,
            'action': self.action,
            'performed_by': self.performed_by,
            'performed_by_email': self.performed_by_email,
            'performed_by_name': self.performed_by_name,
            'target_order_id': self.target_order_id,
            'target_customer_id': self.target_customer_id,
            'target_user_id': self.target_user_id,
            'target_user_email': self.target_user_email,
            'details': self.details,
            'old_values': self.old_values,
            'new_values': self.new_values,
            'timestamp': self.timestamp.isoformat() if self.timestamp else None,
        }


def _newest_first():
    return AuditLog.query.order_by(AuditLog.timestamp.desc(), AuditLog.id.desc())


def create_audit_log(actor, action, target_user_id=None, target_user_email=None,
                     details=None, old_values=None, new_values=None):
    from models.user import User

    require_admin(actor)
    target_user = db.session.get(User, target_user_id) if target_user_id else None
    entry = AuditLog.record(
        action, actor,
        target_user=target_user,
        target_user_email=target_user_email,
        details=details,
        old_values=old_values,
        new_values=new_values,
    )
    db.session.commit()
    return entry


def get_all_audit_logs(actor, limit=None, action=None):
    require_admin(actor)
    query = _newest_first()
    if action:
        query = query.filter(AuditLog.action == action)
    if limit:
        query = query.limit(limit)
    return query.all()


def get_audit_logs_for_user(actor, user_id, limit=None):
    require_admin(actor)
    query = _newest_first().filter(AuditLog.target_user_id == user_id)
    if limit:
        query = query.limit(limit)
    return query.all()


def get_recent_audit_logs(actor, limit=10):
    require_admin(actor)
    return _newest_first().limit(limit or 10).all()


def get_action_types():
    rows = db.session.query(AuditLog.action).distinct().order_by(AuditLog.action).all()
    return [r[0] for r in rows]
