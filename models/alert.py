from datetime import datetime, timedelta
from models import db
from models.user import require_admin
from models.errors import ValidationError, NotFoundError

SEVERITIES = ('info', 'warning', 'critical')
DEDUP_WINDOW = timedelta(hours=24)
DEFAULT_LIFETIME = timedelta(days=7)


# alerts raised by the scheduled business checks
class SystemAlert(db.Model):
    __tablename__ = 'system_alerts'
    id = db.Column(db.Integer, primary_key=True)

    alert_type = db.Column(db.String(50), nullable=False, index=True)  # revenue_drop, high_unpaid, ...
    severity = db.Column(db.String(10), nullable=False, index=True)

    title = db.Column(db.String(128), nullable=False)
    message = db.Column(db.Text, nullable=False)

    is_read = db.Column(db.Boolean, default=False, index=True)
    is_resolved = db.Column(db.Boolean, default=False, index=True)
    resolved_at = db.Column(db.DateTime, nullable=True)
    resolved_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    expires_at = db.Column(db.DateTime, nullable=True)

    resolver = db.relationship('User')

    def mark_as_read(self):
        if not self.is_read:
            self.is_read = True

    def resolve(self, user):
        if not self.is_resolved:
            self.is_resolved = True
            self.is_read = True
            self.resolved_at = datetime.utcnow()
            self.resolved_by = user.id if user else None

    def is_expired(self, now=None):
        now = now or datetime.utcnow()
        return self.expires_at is not None and self.expires_at < now

    def get_alert_icon(self):
        icon_map = {
            'revenue_drop': 'bi-graph-down-arrow',
            'high_unpaid': 'bi-cash-coin',
            'no_new_customers': 'bi-people',
            'slow_turnaround': 'bi-hourglass-split',
            'overdue_orders': 'bi-exclamation-circle',
        }
        return icon_map.get(self.alert_type, 'bi-bell')

    def get_alert_class(self):
        class_map = {
            'info': 'info',
            'warning': 'warning',
            'critical': 'danger',
        }
        return class_map.get(self.severity, 'secondary')

    def to_dict(self):
        return {
            'id': self.id,
            'alert_type': self.alert_type,
            'severity': self.severity,
            'title': self.title,
            'message': self.message,
            'is_read': self.is_read,
            'is_resolved': self.is_resolved,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'expires_at': self.expires_at.isoformat() if self.expires_at else None,
        }


def create_alert(alert_type, severity, title, message, expires_at=None, now=None):
    """Create an alert unless one of the same type was raised in the last 24h."""
    if severity not in SEVERITIES:
        raise ValidationError(f'Invalid severity: {severity}')
    now = now or datetime.utcnow()

    existing = SystemAlert.query.filter(
        SystemAlert.alert_type == alert_type,
        SystemAlert.created_at > now - DEDUP_WINDOW,
    ).order_by(SystemAlert.created_at.desc()).first()
    if existing is not None:
        return existing, False

    alert = SystemAlert(
        alert_type=alert_type,
        severity=severity,
        title=title,
        message=message,
        is_read=False,
        is_resolved=False,
        created_at=now,
        expires_at=expires_at or now + DEFAULT_LIFETIME,
    )
    db.session.add(alert)
    db.session.commit()
    return alert, True


def _get_alert_or_404(alert_id):
    alert = db.session.get(SystemAlert, alert_id)
    if alert is None:
        raise NotFoundError('Alert not found')
    return alert


def mark_alert_as_read(actor, alert_id):
    require_admin(actor)
    alert = _get_alert_or_404(alert_id)
    alert.mark_as_read()
    db.session.commit()
    return alert


def resolve_alert(actor, alert_id):
    require_admin(actor)
    alert = _get_alert_or_404(alert_id)
    alert.resolve(actor)
    db.session.commit()
    return alert


def get_active_alerts(limit=5, now=None):
    now = now or datetime.utcnow()
    return SystemAlert.query.filter(
        SystemAlert.is_resolved.is_(False),
        db.or_(SystemAlert.expires_at.is_(None), SystemAlert.expires_at > now),
    ).order_by(SystemAlert.created_at.desc(), SystemAlert.id.desc()).limit(limit).all()


def cleanup_expired_alerts(now=None):
    now = now or datetime.utcnow()
    expired = SystemAlert.query.filter(
        SystemAlert.expires_at.isnot(None),
        SystemAlert.expires_at < now,
    ).all()
    for alert in expired:
        db.session.delete(alert)
    db.session.commit()
    return len(expired)
