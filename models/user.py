from datetime import datetime
from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash
from models import db
from models.errors import ValidationError, PermissionDenied, NotFoundError, ConflictError

ROLES = ('admin', 'staff')


class User(UserMixin, db.Model):
    __tablename__ = 'users'
    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    name = db.Column(db.String(128), nullable=True)
    password_hash = db.Column(db.String(256), nullable=False)
    role = db.Column(db.String(20), nullable=False, default='staff')  # admin, staff
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f'<User {self.email}>'

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    def is_admin(self):
        return self.role == 'admin'

    def is_staff(self):
        return self.role == 'staff'

    def display_name(self):
        return self.name or self.email

    def home_endpoint(self):
        return 'admin.dashboard' if self.is_admin() else 'staff.dashboard'

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'name': self.name,
            'role': self.role,
            'is_active': self.is_active,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


def require_admin(actor, message='Unauthorized: Admin access required'):
    if actor is None or not actor.is_admin():
        raise PermissionDenied(message)


def _normalize_email(email):
    email = (email or '').strip().lower()
    if not email or '@' not in email:
        raise ValidationError('A valid email address is required')
    return email


def _check_role(role):
    if role not in ROLES:
        raise ValidationError(f'Invalid role: {role}')
    return role


def get_user_or_404(user_id):
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError('User not found')
    return user


def get_all_users(actor):
    require_admin(actor)
    return User.query.order_by(User.created_at.desc()).all()


def create_user(actor, name, email, password, role='staff'):
    from models.audit_log import AuditLog

    require_admin(actor)
    email = _normalize_email(email)
    _check_role(role)
    if not password or len(password) < 6:
        raise ValidationError('Password must be at least 6 characters')
    if User.query.filter_by(email=email).first():
        raise ConflictError('User with this email already exists')

    user = User(name=(name or '').strip() or None, email=email, role=role, is_active=True)
    user.set_password(password)
    db.session.add(user)
    db.session.flush()

    AuditLog.record(
        'user_created', actor,
        target_user=user,
        details=f'Created new user: {user.name} ({email}) with role: {role}',
        new_values={'name': user.name, 'email': email, 'role': role},
    )
    db.session.commit()
    return user


def update_user(actor, user_id, name=None, email=None, role=None):
    from models.audit_log import AuditLog

    require_admin(actor)
    user = get_user_or_404(user_id)
    old_values = {'name': user.name, 'email': user.email, 'role': user.role}

    updates = {}
    if name is not None:
        updates['name'] = name.strip() or None
    if email is not None:
        email = _normalize_email(email)
        if email != user.email:
            existing = User.query.filter_by(email=email).first()
            if existing and existing.id != user.id:
                raise ConflictError('User with this email already exists')
        updates['email'] = email
    if role is not None:
        updates['role'] = _check_role(role)

    changes = []
    for field, value in updates.items():
        if value != old_values[field]:
            changes.append(f'{field}: "{old_values[field]}" → "{value}"')
        setattr(user, field, value)

    AuditLog.record(
        'user_updated', actor,
        target_user=user,
        details=f'Updated user: {user.display_name()}. Changes: {", ".join(changes)}',
        old_values=old_values,
        new_values=updates,
    )
    db.session.commit()
    return user


def set_user_role(actor, user_id, role):
    from models.audit_log import AuditLog

    require_admin(actor)
    _check_role(role)
    user = get_user_or_404(user_id)
    if user.id == actor.id and role != 'admin':
        raise PermissionDenied('You cannot remove your own admin role')
    old_role = user.role
    user.role = role

    AuditLog.record(
        'role_changed', actor,
        target_user=user,
        details=f'Changed role for {user.display_name()}: "{old_role}" → "{role}"',
        old_values={'role': old_role},
        new_values={'role': role},
    )
    db.session.commit()
    return user


def _detach_user_references(user):
    """Null out foreign keys pointing at ``user``; snapshots stay on the rows."""
    from models.audit_log import AuditLog
    from models.customer import Customer
    from models.order import LaundryOrder
    from models.pricing import PricingConfig
    from models.alert import SystemAlert

    AuditLog.query.filter_by(target_user_id=user.id).update({'target_user_id': None})
    AuditLog.query.filter_by(performed_by=user.id).update({'performed_by': None})
    Customer.query.filter_by(created_by=user.id).update({'created_by': None})
    for column in ('created_by', 'updated_by', 'deleted_by'):
        LaundryOrder.query.filter(getattr(LaundryOrder, column) == user.id).update({column: None})
    PricingConfig.query.filter_by(updated_by=user.id).update({'updated_by': None})
    SystemAlert.query.filter_by(resolved_by=user.id).update({'resolved_by': None})


def delete_user(actor, user_id):
    from models.audit_log import AuditLog

    require_admin(actor)
    if user_id == actor.id:
        raise PermissionDenied('You cannot delete your own account')
    user = get_user_or_404(user_id)

    # the entry is written first so it still carries the deleted user's snapshot
    AuditLog.record(
        'user_deleted', actor,
        target_user=user,
        details=f'Deleted user: {user.display_name()} ({user.email}) with role: {user.role}',
        old_values={'name': user.name, 'email': user.email, 'role': user.role},
    )
    _detach_user_references(user)
    db.session.delete(user)
    db.session.commit()
    return user_id
