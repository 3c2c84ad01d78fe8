from datetime import datetime
from sqlalchemy import or_, func
from models import db
from models.errors import ValidationError, NotFoundError, ConflictError


class Customer(db.Model):
    __tablename__ = 'customers'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    email = db.Column(db.String(255), nullable=False, index=True)
    phone = db.Column(db.String(32), nullable=False, index=True)
    notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    created_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow)
    is_active = db.Column(db.Boolean, default=True, index=True)

    creator = db.relationship('User', backref='customers_created')

    def __repr__(self):
        return f'<Customer {self.name}>'

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'phone': self.phone,
            'notes': self.notes,
            'is_active': self.is_active,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }


def _active():
    return Customer.query.filter(Customer.is_active.is_(True))


def _clean(value):
    return (value or '').strip()


def _check_unique(email=None, phone=None, exclude_id=None):
    if email:
        query = _active().filter(Customer.email == email)
        if exclude_id:
            query = query.filter(Customer.id != exclude_id)
        if query.first():
            raise ConflictError('Customer with this email already exists')
    if phone:
        query = _active().filter(Customer.phone == phone)
        if exclude_id:
            query = query.filter(Customer.id != exclude_id)
        if query.first():
            raise ConflictError('Customer with this phone number already exists')


def get_customer_or_404(customer_id):
    customer = db.session.get(Customer, customer_id)
    if customer is None:
        raise NotFoundError('Customer not found')
    return customer


def create_customer(actor, name, email, phone, notes=None):
    from models.audit_log import AuditLog

    name, email, phone = _clean(name), _clean(email).lower(), _clean(phone)
    if not name or not email or not phone:
        raise ValidationError('Name, email and phone are required')
    _check_unique(email=email, phone=phone)

    now = datetime.utcnow()
    customer = Customer(
        name=name,
        email=email,
        phone=phone,
        notes=_clean(notes) or None,
        created_at=now,
        updated_at=now,
        created_by=actor.id,
        is_active=True,
    )
    db.session.add(customer)
    db.session.flush()

    AuditLog.record(
        'customer_created', actor,
        target_customer=customer,
        details=f'Created customer: {name}',
    )
    db.session.commit()
    return customer


def update_customer(actor, customer_id, name=None, email=None, phone=None, notes=None):
    from models.audit_log import AuditLog

    customer = get_customer_or_404(customer_id)
    old_values = customer.to_dict()

    updates = {}
    if name is not None:
        if not _clean(name):
            raise ValidationError('Name cannot be empty')
        updates['name'] = _clean(name)
    if email is not None:
        if not _clean(email):
            raise ValidationError('Email cannot be empty')
        updates['email'] = _clean(email).lower()
    if phone is not None:
        if not _clean(phone):
            raise ValidationError('Phone cannot be empty')
        updates['phone'] = _clean(phone)
    if notes is not None:
        updates['notes'] = _clean(notes) or None

    if customer.is_active:
        _check_unique(
            email=updates.get('email') if updates.get('email') != customer.email else None,
            phone=updates.get('phone') if updates.get('phone') != customer.phone else None,
            exclude_id=customer.id,
        )

    for field, value in updates.items():
        setattr(customer, field, value)
    customer.updated_at = datetime.utcnow()
    updates['updated_at'] = customer.updated_at

    AuditLog.record(
        'customer_updated', actor,
        target_customer=customer,
        details=f'Updated customer: {old_values["name"]}',
        old_values=old_values,
        new_values=updates,
    )
    db.session.commit()
    return customer


def delete_customer(actor, customer_id):
    from models.audit_log import AuditLog

    customer = get_customer_or_404(customer_id)
    customer.is_active = False
    customer.updated_at = datetime.utcnow()

    AuditLog.record(
        'customer_deleted', actor,
        target_customer=customer,
        details=f'Deleted customer: {customer.name}',
    )
    db.session.commit()
    return customer.id


def get_customer_by_email(email):
    email = _clean(email).lower()
    if not email:
        return None
    return _active().filter(Customer.email == email).first()


def get_customer_by_phone(phone):
    phone = _clean(phone)
    if not phone:
        return None
    return _active().filter(Customer.phone == phone).first()


def get_all_customers():
    return _active().order_by(Customer.created_at.desc(), Customer.id.desc()).all()


def get_recent_customers(limit=5):
    return _active().order_by(Customer.created_at.desc(), Customer.id.desc()).limit(limit or 5).all()


def search_customers(query):
    q = _clean(query).lower()
    if not q:
        return get_recent_customers(10)
    pattern = f'%{q}%'
    return _active().filter(or_(
        func.lower(Customer.name).like(pattern),
        func.lower(Customer.email).like(pattern),
        Customer.phone.like(pattern),
    )).order_by(Customer.created_at.desc(), Customer.id.desc()).all()
