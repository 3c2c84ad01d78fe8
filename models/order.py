from datetime import datetime, timedelta
from sqlalchemy import or_, func
from models import db
from models.user import require_admin
from models.pricing import SERVICE_TYPES, SERVICE_LABELS, calculate_price
from models.errors import ValidationError, NotFoundError, ConflictError

ORDER_ID_PREFIX = 'LND'

STATUSES = ('pending', 'in-progress', 'ready', 'completed', 'cancelled')
ACTIVE_STATUSES = ('pending', 'in-progress', 'ready')
TERMINAL_STATUSES = ('completed', 'cancelled')
PAYMENT_STATUSES = ('unpaid', 'paid')

STATUS_TRANSITIONS = {
    'pending': ('in-progress', 'cancelled'),
    'in-progress': ('ready', 'cancelled'),
    'ready': ('completed', 'cancelled'),
    'completed': (),
    'cancelled': (),
}

STATUS_DISPLAY = {
    'pending': 'Pending',
    'in-progress': 'In Progress',
    'ready': 'Ready',
    'completed': 'Completed',
    'cancelled': 'Cancelled',
}

STATUS_DESCRIPTIONS = {
    'pending': 'Your laundry has been received and is waiting to be processed.',
    'in-progress': 'Your laundry is currently being washed and processed.',
    'ready': 'Your laundry is clean and ready! Please come pick it up.',
    'completed': 'Laundry completed and picked up.',
    'cancelled': 'This laundry order has been cancelled.',
}


def is_valid_transition(current, new):
    return new in STATUS_TRANSITIONS.get(current, ())


class LaundryOrder(db.Model):
    __tablename__ = 'laundry_orders'
    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.String(32), unique=True, nullable=False, index=True)  # LND-YYYYMMDD-NNN
    customer_id = db.Column(db.Integer, db.ForeignKey('customers.id'), nullable=False, index=True)

    # service types
    clothes = db.Column(db.Boolean, nullable=False, default=False)
    blankets_light = db.Column(db.Boolean, nullable=False, default=False)
    blankets_thick = db.Column(db.Boolean, nullable=False, default=False)

    status = db.Column(db.String(20), nullable=False, default='pending', index=True)

    # filled in when the order is marked ready
    clothes_weight = db.Column(db.Float, nullable=True)
    blankets_light_weight = db.Column(db.Float, nullable=True)
    blankets_thick_weight = db.Column(db.Float, nullable=True)
    clothes_price = db.Column(db.Float, nullable=True)
    blankets_light_price = db.Column(db.Float, nullable=True)
    blankets_thick_price = db.Column(db.Float, nullable=True)
    total_price = db.Column(db.Float, nullable=True)

    payment_status = db.Column(db.String(10), nullable=False, default='unpaid', index=True)
    paid_at = db.Column(db.DateTime, nullable=True)

    expected_pickup_date = db.Column(db.DateTime, nullable=True)
    actual_pickup_date = db.Column(db.DateTime, nullable=True)

    notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    created_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)

    in_progress_at = db.Column(db.DateTime, nullable=True)
    ready_at = db.Column(db.DateTime, nullable=True)
    completed_at = db.Column(db.DateTime, nullable=True)
    cancelled_at = db.Column(db.DateTime, nullable=True)
    cancellation_reason = db.Column(db.String(255), nullable=True)

    is_deleted = db.Column(db.Boolean, nullable=False, default=False, index=True)
    deleted_at = db.Column(db.DateTime, nullable=True)
    deleted_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)

    customer = db.relationship('Customer', backref='orders')
    creator = db.relationship('User', foreign_keys=[created_by])
    updater = db.relationship('User', foreign_keys=[updated_by])
    deleter = db.relationship('User', foreign_keys=[deleted_by])

    def __repr__(self):
        return f'<LaundryOrder {self.order_id}>'

    def services(self):
        return {service: bool(getattr(self, service)) for service in SERVICE_TYPES}

    def service_labels(self):
        return [SERVICE_LABELS[s] for s, selected in self.services().items() if selected]

    def weights(self):
        return {service: getattr(self, f'{service}_weight') for service in SERVICE_TYPES}

    def has_pricing(self):
        return self.total_price is not None

    def pricing(self):
        if not self.has_pricing():
            return None
        return {
            'clothes_price': self.clothes_price,
            'blankets_light_price': self.blankets_light_price,
            'blankets_thick_price': self.blankets_thick_price,
            'total_price': self.total_price,
        }

    def revenue(self):
        return self.total_price or 0

    def get_status_display(self):
        return STATUS_DISPLAY.get(self.status, self.status)

    def get_status_description(self):
        return STATUS_DESCRIPTIONS.get(self.status, '')

    def get_status_badge_class(self):
        status_classes = {
            'pending': 'warning',
            'in-progress': 'primary',
            'ready': 'info',
            'completed': 'success',
            'cancelled': 'danger',
        }
        return status_classes.get(self.status, 'secondary')

    def is_paid(self):
        return self.payment_status == 'paid'

    def is_overdue(self, now=None):
        now = now or datetime.utcnow()
        return (self.expected_pickup_date is not None
                and self.status not in TERMINAL_STATUSES
                and self.expected_pickup_date < now)

    def allowed_transitions(self):
        if self.is_deleted:
            return ()
        return STATUS_TRANSITIONS.get(self.status, ())

    def can_be_cancelled(self):
        return 'cancelled' in self.allowed_transitions()

    def turnaround_hours(self):
        if not self.completed_at or not self.created_at:
            return None
        return (self.completed_at - self.created_at).total_seconds() / 3600

    def timeline(self):
        """Tracking timeline steps; a cancelled order shows only the cancellation."""
        if self.status == 'cancelled':
            return [{
                'status': 'cancelled',
                'label': 'Laundry Cancelled',
                'description': self.cancellation_reason or 'Laundry order was cancelled',
                'timestamp': self.cancelled_at or self.updated_at,
                'completed': True,
            }]
        reached = STATUSES.index(self.status)
        return [
            {'status': 'pending', 'label': 'Laundry Received',
             'description': 'Your laundry has been received',
             'timestamp': self.created_at, 'completed': True},
            {'status': 'in-progress', 'label': 'Processing',
             'description': 'Your laundry is being washed',
             'timestamp': self.in_progress_at, 'completed': reached >= 1},
            {'status': 'ready', 'label': 'Ready',
             'description': 'Your laundry is ready! Please come pick it up',
             'timestamp': self.ready_at, 'completed': reached >= 2},
            {'status': 'completed', 'label': 'Completed',
             'description': 'Laundry has been picked up',
             'timestamp': self.completed_at, 'completed': reached >= 3},
        ]

    def to_dict(self, include_customer=True):
        def iso(value):
            return value.isoformat() if value else None

        data = {
            'id': self.id,
            'order_id': self.order_id,
            'customer_id': self.customer_id,
            'services': self.services(),
            'status': self.status,
            'weights': self.weights(),
            'pricing': self.pricing(),
            'payment_status': self.payment_status,
            'paid_at': iso(self.paid_at),
            'expected_pickup_date': iso(self.expected_pickup_date),
            'actual_pickup_date': iso(self.actual_pickup_date),
            'notes': self.notes,
            'created_at': iso(self.created_at),
            'updated_at': iso(self.updated_at),
            'in_progress_at': iso(self.in_progress_at),
            'ready_at': iso(self.ready_at),
            'completed_at': iso(self.completed_at),
            'cancelled_at': iso(self.cancelled_at),
            'cancellation_reason': self.cancellation_reason,
            'is_deleted': self.is_deleted,
        }
        if include_customer and self.customer is not None:
            data['customer'] = self.customer.to_dict()
        return data

    def to_tracking_dict(self):
        """Public view of the order: no customer contact details."""
        data = self.to_dict(include_customer=False)
        for private in ('customer_id', 'notes', 'is_deleted'):
            data.pop(private)
        data['customer_name'] = self.customer.name if self.customer else None
        data['status_display'] = self.get_status_display()
        data['status_description'] = self.get_status_description()
        data['timeline'] = [
            dict(step, timestamp=step['timestamp'].isoformat() if step['timestamp'] else None)
            for step in self.timeline()
        ]
        return data


def generate_order_id(now=None):
    """Next ``LND-YYYYMMDD-NNN`` for the day of ``now``."""
    now = now or datetime.utcnow()
    prefix = f'{ORDER_ID_PREFIX}-{now:%Y%m%d}-'
    existing = db.session.query(LaundryOrder.order_id).filter(
        LaundryOrder.order_id.like(f'{prefix}%')
    ).all()
    highest = 0
    for (order_id,) in existing:
        suffix = order_id[len(prefix):]
        if suffix.isdigit():
            highest = max(highest, int(suffix))
    return f'{prefix}{highest + 1:03d}'


def get_order_or_404(order_pk):
    order = db.session.get(LaundryOrder, order_pk)
    if order is None:
        raise NotFoundError('Order not found')
    return order


def create_order(actor, customer_id, services, notes=None, expected_pickup_date=None, order_id=None):
    from models.customer import Customer
    from models.audit_log import AuditLog

    services = {service: bool((services or {}).get(service)) for service in SERVICE_TYPES}
    if not any(services.values()):
        raise ValidationError('At least one order type must be selected')

    customer = db.session.get(Customer, customer_id) if customer_id else None
    if customer is None or not customer.is_active:
        raise NotFoundError('Customer not found')

    now = datetime.utcnow()
    if order_id:
        order_id = order_id.strip().upper()
        if LaundryOrder.query.filter_by(order_id=order_id).first():
            raise ConflictError(f'Order ID {order_id} is already in use')
    else:
        order_id = generate_order_id(now)

    order = LaundryOrder(
        order_id=order_id,
        customer_id=customer.id,
        status='pending',
        payment_status='unpaid',
        expected_pickup_date=expected_pickup_date,
        notes=(notes or '').strip() or None,
        created_at=now,
        created_by=actor.id,
        updated_at=now,
        updated_by=actor.id,
        is_deleted=False,
        **services,
    )
    db.session.add(order)
    db.session.flush()

    AuditLog.record(
        'laundry_created', actor,
        target_order=order,
        target_customer=customer,
        details=f'Created order {order_id} for {customer.name}',
        new_values={'order_id': order_id, 'services': services, 'status': 'pending'},
    )
    db.session.commit()
    return order


def update_order_status(actor, order_pk, new_status, weights=None, cancellation_reason=None):
    from models.audit_log import AuditLog

    if new_status not in STATUSES:
        raise ValidationError(f'Invalid status: {new_status}')
    order = get_order_or_404(order_pk)
    if order.is_deleted:
        raise ValidationError('Order has been deleted')

    old_status = order.status
    if not is_valid_transition(old_status, new_status):
        raise ValidationError(
            f'Cannot change order status from {STATUS_DISPLAY[old_status]} to {STATUS_DISPLAY[new_status]}'
        )

    now = datetime.utcnow()
    updates = {'status': new_status, 'updated_at': now, 'updated_by': actor.id}

    if new_status == 'in-progress' and not order.in_progress_at:
        updates['in_progress_at'] = now

    if new_status == 'ready':
        weights = weights or {}
        if not any((weights.get(service) or 0) > 0 for service in SERVICE_TYPES):
            raise ValidationError('Weight is required when marking order as ready')
        breakdown = calculate_price(weights, services=order.services())
        for service in SERVICE_TYPES:
            updates[f'{service}_weight'] = weights.get(service) or None
            updates[f'{service}_price'] = breakdown[f'{service}_price'] or None
        updates['total_price'] = breakdown['total_price']
        if not order.ready_at:
            updates['ready_at'] = now

    if new_status == 'completed':
        updates['completed_at'] = now
        updates['actual_pickup_date'] = now

    if new_status == 'cancelled':
        updates['cancelled_at'] = now
        updates['cancellation_reason'] = (cancellation_reason or '').strip() or None

    for field, value in updates.items():
        setattr(order, field, value)

    AuditLog.record(
        'laundry_status_updated', actor,
        target_order=order,
        details=f'Updated order {order.order_id} status from {old_status} to {new_status}',
        old_values={'status': old_status},
        new_values=updates,
    )
    db.session.commit()
    return order


def update_payment_status(actor, order_pk, payment_status):
    from models.audit_log import AuditLog

    if payment_status not in PAYMENT_STATUSES:
        raise ValidationError(f'Invalid payment status: {payment_status}')
    order = get_order_or_404(order_pk)
    if order.is_deleted:
        raise ValidationError('Order has been deleted')

    old_payment_status = order.payment_status
    now = datetime.utcnow()
    order.payment_status = payment_status
    order.paid_at = now if payment_status == 'paid' else None
    order.updated_at = now
    order.updated_by = actor.id

    AuditLog.record(
        'laundry_payment_updated', actor,
        target_order=order,
        details=(f'Updated order {order.order_id} payment status from '
                 f'{old_payment_status} to {payment_status}'),
        old_values={'payment_status': old_payment_status},
        new_values={'payment_status': payment_status},
    )
    db.session.commit()
    return order


def complete_and_mark_paid(actor, order_pk):
    order = update_order_status(actor, order_pk, 'completed')
    if not order.is_paid():
        order = update_payment_status(actor, order_pk, 'paid')
    return order


def delete_order(actor, order_pk):
    from models.audit_log import AuditLog

    require_admin(actor, 'Only administrators can delete orders')
    order = get_order_or_404(order_pk)
    if order.is_deleted:
        raise ValidationError('Order has already been deleted')

    now = datetime.utcnow()
    order.is_deleted = True
    order.deleted_at = now
    order.deleted_by = actor.id
    order.updated_at = now
    order.updated_by = actor.id

    AuditLog.record(
        'laundry_deleted', actor,
        target_order=order,
        details=f'Deleted order {order.order_id}',
    )
    db.session.commit()
    return order.id


def get_order_by_id(order_pk):
    return db.session.get(LaundryOrder, order_pk)


def get_order_by_order_id(order_id):
    order_id = (order_id or '').strip().upper()
    if not order_id:
        return None
    return LaundryOrder.query.filter(
        LaundryOrder.order_id == order_id,
        LaundryOrder.is_deleted.is_(False),
    ).first()


def get_all_orders(status=None, payment_status=None, customer_id=None, include_deleted=False):
    query = LaundryOrder.query
    if status:
        query = query.filter(LaundryOrder.status == status)
    if payment_status:
        query = query.filter(LaundryOrder.payment_status == payment_status)
    if customer_id:
        query = query.filter(LaundryOrder.customer_id == customer_id)
    if not include_deleted:
        query = query.filter(LaundryOrder.is_deleted.is_(False))
    return query.order_by(LaundryOrder.created_at.desc(), LaundryOrder.id.desc()).all()


def get_status_counts():
    rows = db.session.query(LaundryOrder.status, func.count(LaundryOrder.id)).filter(
        LaundryOrder.is_deleted.is_(False)
    ).group_by(LaundryOrder.status).all()
    found = dict(rows)
    return {status: found.get(status, 0) for status in STATUSES}


def get_orders_by_customer(customer_id):
    return get_all_orders(customer_id=customer_id)


def search_orders(query):
    from models.customer import Customer

    q = (query or '').strip()
    if not q:
        return []
    exact = get_order_by_order_id(q)
    if exact is not None:
        return [exact]

    pattern = f'%{q.lower()}%'
    return LaundryOrder.query.join(Customer).filter(
        LaundryOrder.is_deleted.is_(False),
        or_(
            func.lower(LaundryOrder.order_id).like(pattern),
            func.lower(Customer.name).like(pattern),
            func.lower(Customer.email).like(pattern),
            Customer.phone.like(pattern),
        ),
    ).order_by(LaundryOrder.created_at.desc(), LaundryOrder.id.desc()).all()


def _count_by_status(orders):
    return {status: sum(1 for o in orders if o.status == status) for status in STATUSES}


def get_order_statistics(start_date=None, end_date=None, now=None):
    now = now or datetime.utcnow()
    start_date = start_date or now - timedelta(days=30)
    end_date = end_date or now

    orders = LaundryOrder.query.filter(
        LaundryOrder.created_at >= start_date,
        LaundryOrder.created_at <= end_date,
        LaundryOrder.is_deleted.is_(False),
    ).all()

    stats = {
        'total': len(orders),
        'paid': sum(1 for o in orders if o.payment_status == 'paid'),
        'unpaid': sum(1 for o in orders if o.payment_status == 'unpaid'),
        'total_revenue': round(sum(o.revenue() for o in orders if o.has_pricing() and o.is_paid()), 2),
        'pending_revenue': round(sum(o.revenue() for o in orders if o.has_pricing() and not o.is_paid()), 2),
    }
    stats.update(_count_by_status(orders))

    today_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    today_orders = [o for o in orders if o.created_at >= today_start]
    today = _count_by_status(today_orders)
    today.pop('cancelled')
    today['total'] = len(today_orders)
    stats['today'] = today
    return stats
