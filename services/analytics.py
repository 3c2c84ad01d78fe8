"""Dashboard aggregations over non-deleted laundry orders."""
from datetime import datetime, timedelta
from models.order import LaundryOrder, ACTIVE_STATUSES, STATUSES
from models.pricing import SERVICE_TYPES

TIME_RANGES = ('today', 'week', 'month', 'all')
_RANGE_DAYS = {'today': 1, 'week': 7, 'month': 30}


def _growth(current, previous):
    if not previous:
        return 0
    return round((current - previous) / previous * 100)


def _avg_turnaround(orders):
    hours = [o.turnaround_hours() for o in orders if o.completed_at]
    if not hours:
        return 0
    return round(sum(hours) / len(hours))


def get_period_bounds(time_range, now=None):
    """Return ``(start, previous_start)`` for a range; ``all`` has no bounds."""
    if time_range not in TIME_RANGES:
        raise ValueError(f'Invalid time range: {time_range}')
    now = now or datetime.utcnow()
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    if time_range == 'today':
        start = midnight
        return start, start - timedelta(days=1)
    if time_range == 'week':
        start = midnight - timedelta(days=7)
        return start, start - timedelta(days=7)
    if time_range == 'month':
        start = midnight - timedelta(days=30)
        return start, start - timedelta(days=30)
    return None, None


def _daily_buckets(orders, time_range, now, value):
    days = _RANGE_DAYS[time_range]
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    buckets = []
    for offset in range(days - 1, -1, -1):
        day_start = midnight - timedelta(days=offset)
        day_end = day_start + timedelta(days=1)
        day_orders = [o for o in orders if day_start <= o.created_at < day_end]
        label = day_start.strftime('%H:%M') if time_range == 'today' else day_start.strftime('%b %d')
        buckets.append({'date': label, 'value': value(day_orders)})
    return buckets


def _monthly_buckets(orders, value):
    months = {}
    for order in orders:
        key = (order.created_at.year, order.created_at.month)
        months.setdefault(key, []).append(order)
    result = []
    for year, month in sorted(months)[-12:]:
        label = datetime(year, month, 1).strftime('%b %Y')
        result.append({'date': label, 'value': value(months[(year, month)])})
    return result


def _series(orders, time_range, now, value):
    if time_range == 'all':
        return _monthly_buckets(orders, value)
    return _daily_buckets(orders, time_range, now, value)


def service_type_distribution(orders):
    counts = {service: sum(1 for o in orders if getattr(o, service)) for service in SERVICE_TYPES}
    total = sum(counts.values()) or 1
    return {service: round(count / total * 100) for service, count in counts.items()}


def _live_orders():
    return LaundryOrder.query.filter(LaundryOrder.is_deleted.is_(False)).all()


def get_dashboard_stats(time_range='week', now=None):
    now = now or datetime.utcnow()
    start, previous_start = get_period_bounds(time_range, now)
    orders = _live_orders()

    if start is None:
        current, previous = orders, []
    else:
        current = [o for o in orders if o.created_at >= start]
        previous = [o for o in orders if previous_start <= o.created_at < start]

    total_revenue = round(sum(o.revenue() for o in current), 2)
    previous_revenue = sum(o.revenue() for o in previous)
    customers = {o.customer_id for o in current}
    previous_customers = {o.customer_id for o in previous}
    turnaround = _avg_turnaround(current)
    previous_turnaround = _avg_turnaround(previous)
    paid = sum(1 for o in current if o.payment_status == 'paid')

    return {
        'time_range': time_range,
        'total_revenue': total_revenue,
        'revenue_growth': _growth(total_revenue, previous_revenue),
        'total_orders': len(current),
        'orders_growth': _growth(len(current), len(previous)),
        'active_orders': sum(1 for o in current if o.status in ACTIVE_STATUSES),
        'total_customers': len(customers),
        'customers_growth': _growth(len(customers), len(previous_customers)),
        'avg_turnaround_time': turnaround,
        'turnaround_change': _growth(turnaround, previous_turnaround),
        'payment_collection_rate': round(paid / len(current) * 100) if current else 0,
        'orders_by_status': {status: sum(1 for o in current if o.status == status) for status in STATUSES},
        'revenue_by_day': _series(current, time_range, now, lambda group: round(sum(o.revenue() for o in group), 2)),
        'orders_by_day': _series(current, time_range, now, len),
        'service_type_distribution': service_type_distribution(current),
    }


def get_recent_activity(limit=10):
    orders = LaundryOrder.query.filter(
        LaundryOrder.is_deleted.is_(False)
    ).order_by(LaundryOrder.updated_at.desc(), LaundryOrder.id.desc()).limit(limit).all()

    activity = []
    for order in orders:
        customer_name = order.customer.name if order.customer else 'Unknown'
        if order.status == 'completed':
            kind = 'order_completed'
            description = f'Order {order.order_id} completed for {customer_name}'
        elif order.is_paid() and order.paid_at:
            kind = 'payment_received'
            description = f'Payment received for order {order.order_id}'
        else:
            kind = 'order_created'
            description = f'Order {order.order_id} created'
        activity.append({
            'id': order.id,
            'type': kind,
            'description': description,
            'timestamp': order.updated_at,
        })
    return activity


def get_top_customers(limit=5):
    stats = {}
    for order in _live_orders():
        customer = order.customer
        if customer is None:
            continue
        entry = stats.setdefault(customer.id, {
            'customer_id': customer.id,
            'customer_name': customer.name,
            'total_spent': 0.0,
            'order_count': 0,
        })
        entry['total_spent'] = round(entry['total_spent'] + order.revenue(), 2)
        entry['order_count'] += 1
    ranked = sorted(stats.values(), key=lambda e: e['total_spent'], reverse=True)
    return ranked[:limit]
