import math
from datetime import datetime
from models import db
from models.user import require_admin
from models.errors import ValidationError

DEFAULT_RATES = {
    'clothes': 30.0,
    'blankets_light': 50.0,
    'blankets_thick': 60.0,
}
DEFAULT_CURRENCY = 'PHP'

SERVICE_TYPES = ('clothes', 'blankets_light', 'blankets_thick')
SERVICE_LABELS = {
    'clothes': 'Clothes',
    'blankets_light': 'Light Blankets',
    'blankets_thick': 'Thick Blankets',
}


# per-kg rates; a single row
class PricingConfig(db.Model):
    __tablename__ = 'pricing_config'
    id = db.Column(db.Integer, primary_key=True)
    clothes_price_per_kg = db.Column(db.Float, nullable=False)
    blankets_light_price_per_kg = db.Column(db.Float, nullable=False)
    blankets_thick_price_per_kg = db.Column(db.Float, nullable=False)
    currency = db.Column(db.String(8), nullable=False, default=DEFAULT_CURRENCY)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)

    updater = db.relationship('User')

    def rates(self):
        return {
            'clothes': self.clothes_price_per_kg,
            'blankets_light': self.blankets_light_price_per_kg,
            'blankets_thick': self.blankets_thick_price_per_kg,
        }

    def to_dict(self):
        return {
            'clothes_price_per_kg': self.clothes_price_per_kg,
            'blankets_light_price_per_kg': self.blankets_light_price_per_kg,
            'blankets_thick_price_per_kg': self.blankets_thick_price_per_kg,
            'currency': self.currency,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
            'is_default': self.id is None,
        }


def get_current_pricing():
    """Return the stored config, or an unsaved one holding the default rates."""
    config = PricingConfig.query.first()
    if config is None:
        config = PricingConfig(
            clothes_price_per_kg=DEFAULT_RATES['clothes'],
            blankets_light_price_per_kg=DEFAULT_RATES['blankets_light'],
            blankets_thick_price_per_kg=DEFAULT_RATES['blankets_thick'],
            currency=DEFAULT_CURRENCY,
            updated_at=datetime.utcnow(),
        )
    return config


def _rates_summary(clothes, blankets_light, blankets_thick):
    return (f'Clothes ₱{clothes:g}/kg, Light Blankets ₱{blankets_light:g}/kg, '
            f'Thick Blankets ₱{blankets_thick:g}/kg')


def update_pricing(actor, clothes_price_per_kg, blankets_light_price_per_kg, blankets_thick_price_per_kg):
    from models.audit_log import AuditLog

    require_admin(actor, 'Only administrators can update pricing')
    try:
        new_rates = {
            'clothes_price_per_kg': float(clothes_price_per_kg),
            'blankets_light_price_per_kg': float(blankets_light_price_per_kg),
            'blankets_thick_price_per_kg': float(blankets_thick_price_per_kg),
        }
    except (TypeError, ValueError):
        raise ValidationError('Prices must be numbers')
    if any(rate <= 0 for rate in new_rates.values()):
        raise ValidationError('Prices must be greater than zero')

    summary = _rates_summary(*new_rates.values())
    now = datetime.utcnow()
    config = PricingConfig.query.first()
    if config is not None:
        old_rates = {
            'clothes_price_per_kg': config.clothes_price_per_kg,
            'blankets_light_price_per_kg': config.blankets_light_price_per_kg,
            'blankets_thick_price_per_kg': config.blankets_thick_price_per_kg,
        }
        for field, value in new_rates.items():
            setattr(config, field, value)
        config.updated_at = now
        config.updated_by = actor.id
        AuditLog.record(
            'pricing_updated', actor,
            details=f'Updated pricing: {summary}',
            old_values=old_rates,
            new_values=new_rates,
        )
    else:
        config = PricingConfig(currency=DEFAULT_CURRENCY, updated_at=now, updated_by=actor.id, **new_rates)
        db.session.add(config)
        AuditLog.record(
            'pricing_created', actor,
            details=f'Created pricing: {summary}',
            new_values=new_rates,
        )
    db.session.commit()
    return config


def calculate_price(weights, services=None, pricing=None):
    """Price a set of per-service weights (kg).

    ``services`` limits pricing to the selected service flags of an order;
    a service with no (or zero) weight contributes nothing.
    """
    pricing = pricing or get_current_pricing()
    rates = pricing.rates()
    weights = weights or {}

    breakdown = {}
    total = 0.0
    for service in SERVICE_TYPES:
        weight = weights.get(service) or 0
        if not math.isfinite(weight):
            raise ValidationError(f'Invalid weight for {service}')
        if weight < 0:
            raise ValidationError('Weight cannot be negative')
        selected = services is None or services.get(service)
        price = round(weight * rates[service], 2) if weight and selected else 0.0
        breakdown[f'{service}_price'] = price
        total += price

    breakdown['total_price'] = round(total, 2)
    breakdown['price_per_kg'] = rates
    breakdown['currency'] = pricing.currency
    return breakdown
