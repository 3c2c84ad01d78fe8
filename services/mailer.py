"""HTML e-mail notifications sent over SMTP."""
import smtplib
from datetime import datetime
from email.message import EmailMessage
from email.utils import formataddr, make_msgid
from flask import current_app, render_template
from models.pricing import SERVICE_LABELS


class MailError(Exception):
    pass


def is_configured():
    config = current_app.config
    return bool(config.get('MAIL_USERNAME') and config.get('MAIL_PASSWORD'))


def tracking_url(order_id):
    return f"{current_app.config['APP_URL'].rstrip('/')}/track?id={order_id}"


def send_email(to, subject, html, text=None):
    """Send one message and return its Message-ID."""
    config = current_app.config
    if not is_configured():
        raise MailError('Email service not configured. Please set MAIL_USERNAME and MAIL_PASSWORD.')
    if not to:
        raise MailError('Recipient address is required')

    message = EmailMessage()
    message['Subject'] = subject
    message['From'] = formataddr((config['MAIL_SENDER_NAME'], config['MAIL_USERNAME']))
    message['To'] = to
    message['Message-ID'] = make_msgid()
    message.set_content(text or 'This message requires an HTML-capable mail client.')
    message.add_alternative(html, subtype='html')

    try:
        with smtplib.SMTP(config['MAIL_SERVER'], config['MAIL_PORT'], timeout=config['MAIL_TIMEOUT']) as smtp:
            if config['MAIL_USE_TLS']:
                smtp.starttls()
            smtp.login(config['MAIL_USERNAME'], config['MAIL_PASSWORD'])
            smtp.send_message(message)
    except (smtplib.SMTPException, OSError) as e:
        current_app.logger.error('Failed to send email to %s: %s', to, e)
        raise MailError(f'Failed to send email: {e}') from e

    current_app.logger.info('Email sent to %s (%s)', to, message['Message-ID'])
    return message['Message-ID']


def _service_text(services):
    labels = [SERVICE_LABELS[s] for s, selected in (services or {}).items() if selected and s in SERVICE_LABELS]
    return ' and '.join(labels) or 'Laundry'


def send_order_confirmation(to, customer_name, order_id, services=None, expected_pickup_date=None):
    shop = current_app.config['SHOP_NAME']
    html = render_template(
        'email/order_confirmation.html',
        shop_name=shop,
        customer_name=customer_name,
        order_id=order_id,
        service_text=_service_text(services),
        expected_pickup_date=expected_pickup_date,
        drop_off_date=datetime.utcnow(),
        track_url=tracking_url(order_id),
        contact_email=current_app.config['MAIL_USERNAME'],
        to=to,
    )
    return send_email(to, f'Laundry Confirmed - {order_id} | {shop}', html)


def send_ready_email(to, customer_name, order_id, pricing, weights=None):
    weights = weights or {}
    rows = []
    for service, label in SERVICE_LABELS.items():
        weight = float(weights.get(service) or 0)
        if weight > 0:
            rows.append({'label': label, 'weight': weight, 'price': float(pricing.get(f'{service}_price') or 0)})
    html = render_template(
        'email/order_ready.html',
        shop_name=current_app.config['SHOP_NAME'],
        customer_name=customer_name,
        order_id=order_id,
        rows=rows,
        total_price=float(pricing.get('total_price') or 0),
        track_url=tracking_url(order_id),
    )
    return send_email(to, f'Your Laundry is Ready for Pickup! - Order {order_id}', html)


def send_status_email(to, customer_name, order_id, status):
    status_label = status.replace('-', ' ').title()
    html = render_template(
        'email/status_update.html',
        shop_name=current_app.config['SHOP_NAME'],
        customer_name=customer_name,
        order_id=order_id,
        status=status,
        status_label=status_label,
        track_url=tracking_url(order_id),
    )
    return send_email(to, f'Order {order_id} - Status Update', html)


def send_welcome_email(to, name, temp_password, role):
    shop = current_app.config['SHOP_NAME']
    html = render_template(
        'email/welcome.html',
        shop_name=shop,
        name=name or to,
        email=to,
        temp_password=temp_password,
        role=role,
        signin_url=f"{current_app.config['APP_URL'].rstrip('/')}/auth/login",
    )
    return send_email(to, f'Welcome to {shop} - Your Account Details', html)


def send_test_email(to):
    shop = current_app.config['SHOP_NAME']
    html = render_template('email/test.html', shop_name=shop, sent_at=datetime.utcnow())
    return send_email(to, f'Test Email from {shop}', html)


def notify(send, *args, **kwargs):
    """Send a notification tied to another action; failures are logged only."""
    if not is_configured():
        current_app.logger.info('Mail not configured; skipping %s', send.__name__)
        return None
    try:
        return send(*args, **kwargs)
    except MailError as e:
        current_app.logger.warning('%s failed: %s', send.__name__, e)
        return None
