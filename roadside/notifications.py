"""
SMS notifications via Twilio.

IMPORTANT: No function in this module should ever raise an exception.
All errors are caught and logged so that an SMS failure never takes down
a request or payment flow.
"""
import logging
import threading

from flask import current_app

from roadside.utils import normalize_phone

logger = logging.getLogger(__name__)

_twilio_clients = {}


def _get_twilio(account_sid, auth_token):
    """Lazily initialise the Twilio REST client for a set of credentials."""
    if not account_sid or not auth_token:
        return None
    client = _twilio_clients.get(account_sid)
    if client is None:
        try:
            from twilio.rest import Client
            client = Client(account_sid, auth_token)
            _twilio_clients[account_sid] = client
        except Exception:
            logger.exception("Failed to initialise Twilio client")
            return None
    return client


def send_sms(to_phone, message, config=None):
    """Send an SMS. Returns the message SID or None.

    Without Twilio credentials the message is only logged.

    Never raises.
    """
    try:
        config = config if config is not None else current_app.config
        formatted = normalize_phone(to_phone)
        if not formatted:
            logger.warning("send_sms called with empty phone: %r", to_phone)
            return None

        client = _get_twilio(config.get('TWILIO_ACCOUNT_SID'), config.get('TWILIO_AUTH_TOKEN'))
        from_number = config.get('TWILIO_FROM_NUMBER')
        if not client or not from_number:
            logger.info("[SMS-DEV] To %s: %s", formatted, message)
            return None

        msg = client.messages.create(body=message, from_=from_number, to=formatted)
        logger.info("SMS sent to %s (SID: %s)", formatted, msg.sid)
        return msg.sid
    except Exception:
        logger.exception("Failed to send SMS to %s", to_phone)
        return None


def send_sms_async(to_phone, message):
    """Send an SMS from a background thread. Returns the thread, or None. Never raises."""
    try:
        if not to_phone:
            return None
        config = dict(current_app.config)
        t = threading.Thread(target=send_sms, args=(to_phone, message, config), daemon=True)
        t.start()
        return t
    except Exception:
        logger.exception("Failed to start background SMS thread for %s", to_phone)
        return None


def tracking_message(service_request, tracking_url):
    return (
        "Your roadside request has been received.\n"
        "Tracking code: {}\n"
        "Follow your rescue at {}/{}"
    ).format(service_request.tracking_code, tracking_url.rstrip('/'), service_request.tracking_code)


def sms_guest_tracking_code(service_request):
    """Text a guest their tracking code. Never raises."""
    try:
        if not service_request.phone_number:
            return None
        url = current_app.config.get('PUBLIC_TRACKING_URL', '')
        return send_sms_async(service_request.phone_number, tracking_message(service_request, url))
    except Exception:
        logger.exception("Failed in sms_guest_tracking_code for %s", service_request.id)
        return None


def sms_provider_assigned(phone, service_request, provider_name):
    """Tell a customer who is coming. Never raises."""
    try:
        body = "{} has been assigned to your {} request ({}).".format(
            provider_name or "A provider",
            service_request.service_type.replace('_', ' '),
            service_request.tracking_code,
        )
        return send_sms_async(phone, body)
    except Exception:
        logger.exception("Failed in sms_provider_assigned for %s", phone)
        return None
