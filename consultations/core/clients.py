"""External-service bridges shared by the request handlers.

The container is built once at startup and stored on ``app.state``; handlers
receive it through ``get_bridges`` so tests can swap in fakes with
``app.dependency_overrides``.
"""

import logging
from dataclasses import dataclass

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from consultations.core import config
from consultations.database import get_db
from consultations.services.lifecycle import AppointmentLifecycle
from consultations.services.notifications import NotificationDispatcher, SmtpTransport
from consultations.services.payments import MockPaymentGateway, PaymentGateway, RazorpayGateway
from consultations.services.video import DailyVideoBridge, VideoBridge

logger = logging.getLogger(__name__)


@dataclass
class BridgeContainer:
    payments: PaymentGateway
    video: VideoBridge
    notifier: NotificationDispatcher


def build_payment_gateway() -> PaymentGateway:
    if config.PAYMENT_PROVIDER == 'razorpay':
        return RazorpayGateway(
            config.RAZORPAY_KEY_ID,
            config.RAZORPAY_KEY_SECRET,
            base_url=config.RAZORPAY_API_URL,
            currency=config.PAYMENT_CURRENCY,
            timeout=config.BRIDGE_TIMEOUT_SECONDS,
        )
    if config.PAYMENT_PROVIDER != 'mock':
        raise RuntimeError(f'Unknown PAYMENT_PROVIDER {config.PAYMENT_PROVIDER!r}.')
    logger.warning('Using mock payment gateway; every payment verification succeeds.')
    return MockPaymentGateway(currency=config.PAYMENT_CURRENCY)


def build_notifier() -> NotificationDispatcher:
    transport = None
    if config.SMTP_HOST:
        transport = SmtpTransport(
            host=config.SMTP_HOST,
            port=config.SMTP_PORT,
            username=config.SMTP_USERNAME,
            password=config.SMTP_PASSWORD,
            from_address=f'{config.OPERATOR_NAME} <{config.EMAIL_FROM_ADDRESS}>',
            use_tls=config.SMTP_USE_TLS,
            timeout=config.BRIDGE_TIMEOUT_SECONDS,
        )
    else:
        logger.warning('SMTP_HOST not set; notification emails are disabled.')
    return NotificationDispatcher(transport, operator_email=config.OPERATOR_EMAIL, signature=config.OPERATOR_NAME)


def initialize_bridges() -> BridgeContainer:
    return BridgeContainer(
        payments=build_payment_gateway(),
        video=DailyVideoBridge(
            config.DAILY_API_KEY,
            base_url=config.DAILY_API_URL,
            timeout=config.BRIDGE_TIMEOUT_SECONDS,
        ),
        notifier=build_notifier(),
    )


def get_bridges(request: Request) -> BridgeContainer:
    return request.app.state.bridges


def get_lifecycle(
    db: Session = Depends(get_db),
    bridges: BridgeContainer = Depends(get_bridges),
) -> AppointmentLifecycle:
    return AppointmentLifecycle(db, bridges.payments, bridges.video, bridges.notifier)
