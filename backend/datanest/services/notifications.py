"""Notifications — emails sent after a lifecycle operation has committed.

Invariants:
    - Run as BackgroundTasks: the HTTP response never waits on them
    - Failures are logged, never raised; lifecycle state is already durable
"""

import logging
from decimal import Decimal
from html import escape

from datanest.core.repository_protocols import EmailSender

logger = logging.getLogger(__name__)


async def notify_dataset_sold(
    sender: EmailSender,
    seller_email: str,
    seller_name: str,
    dataset_title: str,
    amount: Decimal,
) -> None:
    html = (
        f"<p>Hi {escape(seller_name)},</p>"
        f"<p>Your dataset <strong>{escape(dataset_title)}</strong> was just purchased "
        f"for ${amount}.</p>"
    )
    try:
        await sender.send(seller_email, "Your dataset was purchased", html)
    except Exception as e:
        logger.error(f"Sale notification to {seller_email} failed: {e}")


async def notify_proposal_accepted(
    sender: EmailSender,
    seller_email: str,
    seller_name: str,
    request_title: str,
) -> None:
    html = (
        f"<p>Hi {escape(seller_name)},</p>"
        f"<p>Your proposal for <strong>{escape(request_title)}</strong> was accepted.</p>"
    )
    try:
        await sender.send(seller_email, "Your proposal was accepted", html)
    except Exception as e:
        logger.error(f"Acceptance notification to {seller_email} failed: {e}")
