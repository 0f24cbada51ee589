"""Payment Routes — create intent, confirm, fail.

Invariants:
    - The sale notification is scheduled only by the confirmation that completed the purchase
"""

from fastapi import APIRouter, BackgroundTasks, Depends, status

from datanest.api.deps import get_current_user, get_email_sender, get_purchase_handlers
from datanest.core.repository_protocols import EmailSender
from datanest.models.user import User
from datanest.schemas.payments import (
    PaymentIntentCreate, PaymentIntentResponse, PaymentRefBody, PurchaseResponse,
)
from datanest.services.handle_purchases import PurchaseHandlers
from datanest.services.notifications import notify_dataset_sold

router = APIRouter(prefix="/api/v1/payments", tags=["payments"])


@router.post(
    "/intents", response_model=PaymentIntentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_payment_intent(
    body: PaymentIntentCreate,
    user: User = Depends(get_current_user),
    handlers: PurchaseHandlers = Depends(get_purchase_handlers),
):
    return await handlers.create_payment_intent(user, body.dataset_id)


@router.post("/confirm", response_model=PurchaseResponse)
async def confirm_payment(
    body: PaymentRefBody,
    background_tasks: BackgroundTasks,
    user: User = Depends(get_current_user),
    handlers: PurchaseHandlers = Depends(get_purchase_handlers),
    email: EmailSender = Depends(get_email_sender),
):
    """Idempotent: confirming a completed purchase returns it unchanged."""
    purchase, notice = await handlers.confirm_payment(user, body.payment_intent_id)
    if notice:
        background_tasks.add_task(
            notify_dataset_sold,
            email,
            notice.seller_email,
            notice.seller_name,
            notice.dataset_title,
            notice.amount,
        )
    return purchase


@router.post("/fail", response_model=PurchaseResponse)
async def fail_payment(
    body: PaymentRefBody,
    user: User = Depends(get_current_user),
    handlers: PurchaseHandlers = Depends(get_purchase_handlers),
):
    return await handlers.fail_payment(user, body.payment_intent_id)
