"""
Fusion Portal Billing - Router.

Billing overview, checkout, payment method and plan upgrade endpoints.
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from fusion_portal.auth.schemas import Organization
from fusion_portal.core.functions_client import FunctionsClient
from fusion_portal.core.functions_schemas import BillingData
from fusion_portal.core.notifications import Notifier
from fusion_portal.core.session_store import SessionStore
from fusion_portal.deps import (
    get_functions_client,
    get_notifier,
    get_session_store,
    require_billing,
    require_billing_manager,
    require_billing_viewer,
)
from fusion_portal.modules.billing.schemas import (
    BillingActionResponse,
    CheckoutRequest,
    PaymentMethodRequest,
    PendingCheckoutRequest,
    UpgradeRequest,
)
from fusion_portal.modules.billing.service import (
    BillingService,
    CheckoutFlow,
    PaymentMethodFlow,
    UpgradeFlow,
)

router = APIRouter(
    prefix="/client/billing",
    tags=["billing"],
    dependencies=[require_billing],
)

Session = Annotated[SessionStore, Depends(get_session_store)]
Client = Annotated[FunctionsClient, Depends(get_functions_client)]
Notifications = Annotated[Notifier, Depends(get_notifier)]


@router.get("", response_model=BillingData)
async def get_billing(
    org: Annotated[Organization, Depends(require_billing_viewer)],
    client: Client,
):
    """Subscription, usage, invoices and card on file (owners and admins)."""
    return await BillingService(client).get_billing_data(org)


@router.post("/checkout", response_model=BillingActionResponse)
async def checkout(request: CheckoutRequest, session: Session, client: Client, notifier: Notifications):
    """
    Start a business subscription.

    Without a selected organization the plan is kept for after sign-up.
    With one, the session must still be valid or the request is refused (401).
    """
    flow = CheckoutFlow(session, client, notifier, request.plan_code, request.billing_cycle)
    flow.set_card_number(request.card_number)
    flow.set_expiry(request.expiry)
    flow.set_cvc(request.cvc)
    flow.card_name = request.card_name
    flow.agreed_to_terms = request.agreed_to_terms
    try:
        return await flow.submit()
    finally:
        flow.close()


@router.post("/pending-checkout", status_code=204)
async def set_pending_checkout(request: PendingCheckoutRequest, session: Session):
    """Remember a plan picked before sign-in."""
    session.set_pending_checkout(request.plan_code, request.billing_cycle)


@router.post("/payment-method", response_model=BillingActionResponse)
async def update_payment_method(
    request: PaymentMethodRequest,
    org: Annotated[Organization, Depends(require_billing_manager)],
    session: Session,
    client: Client,
    notifier: Notifications,
):
    flow = PaymentMethodFlow(session, client, notifier)
    flow.set_card_number(request.card_number)
    flow.set_exp_month(request.exp_month)
    flow.set_exp_year(request.exp_year)
    flow.set_cvc(request.cvc)
    try:
        return await flow.submit()
    finally:
        flow.close()


@router.post("/upgrade", response_model=BillingActionResponse)
async def upgrade_plan(
    request: UpgradeRequest,
    org: Annotated[Organization, Depends(require_billing_manager)],
    session: Session,
    client: Client,
    notifier: Notifications,
):
    """Change plan; enterprise returns a contact-sales navigation instead."""
    flow = UpgradeFlow(session, client, notifier)
    flow.select(request.plan_id)
    return await flow.submit()
