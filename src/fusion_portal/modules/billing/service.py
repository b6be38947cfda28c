"""
Fusion Portal Billing - Service.

Checkout, payment method and plan upgrade forms.

Each flow is one form: local field state, format-only validation before
any network call, a single submit to one backend function, and either a
forward navigation or the backend's error message. Nothing retries on its
own. Card fields live only as long as the form: they are cleared on
success and on close.
"""

import logging

from fusion_portal.auth.schemas import Organization
from fusion_portal.core.functions_client import FunctionsClient
from fusion_portal.core.functions_schemas import BillingData
from fusion_portal.core.notifications import Notifier
from fusion_portal.core.session_store import SessionStore
from fusion_portal.exceptions import UnauthorizedException, ValidationException
from fusion_portal.modules.billing.cards import (
    digits_only,
    format_card_number,
    format_expiry,
    normalize_expiry_year,
    parse_expiry,
    validate_card_number,
    validate_cvc,
    validate_expiry_month,
)
from fusion_portal.modules.billing.schemas import BillingActionResponse
from fusion_portal.modules.session.switchers import DASHBOARD_ROOT
from fusion_portal.schemas import Navigation

logger = logging.getLogger(__name__)

CONTACT_SALES_ROUTE = "/contact-sales"
ENTERPRISE_PLAN = "enterprise"


class _CardForm:
    """Shared card field state."""

    def __init__(self, session: SessionStore, client: FunctionsClient, notifier: Notifier):
        self.session = session
        self.client = client
        self.notifier = notifier
        self.card_number = ""
        self.cvc = ""

    def set_card_number(self, value: str) -> None:
        """Keep the grouped form; input past 16 digits is ignored."""
        if len(digits_only(value)) <= 16:
            self.card_number = format_card_number(value)

    def set_cvc(self, value: str) -> None:
        self.cvc = digits_only(value)[:4]

    def clear(self) -> None:
        self.card_number = ""
        self.cvc = ""

    def close(self) -> None:
        """Discard the form without submitting."""
        self.clear()

    def _current_organization(self) -> Organization:
        org = self.session.get_current_organization()
        if org is None:
            raise ValidationException("No organization selected")
        return org

    @staticmethod
    def _reject(error: ValidationException) -> None:
        logger.info(f"Billing form rejected: {error.message}")
        raise error


class CheckoutFlow(_CardForm):
    """New business subscription for the current organization."""

    def __init__(
        self,
        session: SessionStore,
        client: FunctionsClient,
        notifier: Notifier,
        plan_code: str = "business_starter",
        billing_cycle: str = "monthly",
    ):
        super().__init__(session, client, notifier)
        self.plan_code = plan_code
        self.billing_cycle = billing_cycle
        self.card_name = ""
        self.expiry = ""
        self.agreed_to_terms = False

    def set_expiry(self, value: str) -> None:
        self.expiry = format_expiry(value.replace("/", ""))

    def clear(self) -> None:
        super().clear()
        self.card_name = ""
        self.expiry = ""
        self.agreed_to_terms = False

    def _validate(self) -> dict:
        try:
            card_digits = validate_card_number(self.card_number)
            exp_month, exp_year = parse_expiry(self.expiry)
            cvc = validate_cvc(self.cvc)
            if not self.agreed_to_terms:
                raise ValidationException("Please agree to the terms and conditions")
            if not self.card_name.strip():
                raise ValidationException("Please enter the cardholder name")
        except ValidationException as e:
            self._reject(e)

        return {
            "planCode": self.plan_code,
            "billingCycle": self.billing_cycle,
            "cardNumber": card_digits,
            "cardName": self.card_name,
            "expMonth": exp_month,
            "expYear": exp_year,
            "cvc": cvc,
        }

    async def submit(self) -> BillingActionResponse:
        org = self.session.get_current_organization()
        if org is None:
            # not signed up yet: keep the plan choice for after sign-in
            self.session.set_pending_checkout(self.plan_code, self.billing_cycle)
            return BillingActionResponse(
                message="Sign up to continue",
                navigation=Navigation(
                    to=f"/client/signup?plan={self.plan_code}&billing={self.billing_cycle}",
                ),
            )

        if not self.session.validate_session():
            # card details never go out on a stale session
            raise UnauthorizedException()

        payload = self._validate()
        payload["organizationId"] = org.id
        await self.client.create_business_subscription(payload)

        logger.info(f"Subscription {self.plan_code}/{self.billing_cycle} activated for org {org.id}")
        self.clear()
        message = "Subscription activated successfully!"
        self.notifier.success(message)
        return BillingActionResponse(message=message, navigation=Navigation(to=DASHBOARD_ROOT))


class PaymentMethodFlow(_CardForm):
    """Replace the card on file."""

    def __init__(self, session: SessionStore, client: FunctionsClient, notifier: Notifier):
        super().__init__(session, client, notifier)
        self.exp_month = ""
        self.exp_year = ""

    def set_exp_month(self, value: str) -> None:
        digits = digits_only(value)
        if len(digits) <= 2 and (digits == "" or int(digits) <= 12):
            self.exp_month = digits

    def set_exp_year(self, value: str) -> None:
        self.exp_year = digits_only(value)[:4]

    def clear(self) -> None:
        super().clear()
        self.exp_month = ""
        self.exp_year = ""

    def _validate(self) -> dict:
        try:
            card_digits = validate_card_number(self.card_number, "Please enter a valid card number")
            if not self.exp_month or not self.exp_year:
                raise ValidationException("Please enter expiration date")
            exp_month = validate_expiry_month(self.exp_month)
            cvc = validate_cvc(self.cvc)
        except ValidationException as e:
            self._reject(e)

        return {
            "cardNumber": card_digits,
            "expMonth": exp_month,
            "expYear": normalize_expiry_year(int(self.exp_year)),
            "cvc": cvc,
        }

    async def submit(self) -> BillingActionResponse:
        org = self._current_organization()
        payload = self._validate()
        payload["organizationId"] = org.id
        await self.client.update_payment_method(payload)

        logger.info(f"Payment method updated for org {org.id}")
        self.clear()
        message = "Payment method updated successfully"
        self.notifier.success(message)
        return BillingActionResponse(message=message)


class UpgradeFlow:
    """Plan change for the current organization. Enterprise goes to sales."""

    def __init__(self, session: SessionStore, client: FunctionsClient, notifier: Notifier):
        self.session = session
        self.client = client
        self.notifier = notifier
        self.selected_plan: str | None = None

    def select(self, plan_id: str | None) -> None:
        self.selected_plan = plan_id

    def close(self) -> None:
        self.selected_plan = None

    async def submit(self) -> BillingActionResponse:
        if not self.selected_plan:
            logger.info("Upgrade rejected: no plan selected")
            raise ValidationException("Please select a plan")

        if self.selected_plan == ENTERPRISE_PLAN:
            return BillingActionResponse(
                message="Contact sales for enterprise pricing",
                navigation=Navigation(to=CONTACT_SALES_ROUTE, reload=True),
            )

        org = self.session.get_current_organization()
        if org is None:
            raise ValidationException("No organization selected")

        await self.client.upgrade_subscription(organization_id=org.id, plan_id=self.selected_plan)
        logger.info(f"Org {org.id} upgraded to {self.selected_plan}")
        self.close()
        message = "Plan upgraded successfully"
        self.notifier.success(message)
        return BillingActionResponse(message=message)


class BillingService:
    """Read side of billing."""

    def __init__(self, client: FunctionsClient):
        self.client = client

    async def get_billing_data(self, org: Organization) -> BillingData:
        response = await self.client.get_billing_data(org.id)
        return response.billing
