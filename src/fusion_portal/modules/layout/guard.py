"""
Fusion Portal Layout - Client layout guard.

Runs on every render of an authenticated dashboard route.
"""

import logging
from datetime import datetime

from fusion_portal.core import plans
from fusion_portal.core.session_store import SessionStore
from fusion_portal.modules.layout.schemas import Banner, GuardOutcome
from fusion_portal.modules.session.service import LOGIN_ROUTE

logger = logging.getLogger(__name__)

BILLING_PATHS = ("/client/billing", "/client/settings/billing", "/client/checkout")


def is_billing_page(path: str) -> bool:
    return path in BILLING_PATHS or "/pricing" in path


class LayoutGuard:
    """Session check plus quota/trial banners for the current organization."""

    def __init__(self, session: SessionStore, quota_warning_percent: int = 80):
        self.session = session
        self.quota_warning_percent = quota_warning_percent

    def evaluate(self, path: str = "/client/dashboard", now: datetime | None = None) -> GuardOutcome:
        if not self.session.validate_session():
            logger.info(f"No valid session for {path}, redirecting to login")
            return GuardOutcome(status="redirect", redirect_to=LOGIN_ROUTE)

        user = self.session.get_current_user()
        org = self.session.get_current_organization()
        if user is None or org is None:
            return GuardOutcome(status="loading")

        banners: list[Banner] = []

        quota_percent = plans.get_quota_usage_percent(org)
        if quota_percent >= self.quota_warning_percent:
            banners.append(
                Banner(
                    kind="quota",
                    message=f"You've used {quota_percent}% of your monthly verification quota.",
                    quota_percent=quota_percent,
                )
            )

        if plans.is_on_trial(org, now):
            days = plans.get_trial_days_remaining(org, now)
            banners.append(
                Banner(
                    kind="trial",
                    message=f"{days} day{'s' if days != 1 else ''} left in your trial.",
                    trial_days_remaining=days,
                )
            )

        on_billing_page = is_billing_page(path)
        trial_expired = plans.is_trial_expired(org, now)

        return GuardOutcome(
            status="render",
            user=user,
            organization=org,
            environment=self.session.get_current_environment(),
            banners=banners,
            trial_expired=trial_expired and not on_billing_page,
            subscription_required=(
                plans.needs_subscription(org) and not trial_expired and not on_billing_page
            ),
        )
