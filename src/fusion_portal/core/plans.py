"""
Fusion Portal Core - Plan & quota helpers.

Derived, read-only views over an Organization. Quota numbers are advisory;
the backend enforces the real limits.
"""

import math
from datetime import datetime, timezone

from fusion_portal.auth.schemas import Organization


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def _now(now: datetime | None) -> datetime:
    return _aware(now) if now is not None else datetime.now(timezone.utc)


def is_free_plan(org: Organization | None) -> bool:
    return org is not None and org.plan_type == "free"


def is_on_trial(org: Organization | None, now: datetime | None = None) -> bool:
    """Trial billing status with a trial end still in the future."""
    if org is None or org.billing_status != "trial" or org.trial_ends_at is None:
        return False
    return _aware(org.trial_ends_at) > _now(now)


def is_trial_expired(org: Organization | None, now: datetime | None = None) -> bool:
    """Trial billing status whose end date has passed."""
    if org is None or org.billing_status != "trial" or org.trial_ends_at is None:
        return False
    return _aware(org.trial_ends_at) <= _now(now)


def needs_subscription(org: Organization | None) -> bool:
    """Billing lapsed: the organization must pick or fix a plan."""
    if org is None:
        return False
    return org.billing_status in ("past_due", "canceled")


def get_trial_days_remaining(org: Organization | None, now: datetime | None = None) -> int:
    """Whole days left in the trial, rounded up, never negative."""
    if org is None or org.trial_ends_at is None:
        return 0
    remaining = (_aware(org.trial_ends_at) - _now(now)).total_seconds()
    return max(0, math.ceil(remaining / 86400))


def get_quota_usage_percent(org: Organization | None) -> int:
    """Monthly quota usage as an integer percentage in [0, 100].

    A zero limit reads as 0%.
    """
    if org is None or org.quota_verifications_monthly <= 0:
        return 0
    # half-up, not banker's rounding
    percent = math.floor(100 * org.quota_used_current_month / org.quota_verifications_monthly + 0.5)
    return min(100, max(0, percent))


def is_quota_exceeded(org: Organization | None) -> bool:
    if org is None:
        return False
    return org.quota_used_current_month >= org.quota_verifications_monthly
