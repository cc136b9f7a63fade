"""Unit tests for the receiver entitlement gate."""

from datetime import datetime, timedelta, timezone

import pytest

from pruuf.db.models import ReceiverProfile
from pruuf.entitlement.service import effective_status, is_generation_allowed, trial_days_remaining

NOW = datetime(2024, 6, 5, 12, 0, tzinfo=timezone.utc)


def profile(status, **kwargs):
    return ReceiverProfile(user_id="r1", subscription_status=status, **kwargs)


class TestGenerationAllowed:
    def test_active_without_end_date(self):
        assert is_generation_allowed(profile("active"), NOW) is True

    def test_active_with_future_end(self):
        assert is_generation_allowed(profile("active", subscription_end_date=NOW + timedelta(days=1)), NOW) is True

    def test_active_with_past_end(self):
        assert is_generation_allowed(profile("active", subscription_end_date=NOW - timedelta(seconds=1)), NOW) is False

    def test_trial_in_progress(self):
        assert is_generation_allowed(profile("trial", trial_end_date=NOW + timedelta(hours=1)), NOW) is True

    def test_trial_over(self):
        assert is_generation_allowed(profile("trial", trial_end_date=NOW - timedelta(hours=1)), NOW) is False

    def test_trial_end_instant_is_not_allowed(self):
        assert is_generation_allowed(profile("trial", trial_end_date=NOW), NOW) is False

    def test_past_due_within_grace(self):
        p = profile("past_due", updated_at=NOW - timedelta(days=3))
        assert is_generation_allowed(p, NOW) is True

    def test_past_due_after_grace(self):
        p = profile("past_due", updated_at=NOW - timedelta(days=3, seconds=1))
        assert is_generation_allowed(p, NOW) is False

    def test_past_due_custom_grace(self):
        p = profile("past_due", updated_at=NOW - timedelta(days=5))
        assert is_generation_allowed(p, NOW, grace_days=7) is True

    def test_past_due_without_timestamp(self):
        assert is_generation_allowed(profile("past_due"), NOW) is False

    @pytest.mark.parametrize("status", ["canceled", "expired", "bogus"])
    def test_other_statuses_denied(self, status):
        assert is_generation_allowed(profile(status), NOW) is False

    def test_missing_profile_denied_when_required(self):
        assert is_generation_allowed(None, NOW) is False

    def test_missing_profile_allowed_when_not_required(self):
        assert is_generation_allowed(None, NOW, requires_entitlement=False) is True


class TestEffectiveStatus:
    def test_elapsed_trial_expires(self):
        assert effective_status(profile("trial", trial_end_date=NOW - timedelta(days=1)), NOW) == "expired"

    def test_running_trial_unchanged(self):
        assert effective_status(profile("trial", trial_end_date=NOW + timedelta(days=1)), NOW) == "trial"

    def test_canceled_is_left_alone(self):
        assert effective_status(profile("canceled"), NOW) == "canceled"


class TestTrialDaysRemaining:
    def test_partial_day_rounds_up(self):
        p = profile("trial", trial_end_date=NOW + timedelta(days=2, hours=1))
        assert trial_days_remaining(p, NOW) == 3

    def test_exact_days(self):
        p = profile("trial", trial_end_date=NOW + timedelta(days=2))
        assert trial_days_remaining(p, NOW) == 2

    def test_never_negative(self):
        p = profile("trial", trial_end_date=NOW - timedelta(days=2))
        assert trial_days_remaining(p, NOW) == 0

    def test_not_on_trial(self):
        assert trial_days_remaining(profile("active"), NOW) is None
