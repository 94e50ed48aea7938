"""
Unit tests for the reactive estimate session.
"""

from datetime import datetime, timezone

import pytest

from backend_cost_calc.core.pricing import compute_costs
from backend_cost_calc.core.session import EstimateSession
from backend_cost_calc.core.usage import (
    DEFAULT_USAGE_PROFILES,
    Category,
    DatabaseUsage,
    Provider,
)
from backend_cost_calc.storage.models import Estimate


class TestEstimateSession:
    """Test recompute on every profile change."""

    def test_starts_from_default_profiles(self):
        session = EstimateSession()
        assert session.profiles == DEFAULT_USAGE_PROFILES
        assert session.costs == compute_costs(DEFAULT_USAGE_PROFILES)
        assert session.total == 29.61

    def test_set_field_recomputes(self):
        session = EstimateSession()
        session.set_field(Category.DATABASE, "storageGB", 108)
        session.set_field(Category.DATABASE, "readsPerMonth", 5100000)
        session.set_field(Category.DATABASE, "writes_per_month", 2100000)
        assert session.costs[Category.DATABASE].get(Provider.SUPABASE) == 57.50
        assert session.total == 62.11

    def test_set_field_coerces_invalid_input(self):
        session = EstimateSession()
        session.set_field(Category.STORAGE, "downloadsGB", "not a number")
        assert session.profiles.storage.downloads_gb == 0.0
        # 5 * 0.021 = 0.105
        assert session.costs[Category.STORAGE].primary == 0.11

    def test_set_field_rejects_unknown_field(self):
        session = EstimateSession()
        with pytest.raises(ValueError, match="Unknown field"):
            session.set_field(Category.REALTIME, "presenceEvents", 10)

    def test_set_profile(self):
        session = EstimateSession()
        session.set_profile(Category.DATABASE, DatabaseUsage(storage_gb=108))
        assert session.costs[Category.DATABASE].primary == 37.50

    def test_recompute_is_idempotent(self):
        session = EstimateSession()
        session.set_field(Category.AUTH, "monthlyActiveUsers", 10000)
        assert session.costs == compute_costs(DEFAULT_USAGE_PROFILES)
        assert session.total == 29.61

    def test_subscribers_notified_after_each_change(self):
        session = EstimateSession()
        totals = []
        unsubscribe = session.subscribe(lambda s: totals.append(s.total))

        session.set_field(Category.REALTIME, "concurrentConnections", 1500)
        session.set_field(Category.REALTIME, "concurrentConnections", 100)
        unsubscribe()
        session.set_field(Category.REALTIME, "concurrentConnections", 2500)

        assert totals == [39.61, 29.61]

    def test_unsubscribe_twice_is_harmless(self):
        session = EstimateSession()
        unsubscribe = session.subscribe(lambda s: None)
        unsubscribe()
        unsubscribe()


class TestSessionEstimates:
    """Test building and loading estimates."""

    def test_build_estimate(self):
        session = EstimateSession(name="Launch")
        estimate = session.build_estimate("user-1")
        assert estimate.user_id == "user-1"
        assert estimate.name == "Launch"
        assert estimate.costs == session.costs
        assert estimate.total_cost == session.total

    def test_blank_name_gets_default(self):
        estimate = EstimateSession().build_estimate("user-1")
        assert estimate.name == "New Estimate"

    def test_load_keeps_identity_for_resave(self):
        created = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        saved = Estimate.from_profiles(
            user_id="user-1",
            name="Saved",
            profiles=DEFAULT_USAGE_PROFILES.replace(Category.DATABASE, DatabaseUsage(storage_gb=108)),
            estimate_id="abc123",
            created_at=created
        )

        session = EstimateSession()
        session.load(saved)
        assert session.name == "Saved"
        assert session.editing_id == "abc123"
        assert session.costs[Category.DATABASE].primary == 37.50

        session.set_field(Category.DATABASE, "storageGB", 8)
        resaved = session.build_estimate("user-1")
        assert resaved.id == "abc123"
        assert resaved.created_at == created
        assert resaved.costs[Category.DATABASE].primary == 25.00

    def test_build_estimate_with_explicit_identity(self):
        created = datetime(2024, 3, 1, 9, 30, 0, tzinfo=timezone.utc)
        estimate = EstimateSession(name="Launch").build_estimate(
            "user-1", estimate_id="fixed-id", created_at=created
        )
        assert estimate.id == "fixed-id"
        assert estimate.created_at == created

    def test_explicit_identity_overrides_loaded_estimate(self):
        saved = Estimate.from_profiles(
            user_id="user-1",
            name="Saved",
            profiles=DEFAULT_USAGE_PROFILES,
            estimate_id="abc123",
            created_at=datetime(2024, 1, 1, tzinfo=timezone.utc)
        )
        session = EstimateSession()
        session.load(saved)

        copy = session.build_estimate("user-1", estimate_id="copy-id")
        assert copy.id == "copy-id"
        assert copy.created_at == saved.created_at
