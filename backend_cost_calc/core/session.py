"""
Reactive estimate session.

Holds the usage profiles being edited and recomputes costs synchronously
on every change, notifying subscribers after each recompute.
"""

from dataclasses import replace
from datetime import datetime
from typing import Callable, List, Optional

from backend_cost_calc.storage.models import Estimate
from backend_cost_calc.utils.logging import get_logger

from .aggregator import compute_total
from .pricing import CostBreakdownSet, compute_costs
from .usage import DEFAULT_USAGE_PROFILES, Category, UsageProfileSet, coerce_usage_value

logger = get_logger(__name__)

Subscriber = Callable[["EstimateSession"], None]


class EstimateSession:
    """Editable set of usage profiles with always-current costs.

    Recomputation is pure and synchronous, so ``costs`` and ``total`` are
    consistent with ``profiles`` as soon as any setter returns. A session is
    meant for a single caller and is not shared between threads.
    """

    def __init__(self, profiles: Optional[UsageProfileSet] = None, name: str = ""):
        self._profiles = profiles if profiles is not None else DEFAULT_USAGE_PROFILES
        self._name = name
        self._subscribers: List[Subscriber] = []
        self._costs: CostBreakdownSet = compute_costs(self._profiles)
        self._total: float = compute_total(self._costs)
        self._editing_id: Optional[str] = None
        self._editing_created_at: Optional[datetime] = None

    @property
    def profiles(self) -> UsageProfileSet:
        return self._profiles

    @property
    def costs(self) -> CostBreakdownSet:
        return self._costs

    @property
    def total(self) -> float:
        return self._total

    @property
    def name(self) -> str:
        return self._name

    @name.setter
    def name(self, value: str) -> None:
        self._name = value

    @property
    def editing_id(self) -> Optional[str]:
        """Id of the saved estimate being edited, if any."""
        return self._editing_id

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a callback run after every recompute.

        Returns:
            A function that removes the callback again
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def set_field(self, category: Category, field_name: str, value) -> None:
        """Change one usage field and recompute.

        Args:
            category: Category of the field
            field_name: camelCase key or attribute name of the field
            value: Raw input; coerced to a non-negative number

        Raises:
            ValueError: If the field does not exist for the category
        """
        profile = self._profiles.get(category)
        attr = profile.field_for_key(field_name)
        updated = replace(profile, **{attr: coerce_usage_value(value)})
        self._apply(self._profiles.replace(category, updated))

    def set_profile(self, category: Category, profile) -> None:
        """Swap in a whole profile for one category and recompute."""
        self._apply(self._profiles.replace(category, profile))

    def set_profiles(self, profiles: UsageProfileSet) -> None:
        self._apply(profiles)

    def load(self, estimate: Estimate) -> None:
        """Start editing a saved estimate."""
        self._name = estimate.name
        self._editing_id = estimate.id
        self._editing_created_at = estimate.created_at
        self._apply(estimate.profiles)

    def build_estimate(
        self,
        user_id: str,
        estimate_id: Optional[str] = None,
        created_at: Optional[datetime] = None
    ) -> Estimate:
        """Snapshot the session as an estimate owned by ``user_id``.

        When a saved estimate was loaded, the snapshot keeps its id and
        creation time so it can replace the stored record. Explicit
        ``estimate_id`` and ``created_at`` take priority over both.
        """
        identity = self._identity()
        if estimate_id is not None:
            identity["id"] = estimate_id
        if created_at is not None:
            identity["created_at"] = created_at
        return Estimate(
            user_id=user_id,
            name=self._name,
            profiles=self._profiles,
            costs=self._costs,
            **identity
        )

    def _identity(self):
        if self._editing_id is None:
            return {}
        return {"id": self._editing_id, "created_at": self._editing_created_at}

    def _apply(self, profiles: UsageProfileSet) -> None:
        self._profiles = profiles
        self._costs = compute_costs(profiles)
        self._total = compute_total(self._costs)
        logger.debug("estimate_recomputed", total=self._total)
        for callback in list(self._subscribers):
            callback(self)
