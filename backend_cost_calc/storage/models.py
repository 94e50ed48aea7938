"""
Data models for storage layer.

Defines the persisted estimate record.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from backend_cost_calc.core.aggregator import compute_total
from backend_cost_calc.core.pricing import CostBreakdownSet, compute_costs
from backend_cost_calc.core.usage import Category, UsageProfileSet

DEFAULT_ESTIMATE_NAME = "New Estimate"


def _new_id() -> str:
    return uuid4().hex


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Estimate:
    """Named snapshot of usage profiles and their costs.

    The total is derived from ``costs`` on every access so it can never
    drift from the per-category breakdowns. Estimates are replaced as a
    whole on edit; they are never mutated in place.
    """
    user_id: str
    name: str
    profiles: UsageProfileSet
    costs: CostBreakdownSet
    id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=_now)

    def __post_init__(self):
        """Validate ownership, normalise a blank name and store times in UTC.

        Naive timestamps are taken to be UTC. Stored timestamps sort as
        text, so every one must carry the same offset.
        """
        if not self.user_id or not str(self.user_id).strip():
            raise ValueError("user_id is required and cannot be empty")
        if not self.name or not self.name.strip():
            object.__setattr__(self, "name", DEFAULT_ESTIMATE_NAME)
        if self.created_at.tzinfo is None:
            object.__setattr__(self, "created_at", self.created_at.replace(tzinfo=timezone.utc))
        else:
            object.__setattr__(self, "created_at", self.created_at.astimezone(timezone.utc))

    @property
    def total_cost(self) -> float:
        return compute_total(self.costs)

    @classmethod
    def from_profiles(
        cls,
        user_id: str,
        name: str,
        profiles: UsageProfileSet,
        estimate_id: Optional[str] = None,
        created_at: Optional[datetime] = None
    ) -> "Estimate":
        """Price a profile set and wrap it in a new estimate."""
        kwargs = {}
        if estimate_id is not None:
            kwargs["id"] = estimate_id
        if created_at is not None:
            kwargs["created_at"] = created_at
        return cls(
            user_id=user_id,
            name=name,
            profiles=profiles,
            costs=compute_costs(profiles),
            **kwargs
        )

    def services(self) -> List[Dict[str, Any]]:
        """Per-category ``{type, data, costs}`` entries in category order."""
        return [
            {
                "type": category.value,
                "data": self.profiles.get(category).to_dict(),
                "costs": self.costs[category].to_dict(),
            }
            for category in Category
        ]
