"""
Usage profiles and input coercion.

Defines the per-category usage inputs fed to the pricing engine.
"""

import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, Mapping, Optional


class Category(Enum):
    """Billable service categories, in display and export order."""
    DATABASE = "database"
    AUTH = "auth"
    STORAGE = "storage"
    FUNCTIONS = "functions"
    REALTIME = "realtime"


class Provider(Enum):
    """Modelled providers. SUPABASE is the primary provider."""
    SUPABASE = "supabase"
    FIREBASE = "firebase"
    AWS = "aws"
    NEON = "neon"
    PLANETSCALE = "planetscale"


PRIMARY_PROVIDER = Provider.SUPABASE


def coerce_usage_value(value: Any) -> float:
    """Coerce a raw input value to a non-negative finite float.

    Absent, non-numeric, non-finite and negative values all become 0.0,
    mirroring the form layer's ``parseFloat(value) || 0``.

    Args:
        value: Raw value from a form, YAML file or stored record

    Returns:
        Non-negative finite float
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(number) or number < 0:
        return 0.0
    return number


class _UsageProfile:
    """Shared camelCase mapping for the usage profile dataclasses.

    Subclasses declare ``FIELD_KEYS`` mapping attribute name to the
    camelCase key used by stored records and YAML files.
    """

    FIELD_KEYS: Dict[str, str] = {}

    def to_dict(self) -> Dict[str, float]:
        return {key: getattr(self, attr) for attr, key in self.FIELD_KEYS.items()}

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]], defaults=None):
        """Build a profile from a camelCase mapping, coercing every value.

        Keys absent from ``data`` take the value from ``defaults`` when given,
        otherwise 0.
        """
        data = data or {}
        values = {}
        for attr, key in cls.FIELD_KEYS.items():
            if key in data:
                values[attr] = coerce_usage_value(data[key])
            elif defaults is not None:
                values[attr] = getattr(defaults, attr)
            else:
                values[attr] = 0.0
        return cls(**values)

    @classmethod
    def field_for_key(cls, name: str) -> str:
        """Resolve a camelCase key or attribute name to the attribute name.

        Raises:
            ValueError: If the name is not a field of this profile
        """
        if name in cls.FIELD_KEYS:
            return name
        for attr, key in cls.FIELD_KEYS.items():
            if key == name:
                return attr
        valid = list(cls.FIELD_KEYS.values())
        raise ValueError(f"Unknown field '{name}' for {cls.__name__}; expected one of: {valid}")


@dataclass(frozen=True)
class DatabaseUsage(_UsageProfile):
    """Database usage for one month."""
    storage_gb: float = 0.0
    monthly_active_rows: float = 0.0
    reads_per_month: float = 0.0
    writes_per_month: float = 0.0

    FIELD_KEYS = {
        "storage_gb": "storageGB",
        "monthly_active_rows": "monthlyActiveRows",
        "reads_per_month": "readsPerMonth",
        "writes_per_month": "writesPerMonth",
    }


@dataclass(frozen=True)
class AuthUsage(_UsageProfile):
    """Auth usage for one month.

    Sign-ups and email verifications are carried for display only.
    """
    monthly_active_users: float = 0.0
    sign_ups_per_month: float = 0.0
    email_verifications: float = 0.0

    FIELD_KEYS = {
        "monthly_active_users": "monthlyActiveUsers",
        "sign_ups_per_month": "signUpsPerMonth",
        "email_verifications": "emailVerifications",
    }


@dataclass(frozen=True)
class StorageUsage(_UsageProfile):
    """Object storage usage for one month. Uploads are display only."""
    storage_gb: float = 0.0
    downloads_gb: float = 0.0
    uploads_gb: float = 0.0

    FIELD_KEYS = {
        "storage_gb": "storageGB",
        "downloads_gb": "downloadsGB",
        "uploads_gb": "uploadsGB",
    }


@dataclass(frozen=True)
class FunctionsUsage(_UsageProfile):
    """Serverless function usage for one month."""
    invocations_per_month: float = 0.0
    average_duration_ms: float = 0.0
    memory_gb: float = 0.0

    FIELD_KEYS = {
        "invocations_per_month": "invocationsPerMonth",
        "average_duration_ms": "averageDurationMs",
        "memory_gb": "memoryGB",
    }


@dataclass(frozen=True)
class RealtimeUsage(_UsageProfile):
    """Realtime messaging usage for one month."""
    concurrent_connections: float = 0.0
    messages_per_month: float = 0.0

    FIELD_KEYS = {
        "concurrent_connections": "concurrentConnections",
        "messages_per_month": "messagesPerMonth",
    }


PROFILE_TYPES = {
    Category.DATABASE: DatabaseUsage,
    Category.AUTH: AuthUsage,
    Category.STORAGE: StorageUsage,
    Category.FUNCTIONS: FunctionsUsage,
    Category.REALTIME: RealtimeUsage,
}


@dataclass(frozen=True)
class UsageProfileSet:
    """One usage profile per category."""
    database: DatabaseUsage
    auth: AuthUsage
    storage: StorageUsage
    functions: FunctionsUsage
    realtime: RealtimeUsage

    def get(self, category: Category) -> _UsageProfile:
        return getattr(self, category.value)

    def replace(self, category: Category, profile: _UsageProfile) -> "UsageProfileSet":
        """Return a new set with the profile for ``category`` swapped out."""
        expected = PROFILE_TYPES[category]
        if not isinstance(profile, expected):
            raise TypeError(f"{category.value} profile must be {expected.__name__}")
        return replace(self, **{category.value: profile})

    def to_dict(self) -> Dict[str, Dict[str, float]]:
        return {category.value: self.get(category).to_dict() for category in Category}

    @classmethod
    def from_dict(
        cls,
        data: Optional[Mapping[str, Mapping[str, Any]]],
        defaults: Optional["UsageProfileSet"] = None
    ) -> "UsageProfileSet":
        """Build a set from ``{category: {camelCaseField: value}}``.

        Missing categories and fields fall back to ``defaults`` when given,
        otherwise to 0.
        """
        data = data or {}
        profiles = {}
        for category in Category:
            profile_type = PROFILE_TYPES[category]
            fallback = defaults.get(category) if defaults is not None else None
            if category.value in data:
                profiles[category.value] = profile_type.from_dict(data[category.value], fallback)
            elif fallback is not None:
                profiles[category.value] = fallback
            else:
                profiles[category.value] = profile_type()
        return cls(**profiles)


# Seed values used by a fresh estimate
DEFAULT_USAGE_PROFILES = UsageProfileSet(
    database=DatabaseUsage(
        storage_gb=1,
        monthly_active_rows=10000,
        reads_per_month=100000,
        writes_per_month=50000
    ),
    auth=AuthUsage(
        monthly_active_users=10000,
        sign_ups_per_month=1000,
        email_verifications=500
    ),
    storage=StorageUsage(
        storage_gb=10,
        downloads_gb=50,
        uploads_gb=20
    ),
    functions=FunctionsUsage(
        invocations_per_month=100000,
        average_duration_ms=100,
        memory_gb=0.5
    ),
    realtime=RealtimeUsage(
        concurrent_connections=100,
        messages_per_month=1000000
    ),
)
