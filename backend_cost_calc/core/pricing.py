"""
Pricing calculations per service category and provider.

Every formula is pure: it maps one usage profile to a monthly cost. Tier
boundaries and rates are the providers' published figures and are kept as
literal Decimal constants.
"""

from dataclasses import dataclass, field
from decimal import Context, Decimal, MAX_PREC, ROUND_HALF_UP
from types import MappingProxyType
from typing import Callable, Dict, Iterator, List, Mapping

from .usage import (
    PRIMARY_PROVIDER,
    AuthUsage,
    Category,
    DatabaseUsage,
    FunctionsUsage,
    Provider,
    RealtimeUsage,
    StorageUsage,
    UsageProfileSet,
)

CENT = Decimal("0.01")
ZERO = Decimal("0")

# Quantizing to cents needs one digit per integer place; the default
# 28-digit context raises InvalidOperation for amounts of 1e26 and above.
MONEY_CONTEXT = Context(prec=MAX_PREC, rounding=ROUND_HALF_UP)


def _d(value) -> Decimal:
    """Convert a usage value to Decimal without binary float noise."""
    return Decimal(str(value))


def _over(value: Decimal, included: str) -> Decimal:
    """Usage above an included allowance, never negative."""
    return max(ZERO, value - Decimal(included))


def _to_money(amount: Decimal) -> float:
    """Round half-up to cents."""
    return float(amount.quantize(CENT, context=MONEY_CONTEXT))


def _gb_seconds(usage: FunctionsUsage) -> Decimal:
    return (
        _d(usage.invocations_per_month)
        * (_d(usage.average_duration_ms) / Decimal("1000"))
        * _d(usage.memory_gb)
    )


# Database

def database_supabase_cost(usage: DatabaseUsage) -> float:
    """Pro plan: 25 base with 8 GB, 5M reads and 2M writes included."""
    cost = Decimal("25")
    cost += _over(_d(usage.storage_gb), "8") * Decimal("0.125")
    extra_reads = _over(_d(usage.reads_per_month), "5000000") / Decimal("100000") * Decimal("10")
    extra_writes = _over(_d(usage.writes_per_month), "2000000") / Decimal("100000") * Decimal("10")
    return _to_money(cost + extra_reads + extra_writes)


def database_firebase_cost(usage: DatabaseUsage) -> float:
    reads_cost = _d(usage.reads_per_month) / Decimal("100000") * Decimal("0.06")
    writes_cost = _d(usage.writes_per_month) / Decimal("100000") * Decimal("0.18")
    return _to_money(reads_cost + writes_cost)


def database_aws_cost(usage: DatabaseUsage) -> float:
    """Smallest RDS instance plus gp storage."""
    instance_cost = Decimal("12.5")
    storage_cost = _d(usage.storage_gb) * Decimal("0.115")
    return _to_money(instance_cost + storage_cost)


def database_neon_cost(usage: DatabaseUsage) -> float:
    cost = Decimal("20") + _over(_d(usage.storage_gb), "10") * Decimal("0.096")
    return _to_money(cost)


def database_planetscale_cost(usage: DatabaseUsage) -> float:
    cost = Decimal("29") + _over(_d(usage.monthly_active_rows), "5000000") * Decimal("0.0001")
    return _to_money(cost)


# Auth

def auth_supabase_cost(usage: AuthUsage) -> float:
    """Included in the base plan."""
    return _to_money(ZERO)


def auth_firebase_cost(usage: AuthUsage) -> float:
    extra_maus = _over(_d(usage.monthly_active_users), "50000") * Decimal("0.0055")
    return _to_money(extra_maus)


def auth_aws_cost(usage: AuthUsage) -> float:
    extra_maus = _over(_d(usage.monthly_active_users), "50000") * Decimal("0.0055")
    return _to_money(extra_maus)


# Storage

def storage_supabase_cost(usage: StorageUsage) -> float:
    storage_cost = _over(_d(usage.storage_gb), "5") * Decimal("0.021")
    egress_cost = _d(usage.downloads_gb) * Decimal("0.09")
    return _to_money(storage_cost + egress_cost)


def storage_firebase_cost(usage: StorageUsage) -> float:
    storage_cost = _d(usage.storage_gb) * Decimal("0.026")
    egress_cost = _d(usage.downloads_gb) * Decimal("0.12")
    return _to_money(storage_cost + egress_cost)


def storage_aws_cost(usage: StorageUsage) -> float:
    """S3 standard; first 100 GB of egress free."""
    storage_cost = _d(usage.storage_gb) * Decimal("0.023")
    egress_cost = _over(_d(usage.downloads_gb), "100") * Decimal("0.09")
    return _to_money(storage_cost + egress_cost)


# Functions

def functions_supabase_cost(usage: FunctionsUsage) -> float:
    """500K invocations and 100K GB-seconds included."""
    extra_invocations = (
        _over(_d(usage.invocations_per_month), "500000") / Decimal("100000") * Decimal("0.125")
    )
    extra_gb_seconds = _over(_gb_seconds(usage), "100000") * Decimal("0.0000025")
    return _to_money(extra_invocations + extra_gb_seconds)


def functions_firebase_cost(usage: FunctionsUsage) -> float:
    invocation_cost = _d(usage.invocations_per_month) / Decimal("1000000") * Decimal("0.40")
    compute_cost = _gb_seconds(usage) * Decimal("0.0000025")
    return _to_money(invocation_cost + compute_cost)


def functions_aws_cost(usage: FunctionsUsage) -> float:
    request_cost = _d(usage.invocations_per_month) / Decimal("1000000") * Decimal("0.20")
    compute_cost = _gb_seconds(usage) * Decimal("0.00001667")
    return _to_money(request_cost + compute_cost)


# Realtime

def realtime_supabase_cost(usage: RealtimeUsage) -> float:
    """500 concurrent connections and 5M messages included."""
    extra_connections = (
        _over(_d(usage.concurrent_connections), "500") / Decimal("1000") * Decimal("10")
    )
    extra_messages = (
        _over(_d(usage.messages_per_month), "5000000") / Decimal("1000000") * Decimal("2.5")
    )
    return _to_money(extra_connections + extra_messages)


def realtime_firebase_cost(usage: RealtimeUsage) -> float:
    """Messages approximated as half document reads, half writes."""
    reads = _d(usage.messages_per_month) * Decimal("0.5")
    writes = _d(usage.messages_per_month) * Decimal("0.5")
    reads_cost = reads / Decimal("100000") * Decimal("0.06")
    writes_cost = writes / Decimal("100000") * Decimal("0.18")
    return _to_money(reads_cost + writes_cost)


def realtime_aws_cost(usage: RealtimeUsage) -> float:
    operations_cost = _d(usage.messages_per_month) / Decimal("1000000") * Decimal("4")
    connection_cost = _d(usage.concurrent_connections) * Decimal("0.002")
    return _to_money(operations_cost + connection_cost)


# Provider sets differ per category; only Database compares against Neon and PlanetScale.
PRICING_FUNCTIONS: Mapping[Category, Mapping[Provider, Callable]] = MappingProxyType({
    Category.DATABASE: MappingProxyType({
        Provider.SUPABASE: database_supabase_cost,
        Provider.FIREBASE: database_firebase_cost,
        Provider.AWS: database_aws_cost,
        Provider.NEON: database_neon_cost,
        Provider.PLANETSCALE: database_planetscale_cost,
    }),
    Category.AUTH: MappingProxyType({
        Provider.SUPABASE: auth_supabase_cost,
        Provider.FIREBASE: auth_firebase_cost,
        Provider.AWS: auth_aws_cost,
    }),
    Category.STORAGE: MappingProxyType({
        Provider.SUPABASE: storage_supabase_cost,
        Provider.FIREBASE: storage_firebase_cost,
        Provider.AWS: storage_aws_cost,
    }),
    Category.FUNCTIONS: MappingProxyType({
        Provider.SUPABASE: functions_supabase_cost,
        Provider.FIREBASE: functions_firebase_cost,
        Provider.AWS: functions_aws_cost,
    }),
    Category.REALTIME: MappingProxyType({
        Provider.SUPABASE: realtime_supabase_cost,
        Provider.FIREBASE: realtime_firebase_cost,
        Provider.AWS: realtime_aws_cost,
    }),
})


def providers_for(category: Category) -> List[Provider]:
    """Providers modelled for a category, in Provider enum order."""
    modelled = PRICING_FUNCTIONS[category]
    return [provider for provider in Provider if provider in modelled]


@dataclass(frozen=True)
class CostBreakdown:
    """Monthly cost per provider for one category."""
    category: Category
    amounts: Mapping[Provider, float] = field(default_factory=dict)

    def __post_init__(self):
        """Freeze amounts and reject providers not modelled for the category."""
        unknown = set(self.amounts) - set(PRICING_FUNCTIONS[self.category])
        if unknown:
            names = sorted(provider.value for provider in unknown)
            raise ValueError(f"Providers not modelled for {self.category.value}: {names}")
        object.__setattr__(self, "amounts", MappingProxyType(dict(self.amounts)))

    @property
    def primary(self) -> float:
        return self.amounts.get(PRIMARY_PROVIDER, 0.0)

    def get(self, provider: Provider, default: float = 0.0) -> float:
        return self.amounts.get(provider, default)

    def to_dict(self) -> Dict[str, float]:
        return {provider.value: amount for provider, amount in self.amounts.items()}

    @classmethod
    def from_dict(cls, category: Category, data: Mapping[str, float]) -> "CostBreakdown":
        """Rebuild from a stored ``{provider: amount}`` mapping.

        Providers not modelled for the category are dropped.
        """
        modelled = PRICING_FUNCTIONS[category]
        amounts = {}
        for provider in Provider:
            if provider in modelled and provider.value in data:
                amounts[provider] = float(data[provider.value] or 0.0)
        return cls(category=category, amounts=amounts)


@dataclass(frozen=True)
class CostBreakdownSet:
    """Cost breakdowns for all five categories."""
    breakdowns: Mapping[Category, CostBreakdown]

    def __post_init__(self):
        missing = [category.value for category in Category if category not in self.breakdowns]
        if missing:
            raise ValueError(f"Missing cost breakdowns for: {missing}")
        object.__setattr__(self, "breakdowns", MappingProxyType(dict(self.breakdowns)))

    def __getitem__(self, category: Category) -> CostBreakdown:
        return self.breakdowns[category]

    def __iter__(self) -> Iterator[CostBreakdown]:
        for category in Category:
            yield self.breakdowns[category]

    def to_dict(self) -> Dict[str, Dict[str, float]]:
        return {category.value: self.breakdowns[category].to_dict() for category in Category}

    @classmethod
    def from_dict(cls, data: Mapping[str, Mapping[str, float]]) -> "CostBreakdownSet":
        return cls({
            category: CostBreakdown.from_dict(category, data.get(category.value) or {})
            for category in Category
        })


def calculate_cost(category: Category, provider: Provider, profile) -> float:
    """Calculate the monthly cost of one provider for one category.

    Args:
        category: Service category
        provider: Provider to price
        profile: Usage profile for the category

    Returns:
        Cost rounded half-up to 2 decimal places

    Raises:
        ValueError: If the provider is not modelled for the category
    """
    pricing = PRICING_FUNCTIONS[category]
    if provider not in pricing:
        raise ValueError(f"Unsupported provider for {category.value}: {provider.value}")
    return pricing[provider](profile)


def compute_category_costs(category: Category, profile) -> CostBreakdown:
    """Price one category's usage across all of its providers."""
    amounts = {
        provider: calculate_cost(category, provider, profile)
        for provider in providers_for(category)
    }
    return CostBreakdown(category=category, amounts=amounts)


def compute_costs(profiles: UsageProfileSet) -> CostBreakdownSet:
    """Price every category of a usage profile set.

    Args:
        profiles: One usage profile per category

    Returns:
        CostBreakdownSet with one breakdown per category
    """
    return CostBreakdownSet({
        category: compute_category_costs(category, profiles.get(category))
        for category in Category
    })
