"""
Usage profile loading.

Reads usage profiles from YAML files. Structure is validated strictly;
individual values are coerced the same way form input is.
"""

from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from backend_cost_calc.core.usage import (
    DEFAULT_USAGE_PROFILES,
    PROFILE_TYPES,
    Category,
    UsageProfileSet,
)
from backend_cost_calc.utils.logging import get_logger

logger = get_logger(__name__)


def load_usage_profiles(
    path: str,
    defaults: Optional[UsageProfileSet] = DEFAULT_USAGE_PROFILES
) -> UsageProfileSet:
    """Load and validate usage profiles from a YAML file.

    The file maps category names to camelCase field names, e.g.::

        database:
          storageGB: 120
          readsPerMonth: 6000000
        functions:
          memoryGB: 1

    Categories and fields that are left out take the value from
    ``defaults``. Unknown categories or fields are rejected so a typo never
    silently prices the default instead.

    Args:
        path: Path to YAML file
        defaults: Profile set supplying omitted values; None means 0

    Returns:
        Validated UsageProfileSet

    Raises:
        FileNotFoundError: If the file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If the structure is invalid
    """
    profile_path = Path(path)
    if not profile_path.exists():
        raise FileNotFoundError(f"Usage profile file not found: {path}")

    with open(profile_path, 'r', encoding='utf-8') as f:
        try:
            raw_profiles = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in usage profile file {path}: {e}")

    if not raw_profiles:
        raise ValueError("Usage profile file is empty")

    profiles = parse_usage_profiles(raw_profiles, defaults)
    logger.info("usage_profile_loaded", path=str(profile_path))
    return profiles


def parse_usage_profiles(
    raw_profiles: Any,
    defaults: Optional[UsageProfileSet] = DEFAULT_USAGE_PROFILES
) -> UsageProfileSet:
    """Validate the structure of a raw ``{category: {field: value}}`` mapping.

    Raises:
        ValueError: If the mapping has unknown keys or non-mapping sections
    """
    if not isinstance(raw_profiles, dict):
        raise ValueError("Usage profiles must be a dictionary of categories")

    allowed_categories = {category.value for category in Category}
    unknown_categories = set(raw_profiles.keys()) - allowed_categories
    if unknown_categories:
        raise ValueError(f"Unknown usage categories: {sorted(map(str, unknown_categories))}")

    for category in Category:
        if category.value not in raw_profiles:
            continue
        _validate_section(category, raw_profiles[category.value])

    return UsageProfileSet.from_dict(raw_profiles, defaults)


def _validate_section(category: Category, data: Any) -> None:
    """Check one category section for structure and unknown fields."""
    if data is None:
        raise ValueError(f"'{category.value}' section cannot be empty")
    if not isinstance(data, dict):
        raise ValueError(f"'{category.value}' must be a dictionary")

    allowed_keys = set(PROFILE_TYPES[category].FIELD_KEYS.values())
    unknown_keys = set(data.keys()) - allowed_keys
    if unknown_keys:
        raise ValueError(
            f"Unknown keys in {category.value}: {sorted(map(str, unknown_keys))}; "
            f"expected any of: {sorted(allowed_keys)}"
        )


def dump_usage_profiles(profiles: UsageProfileSet) -> str:
    """Render a profile set as YAML in the format ``load_usage_profiles`` reads."""
    data: Dict[str, Dict[str, float]] = profiles.to_dict()
    return yaml.safe_dump(data, sort_keys=False)
