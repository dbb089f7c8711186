# Overview: Utility functions for converting plan feature maps.

import logging

from .definitions import FEATURE_DEFINITIONS
from .features import Feature, FeaturePermission


logger = logging.getLogger(__name__)


class FeatureMapError(ValueError):
    """Raised when a submitted feature map names an unknown feature."""


def get_feature_definition(feature):
    """Get display metadata for a feature."""
    parsed = Feature.parse(feature)
    for code, label, description in FEATURE_DEFINITIONS:
        if code is parsed:
            return {"feature": code.value, "label": label, "description": description}
    return None


def parse_features_map(raw: dict | None, *, strict: bool = True) -> dict[Feature, FeaturePermission]:
    """
    Convert a stored/submitted {"feature": {"view": ..}} map to typed grants.

    strict=True raises FeatureMapError on unknown keys (input from clients).
    strict=False drops them with a warning (data already in the database).
    """
    parsed: dict[Feature, FeaturePermission] = {}
    for key, flags in (raw or {}).items():
        feature = Feature.parse(key)
        if feature is None:
            if strict:
                raise FeatureMapError(f"Unknown feature: {key}")
            logger.warning("Ignoring unknown feature %r in stored feature map", key)
            continue
        if not isinstance(flags, dict):
            if strict:
                raise FeatureMapError(f"Permissions for {key} must be an object")
            continue
        parsed[feature] = FeaturePermission.from_flags(flags)
    return parsed


def features_to_dict(features: dict[Feature, FeaturePermission]) -> dict:
    """Serialize typed grants back to the JSON shape plans store."""
    return {feature.value: grant.to_flags() for feature, grant in features.items()}
