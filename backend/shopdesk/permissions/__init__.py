# Overview: Feature entitlement package.
# Re-exports all public APIs for convenient imports.

from .features import Feature, Action, FeaturePermission
from .definitions import FEATURE_DEFINITIONS, DEFAULT_PLAN_FEATURES
from .helpers import (
    FeatureMapError,
    get_feature_definition,
    parse_features_map,
    features_to_dict,
)

__all__ = [
    "Feature",
    "Action",
    "FeaturePermission",
    "FEATURE_DEFINITIONS",
    "DEFAULT_PLAN_FEATURES",
    "FeatureMapError",
    "get_feature_definition",
    "parse_features_map",
    "features_to_dict",
]
