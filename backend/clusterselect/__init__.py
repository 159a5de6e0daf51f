"""
Cluster Select: CEL based selection of managed clusters.

This package evaluates placement selector expressions against managed
cluster records, with semantic version, resource quantity and placement
score functions added to the expression language.
"""

from .errors import (
    SelectorError,
    ConstructionError,
    CompileError,
    EvaluationError,
    NotFoundError,
)
from .managedcluster import (
    ManagedClusterEvaluator,
    EvaluationOutcome,
    InMemoryScoreLister,
    convert_managed_cluster,
)
from .models import (
    ManagedCluster,
    ObjectMeta,
    ClusterClaim,
    ManagedClusterStatus,
    ManagedClusterVersion,
    AddOnPlacementScore,
    AddOnPlacementScoreItem,
    AddOnPlacementScoreStatus,
    ClusterSelector,
    ClusterCelSelector,
)
from .quantity import Quantity, QuantityError, QuantityFormat, parse_quantity
from .version import Version, VersionError, parse_semantic

__version__ = "1.0.0"
__all__ = [
    "ManagedClusterEvaluator",
    "EvaluationOutcome",
    "InMemoryScoreLister",
    "convert_managed_cluster",
    "SelectorError",
    "ConstructionError",
    "CompileError",
    "EvaluationError",
    "NotFoundError",
    "ManagedCluster",
    "ObjectMeta",
    "ClusterClaim",
    "ManagedClusterStatus",
    "ManagedClusterVersion",
    "AddOnPlacementScore",
    "AddOnPlacementScoreItem",
    "AddOnPlacementScoreStatus",
    "ClusterSelector",
    "ClusterCelSelector",
    "Quantity",
    "QuantityError",
    "QuantityFormat",
    "parse_quantity",
    "Version",
    "VersionError",
    "parse_semantic",
]
