"""
CEL library for ManagedCluster evaluation.

Variables:

    managedCluster

Provides access to ManagedCluster properties (see convert_managed_cluster).

Functions:

    scores

Returns the scores of an AddOnPlacementScore for the cluster.

    <managedCluster>.scores(<string>) <list>

Each item is a map with:
    - name: string - the name of the score
    - value: int - the numeric score value
    - quantity: number|string - a number for plain decimal integers (3),
      a string for values with units or fractions ("300Mi", "1500m")

Examples:

    managedCluster.scores("cpu-memory")
    // [{name: "cpu", value: 3, quantity: 3}, {name: "memory", value: 4, quantity: "300Mi"}]

    versionIsGreaterThan / versionIsLessThan

Compare semantic versions, with or without a leading "v".

    <string>.versionIsGreaterThan(<string>) <bool>
    <string>.versionIsLessThan(<string>) <bool>

Examples:

    "1.25.0".versionIsGreaterThan("1.24.0") // true
    "v1.24.0".versionIsLessThan("v1.25.0")  // true

    quantityIsGreaterThan / quantityIsLessThan

Compare resource quantities by magnitude.

    <string>.quantityIsGreaterThan(<string>) <bool>
    <string>.quantityIsLessThan(<string>) <bool>

Examples:

    "2Gi".quantityIsGreaterThan("1Gi")   // true
    "1000Mi".quantityIsLessThan("1Gi")   // true
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping

from ..logic import BOOL, DYN, STRING, EvalError, FunctionDecl, Type, list_type, map_type
from .compare import (
    QUANTITY_GREATER_THAN,
    QUANTITY_LESS_THAN,
    VERSION_GREATER_THAN,
    VERSION_LESS_THAN,
    compare_quantities,
    compare_versions,
)
from .scores import ScoreLister, ScoreProvider

MANAGED_CLUSTER_VARIABLE = "managedCluster"


class ManagedClusterLib:
    """Declarations of the managedCluster variable and its functions."""

    def __init__(self, score_lister: ScoreLister):
        self.score_provider = ScoreProvider(score_lister)

    def variables(self) -> Dict[str, Type]:
        return {MANAGED_CLUSTER_VARIABLE: map_type(STRING, DYN)}

    def functions(self) -> List[FunctionDecl]:
        """The extension function overloads, in declaration order."""
        return [
            FunctionDecl(
                "scores",
                "cluster_scores",
                (DYN, STRING),
                list_type(DYN),
                self.cluster_scores,
                member=True,
            ),
            FunctionDecl(
                VERSION_GREATER_THAN,
                "version_is_greater_than",
                (STRING, STRING),
                BOOL,
                self.version_is_greater_than,
                member=True,
            ),
            FunctionDecl(
                VERSION_LESS_THAN,
                "version_is_less_than",
                (STRING, STRING),
                BOOL,
                self.version_is_less_than,
                member=True,
            ),
            FunctionDecl(
                QUANTITY_GREATER_THAN,
                "quantity_is_greater_than",
                (STRING, STRING),
                BOOL,
                self.quantity_is_greater_than,
                member=True,
            ),
            FunctionDecl(
                QUANTITY_LESS_THAN,
                "quantity_is_less_than",
                (STRING, STRING),
                BOOL,
                self.quantity_is_less_than,
                member=True,
            ),
        ]

    def cluster_scores(self, cluster: Any, score_name: str) -> List[Dict[str, Any]]:
        """Implements <managedCluster>.scores(<string>)."""
        if not isinstance(cluster, Mapping):
            raise EvalError("scores: receiver must be a managed cluster")
        metadata = cluster.get("metadata")
        cluster_name = metadata.get("name") if isinstance(metadata, Mapping) else None
        if not isinstance(cluster_name, str):
            raise EvalError("scores: receiver has no metadata.name")

        return self.score_provider.scores(cluster_name, score_name)

    def version_is_greater_than(self, first: Any, second: Any) -> bool:
        return compare_versions(first, second, VERSION_GREATER_THAN)

    def version_is_less_than(self, first: Any, second: Any) -> bool:
        return compare_versions(first, second, VERSION_LESS_THAN)

    def quantity_is_greater_than(self, first: Any, second: Any) -> bool:
        return compare_quantities(first, second, QUANTITY_GREATER_THAN)

    def quantity_is_less_than(self, first: Any, second: Any) -> bool:
        return compare_quantities(first, second, QUANTITY_LESS_THAN)
