"""
CEL evaluation of ManagedClusters.

Converts clusters into expression documents and evaluates placement
selector expressions against them, with score, version and quantity
extension functions.
"""

from .compare import compare_quantities, compare_versions
from .convert import convert_managed_cluster
from .evaluator import EvaluationOutcome, ManagedClusterEvaluator
from .lib import MANAGED_CLUSTER_VARIABLE, ManagedClusterLib
from .scores import InMemoryScoreLister, ScoreLister, ScoreProvider, score_to_item

__all__ = [
    "ManagedClusterEvaluator",
    "EvaluationOutcome",
    "ManagedClusterLib",
    "MANAGED_CLUSTER_VARIABLE",
    "convert_managed_cluster",
    "compare_versions",
    "compare_quantities",
    "ScoreLister",
    "ScoreProvider",
    "InMemoryScoreLister",
    "score_to_item",
]
