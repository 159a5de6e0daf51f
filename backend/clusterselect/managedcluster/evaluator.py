"""
CEL evaluation of ManagedClusters.

A ManagedClusterEvaluator is built once and then reused for every cluster:

    evaluator = ManagedClusterEvaluator(score_lister)
    evaluator.evaluate(cluster, ['managedCluster.metadata.labels["cloud"] == "Amazon"'])
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from ..errors import CompileError, ConstructionError, EvaluationError, SelectorError
from ..logic import DeclarationError, Environment, EvalError, ExpressionError
from ..models import ClusterSelector, ManagedCluster
from .convert import convert_managed_cluster
from .lib import MANAGED_CLUSTER_VARIABLE, ManagedClusterLib
from .scores import ScoreLister

logger = logging.getLogger(__name__)

ClusterInput = Union[ManagedCluster, Mapping[str, Any]]


@dataclass
class EvaluationOutcome:
    """Result of matching a cluster, for callers that prefer data to exceptions."""

    matched: bool
    error: Optional[SelectorError] = None

    @property
    def success(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "matched": self.matched,
            "success": self.success,
            "error": str(self.error) if self.error else None,
        }


class ManagedClusterEvaluator:
    """
    Evaluates CEL expressions against ManagedClusters.

    Holds an immutable environment, so one instance can serve concurrent
    callers as long as the score lister supports concurrent reads.
    """

    def __init__(self, score_lister: ScoreLister):
        """
        Build the evaluator.

        Args:
            score_lister: Source of AddOnPlacementScores for scores().

        Raises:
            ConstructionError: If the CEL environment cannot be created.
        """
        lib = ManagedClusterLib(score_lister)
        try:
            self.env = Environment(variables=lib.variables(), functions=lib.functions())
        except DeclarationError as e:
            raise ConstructionError(f"failed to create CEL environment: {e}") from e

    def evaluate(self, cluster: ClusterInput, expressions: Sequence[str]) -> bool:
        """
        Evaluate expressions against a cluster.

        The cluster matches only if every expression evaluates to true.
        Expressions run in order and evaluation stops at the first one that
        fails or does not evaluate to true. An empty list matches.

        Args:
            cluster: The cluster to test.
            expressions: CEL expressions.

        Returns:
            True if the cluster matches all expressions.

        Raises:
            CompileError: If an expression does not compile.
            EvaluationError: If an expression fails while executing.
        """
        converted_cluster = convert_managed_cluster(cluster)
        bindings = {MANAGED_CLUSTER_VARIABLE: converted_cluster}
        cluster_name = converted_cluster["metadata"]["name"]

        for expr in expressions:
            try:
                program = self.env.compile(expr)
            except ExpressionError as e:
                raise CompileError(expr, e) from e

            try:
                result = program.eval(bindings)
            except EvalError as e:
                raise EvaluationError(expr, e) from e

            logger.debug("Expression %r on cluster %s evaluated to %r", expr, cluster_name, result)

            if result is not True:
                return False

        return True

    def match(self, cluster: ClusterInput, expressions: Sequence[str]) -> EvaluationOutcome:
        """Like evaluate, returning the error in the outcome instead of raising it."""
        try:
            return EvaluationOutcome(matched=self.evaluate(cluster, expressions))
        except SelectorError as e:
            return EvaluationOutcome(matched=False, error=e)

    def evaluate_selector(self, cluster: ClusterInput, selector: ClusterSelector) -> bool:
        """Evaluate the CEL expressions of a ClusterSelector."""
        return self.evaluate(cluster, selector.expressions)

    def validate(self, expressions: Sequence[str]) -> List[CompileError]:
        """
        Compile expressions without evaluating them.

        Returns:
            One CompileError per expression that does not compile.
        """
        errors = []
        for expr in expressions:
            try:
                self.env.compile(expr)
            except ExpressionError as e:
                errors.append(CompileError(expr, e))
        return errors
