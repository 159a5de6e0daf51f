"""
Placement score lookup.

Scores are published per cluster as AddOnPlacementScore resources living
in the cluster's namespace. Expressions never carry score data; they look
it up by (cluster name, score set name) every time they run.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Protocol, Tuple, Union

import yaml

from ..errors import NotFoundError
from ..logic import EvalError
from ..models import AddOnPlacementScore
from ..quantity import Quantity, QuantityFormat

logger = logging.getLogger(__name__)


class ScoreLister(Protocol):
    """Read access to AddOnPlacementScore resources."""

    def get(self, namespace: str, name: str) -> AddOnPlacementScore:
        """Return the score set, raising NotFoundError if it does not exist."""
        ...


class InMemoryScoreLister:
    """
    Score lister backed by a dict keyed by (namespace, name).

    Reads never mutate state, so one instance may serve concurrent
    evaluations once it has been populated.
    """

    def __init__(self, scores: Optional[Iterable[AddOnPlacementScore]] = None):
        self._scores: Dict[Tuple[str, str], AddOnPlacementScore] = {}
        for score in scores or []:
            self.add(score)

    def add(self, score: AddOnPlacementScore) -> None:
        """Store a score set under its metadata namespace and name."""
        key = (score.metadata.namespace, score.metadata.name)
        self._scores[key] = score

    def get(self, namespace: str, name: str) -> AddOnPlacementScore:
        try:
            return self._scores[(namespace, name)]
        except KeyError:
            raise NotFoundError(namespace, name) from None

    def list(self, namespace: Optional[str] = None) -> List[AddOnPlacementScore]:
        """List stored score sets, optionally limited to one namespace."""
        return [
            score for (ns, _), score in sorted(self._scores.items())
            if namespace is None or ns == namespace
        ]

    def __len__(self) -> int:
        return len(self._scores)

    @classmethod
    def from_yaml(cls, yaml_content: str) -> "InMemoryScoreLister":
        """
        Load score sets from YAML content.

        The content may be a single AddOnPlacementScore document, a list of
        them, or several documents separated by "---".
        """
        lister = cls()
        for document in yaml.safe_load_all(yaml_content):
            if not document:
                continue
            items = document if isinstance(document, list) else [document]
            for item in items:
                lister.add(AddOnPlacementScore.model_validate(item))
        return lister

    @classmethod
    def load_from_directory(cls, directory: Union[str, Path]) -> "InMemoryScoreLister":
        """Load all *.yaml score files in a directory."""
        lister = cls()
        for file_path in sorted(Path(directory).glob("*.yaml")):
            with open(file_path, "r", encoding="utf-8") as f:
                for score in cls.from_yaml(f.read()).list():
                    lister.add(score)
        return lister


def score_to_item(name: str, value: int, quantity: Quantity) -> Dict[str, Any]:
    """
    Convert one score entry to the map expressions see.

    Plain decimal integers (e.g. 3) are exposed as numbers; quantities with
    binary units or fractions (e.g. "300Mi", "1.5") as their canonical string.
    """
    if quantity.format is QuantityFormat.DECIMAL_SI and quantity.milli_value() % 1000 == 0:
        quantity_value: Any = quantity.value()
    else:
        quantity_value = str(quantity)

    return {
        "name": name,
        "value": value,
        "quantity": quantity_value,
    }


class ScoreProvider:
    """Looks up a cluster's score set and converts it for expressions."""

    def __init__(self, lister: ScoreLister):
        self.lister = lister

    def scores(self, cluster_name: str, score_set_name: str) -> List[Dict[str, Any]]:
        """
        Return the scores of one score set for a cluster.

        Args:
            cluster_name: Cluster name, used as the lookup namespace.
            score_set_name: Name of the AddOnPlacementScore.

        Raises:
            EvalError: If the lookup fails for any reason.
        """
        try:
            score_set = self.lister.get(cluster_name, score_set_name)
        except Exception as e:
            logger.warning(
                "Failed to get scores %s for cluster %s: %s", score_set_name, cluster_name, e
            )
            raise EvalError(f"failed to list scores: {e}") from e

        logger.debug(
            "Found %d scores in %s for cluster %s",
            len(score_set.status.scores), score_set_name, cluster_name,
        )
        return [
            score_to_item(score.name, score.value, score.quantity)
            for score in score_set.status.scores
        ]
