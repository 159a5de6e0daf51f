"""
Tests for placement score lookup and conversion.
"""

import logging

import pytest

from backend.clusterselect.errors import NotFoundError
from backend.clusterselect.logic import EvalError
from backend.clusterselect.managedcluster import InMemoryScoreLister, ScoreProvider, score_to_item
from backend.clusterselect.models import AddOnPlacementScore
from backend.clusterselect.quantity import Quantity


SCORES_YAML = """
- metadata:
    name: test-score
    namespace: cluster1
  status:
    scores:
      - name: cpu
        value: 3
        quantity: 3
      - name: memory
        value: 4
        quantity: 300Mi
- metadata:
    name: test-score
    namespace: cluster2
  status:
    scores:
      - name: cpu
        value: 1
        quantity: 1500m
"""


class BrokenLister:
    """Lister whose backing store is unreachable."""

    def get(self, namespace, name):
        raise ConnectionError("connection refused")


class TestScoreToItem:
    """Tests for score_to_item."""

    def test_integer_quantity_is_number(self):
        """Test a plain integer quantity is exposed as a number."""
        item = score_to_item("cpu", 3, Quantity.parse("3"))
        assert item == {"name": "cpu", "value": 3, "quantity": 3}
        assert isinstance(item["quantity"], int)

    def test_binary_quantity_is_string(self):
        """Test a quantity with a binary unit is exposed as a string."""
        assert score_to_item("memory", 4, Quantity.parse("300Mi"))["quantity"] == "300Mi"

    def test_fractional_quantity_is_string(self):
        """Test a fractional quantity is exposed in canonical string form."""
        assert score_to_item("cpu", 1, Quantity.parse("1.5"))["quantity"] == "1500m"

    def test_scaled_decimal_integer_is_number(self):
        """Test a decimal suffix that yields an integer is exposed as a number."""
        assert score_to_item("pods", 1, Quantity.parse("2k"))["quantity"] == 2000

    def test_exponent_quantity_is_string(self):
        """Test exponent quantities keep their string form."""
        assert score_to_item("pods", 1, Quantity.parse("1e3"))["quantity"] == "1e3"


class TestInMemoryScoreLister:
    """Tests for InMemoryScoreLister."""

    def test_from_yaml(self):
        """Test loading a list of score sets."""
        lister = InMemoryScoreLister.from_yaml(SCORES_YAML)
        assert len(lister) == 2
        assert lister.get("cluster2", "test-score").status.scores[0].name == "cpu"

    def test_multiple_documents(self):
        """Test loading score sets separated by ---."""
        lister = InMemoryScoreLister.from_yaml(
            "metadata: {name: a, namespace: c1}\n---\nmetadata: {name: b, namespace: c1}\n"
        )
        assert [s.metadata.name for s in lister.list("c1")] == ["a", "b"]

    def test_not_found(self):
        """Test a missing score set raises NotFoundError."""
        lister = InMemoryScoreLister.from_yaml(SCORES_YAML)
        with pytest.raises(NotFoundError) as exc_info:
            lister.get("cluster1", "missing-set")
        assert '"missing-set" not found' in str(exc_info.value)

    def test_load_from_directory(self, tmp_path):
        """Test loading every YAML file in a directory."""
        (tmp_path / "scores.yaml").write_text(SCORES_YAML)
        (tmp_path / "extra.yaml").write_text("metadata: {name: extra, namespace: cluster1}\n")
        (tmp_path / "notes.txt").write_text("ignored")
        lister = InMemoryScoreLister.load_from_directory(tmp_path)
        assert len(lister) == 3
        assert len(lister.list("cluster1")) == 2


class TestScoreProvider:
    """Tests for ScoreProvider."""

    def test_scores(self):
        """Test cluster name is the namespace and score set name the key."""
        provider = ScoreProvider(InMemoryScoreLister.from_yaml(SCORES_YAML))
        assert provider.scores("cluster1", "test-score") == [
            {"name": "cpu", "value": 3, "quantity": 3},
            {"name": "memory", "value": 4, "quantity": "300Mi"},
        ]
        assert provider.scores("cluster2", "test-score") == [
            {"name": "cpu", "value": 1, "quantity": "1500m"},
        ]

    def test_empty_score_set(self):
        """Test a score set without scores gives an empty list."""
        lister = InMemoryScoreLister([AddOnPlacementScore.model_validate(
            {"metadata": {"name": "empty", "namespace": "cluster1"}}
        )])
        assert ScoreProvider(lister).scores("cluster1", "empty") == []

    def test_not_found(self):
        """Test a missing score set is an evaluation error."""
        provider = ScoreProvider(InMemoryScoreLister.from_yaml(SCORES_YAML))
        with pytest.raises(EvalError) as exc_info:
            provider.scores("cluster1", "missing-set")
        assert str(exc_info.value).startswith("failed to list scores: ")
        assert isinstance(exc_info.value.__cause__, NotFoundError)

    def test_transport_error(self, caplog):
        """Test lister failures are reported with their cause."""
        provider = ScoreProvider(BrokenLister())
        with caplog.at_level(logging.WARNING):
            with pytest.raises(EvalError, match="failed to list scores: connection refused"):
                provider.scores("cluster1", "test-score")
        assert "Failed to get scores test-score for cluster cluster1" in caplog.text
