"""
Pydantic models for cluster selection.

Mirrors the shape of the Kubernetes resources the selector works with:
- ManagedCluster: the cluster record expressions are evaluated against
- AddOnPlacementScore: a named score set published for one cluster
- ClusterSelector: the CEL expressions a placement selects clusters with

Field names accept both snake_case and the camelCase used in manifests.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .quantity import Quantity, QuantityError


class _Resource(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_yaml(cls, yaml_content: str):
        """Load the resource from YAML content."""
        data = yaml.safe_load(yaml_content) or {}
        return cls.model_validate(data)

    @classmethod
    def from_file(cls, path: Union[str, Path]):
        """Load the resource from a YAML file."""
        with open(path, "r", encoding="utf-8") as f:
            return cls.from_yaml(f.read())


def _scalar_to_str(value: Any) -> Any:
    """Read YAML booleans and nulls back as text; numbers are coerced by pydantic."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    return value


class ObjectMeta(BaseModel):
    """Standard object metadata."""

    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    name: str = ""
    namespace: str = ""
    labels: Optional[Dict[str, str]] = None
    annotations: Optional[Dict[str, str]] = None

    @field_validator("labels", "annotations", mode="before")
    @classmethod
    def stringify_values(cls, v: Any) -> Any:
        """Labels written as `tier: 1` or `gpu: true` keep their text."""
        if isinstance(v, dict):
            return {_scalar_to_str(k): _scalar_to_str(item) for k, item in v.items()}
        return v


class ClusterClaim(BaseModel):
    """A cluster-scoped fact reported by the managed cluster."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    name: str
    value: str = ""

    @field_validator("value", mode="before")
    @classmethod
    def stringify_value(cls, v: Any) -> Any:
        return _scalar_to_str(v)


class ManagedClusterVersion(BaseModel):
    """Version information of the managed cluster."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    kubernetes: str = ""


class ManagedClusterStatus(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    cluster_claims: Optional[List[ClusterClaim]] = Field(default=None, alias="clusterClaims")
    version: ManagedClusterVersion = Field(default_factory=ManagedClusterVersion)


class ManagedCluster(_Resource):
    """A cluster registered with the hub."""

    metadata: ObjectMeta = Field(default_factory=ObjectMeta)
    status: ManagedClusterStatus = Field(default_factory=ManagedClusterStatus)

    @property
    def name(self) -> str:
        return self.metadata.name


class AddOnPlacementScoreItem(BaseModel):
    """One measurement in a score set."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str
    value: int = 0
    quantity: Quantity = Field(default_factory=lambda: Quantity.parse("0"))

    @field_validator("quantity", mode="before")
    @classmethod
    def parse_quantity(cls, v: Any) -> Quantity:
        """Accept quantities written as strings or plain numbers."""
        if isinstance(v, Quantity):
            return v
        if isinstance(v, bool) or not isinstance(v, (str, int, float)):
            raise ValueError(f"quantity must be a string or number, got {type(v).__name__}")
        try:
            return Quantity.parse(str(v))
        except QuantityError as e:
            raise ValueError(f"invalid quantity {v!r}: {e}") from e


class AddOnPlacementScoreStatus(BaseModel):
    scores: List[AddOnPlacementScoreItem] = Field(default_factory=list)


class AddOnPlacementScore(_Resource):
    """Scores published for one cluster, stored in the cluster's namespace."""

    metadata: ObjectMeta = Field(default_factory=ObjectMeta)
    status: AddOnPlacementScoreStatus = Field(default_factory=AddOnPlacementScoreStatus)


class ClusterCelSelector(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    cel_expressions: List[str] = Field(default_factory=list, alias="celExpressions")


class ClusterSelector(_Resource):
    """Selects clusters whose every CEL expression evaluates to true."""

    cel_selector: ClusterCelSelector = Field(default_factory=ClusterCelSelector, alias="celSelector")

    @property
    def expressions(self) -> List[str]:
        return list(self.cel_selector.cel_expressions)
