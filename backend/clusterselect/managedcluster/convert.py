"""
ManagedCluster to expression document conversion.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Union

from ..models import ManagedCluster


def convert_managed_cluster(cluster: Union[ManagedCluster, Mapping[str, Any], None]) -> Dict[str, Any]:
    """
    Convert a ManagedCluster into the document expressions are evaluated on.

    Missing collections become empty and missing scalars become "", so
    every expression sees the same shape regardless of what the cluster
    reports.

    Args:
        cluster: The cluster, or a mapping in ManagedCluster shape.

    Returns:
        A fresh nested dict:
            metadata.name, metadata.labels, metadata.annotations,
            status.clusterClaims[{name, value}], status.version.kubernetes
    """
    if cluster is None:
        cluster = ManagedCluster()
    elif not isinstance(cluster, ManagedCluster):
        cluster = ManagedCluster.model_validate(dict(cluster))

    claims = [
        {"name": claim.name, "value": claim.value}
        for claim in cluster.status.cluster_claims or []
    ]

    # TODO: project spec.taints and status.allocatable once selectors need them
    return {
        "metadata": {
            "name": cluster.metadata.name,
            "labels": dict(cluster.metadata.labels or {}),
            "annotations": dict(cluster.metadata.annotations or {}),
        },
        "status": {
            "clusterClaims": claims,
            "version": {
                "kubernetes": cluster.status.version.kubernetes,
            },
        },
    }
