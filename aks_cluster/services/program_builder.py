from __future__ import annotations
import pulumi
from ..models import ClusterConfig
from .cluster_fabric import ClusterFabric
from .topology import DEFAULT_NAME, build_cluster_graph


def apply_cluster_program(config: ClusterConfig, name: str = DEFAULT_NAME) -> ClusterFabric:
    """Declare the topology inside the running Pulumi program and export its outputs."""
    graph = build_cluster_graph(config, name)
    fabric = ClusterFabric()
    fabric.apply_graph(graph)
    for export_name, value in fabric.outputs().items():
        pulumi.export(export_name, value)
    return fabric


def build_pulumi_program(config: ClusterConfig, name: str = DEFAULT_NAME):
    def program():
        apply_cluster_program(config, name)

    return program
