"""Entry point for `pulumi up`: reads the `aks:*` stack config and declares the cluster."""

import pulumi

from aks_cluster.config import load_cluster_config_from_stack
from aks_cluster.services.program_builder import apply_cluster_program

apply_cluster_program(load_cluster_config_from_stack(), pulumi.get_project())
