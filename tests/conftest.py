"""Shared fixtures: a fully populated cluster configuration and the graph built from it."""

from __future__ import annotations

import pytest

from aks_cluster.models import ClusterConfig
from aks_cluster.services.topology import build_cluster_graph

CONFIG_VALUES = {
    "resource_group_name": "rg-aks-input",
    "subnet_id": "/subscriptions/0000/resourceGroups/rg-net/providers/Microsoft.Network/virtualNetworks/vnet/subnets/aks",
    "service_principal_client_id": "sp-client-id",
    "service_principal_client_secret": "sp-secret-value",
    "ad_client_app_id": "ad-client-app-id",
    "ad_server_app_id": "ad-server-app-id",
    "ad_server_app_secret": "ad-server-secret-value",
    "ad_group_admins": "group-admins-object-id",
    "ad_group_devs": "group-devs-object-id",
    "log_analytics_workspace_id": "/subscriptions/0000/resourceGroups/rg-ops/providers/Microsoft.OperationalInsights/workspaces/ops",
}


@pytest.fixture
def config_values() -> dict:
    return dict(CONFIG_VALUES)


@pytest.fixture
def cluster_config(config_values) -> ClusterConfig:
    return ClusterConfig(**config_values)


@pytest.fixture
def graph(cluster_config):
    return build_cluster_graph(cluster_config)


@pytest.fixture
def cluster_env(monkeypatch, config_values):
    for field, value in config_values.items():
        monkeypatch.setenv(f"AKS_{field.upper()}", value)
    return config_values
