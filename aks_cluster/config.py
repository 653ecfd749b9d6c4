"""Configuration loading from environment variables and Pulumi stack config."""

from __future__ import annotations

import os
from typing import Dict

from dotenv import load_dotenv

from aks_cluster.models import ClusterConfig, EngineSettings

# Maps ClusterConfig fields to the stack config keys of the `aks` namespace.
STACK_CONFIG_KEYS: Dict[str, str] = {
    "resource_group_name": "resourceGroupName",
    "subnet_id": "subnetId",
    "service_principal_client_id": "servicePrincipalClientId",
    "service_principal_client_secret": "servicePrincipalClientSecret",
    "ad_client_app_id": "adClientAppId",
    "ad_server_app_id": "adServerAppId",
    "ad_server_app_secret": "adServerAppSecret",
    "ad_group_admins": "adGroupAdmins",
    "ad_group_devs": "adGroupDevs",
    "log_analytics_workspace_id": "logAnalyticsWorkspaceId",
}


def _env(key: str, default: str = "") -> str:
    return os.environ.get(f"AKS_{key}", default)


def load_cluster_config() -> ClusterConfig:
    """Load the cluster inputs from AKS_* environment variables (and .env)."""
    load_dotenv()
    return ClusterConfig(**{field: _env(field.upper()) for field in STACK_CONFIG_KEYS})


def load_cluster_config_from_stack(namespace: str = "aks") -> ClusterConfig:
    """Load the cluster inputs from Pulumi stack config; only valid inside a Pulumi program."""
    import pulumi

    config = pulumi.Config(namespace)
    return ClusterConfig(**{field: config.get(key) or "" for field, key in STACK_CONFIG_KEYS.items()})


def load_settings() -> EngineSettings:
    load_dotenv()
    values = {
        "project_name": os.getenv("PULUMI_PROJECT_NAME"),
        "stack_name": os.getenv("PULUMI_STACK_NAME"),
        "location": os.getenv("AZURE_LOCATION"),
        "state_dir": os.getenv("PULUMI_STATE_DIR"),
        "work_dir": os.getenv("PULUMI_WORK_DIR"),
        "pulumi_home": os.getenv("PULUMI_HOME"),
        "secrets_provider": os.getenv("PULUMI_SECRETS_PROVIDER"),
        "config_passphrase": os.getenv("PULUMI_CONFIG_PASSPHRASE"),
        "log_level": os.getenv("AKS_LOG_LEVEL"),
    }
    return EngineSettings(**{k: v for k, v in values.items() if v is not None})
