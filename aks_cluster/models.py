from __future__ import annotations
from typing import Optional
from pydantic import BaseModel, Field, SecretStr, field_validator


class ClusterConfig(BaseModel):
    """Externally supplied values the topology is built from. All are opaque and required."""

    resource_group_name: str
    subnet_id: str
    service_principal_client_id: str
    service_principal_client_secret: SecretStr
    ad_client_app_id: str
    ad_server_app_id: str
    ad_server_app_secret: SecretStr
    ad_group_admins: str
    ad_group_devs: str
    log_analytics_workspace_id: str

    @field_validator("*")
    @classmethod
    def _not_empty(cls, value, info):
        raw = value.get_secret_value() if isinstance(value, SecretStr) else value
        if not str(raw).strip():
            raise ValueError(f"{info.field_name} must not be empty")
        return value


class EngineSettings(BaseModel):
    project_name: str = "aks-cluster-configuration"
    stack_name: str = "dev"
    location: Optional[str] = None
    state_dir: str = "pulumi-state"
    work_dir: str = "pulumi-work"
    pulumi_home: Optional[str] = None
    secrets_provider: str = "passphrase"
    config_passphrase: SecretStr = SecretStr("local-dev-only")
    log_level: str = "info"


class AzureCreds(BaseModel):
    clientId: str
    clientSecret: SecretStr
    subscriptionId: str
    tenantId: str


class PreviewRequest(BaseModel):
    config: Optional[ClusterConfig] = None
    creds: Optional[AzureCreds] = None
    stack: Optional[str] = Field(default=None, min_length=1)


class UpRequest(BaseModel):
    config: Optional[ClusterConfig] = None
    creds: Optional[AzureCreds] = None
    stack: Optional[str] = Field(default=None, min_length=1)


class ValidateRequest(BaseModel):
    config: Optional[ClusterConfig] = None


class DestroyRequest(BaseModel):
    creds: Optional[AzureCreds] = None
    stack: Optional[str] = Field(default=None, min_length=1)
