"""
Resource spec records for the cluster topology.

Each spec is an immutable pydantic model whose class-level ``kind`` is the
Pulumi type token it renders to. Fields that depend on another resource hold
an ``OutputRef`` instead of a concrete value; the ref is only resolved by the
Pulumi engine at deployment time.
"""

from __future__ import annotations
from typing import ClassVar, Dict, Optional, Tuple, Union
from pydantic import BaseModel, ConfigDict, SecretStr


class OutputRef(BaseModel):
    """Deferred reference to an attribute of a declared resource."""

    model_config = ConfigDict(frozen=True)

    resource: str
    attribute: str
    secret: bool = False

    def __str__(self) -> str:
        return f"{self.resource}.{self.attribute}"


StrRef = Union[OutputRef, str]


class ResourceSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: ClassVar[str] = ""


# -------------------- Key material --------------------

class CredentialMaterial(ResourceSpec):
    kind: ClassVar[str] = "tls:index/privateKey:PrivateKey"

    algorithm: str = "RSA"
    rsa_bits: int = 4096


# -------------------- Azure --------------------

class NodePool(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    count: int
    vm_size: str
    os_disk_size_gb: int
    vnet_subnet_id: str
    os_type: str = "Linux"
    mode: str = "System"


class NetworkProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    network_plugin: str
    service_cidr: str
    dns_service_ip: str
    docker_bridge_cidr: str


class AadProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    client_app_id: str
    server_app_id: str
    server_app_secret: SecretStr


class MonitoringAddon(BaseModel):
    model_config = ConfigDict(frozen=True)

    enabled: bool
    log_analytics_workspace_id: str


class ClusterSpec(ResourceSpec):
    kind: ClassVar[str] = "azure-native:containerservice:ManagedCluster"

    resource_group_name: str
    dns_prefix: str
    node_pools: Tuple[NodePool, ...]
    admin_username: str
    ssh_public_key: OutputRef
    service_principal_client_id: str
    service_principal_secret: SecretStr
    kubernetes_version: str
    enable_rbac: bool = True
    enable_pod_security_policy: bool = False
    aad: AadProfile
    network: NetworkProfile
    monitoring: MonitoringAddon


class StaticIpSpec(ResourceSpec):
    kind: ClassVar[str] = "azure-native:network:PublicIPAddress"

    resource_group_name: StrRef
    allocation_method: str = "Static"


# -------------------- Kubernetes --------------------

class AccessContext(ResourceSpec):
    """Kubernetes provider bound to one kubeconfig."""

    kind: ClassVar[str] = "pulumi:providers:kubernetes"

    kubeconfig: OutputRef


class Subject(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: str
    name: str
    api_group: Optional[str] = None


class RoleRef(BaseModel):
    model_config = ConfigDict(frozen=True)

    api_group: str
    kind: str
    name: StrRef


class PolicyRule(BaseModel):
    model_config = ConfigDict(frozen=True)

    api_groups: Tuple[str, ...]
    resources: Tuple[str, ...]
    verbs: Tuple[str, ...]


class ClusterRoleBindingSpec(ResourceSpec):
    kind: ClassVar[str] = "kubernetes:rbac.authorization.k8s.io/v1:ClusterRoleBinding"

    subjects: Tuple[Subject, ...]
    role_ref: RoleRef


class NamespaceSpec(ResourceSpec):
    kind: ClassVar[str] = "kubernetes:core/v1:Namespace"


class ResourceQuotaSpec(ResourceSpec):
    kind: ClassVar[str] = "kubernetes:core/v1:ResourceQuota"

    namespace: StrRef
    hard: Dict[str, str]


class RoleSpec(ResourceSpec):
    kind: ClassVar[str] = "kubernetes:rbac.authorization.k8s.io/v1:Role"

    namespace: StrRef
    rules: Tuple[PolicyRule, ...]


class RoleBindingSpec(ResourceSpec):
    kind: ClassVar[str] = "kubernetes:rbac.authorization.k8s.io/v1:RoleBinding"

    namespace: StrRef
    subjects: Tuple[Subject, ...]
    role_ref: RoleRef


KUBERNETES_KINDS = frozenset({
    ClusterRoleBindingSpec.kind,
    NamespaceSpec.kind,
    ResourceQuotaSpec.kind,
    RoleSpec.kind,
    RoleBindingSpec.kind,
})
