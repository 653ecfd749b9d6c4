"""
Service Registry for the cluster fabric

Maps resource kinds (the Pulumi type tokens carried by each spec) to the
ClusterFabric methods that render them.
"""

from typing import Dict, Callable

from ..specs import (
    AccessContext,
    ClusterRoleBindingSpec,
    ClusterSpec,
    CredentialMaterial,
    NamespaceSpec,
    ResourceQuotaSpec,
    RoleBindingSpec,
    RoleSpec,
    StaticIpSpec,
)


class ServiceRegistry:
    """Registry for resource creation methods"""

    def __init__(self, fabric_instance):
        """
        Initialize the registry with references to ClusterFabric instance methods.

        Args:
            fabric_instance: An instance of ClusterFabric class
        """
        self.fabric = fabric_instance

        self._service_registry: Dict[str, Callable] = {
            CredentialMaterial.kind: self.fabric._create_private_key,
            ClusterSpec.kind: self.fabric._create_managed_cluster,
            StaticIpSpec.kind: self.fabric._create_static_ip,
            AccessContext.kind: self.fabric._create_access_context,
            ClusterRoleBindingSpec.kind: self.fabric._create_cluster_role_binding,
            NamespaceSpec.kind: self.fabric._create_namespace,
            ResourceQuotaSpec.kind: self.fabric._create_resource_quota,
            RoleSpec.kind: self.fabric._create_role,
            RoleBindingSpec.kind: self.fabric._create_role_binding,
        }

    def get_creator(self, kind: str) -> Callable:
        """
        Get the creation method for a given resource kind.

        Raises:
            ValueError: If the kind is not supported
        """
        creator = self._service_registry.get(kind)
        if creator:
            return creator
        supported = ", ".join(self._service_registry.keys())
        raise ValueError(
            f"Unsupported kind: {kind}. "
            f"Supported kinds: {supported}"
        )

    def register(self, kind: str, creator: Callable) -> None:
        """
        Register or replace the creation method for a resource kind.

        Args:
            kind: Pulumi type token of the spec
            creator: Callable taking (descriptor, provider, depends_on) and
                returning {"resource": ..., "attributes": {...}}
        """
        self._service_registry[kind] = creator

    def get_supported_kinds(self) -> list:
        return list(self._service_registry.keys())

    def is_supported(self, kind: str) -> bool:
        return kind in self._service_registry
