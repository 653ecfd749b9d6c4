from __future__ import annotations
from typing import Any, Dict, List, Optional
import pulumi
import pulumi_kubernetes as k8s
import pulumi_tls as tls
from pulumi_azure_native import containerservice, network
from pydantic import SecretStr
from ..specs import (
    AccessContext,
    ClusterRoleBindingSpec,
    ClusterSpec,
    CredentialMaterial,
    OutputRef,
    ResourceQuotaSpec,
    RoleBindingSpec,
    RoleRef,
    RoleSpec,
    StaticIpSpec,
    Subject,
)
from .resource_graph import Descriptor, ResourceGraph
from .service_registry import ServiceRegistry
from .utils import decode_kubeconfig


class ClusterFabric:
    """Renders a validated ResourceGraph into Pulumi resources."""

    def __init__(self):
        # resource key -> {"resource": <pulumi resource>, "attributes": {name: Output}}
        self.node_index: Dict[str, Dict[str, Any]] = {}
        self._outputs: Dict[str, pulumi.Output[Any]] = {}
        self.registry = ServiceRegistry(self)

    def outputs(self) -> Dict[str, pulumi.Output[Any]]:
        return self._outputs

    def apply_graph(self, graph: ResourceGraph):
        graph.validate()

        for descriptor in graph.topological_order():
            creator = self.registry.get_creator(descriptor.kind)
            provider = self._resource(descriptor.provider) if descriptor.provider else None
            depends_on = [self._resource(key) for key in descriptor.depends_on]
            self.node_index[descriptor.key] = creator(descriptor, provider, depends_on)

        for name, ref in graph.exports.items():
            self._outputs[name] = self.resolve(ref)

    def resolve(self, value: Any) -> Any:
        """Turn an OutputRef or SecretStr into the value Pulumi should receive."""
        if isinstance(value, OutputRef):
            entry = self.node_index[value.resource]
            attributes = entry.get("attributes", {})
            if value.attribute in attributes:
                resolved = attributes[value.attribute]
            else:
                resolved = entry["resource"]
                for part in value.attribute.split("."):
                    resolved = getattr(resolved, part)
            return pulumi.Output.secret(resolved) if value.secret else resolved
        if isinstance(value, SecretStr):
            return pulumi.Output.secret(value.get_secret_value())
        return value

    def _resource(self, key: str):
        return self.node_index[key]["resource"]

    @staticmethod
    def _entry(resource, **attributes) -> Dict[str, Any]:
        return {"resource": resource, "attributes": attributes}

    @staticmethod
    def _opts(provider=None, depends_on: Optional[List[Any]] = None) -> pulumi.ResourceOptions:
        return pulumi.ResourceOptions(provider=provider, depends_on=depends_on or None)

    # -------------------- Key material --------------------

    def _create_private_key(self, descriptor: Descriptor, provider, depends_on):
        spec: CredentialMaterial = descriptor.spec
        key = tls.PrivateKey(
            descriptor.name,
            algorithm=spec.algorithm,
            rsa_bits=spec.rsa_bits,
            opts=self._opts(provider, depends_on),
        )
        return self._entry(key)

    # -------------------- Azure --------------------

    def _create_managed_cluster(self, descriptor: Descriptor, provider, depends_on):
        spec: ClusterSpec = descriptor.spec
        rg_name = self.resolve(spec.resource_group_name)

        if spec.enable_pod_security_policy:
            pulumi.log.warn(
                f"{descriptor.name}: enable_pod_security_policy is declared but the AKS API "
                f"no longer accepts it; not sent"
            )
        if spec.network.docker_bridge_cidr:
            pulumi.log.warn(
                f"{descriptor.name}: docker_bridge_cidr {spec.network.docker_bridge_cidr} is declared "
                f"but the AKS API no longer accepts it; not sent"
            )

        cluster = containerservice.ManagedCluster(
            descriptor.name,
            resource_group_name=rg_name,
            dns_prefix=spec.dns_prefix,
            kubernetes_version=spec.kubernetes_version,
            enable_rbac=spec.enable_rbac,
            agent_pool_profiles=[
                containerservice.ManagedClusterAgentPoolProfileArgs(
                    name=pool.name,
                    count=pool.count,
                    vm_size=pool.vm_size,
                    os_type=pool.os_type,
                    os_disk_size_gb=pool.os_disk_size_gb,
                    vnet_subnet_id=pool.vnet_subnet_id,
                    mode=pool.mode,
                )
                for pool in spec.node_pools
            ],
            linux_profile=containerservice.ContainerServiceLinuxProfileArgs(
                admin_username=spec.admin_username,
                ssh=containerservice.ContainerServiceSshConfigurationArgs(
                    public_keys=[
                        containerservice.ContainerServiceSshPublicKeyArgs(
                            key_data=self.resolve(spec.ssh_public_key),
                        )
                    ],
                ),
            ),
            service_principal_profile=containerservice.ManagedClusterServicePrincipalProfileArgs(
                client_id=spec.service_principal_client_id,
                secret=self.resolve(spec.service_principal_secret),
            ),
            aad_profile=containerservice.ManagedClusterAADProfileArgs(
                client_app_id=spec.aad.client_app_id,
                server_app_id=spec.aad.server_app_id,
                server_app_secret=self.resolve(spec.aad.server_app_secret),
            ),
            network_profile=containerservice.ContainerServiceNetworkProfileArgs(
                network_plugin=spec.network.network_plugin,
                service_cidr=spec.network.service_cidr,
                dns_service_ip=spec.network.dns_service_ip,
            ),
            addon_profiles={
                "omsagent": containerservice.ManagedClusterAddonProfileArgs(
                    enabled=spec.monitoring.enabled,
                    config={"logAnalyticsWorkspaceResourceID": spec.monitoring.log_analytics_workspace_id},
                ),
            },
            opts=self._opts(provider, depends_on),
        )

        # Credential listings only resolve once the cluster exists.
        user_creds = containerservice.list_managed_cluster_user_credentials_output(
            resource_group_name=rg_name, resource_name=cluster.name
        )
        admin_creds = containerservice.list_managed_cluster_admin_credentials_output(
            resource_group_name=rg_name, resource_name=cluster.name
        )

        return self._entry(
            cluster,
            kube_config_raw=pulumi.Output.secret(user_creds.kubeconfigs[0].value.apply(decode_kubeconfig)),
            kube_admin_config_raw=pulumi.Output.secret(admin_creds.kubeconfigs[0].value.apply(decode_kubeconfig)),
        )

    def _create_static_ip(self, descriptor: Descriptor, provider, depends_on):
        spec: StaticIpSpec = descriptor.spec
        ip = network.PublicIPAddress(
            descriptor.name,
            resource_group_name=self.resolve(spec.resource_group_name),
            public_ip_allocation_method=spec.allocation_method,
            opts=self._opts(provider, depends_on),
        )
        return self._entry(ip)

    # -------------------- Kubernetes --------------------

    def _create_access_context(self, descriptor: Descriptor, provider, depends_on):
        spec: AccessContext = descriptor.spec
        k8s_provider = k8s.Provider(
            descriptor.name,
            kubeconfig=self.resolve(spec.kubeconfig),
            opts=self._opts(None, depends_on),
        )
        return self._entry(k8s_provider)

    def _subject(self, subject: Subject) -> k8s.rbac.v1.SubjectArgs:
        return k8s.rbac.v1.SubjectArgs(kind=subject.kind, name=subject.name, api_group=subject.api_group)

    def _role_ref(self, ref: RoleRef) -> k8s.rbac.v1.RoleRefArgs:
        return k8s.rbac.v1.RoleRefArgs(api_group=ref.api_group, kind=ref.kind, name=self.resolve(ref.name))

    def _metadata(self, namespace) -> k8s.meta.v1.ObjectMetaArgs:
        return k8s.meta.v1.ObjectMetaArgs(namespace=self.resolve(namespace))

    def _create_cluster_role_binding(self, descriptor: Descriptor, provider, depends_on):
        spec: ClusterRoleBindingSpec = descriptor.spec
        binding = k8s.rbac.v1.ClusterRoleBinding(
            descriptor.name,
            subjects=[self._subject(s) for s in spec.subjects],
            role_ref=self._role_ref(spec.role_ref),
            opts=self._opts(provider, depends_on),
        )
        return self._entry(binding)

    def _create_namespace(self, descriptor: Descriptor, provider, depends_on):
        namespace = k8s.core.v1.Namespace(descriptor.name, opts=self._opts(provider, depends_on))
        return self._entry(namespace)

    def _create_resource_quota(self, descriptor: Descriptor, provider, depends_on):
        spec: ResourceQuotaSpec = descriptor.spec
        quota = k8s.core.v1.ResourceQuota(
            descriptor.name,
            metadata=self._metadata(spec.namespace),
            spec=k8s.core.v1.ResourceQuotaSpecArgs(hard=dict(spec.hard)),
            opts=self._opts(provider, depends_on),
        )
        return self._entry(quota)

    def _create_role(self, descriptor: Descriptor, provider, depends_on):
        spec: RoleSpec = descriptor.spec
        role = k8s.rbac.v1.Role(
            descriptor.name,
            metadata=self._metadata(spec.namespace),
            rules=[
                k8s.rbac.v1.PolicyRuleArgs(
                    api_groups=list(rule.api_groups),
                    resources=list(rule.resources),
                    verbs=list(rule.verbs),
                )
                for rule in spec.rules
            ],
            opts=self._opts(provider, depends_on),
        )
        return self._entry(role)

    def _create_role_binding(self, descriptor: Descriptor, provider, depends_on):
        spec: RoleBindingSpec = descriptor.spec
        binding = k8s.rbac.v1.RoleBinding(
            descriptor.name,
            metadata=self._metadata(spec.namespace),
            subjects=[self._subject(s) for s in spec.subjects],
            role_ref=self._role_ref(spec.role_ref),
            opts=self._opts(provider, depends_on),
        )
        return self._entry(binding)
