from __future__ import annotations
from typing import Dict
from ..models import ClusterConfig
from ..specs import (
    AadProfile,
    AccessContext,
    ClusterRoleBindingSpec,
    ClusterSpec,
    CredentialMaterial,
    MonitoringAddon,
    NamespaceSpec,
    NetworkProfile,
    NodePool,
    PolicyRule,
    ResourceQuotaSpec,
    RoleBindingSpec,
    RoleRef,
    RoleSpec,
    StaticIpSpec,
    Subject,
)
from .naming import safe_name
from .resource_graph import ResourceGraph

DEFAULT_NAME = "aks-cluster-configuration"

RBAC_API_GROUP = "rbac.authorization.k8s.io"
KUBERNETES_VERSION = "1.14.8"
ADMIN_USERNAME = "aksuser"

NETWORK = NetworkProfile(
    network_plugin="azure",
    dns_service_ip="10.2.2.254",
    service_cidr="10.2.2.0/24",
    docker_bridge_cidr="172.17.0.1/16",
)

# (name, count, vm size, os disk GB)
NODE_POOLS = (
    ("performant", 3, "Standard_DS4_v2", 30),
    ("standard", 2, "Standard_B2s", 30),
)

NAMESPACES = ("cluster-svcs", "app-svcs", "apps")

# namespace name -> export name
NAMESPACE_EXPORTS = {
    "cluster-svcs": "clusterSvcsNamespaceName",
    "app-svcs": "appSvcsNamespaceName",
    "apps": "appNamespaceName",
}

APPS_QUOTA: Dict[str, str] = {
    "cpu": "20",
    "memory": "1Gi",
    "pods": "10",
    "replicationcontrollers": "20",
    "resourcequotas": "1",
    "services": "5",
}

DEVS_RULE = PolicyRule(
    api_groups=("", "apps"),
    resources=("pods", "services", "deployments", "replicasets", "persistentvolumeclaims"),
    verbs=("get", "list", "watch", "create", "update", "delete"),
)


def build_cluster_graph(config: ClusterConfig, name: str = DEFAULT_NAME) -> ResourceGraph:
    """Declare the whole cluster topology. Every call with the same input yields an equal graph."""
    name = safe_name(name)
    graph = ResourceGraph()

    ssh_key = graph.declare(f"{name}-sshKey", CredentialMaterial(algorithm="RSA", rsa_bits=4096))

    cluster = graph.declare(name, ClusterSpec(
        resource_group_name=config.resource_group_name,
        dns_prefix=name,
        node_pools=tuple(
            NodePool(
                name=pool_name,
                count=count,
                vm_size=vm_size,
                os_disk_size_gb=disk_gb,
                vnet_subnet_id=config.subnet_id,
            )
            for pool_name, count, vm_size, disk_gb in NODE_POOLS
        ),
        admin_username=ADMIN_USERNAME,
        ssh_public_key=graph.output(ssh_key, "public_key_openssh"),
        service_principal_client_id=config.service_principal_client_id,
        service_principal_secret=config.service_principal_client_secret,
        kubernetes_version=KUBERNETES_VERSION,
        enable_rbac=True,
        enable_pod_security_policy=True,
        aad=AadProfile(
            client_app_id=config.ad_client_app_id,
            server_app_id=config.ad_server_app_id,
            server_app_secret=config.ad_server_app_secret,
        ),
        network=NETWORK,
        monitoring=MonitoringAddon(
            enabled=True,
            log_analytics_workspace_id=config.log_analytics_workspace_id,
        ),
    ))

    # The IP lives in the node resource group AKS generates, not in the input group.
    static_ip = graph.declare(f"{name}-staticAppIp", StaticIpSpec(
        resource_group_name=graph.output(cluster, "node_resource_group"),
        allocation_method="Static",
    ))

    graph.export("kubeconfig", graph.output(cluster, "kube_config_raw", secret=True))
    graph.export("kubeconfigAdmin", graph.output(cluster, "kube_admin_config_raw", secret=True))
    graph.export("clusterId", graph.output(cluster, "id"))
    graph.export("clusterName", graph.output(cluster, "name"))
    graph.export("staticAppIp", graph.output(static_ip, "ip_address"))

    # Admin credentials are required to create role bindings.
    provider = graph.declare(f"{name}-aks", AccessContext(
        kubeconfig=graph.output(cluster, "kube_admin_config_raw", secret=True),
    ))

    admin_role = graph.declare("pulumi-admins", ClusterRoleBindingSpec(
        subjects=(Subject(api_group=RBAC_API_GROUP, kind="Group", name=config.ad_group_admins),),
        role_ref=RoleRef(api_group=RBAC_API_GROUP, kind="ClusterRole", name="cluster-admin"),
    ), provider=provider)

    namespaces = {}
    for ns in NAMESPACES:
        namespaces[ns] = graph.declare(ns, NamespaceSpec(), provider=provider, depends_on=[admin_role])
        graph.export(NAMESPACE_EXPORTS[ns], graph.output(namespaces[ns], "metadata.name"))

    app_namespace = graph.output(namespaces["apps"], "metadata.name")

    graph.declare("apps", ResourceQuotaSpec(namespace=app_namespace, hard=dict(APPS_QUOTA)), provider=provider)

    devs_role = graph.declare("pulumi-devs", RoleSpec(namespace=app_namespace, rules=(DEVS_RULE,)), provider=provider)

    graph.declare("pulumi-devs", RoleBindingSpec(
        namespace=app_namespace,
        subjects=(Subject(kind="Group", name=config.ad_group_devs),),
        role_ref=RoleRef(
            api_group=RBAC_API_GROUP,
            kind="Role",
            name=graph.output(devs_role, "metadata.name"),
        ),
    ), provider=provider)

    return graph
