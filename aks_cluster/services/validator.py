"""
Validation service for cluster topologies
Checks the declared graph for issues that would only surface as engine or
provider failures much later in a deployment
"""

from typing import Dict, Any, List, Tuple
import ipaddress

from ..specs import AccessContext, ClusterSpec, KUBERNETES_KINDS
from .resource_graph import GraphError, ResourceGraph


class TopologyError(ValueError):
    """Raised when a topology fails validation before submission."""

    def __init__(self, errors: List[str]):
        self.errors = errors
        super().__init__("; ".join(errors))


class TopologyValidator:
    """Validates a resource graph and returns warnings/errors"""

    # Oldest Kubernetes minor release AKS still creates clusters for
    MIN_SUPPORTED_VERSION: Tuple[int, int] = (1, 27)

    ADMIN_KUBECONFIG_ATTRIBUTE = "kube_admin_config_raw"

    @staticmethod
    def validate(graph: ResourceGraph) -> Dict[str, Any]:
        """
        Validate a graph and return warnings/errors

        Returns:
            {
                "valid": bool,
                "errors": List[str],
                "warnings": List[str],
                "suggestions": List[str]
            }
        """
        errors: List[str] = []
        warnings: List[str] = []
        suggestions: List[str] = []

        try:
            graph.validate()
        except GraphError as e:
            errors.append(f"Invalid resource graph: {e}")

        for descriptor in graph.of_kind(ClusterSpec.kind):
            spec: ClusterSpec = descriptor.spec
            errors.extend(TopologyValidator._check_network(descriptor.name, spec))

            version = TopologyValidator._parse_version(spec.kubernetes_version)
            if version is None:
                errors.append(
                    f"Cluster '{descriptor.name}' has an invalid Kubernetes version '{spec.kubernetes_version}'."
                )
            elif version < TopologyValidator.MIN_SUPPORTED_VERSION:
                warnings.append(
                    f"Cluster '{descriptor.name}' requests Kubernetes {spec.kubernetes_version}, "
                    f"which AKS no longer offers. The provider will reject new clusters on this version."
                )
                suggestions.append("Pick a version listed by `az aks get-versions` for the target region.")

            if spec.enable_pod_security_policy:
                warnings.append(
                    f"Cluster '{descriptor.name}' enables PodSecurityPolicy, which was removed from "
                    f"Kubernetes 1.25 and from the AKS API. The flag is kept in the declaration but not sent."
                )
            if spec.network.docker_bridge_cidr:
                warnings.append(
                    f"Cluster '{descriptor.name}' sets docker_bridge_cidr, which the current AKS API ignores. "
                    f"The value is kept in the declaration but not sent."
                )

            pool_names = [p.name for p in spec.node_pools]
            duplicates = sorted({n for n in pool_names if pool_names.count(n) > 1})
            if duplicates:
                errors.append(f"Cluster '{descriptor.name}' has duplicate node pools: {', '.join(duplicates)}.")
            for pool in spec.node_pools:
                if pool.count < 1:
                    errors.append(f"Node pool '{pool.name}' must have at least one node (got {pool.count}).")

        errors.extend(TopologyValidator._check_access_context(graph))

        return {
            "valid": len(errors) == 0,
            "errors": errors,
            "warnings": warnings,
            "suggestions": suggestions,
        }

    @staticmethod
    def ensure_valid(graph: ResourceGraph) -> Dict[str, Any]:
        """Validate and raise TopologyError if any error was found."""
        result = TopologyValidator.validate(graph)
        if not result["valid"]:
            raise TopologyError(result["errors"])
        return result

    @staticmethod
    def _parse_version(raw: str):
        parts = raw.split(".")
        if len(parts) < 2 or not all(p.isdigit() for p in parts):
            return None
        return int(parts[0]), int(parts[1])

    @staticmethod
    def _check_network(name: str, spec: ClusterSpec) -> List[str]:
        errors: List[str] = []
        net = spec.network
        try:
            service = ipaddress.ip_network(net.service_cidr, strict=False)
            bridge = ipaddress.ip_network(net.docker_bridge_cidr, strict=False)
            dns_ip = ipaddress.ip_address(net.dns_service_ip)
        except ValueError as e:
            return [f"Cluster '{name}' has a malformed network profile: {e}"]

        if service.overlaps(bridge):
            errors.append(
                f"Cluster '{name}' service CIDR {net.service_cidr} overlaps "
                f"docker bridge CIDR {net.docker_bridge_cidr}."
            )
        if dns_ip not in service:
            errors.append(
                f"Cluster '{name}' DNS service IP {net.dns_service_ip} is outside "
                f"service CIDR {net.service_cidr}."
            )
        elif dns_ip in (service.network_address, service.broadcast_address):
            errors.append(
                f"Cluster '{name}' DNS service IP {net.dns_service_ip} cannot be the network "
                f"or broadcast address of {net.service_cidr}."
            )
        return errors

    @staticmethod
    def _check_access_context(graph: ResourceGraph) -> List[str]:
        """Kubernetes resources must go through a provider built from the admin kubeconfig."""
        errors: List[str] = []
        for descriptor in graph:
            if descriptor.kind not in KUBERNETES_KINDS:
                continue
            if not descriptor.provider:
                errors.append(f"{descriptor.key} has no access context.")
                continue
            if descriptor.provider not in graph:
                # reported by the graph check already
                continue
            provider = graph.get(descriptor.provider)
            if not isinstance(provider.spec, AccessContext):
                errors.append(f"{descriptor.key} uses {provider.key}, which is not an access context.")
            elif provider.spec.kubeconfig.attribute != TopologyValidator.ADMIN_KUBECONFIG_ATTRIBUTE:
                errors.append(
                    f"{descriptor.key} uses access context {provider.key}, which is not built "
                    f"from the admin kubeconfig."
                )
        return errors
