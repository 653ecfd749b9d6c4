"""Tests for graph rendering order, option wiring and ref resolution, with creators stubbed out."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from aks_cluster.services.cluster_fabric import ClusterFabric
from aks_cluster.services.resource_graph import ForwardReferenceError, ResourceGraph, resource_key
from aks_cluster.specs import AccessContext, CredentialMaterial, NamespaceSpec, ResourceQuotaSpec


class Recorder:
    def __init__(self):
        self.calls = []

    def __call__(self, descriptor, provider, depends_on):
        self.calls.append((descriptor.key, provider, depends_on))
        resource = SimpleNamespace(
            name=descriptor.name,
            kubeconfig=f"{descriptor.name}-kubeconfig",
            metadata=SimpleNamespace(name=f"{descriptor.name}-generated"),
        )
        return {"resource": resource, "attributes": {"token": f"{descriptor.name}-token"}}


@pytest.fixture
def fabric():
    fabric = ClusterFabric()
    recorder = Recorder()
    for kind in fabric.registry.get_supported_kinds():
        fabric.registry.register(kind, recorder)
    fabric.recorder = recorder
    return fabric


def _small_graph():
    graph = ResourceGraph()
    source = graph.declare("source", CredentialMaterial())
    ctx = graph.declare("ctx", AccessContext(kubeconfig=source.output("kubeconfig")))
    admins = graph.declare("admins", NamespaceSpec(), provider=ctx)
    apps = graph.declare("apps", NamespaceSpec(), provider=ctx, depends_on=[admins])
    graph.declare(
        "apps",
        ResourceQuotaSpec(namespace=apps.output("metadata.name"), hard={"pods": "10"}),
        provider=ctx,
    )
    graph.export("appNamespaceName", apps.output("metadata.name"))
    graph.export("token", source.output("token"))
    return graph


def test_registry_covers_every_spec_kind():
    registry = ClusterFabric().registry

    assert len(registry.get_supported_kinds()) == 9
    assert registry.is_supported(NamespaceSpec.kind)
    with pytest.raises(ValueError):
        registry.get_creator("azure-native:unknown:Thing")


def test_resources_are_created_in_dependency_order(fabric):
    fabric.apply_graph(_small_graph())

    keys = [key for key, _, _ in fabric.recorder.calls]
    assert keys == [
        resource_key(CredentialMaterial.kind, "source"),
        resource_key(AccessContext.kind, "ctx"),
        resource_key(NamespaceSpec.kind, "admins"),
        resource_key(NamespaceSpec.kind, "apps"),
        resource_key(ResourceQuotaSpec.kind, "apps"),
    ]


def test_provider_and_explicit_dependencies_are_passed_through(fabric):
    fabric.apply_graph(_small_graph())

    calls = {key: (provider, deps) for key, provider, deps in fabric.recorder.calls}
    ctx_resource = fabric.node_index[resource_key(AccessContext.kind, "ctx")]["resource"]
    admins_resource = fabric.node_index[resource_key(NamespaceSpec.kind, "admins")]["resource"]

    provider, deps = calls[resource_key(NamespaceSpec.kind, "apps")]
    assert provider is ctx_resource
    assert deps == [admins_resource]

    provider, deps = calls[resource_key(CredentialMaterial.kind, "source")]
    assert provider is None
    assert deps == []


def test_exports_resolve_attribute_paths_and_registered_attributes(fabric):
    fabric.apply_graph(_small_graph())

    assert fabric.outputs() == {"appNamespaceName": "apps-generated", "token": "source-token"}


def test_resolve_passes_plain_values_through(fabric):
    assert fabric.resolve("literal") == "literal"
    assert fabric.resolve(3) == 3


def test_invalid_graph_is_not_rendered(fabric):
    graph = ResourceGraph()
    graph.declare("first", NamespaceSpec(), depends_on=[resource_key(NamespaceSpec.kind, "later")])
    graph.declare("later", NamespaceSpec())

    with pytest.raises(ForwardReferenceError):
        fabric.apply_graph(graph)
    assert fabric.recorder.calls == []


def test_register_replaces_creator_for_kind():
    registry = ClusterFabric().registry
    recorder = Recorder()

    registry.register(NamespaceSpec.kind, recorder)

    assert registry.get_creator(NamespaceSpec.kind) is recorder
    assert len(registry.get_supported_kinds()) == 9
