"""Tests for the resource graph: declaration, unified edges, ordering and validation."""

from __future__ import annotations

import json

import pytest
from pydantic import SecretStr

from aks_cluster.services.resource_graph import (
    CycleError,
    DuplicateResourceError,
    ForwardReferenceError,
    GraphError,
    ResourceGraph,
    UnresolvedReferenceError,
    resource_key,
)
from aks_cluster.specs import (
    AadProfile,
    AccessContext,
    CredentialMaterial,
    NamespaceSpec,
    OutputRef,
    ResourceQuotaSpec,
    StaticIpSpec,
)


def test_declare_returns_handle_keyed_by_kind_and_name():
    graph = ResourceGraph()
    handle = graph.declare("apps", NamespaceSpec())

    assert handle.name == "apps"
    assert handle.kind == NamespaceSpec.kind
    assert handle.key == resource_key(NamespaceSpec.kind, "apps")
    assert handle.key in graph
    assert len(graph) == 1


def test_duplicate_declaration_is_rejected():
    graph = ResourceGraph()
    graph.declare("apps", NamespaceSpec())

    with pytest.raises(DuplicateResourceError):
        graph.declare("apps", NamespaceSpec())


def test_same_name_with_different_kinds_is_allowed():
    graph = ResourceGraph()
    ns = graph.declare("apps", NamespaceSpec())
    quota = graph.declare("apps", ResourceQuotaSpec(namespace=ns.output("metadata.name"), hard={"pods": "1"}))

    assert ns.key != quota.key
    assert len(graph) == 2


def test_output_returns_deferred_reference():
    graph = ResourceGraph()
    key = graph.declare("k", CredentialMaterial())

    ref = graph.output(key, "public_key_openssh")

    assert isinstance(ref, OutputRef)
    assert ref.resource == key.key
    assert ref.attribute == "public_key_openssh"
    assert ref.secret is False
    assert graph.output(key, "x", secret=True).secret is True


def test_dependencies_unify_provider_explicit_and_data_edges():
    graph = ResourceGraph()
    base = graph.declare("base", NamespaceSpec())
    ctx = graph.declare("ctx", AccessContext(kubeconfig=base.output("kubeconfig")))
    gate = graph.declare("gate", NamespaceSpec())
    quota = graph.declare(
        "quota",
        ResourceQuotaSpec(namespace=base.output("metadata.name"), hard={"pods": "10"}),
        provider=ctx,
        depends_on=[gate, ctx],
    )

    assert graph.dependencies(quota) == [ctx.key, gate.key, base.key]
    assert (ctx.key, quota.key) in graph.edges()
    assert (base.key, ctx.key) in graph.edges()


def test_refs_nested_in_models_are_found():
    graph = ResourceGraph()
    ns = graph.declare("ns", NamespaceSpec())
    ip = graph.declare("ip", StaticIpSpec(resource_group_name=ns.output("metadata.name")))

    assert graph.dependencies(ip) == [ns.key]


def test_validate_rejects_unknown_reference():
    graph = ResourceGraph()
    graph.declare("ip", StaticIpSpec(resource_group_name=OutputRef(resource="nope::x", attribute="id")))

    with pytest.raises(UnresolvedReferenceError):
        graph.validate()


def test_validate_rejects_forward_reference():
    graph = ResourceGraph()
    later_key = resource_key(NamespaceSpec.kind, "later")
    graph.declare("first", NamespaceSpec(), depends_on=[later_key])
    graph.declare("later", NamespaceSpec())

    with pytest.raises(ForwardReferenceError):
        graph.validate()


def test_validate_rejects_self_dependency():
    graph = ResourceGraph()
    own_key = resource_key(NamespaceSpec.kind, "loop")
    graph.declare("loop", NamespaceSpec(), depends_on=[own_key])

    with pytest.raises(CycleError):
        graph.validate()


def test_topological_order_detects_cycle():
    graph = ResourceGraph()
    a_key = resource_key(NamespaceSpec.kind, "a")
    b_key = resource_key(NamespaceSpec.kind, "b")
    graph.declare("a", NamespaceSpec(), depends_on=[b_key])
    graph.declare("b", NamespaceSpec(), depends_on=[a_key])

    with pytest.raises(CycleError):
        graph.topological_order()


def test_topological_order_keeps_declaration_order_for_independent_nodes():
    graph = ResourceGraph()
    a = graph.declare("a", NamespaceSpec())
    b = graph.declare("b", NamespaceSpec())
    c = graph.declare("c", NamespaceSpec(), depends_on=[a])

    assert [d.key for d in graph.topological_order()] == [a.key, b.key, c.key]


def test_exports_must_reference_declared_resources():
    graph = ResourceGraph()
    graph.export("ghost", OutputRef(resource="missing::x", attribute="id"))

    with pytest.raises(UnresolvedReferenceError):
        graph.validate()


def test_duplicate_export_names_are_rejected():
    graph = ResourceGraph()
    ns = graph.declare("ns", NamespaceSpec())
    graph.export("name", ns.output("metadata.name"))

    with pytest.raises(GraphError):
        graph.export("name", ns.output("metadata.name"))


def test_get_unknown_key_raises():
    with pytest.raises(UnresolvedReferenceError):
        ResourceGraph().get("nothing::here")


def test_describe_masks_secrets_and_renders_refs():
    graph = ResourceGraph()
    ns = graph.declare("ns", NamespaceSpec())
    graph.declare("ctx", AccessContext(kubeconfig=ns.output("kubeconfig", secret=True)))
    graph.export("ns", ns.output("metadata.name"))

    described = graph.describe()
    ctx = described["resources"][1]

    assert ctx["spec"]["kubeconfig"] == {"ref": f"{ns.key}.kubeconfig", "secret": True}
    assert described["edges"] == [{"from": ns.key, "to": ctx["key"]}]
    assert described["exports"]["ns"]["ref"] == f"{ns.key}.metadata.name"

    aad = AadProfile(client_app_id="c", server_app_id="s", server_app_secret=SecretStr("hunter2"))
    from aks_cluster.services.resource_graph import describe_value

    assert "hunter2" not in json.dumps(describe_value(aad))
