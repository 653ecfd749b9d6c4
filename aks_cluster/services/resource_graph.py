"""
Resource graph

Holds every descriptor of one deployment together with its dependency
edges. Data dependencies (an ``OutputRef`` anywhere inside a spec) and
declared dependencies (``provider`` / ``depends_on``) are kept in a single
edge set so the evaluation order can be checked before anything is
submitted to the engine.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple, Union
from pydantic import BaseModel, SecretStr
from ..specs import OutputRef, ResourceSpec


class GraphError(Exception):
    """Base class for resource graph errors."""


class DuplicateResourceError(GraphError):
    pass


class UnresolvedReferenceError(GraphError):
    pass


class ForwardReferenceError(GraphError):
    pass


class CycleError(GraphError):
    pass


def resource_key(kind: str, name: str) -> str:
    return f"{kind}::{name}"


@dataclass(frozen=True)
class Handle:
    key: str
    name: str
    kind: str

    def output(self, attribute: str, secret: bool = False) -> OutputRef:
        return OutputRef(resource=self.key, attribute=attribute, secret=secret)


@dataclass(frozen=True)
class Descriptor:
    name: str
    spec: ResourceSpec
    provider: Optional[str] = None
    depends_on: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def kind(self) -> str:
        return self.spec.kind

    @property
    def key(self) -> str:
        return resource_key(self.kind, self.name)


HandleLike = Union[Handle, str]


def _key_of(value: HandleLike) -> str:
    return value.key if isinstance(value, Handle) else value


def iter_refs(value: Any) -> Iterator[OutputRef]:
    """Yield every OutputRef nested inside a spec value."""
    if isinstance(value, OutputRef):
        yield value
    elif isinstance(value, BaseModel):
        for name in type(value).model_fields:
            yield from iter_refs(getattr(value, name))
    elif isinstance(value, dict):
        for v in value.values():
            yield from iter_refs(v)
    elif isinstance(value, (list, tuple)):
        for v in value:
            yield from iter_refs(v)


def describe_value(value: Any) -> Any:
    """JSON-safe rendering of a spec value; secrets are masked."""
    if isinstance(value, OutputRef):
        return {"ref": str(value), "secret": value.secret}
    if isinstance(value, SecretStr):
        return str(value)
    if isinstance(value, BaseModel):
        return {name: describe_value(getattr(value, name)) for name in type(value).model_fields}
    if isinstance(value, dict):
        return {k: describe_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [describe_value(v) for v in value]
    return value


class ResourceGraph:
    def __init__(self):
        self._descriptors: Dict[str, Descriptor] = {}
        self._exports: Dict[str, OutputRef] = {}

    def __len__(self) -> int:
        return len(self._descriptors)

    def __iter__(self) -> Iterator[Descriptor]:
        return iter(self._descriptors.values())

    def __contains__(self, key: str) -> bool:
        return key in self._descriptors

    @property
    def descriptors(self) -> List[Descriptor]:
        return list(self._descriptors.values())

    @property
    def exports(self) -> Dict[str, OutputRef]:
        return dict(self._exports)

    def get(self, key: HandleLike) -> Descriptor:
        key = _key_of(key)
        try:
            return self._descriptors[key]
        except KeyError:
            raise UnresolvedReferenceError(f"Unknown resource: {key}") from None

    def of_kind(self, kind: str) -> List[Descriptor]:
        return [d for d in self._descriptors.values() if d.kind == kind]

    # -------------------- Declaration --------------------

    def declare(
        self,
        name: str,
        spec: ResourceSpec,
        provider: Optional[HandleLike] = None,
        depends_on: Sequence[HandleLike] = (),
    ) -> Handle:
        descriptor = Descriptor(
            name=name,
            spec=spec,
            provider=_key_of(provider) if provider is not None else None,
            depends_on=tuple(_key_of(d) for d in depends_on),
        )
        if descriptor.key in self._descriptors:
            raise DuplicateResourceError(
                f"Resource '{name}' of kind {descriptor.kind} is already declared"
            )
        self._descriptors[descriptor.key] = descriptor
        return Handle(key=descriptor.key, name=name, kind=descriptor.kind)

    @staticmethod
    def output(handle: Handle, attribute: str, secret: bool = False) -> OutputRef:
        return handle.output(attribute, secret=secret)

    def export(self, name: str, ref: OutputRef) -> None:
        if name in self._exports:
            raise GraphError(f"Export '{name}' is already defined")
        self._exports[name] = ref

    # -------------------- Edges --------------------

    def dependencies(self, key: HandleLike) -> List[str]:
        """Keys this resource depends on, explicit edges first, without duplicates."""
        descriptor = self.get(key)
        deps: List[str] = []
        candidates: Iterable[str] = (
            ([descriptor.provider] if descriptor.provider else [])
            + list(descriptor.depends_on)
            + [ref.resource for ref in iter_refs(descriptor.spec)]
        )
        for dep in candidates:
            if dep not in deps:
                deps.append(dep)
        return deps

    def edges(self) -> List[Tuple[str, str]]:
        """(dependency, dependent) pairs in declaration order."""
        return [(dep, d.key) for d in self._descriptors.values() for dep in self.dependencies(d.key)]

    # -------------------- Validation --------------------

    def validate(self) -> None:
        order = {key: i for i, key in enumerate(self._descriptors)}
        for key, position in order.items():
            for dep in self.dependencies(key):
                if dep not in order:
                    raise UnresolvedReferenceError(f"{key} references undeclared resource {dep}")
                if dep == key:
                    raise CycleError(f"{key} depends on itself")
                if order[dep] > position:
                    raise ForwardReferenceError(
                        f"{key} references {dep}, which is declared after it"
                    )
        for name, ref in self._exports.items():
            if ref.resource not in order:
                raise UnresolvedReferenceError(f"Export '{name}' references undeclared resource {ref.resource}")
        self.topological_order()

    def topological_order(self) -> List[Descriptor]:
        position = {key: i for i, key in enumerate(self._descriptors)}
        remaining = {key: set(self.dependencies(key)) & set(position) for key in self._descriptors}
        ordered: List[Descriptor] = []
        while remaining:
            ready = sorted((k for k, deps in remaining.items() if not deps), key=position.__getitem__)
            if not ready:
                raise CycleError(f"Dependency cycle among: {', '.join(sorted(remaining))}")
            for key in ready:
                ordered.append(self._descriptors[key])
                del remaining[key]
            for deps in remaining.values():
                deps.difference_update(ready)
        return ordered

    # -------------------- Rendering --------------------

    def describe(self) -> Dict[str, Any]:
        return {
            "resources": [
                {
                    "key": d.key,
                    "name": d.name,
                    "kind": d.kind,
                    "provider": d.provider,
                    "dependsOn": list(d.depends_on),
                    "spec": describe_value(d.spec),
                }
                for d in self._descriptors.values()
            ],
            "edges": [{"from": a, "to": b} for a, b in self.edges()],
            "exports": {name: describe_value(ref) for name, ref in self._exports.items()},
        }
