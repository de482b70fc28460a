"""
Nested Write Payload

📦 Sideposted Write Trees:
Parses a JSON:API shaped write payload into a tree of ``WriteNode`` objects.
Relationship references carrying a ``temp-id`` (or an ``id``) are resolved
against the ``included`` list through an arena keyed by ``(type, id)``, so
several references to the same entry share one node.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

from ..errors import PayloadError

METHODS = ("create", "update", "destroy", "disassociate")


class NodeState(Enum):
    """Lifecycle of a node during one persistence call"""
    PENDING = "pending"
    ATTRIBUTES_APPLIED = "attributes_applied"
    SAVED = "saved"
    FAILED = "failed"
    DESTROYED = "destroyed"
    DISASSOCIATED = "disassociated"


SUCCEEDED_STATES = (NodeState.SAVED, NodeState.DESTROYED, NodeState.DISASSOCIATED)


@dataclass(eq=False)
class WriteNode:
    """One resource write inside a payload"""
    type: str
    id: Optional[Any] = None
    temp_id: Optional[str] = None
    method: Optional[str] = None
    attributes: Dict[str, Any] = field(default_factory=dict)
    relationships: Dict[str, List["WriteNode"]] = field(default_factory=dict)
    pointer: str = "/data"

    # Runtime state
    state: NodeState = NodeState.PENDING
    model: Any = None
    errors: List[str] = field(default_factory=list)

    @property
    def action(self) -> str:
        if self.method:
            return self.method
        return "update" if self.id is not None else "create"

    @property
    def succeeded(self) -> bool:
        return self.state in SUCCEEDED_STATES

    @property
    def failed(self) -> bool:
        return self.state is NodeState.FAILED

    def __repr__(self) -> str:
        ident = f"temp-id={self.temp_id!r}" if self.temp_id else f"id={self.id!r}"
        return f"<WriteNode {self.type} {ident} {self.action} {self.state.value}>"


def _temp_id(entry: Mapping[str, Any]) -> Optional[str]:
    value = entry.get("temp-id", entry.get("temp_id"))
    return None if value is None else str(value)


def _arena_key(type_name: str, record_id: Any, temp_id: Optional[str]) -> Tuple[str, str]:
    if temp_id is not None:
        return type_name, f"temp:{temp_id}"
    return type_name, f"id:{record_id}"


class Payload:
    """
    A parsed nested write.

    Raises:
        PayloadError: malformed structure, unknown method, or a temp-id with
            no matching ``included`` entry
    """

    def __init__(self, raw: Mapping[str, Any]):
        if not isinstance(raw, Mapping) or not isinstance(raw.get("data"), Mapping):
            raise PayloadError("Payload must be a mapping with a 'data' object")

        self.raw = raw
        self._included: Dict[Tuple[str, str], Tuple[int, Mapping[str, Any]]] = {}
        self._nodes: Dict[Tuple[str, str], WriteNode] = {}
        self._index_included(raw.get("included") or [])
        self.root = self._build_root(raw["data"])

    def _index_included(self, included: Any) -> None:
        if not isinstance(included, list):
            raise PayloadError("'included' must be a list", "/included")
        for index, entry in enumerate(included):
            pointer = f"/included/{index}"
            if not isinstance(entry, Mapping) or not entry.get("type"):
                raise PayloadError("Included entries need a 'type'", pointer)
            temp_id = _temp_id(entry)
            if temp_id is None and entry.get("id") is None:
                raise PayloadError("Included entries need an 'id' or 'temp-id'", pointer)
            key = _arena_key(entry["type"], entry.get("id"), temp_id)
            if key in self._included:
                raise PayloadError(f"Duplicate included entry {key[0]} {key[1]}", pointer)
            self._included[key] = (index, entry)

    def _build_root(self, data: Mapping[str, Any]) -> WriteNode:
        if not data.get("type"):
            raise PayloadError("Root data needs a 'type'", "/data")
        node = self._make_node(data, "/data", data.get("method"))
        temp_id = _temp_id(data)
        if temp_id is not None:
            self._nodes[_arena_key(node.type, None, temp_id)] = node
        self._parse_relationships(node, data)
        return node

    def _make_node(self, entry: Mapping[str, Any], pointer: str, method: Optional[str]) -> WriteNode:
        if method is not None and method not in METHODS:
            raise PayloadError(f"Unknown method '{method}'; expected one of {list(METHODS)}", pointer)
        attributes = entry.get("attributes") or {}
        if not isinstance(attributes, Mapping):
            raise PayloadError("'attributes' must be an object", pointer)
        return WriteNode(
            type=entry["type"],
            id=entry.get("id"),
            temp_id=_temp_id(entry),
            method=method,
            attributes=dict(attributes),
            pointer=pointer,
        )

    def _parse_relationships(self, node: WriteNode, entry: Mapping[str, Any]) -> None:
        relationships = entry.get("relationships") or {}
        if not isinstance(relationships, Mapping):
            raise PayloadError("'relationships' must be an object", node.pointer)

        for name, relationship in relationships.items():
            pointer = f"{node.pointer}/relationships/{name}"
            if not isinstance(relationship, Mapping) or "data" not in relationship:
                raise PayloadError(f"Relationship '{name}' needs a 'data' member", pointer)
            refs = relationship["data"]
            singular = not isinstance(refs, list)
            if refs is None:
                refs = []
            elif singular:
                refs = [refs]

            node.relationships[name] = [
                self._resolve(ref, f"{pointer}/data" if singular else f"{pointer}/data/{index}")
                for index, ref in enumerate(refs)
            ]

    def _resolve(self, ref: Any, pointer: str) -> WriteNode:
        if not isinstance(ref, Mapping) or not ref.get("type"):
            raise PayloadError("Relationship references need a 'type'", pointer)
        temp_id = _temp_id(ref)
        if temp_id is None and ref.get("id") is None:
            raise PayloadError("Relationship references need an 'id' or 'temp-id'", pointer)

        key = _arena_key(ref["type"], ref.get("id"), temp_id)
        if key in self._nodes:
            return self._nodes[key]

        if key in self._included:
            index, entry = self._included[key]
            node = self._make_node(entry, f"/included/{index}", ref.get("method") or entry.get("method"))
        elif temp_id is not None:
            raise PayloadError(
                f"No included entry for {ref['type']} with temp-id '{temp_id}'", pointer
            )
        else:
            node = self._make_node(ref, pointer, ref.get("method"))

        self._nodes[key] = node
        if key in self._included:
            self._parse_relationships(node, self._included[key][1])
        return node

    def nodes(self) -> Iterator[WriteNode]:
        """Every node reachable from the root, each once"""
        seen = set()
        stack = [self.root]
        while stack:
            node = stack.pop()
            if id(node) in seen:
                continue
            seen.add(id(node))
            yield node
            children = [child for group in node.relationships.values() for child in group]
            stack.extend(reversed(children))


# Export main components
__all__ = ["Payload", "WriteNode", "NodeState", "METHODS"]
