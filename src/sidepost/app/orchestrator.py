"""
Persistence Orchestrator

⚙️ Nested Write Pipeline:
Walks a parsed payload from its root, persisting each node through its
resource's hooks and adapter:

1. belongs_to (and polymorphic) targets are persisted first and their ids
   folded into the owner's foreign keys
2. the owner's attributes are typecast and assigned inside the attribute hooks
3. the owner is saved inside the save hooks, unless a target failed
4. has_one / has_many / many_to_many children are persisted with the owner's
   id, and join rows are written for many_to_many

Validation failures never raise. They mark the node failed, block its
unsaved ancestors and its own later children, and surface in the
``PersistenceResult``. Nodes already committed stay committed.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set, Tuple

from ..core.relationships import ManyToMany, Relationship
from ..errors import PayloadError
from ..utils import humanize
from .payload import NodeState, Payload, WriteNode

logger = logging.getLogger(__name__)

DETACHING = ("destroy", "disassociate")


@dataclass
class PersistenceResult:
    """Outcome of one persistence call"""
    success: bool
    errors: Dict[str, List[str]] = field(default_factory=dict)

    def __bool__(self) -> bool:
        return self.success


def full_messages(model: Any, errors: Mapping[str, List[str]]) -> List[str]:
    model_errors = getattr(model, "errors", None)
    messages = getattr(model_errors, "full_messages", None)
    if messages is not None:
        return list(messages)
    return [
        message if name == "base" else f"{humanize(name)} {message}"
        for name, values in errors.items()
        for message in values
    ]


class Orchestrator:
    """Persists one payload, starting from a root resource instance"""

    def __init__(self, resource: Any, payload: Payload):
        self.resource = resource
        self.payload = payload
        self._visiting: Set[int] = set()

    def run(self, action: str, model: Any = None) -> PersistenceResult:
        """
        Persist the whole payload.

        Args:
            action: "create", "update" or "destroy" for the root node
            model: Pre-built or pre-loaded root model

        Returns:
            PersistenceResult; ``success`` is False if any node failed
        """
        root = self.payload.root
        root.method = action
        self.persist(root, self.resource, model=model)
        return self.result()

    def result(self) -> PersistenceResult:
        errors: Dict[str, List[str]] = {}
        success = True
        for node in self.payload.nodes():
            if node.failed:
                success = False
                if node.errors:
                    errors[node.pointer] = list(node.errors)
        return PersistenceResult(success=success, errors=errors)

    # Node processing

    def persist(self, node: WriteNode, resource: Any,
                linkage: Optional[Mapping[str, Any]] = None, model: Any = None) -> bool:
        """
        Persist ``node`` (once) and everything hanging off it.

        Returns:
            Whether the node itself succeeded
        """
        if node.state is not NodeState.PENDING:
            return node.succeeded

        key = id(node)
        if key in self._visiting:
            raise PayloadError("Circular belongs_to chain in nested write", node.pointer)
        self._visiting.add(key)
        try:
            return self._persist(node, resource, dict(linkage or {}), model)
        finally:
            self._visiting.discard(key)

    def _persist(self, node: WriteNode, resource: Any, linkage: Dict[str, Any], model: Any) -> bool:
        resource_cls = type(resource)
        action = node.action
        logger.debug(f"{resource_cls.__name__}: {action} {node.pointer}")

        if action == "destroy":
            return self._destroy(node, resource, model)
        if action == "disassociate":
            return self._disassociate(node, resource, linkage, model)

        children = self._children(node, resource_cls)
        if model is None:
            model = resource.load_model(node.id) if action == "update" else resource.build_model()
        node.model = model
        adapter = resource.get_adapter()

        targets_ok = True
        for relationship, child in children:
            if not relationship.persist_before_parent:
                continue
            child_ok = self.persist(child, self._resource_for(relationship, child))
            self._attach(adapter, model, relationship, child)
            if child_ok:
                linkage.update(relationship.owner_linkage(child.model, child.action))
            else:
                targets_ok = False

        model = self._replaced(
            model, self.apply_attributes(resource, model, {**node.attributes, **linkage}, action, linkage)
        )
        node.model = model
        node.state = NodeState.ATTRIBUTES_APPLIED

        if not targets_ok:
            node.state = NodeState.FAILED
            logger.warning(f"{resource_cls.__name__}: {node.pointer} not saved, a related record failed")
            return False

        model = self._replaced(model, resource_cls.hooks().run("save", action, resource, model, adapter.save))
        node.model = model
        errors = adapter.validation_errors(model)
        if errors:
            node.errors = full_messages(model, errors)
            node.state = NodeState.FAILED
            logger.warning(f"{resource_cls.__name__}: {node.pointer} failed validation: {node.errors}")
            return False
        node.state = NodeState.SAVED

        for relationship, child in children:
            if relationship.persist_before_parent:
                continue
            child_resource = self._resource_for(relationship, child)
            if isinstance(relationship, ManyToMany):
                self._persist_through(adapter, model, relationship, child, child_resource)
            else:
                self.persist(child, child_resource, linkage=relationship.child_linkage(model, child.action))
            self._attach(adapter, model, relationship, child)

        return True

    def apply_attributes(self, resource: Any, model: Any, attributes: Dict[str, Any],
                         action: str, linkage_keys: Iterable[str] = ()) -> Any:
        """
        Typecast and assign ``attributes`` inside the attribute hooks.

        Before and around hooks see the raw dict (linkage keys included) and
        may rewrite it; after hooks see the model.
        """
        resource_cls = type(resource)
        adapter = resource.get_adapter()
        linkage_keys = list(linkage_keys)

        def assign(raw: Dict[str, Any]) -> Any:
            values = resource_cls.typecast_attributes(raw, action, linkage_keys)
            return adapter.assign_attributes(model, values)

        return resource_cls.hooks().run("attributes", action, resource, attributes, assign)

    def _destroy(self, node: WriteNode, resource: Any, model: Any) -> bool:
        model = model if model is not None else resource.load_model(node.id)
        node.model = model
        adapter = resource.get_adapter()
        model = self._replaced(
            model, type(resource).hooks().run("destroy", "destroy", resource, model, adapter.destroy)
        )
        node.model = model
        errors = adapter.validation_errors(model)
        if errors:
            node.errors = full_messages(model, errors)
            node.state = NodeState.FAILED
            logger.warning(f"{type(resource).__name__}: {node.pointer} could not be destroyed: {node.errors}")
            return False
        node.state = NodeState.DESTROYED
        return True

    def _disassociate(self, node: WriteNode, resource: Any, linkage: Dict[str, Any], model: Any) -> bool:
        model = model if model is not None else resource.load_model(node.id)
        node.model = model
        if linkage:
            adapter = resource.get_adapter()
            values = type(resource).typecast_attributes(linkage, "update", linkage)
            adapter.save(adapter.assign_attributes(model, values))
            errors = adapter.validation_errors(model)
            if errors:
                node.errors = full_messages(model, errors)
                node.state = NodeState.FAILED
                return False
        node.state = NodeState.DISASSOCIATED
        return True

    def _persist_through(self, adapter: Any, model: Any, relationship: ManyToMany,
                         child: WriteNode, child_resource: Any) -> bool:
        if not self.persist(child, child_resource):
            return False
        join = relationship.join_attributes(model, child.model)
        if child.action in DETACHING:
            adapter.destroy_through(relationship.join_table, join)
        else:
            adapter.create_through(relationship.join_table, join)
        return True

    # Helpers

    @staticmethod
    def _replaced(model: Any, result: Any) -> Any:
        """The model a hook chain handed back, or the original when it returned None"""
        return model if result is None else result

    def _children(self, node: WriteNode, resource_cls: type) -> List[Tuple[Relationship, WriteNode]]:
        graph = resource_cls.relationships()
        pairs = []
        for name, children in node.relationships.items():
            relationship = graph.get(name)
            if relationship is None:
                raise PayloadError(
                    f"{resource_cls.__name__} has no relationship '{name}'",
                    f"{node.pointer}/relationships/{name}",
                )
            if not relationship.writable:
                raise PayloadError(
                    f"{resource_cls.__name__}: relationship '{name}' is not writable",
                    f"{node.pointer}/relationships/{name}",
                )
            if relationship.singular and len(children) > 1:
                raise PayloadError(
                    f"{resource_cls.__name__}: relationship '{name}' accepts a single record",
                    f"{node.pointer}/relationships/{name}",
                )
            pairs.extend((relationship, child) for child in children)
        return pairs

    def _resource_for(self, relationship: Relationship, child: WriteNode) -> Any:
        resource_cls = relationship.resource_for(child.type, child.pointer)
        return resource_cls(self.resource.context)

    @staticmethod
    def _attach(adapter: Any, parent: Any, relationship: Relationship, child: WriteNode) -> None:
        if child.model is None:
            return
        if child.action in DETACHING:
            adapter.disassociate(parent, child.model, relationship.name, relationship.kind)
        else:
            adapter.associate(parent, child.model, relationship.name, relationship.kind)


# Export main components
__all__ = ["Orchestrator", "PersistenceResult", "full_messages"]
