"""
Resource Definition

📋 Declarative Persistence Configuration:
A resource subclass names the model it persists and declares attributes,
lifecycle hooks and relationships at class level::

    class EmployeeResource(Resource):
        model = Employee

    EmployeeResource.attribute("first_name", "string")
    EmployeeResource.has_many("positions", resource=PositionResource)
    EmployeeResource.before_save("stamp")

Each subclass gets its own copies of the attribute table, hook registry and
relationship graph, so declaring on a subclass never changes its parent.
"""

import logging
from typing import Any, Callable, ClassVar, Dict, Iterable, Mapping, Optional

from ..errors import RecordNotFound, ResourceAttributeError
from ..persistence import PersistenceAdapter, get_adapter
from ..utils import resource_type_for
from .attributes import Attribute, AttributeTable
from .hooks import HookRegistry, Implementation
from .relationships import (
    BelongsTo, HasMany, HasOne, ManyToMany, PolymorphicBelongsTo,
    Relationship, RelationshipGraph, ResourceRef,
)
from .types import TypeRegistry, Types

logger = logging.getLogger(__name__)


def _hook_registrar(kind: str, stage: str):
    def register(cls, implementation: Optional[Implementation] = None,
                 only: Optional[Iterable[str]] = None):
        if implementation is None:
            def decorator(func: Callable[..., Any]):
                cls._hooks.register(kind, stage, func, only)
                return func
            return decorator
        return cls._hooks.register(kind, stage, implementation, only)

    register.__name__ = f"{kind}_{stage}"
    register.__doc__ = (
        f"Register a {kind}_{stage} hook by method name or function; "
        f"returns a decorator when called without one."
    )
    return classmethod(register)


class Resource:
    """Base class for resource definitions"""

    model: ClassVar[Optional[type]] = None
    type: ClassVar[Optional[str]] = None
    adapter: ClassVar[Optional[PersistenceAdapter]] = None
    type_registry: ClassVar[TypeRegistry] = Types

    _attributes: ClassVar[AttributeTable] = AttributeTable()
    _hooks: ClassVar[HookRegistry] = HookRegistry()
    _relationships: ClassVar[RelationshipGraph] = RelationshipGraph()

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        if cls.type is None:
            cls.type = resource_type_for(cls.__name__)
        cls._attributes = cls._attributes.copy()
        cls._hooks = cls._hooks.copy()
        cls._relationships = cls._relationships.copy_for(cls)

    def __init__(self, context: Optional[Mapping[str, Any]] = None):
        self.context: Dict[str, Any] = dict(context or {})

    def __repr__(self) -> str:
        return f"<{type(self).__name__} type={self.type!r}>"

    # Declarations

    @classmethod
    def attribute(cls, name: str, type: str, **options: Any) -> Attribute:
        """
        Declare an attribute.

        Args:
            name: Attribute name
            type: Registered type name, e.g. "string" or "array_of_integers"
            **options: ``readable``, ``writable``, ``only``, ``except_``,
                ``description``

        Raises:
            UnknownTypeError: if ``type`` is not registered
        """
        cls.type_registry.get(type)
        return cls._attributes.add(name, type, **options)

    @classmethod
    def attributes(cls) -> AttributeTable:
        return cls._attributes

    @classmethod
    def hooks(cls) -> HookRegistry:
        return cls._hooks

    @classmethod
    def relationships(cls) -> RelationshipGraph:
        return cls._relationships

    before_attributes = _hook_registrar("before", "attributes")
    after_attributes = _hook_registrar("after", "attributes")
    around_attributes = _hook_registrar("around", "attributes")
    before_save = _hook_registrar("before", "save")
    after_save = _hook_registrar("after", "save")
    around_save = _hook_registrar("around", "save")
    before_destroy = _hook_registrar("before", "destroy")
    after_destroy = _hook_registrar("after", "destroy")
    around_destroy = _hook_registrar("around", "destroy")

    @classmethod
    def _declare(cls, relationship: Relationship) -> Relationship:
        return cls._relationships.add(relationship.bind(cls))

    @classmethod
    def belongs_to(cls, name: str, resource: ResourceRef, foreign_key: Optional[str] = None,
                   writable: bool = True, description: Optional[str] = None) -> Relationship:
        return cls._declare(BelongsTo(name, resource, foreign_key, writable, description))

    @classmethod
    def has_one(cls, name: str, resource: ResourceRef, foreign_key: Optional[str] = None,
                writable: bool = True, description: Optional[str] = None) -> Relationship:
        return cls._declare(HasOne(name, resource, foreign_key, writable, description))

    @classmethod
    def has_many(cls, name: str, resource: ResourceRef, foreign_key: Optional[str] = None,
                 writable: bool = True, description: Optional[str] = None) -> Relationship:
        return cls._declare(HasMany(name, resource, foreign_key, writable, description))

    @classmethod
    def many_to_many(cls, name: str, resource: ResourceRef, foreign_key: Mapping[str, str],
                     owner_key: Optional[str] = None, writable: bool = True,
                     description: Optional[str] = None) -> Relationship:
        return cls._declare(ManyToMany(name, resource, foreign_key, owner_key, writable, description))

    @classmethod
    def polymorphic_belongs_to(cls, name: str, group_by: Optional[str] = None,
                               groups: Optional[Mapping[str, ResourceRef]] = None,
                               foreign_key: Optional[str] = None, writable: bool = True,
                               description: Optional[str] = None) -> Relationship:
        return cls._declare(PolymorphicBelongsTo(name, group_by, groups, foreign_key, writable, description))

    # Entry points

    @classmethod
    def build(cls, payload: Mapping[str, Any], context: Optional[Mapping[str, Any]] = None):
        """Start a create of the payload's root node"""
        from ..app.proxy import Proxy
        return Proxy.for_create(cls(context), payload)

    @classmethod
    def find(cls, payload: Mapping[str, Any], context: Optional[Mapping[str, Any]] = None):
        """
        Load the payload's root record for update or destroy.

        Raises:
            RecordNotFound: if no record has the payload's id
        """
        from ..app.proxy import Proxy
        return Proxy.for_update(cls(context), payload)

    # Persistence support

    def get_adapter(self) -> PersistenceAdapter:
        return type(self).adapter or get_adapter()

    def build_model(self) -> Any:
        return self.get_adapter().build(self.model)

    def load_model(self, record_id: Any) -> Any:
        model = self.get_adapter().find(self.model, record_id)
        if model is None:
            raise RecordNotFound(type(self).__name__, record_id)
        return model

    @classmethod
    def typecast_attributes(cls, attributes: Mapping[str, Any], action: str,
                            linkage_keys: Iterable[str] = ()) -> Dict[str, Any]:
        """
        Check and coerce a write payload.

        Keys in ``linkage_keys`` are foreign keys set during the nested write
        itself; they skip the writability checks but are still typecast when
        declared.

        Raises:
            ResourceAttributeError: unknown or non-writable attribute
            TypecastFailed: a value failed coercion
        """
        linkage_keys = set(linkage_keys)
        result: Dict[str, Any] = {}
        for name, value in attributes.items():
            attribute = cls._attributes.get(name)
            if name not in linkage_keys:
                if attribute is None:
                    raise ResourceAttributeError(
                        cls.__name__, name, "could not find an attribute with that name"
                    )
                if not attribute.writable:
                    raise ResourceAttributeError(
                        cls.__name__, name, "the attribute was marked writable=False"
                    )
                if not attribute.writable_for(action):
                    raise ResourceAttributeError(
                        cls.__name__, name, f"the attribute is not writable on {action}"
                    )
            if attribute is None:
                result[name] = value
            else:
                result[name] = cls.type_registry.coerce(attribute.type, value, "write", name)
        return result


# Export main components
__all__ = ["Resource"]
