"""
Relationship Graph

🔗 Nested Write Targets:
Per-resource declarations of belongs_to, has_one, has_many, many_to_many and
polymorphic belongs_to. Each relationship knows the resource that handles
its nested nodes, which side stores the foreign key, and whether that side
must be persisted before or after the owner.
"""

from typing import Any, Callable, ClassVar, Dict, Iterator, List, Mapping, Optional, Union

from ..errors import ConfigurationError, PayloadError, RelationshipError
from ..utils import underscore

ResourceRef = Union[type, Callable[[], type]]


def _resolve(resource: ResourceRef) -> type:
    """Accept a resource class or a zero-argument callable returning one"""
    if isinstance(resource, type):
        return resource
    if callable(resource):
        return resource()
    raise RelationshipError(f"Expected a resource class, got {resource!r}")


def _owner_key(owner: type) -> str:
    model = getattr(owner, "model", None)
    if model is None:
        raise RelationshipError(f"{owner.__name__} has no model; cannot derive a foreign key")
    return f"{underscore(model.__name__)}_id"


class Relationship:
    """Base class for relationship declarations"""

    kind: ClassVar[str] = "relationship"
    singular: ClassVar[bool] = True
    persist_before_parent: ClassVar[bool] = False

    def __init__(
        self,
        name: str,
        resource: Optional[ResourceRef] = None,
        foreign_key: Any = None,
        writable: bool = True,
        description: Optional[str] = None,
    ):
        self.name = name
        self._resource = resource
        self._foreign_key = foreign_key
        self.writable = writable
        self.description = description
        self.owner: Optional[type] = None

    def bind(self, owner: type) -> "Relationship":
        """Attach to the declaring resource class"""
        self.owner = owner
        return self

    def copy_for(self, owner: type) -> "Relationship":
        clone = self.__class__.__new__(self.__class__)
        clone.__dict__.update(self.__dict__)
        return clone.bind(owner)

    @property
    def resource(self) -> type:
        if self._resource is None:
            raise RelationshipError(f"Relationship '{self.name}' has no resource")
        return _resolve(self._resource)

    def resource_for(self, type_name: str, pointer: Optional[str] = None) -> type:
        """The resource handling a nested node of ``type_name``"""
        resource = self.resource
        if resource.type != type_name:
            raise PayloadError(
                f"Relationship '{self.name}' expects type '{resource.type}', got '{type_name}'",
                pointer,
            )
        return resource

    @property
    def foreign_key(self) -> str:
        raise NotImplementedError

    def owner_linkage(self, child: Any, method: str) -> Dict[str, Any]:
        """Keys written on the owner after a before-parent child is persisted"""
        return {}

    def child_linkage(self, parent: Any, method: str) -> Dict[str, Any]:
        """Keys written on an after-parent child once its owner is saved"""
        return {}

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.name!r})"


class BelongsTo(Relationship):
    """The owner stores ``<name>_id``; the target persists first"""

    kind = "belongs_to"
    persist_before_parent = True

    @property
    def foreign_key(self) -> str:
        return self._foreign_key or f"{self.name}_id"

    def owner_linkage(self, child: Any, method: str) -> Dict[str, Any]:
        if method == "disassociate" or method == "destroy":
            return {self.foreign_key: None}
        return {self.foreign_key: child.id}


class HasMany(Relationship):
    """Children store ``<owner model>_id``; they persist after the owner"""

    kind = "has_many"
    singular = False

    @property
    def foreign_key(self) -> str:
        return self._foreign_key or _owner_key(self.owner)

    def child_linkage(self, parent: Any, method: str) -> Dict[str, Any]:
        if method == "disassociate":
            return {self.foreign_key: None}
        return {self.foreign_key: parent.id}


class HasOne(HasMany):
    kind = "has_one"
    singular = True


class ManyToMany(Relationship):
    """
    Children are linked through a join table.

    ``foreign_key`` maps the join table to the child's key, e.g.
    ``{"team_memberships": "team_id"}``. The owner's key in the join table
    defaults to ``<owner model>_id``.
    """

    kind = "many_to_many"
    singular = False

    def __init__(self, name: str, resource: Optional[ResourceRef] = None,
                 foreign_key: Optional[Mapping[str, str]] = None, owner_key: Optional[str] = None,
                 writable: bool = True, description: Optional[str] = None):
        if not isinstance(foreign_key, Mapping) or len(foreign_key) != 1:
            raise ConfigurationError(
                f"many_to_many '{name}' requires foreign_key={{join_table: child_key}}, got {foreign_key!r}"
            )
        super().__init__(name, resource, dict(foreign_key), writable, description)
        self._owner_key = owner_key

    @property
    def join_table(self) -> str:
        return next(iter(self._foreign_key))

    @property
    def foreign_key(self) -> str:
        return self._foreign_key[self.join_table]

    @property
    def owner_key(self) -> str:
        return self._owner_key or _owner_key(self.owner)

    def join_attributes(self, parent: Any, child: Any) -> Dict[str, Any]:
        return {self.owner_key: parent.id, self.foreign_key: child.id}


class PolymorphicBelongsTo(Relationship):
    """
    A belongs_to whose target resource depends on a type column.

    ``groups`` maps the value stored in ``group_by`` to the resource that
    handles it, e.g. ``group_by="credit_card_type", groups={"Visa": VisaResource}``.
    Nested nodes pick their group by payload type.
    """

    kind = "polymorphic_belongs_to"
    persist_before_parent = True

    def __init__(self, name: str, group_by: Optional[str] = None,
                 groups: Optional[Mapping[str, ResourceRef]] = None,
                 foreign_key: Optional[str] = None, writable: bool = True,
                 description: Optional[str] = None):
        if not groups:
            raise ConfigurationError(f"polymorphic_belongs_to '{name}' requires at least one group")
        super().__init__(name, None, foreign_key, writable, description)
        self.group_by = group_by or f"{name}_type"
        self.groups: Dict[str, ResourceRef] = dict(groups)

    @property
    def foreign_key(self) -> str:
        return self._foreign_key or f"{self.name}_id"

    @property
    def resource(self) -> type:
        raise RelationshipError(
            f"polymorphic_belongs_to '{self.name}' resolves its resource per payload type"
        )

    def group_for(self, type_name: str, pointer: Optional[str] = None) -> str:
        for group, resource in self.groups.items():
            if _resolve(resource).type == type_name:
                return group
        raise PayloadError(
            f"Relationship '{self.name}' has no group for type '{type_name}' "
            f"(known groups: {', '.join(self.groups)})",
            pointer,
        )

    def resource_for(self, type_name: str, pointer: Optional[str] = None) -> type:
        return _resolve(self.groups[self.group_for(type_name, pointer)])

    def owner_linkage(self, child: Any, method: str) -> Dict[str, Any]:
        if method == "disassociate" or method == "destroy":
            return {self.foreign_key: None, self.group_by: None}
        return {
            self.foreign_key: child.id,
            self.group_by: self._group_of(child),
        }

    def _group_of(self, child: Any) -> str:
        for group, resource in self.groups.items():
            if isinstance(child, _resolve(resource).model):
                return group
        raise RelationshipError(
            f"polymorphic_belongs_to '{self.name}' has no group for {type(child).__name__}"
        )


class RelationshipGraph:
    """Ordered relationship declarations for one resource class"""

    def __init__(self, relationships: Optional[Dict[str, Relationship]] = None):
        self._relationships: Dict[str, Relationship] = dict(relationships or {})

    def add(self, relationship: Relationship) -> Relationship:
        if relationship.name in self._relationships:
            raise ConfigurationError(f"Relationship '{relationship.name}' is already declared")
        self._relationships[relationship.name] = relationship
        return relationship

    def get(self, name: str) -> Optional[Relationship]:
        return self._relationships.get(name)

    def copy_for(self, owner: type) -> "RelationshipGraph":
        return RelationshipGraph({
            name: relationship.copy_for(owner)
            for name, relationship in self._relationships.items()
        })

    def names(self) -> List[str]:
        return list(self._relationships)

    def __contains__(self, name: object) -> bool:
        return name in self._relationships

    def __iter__(self) -> Iterator[Relationship]:
        return iter(self._relationships.values())

    def __len__(self) -> int:
        return len(self._relationships)


# Export main components
__all__ = [
    "Relationship", "BelongsTo", "HasOne", "HasMany", "ManyToMany",
    "PolymorphicBelongsTo", "RelationshipGraph",
]
