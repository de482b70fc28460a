"""
Sidepost Core Module

Declarative layer: the type registry, attribute tables, hooks and
relationships a resource is built from, plus the validated model base.
"""

from .types import Type, TypeRegistry, Types, parse_datetime_string
from .attributes import Attribute, AttributeTable
from .hooks import Hook, HookRegistry
from .relationships import (
    Relationship, BelongsTo, HasOne, HasMany, ManyToMany,
    PolymorphicBelongsTo, RelationshipGraph,
)
from .model import Model, Errors, ValidationResult
from .resource import Resource

__all__ = [
    "Type",
    "TypeRegistry",
    "Types",
    "parse_datetime_string",
    "Attribute",
    "AttributeTable",
    "Hook",
    "HookRegistry",
    "Relationship",
    "BelongsTo",
    "HasOne",
    "HasMany",
    "ManyToMany",
    "PolymorphicBelongsTo",
    "RelationshipGraph",
    "Model",
    "Errors",
    "ValidationResult",
    "Resource",
]
