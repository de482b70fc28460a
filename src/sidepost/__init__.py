"""
Sidepost - Nested Write Persistence for Resource Graphs

Declare resources with typed attributes, lifecycle hooks and relationships,
then persist whole JSON:API style payloads (with sideposted, temp-id linked
children) in one call.
"""

from .core import (
    Resource, Model, Types, TypeRegistry,
    BelongsTo, HasOne, HasMany, ManyToMany, PolymorphicBelongsTo,
)
from .app import Payload, Proxy, PersistenceResult
from .persistence import (
    PersistenceAdapter, MemoryAdapter, SQLAdapter,
    register_adapter, get_adapter, reset_adapters,
)
from .configuration import (
    SidepostConfig, configure_logging, get_config, set_config,
)
from .errors import (
    SidepostError, ConfigurationError, AroundCallbackError, UnknownTypeError,
    RelationshipError, ResourceAttributeError, TypecastFailed, PayloadError,
    RecordNotFound, HookError, ProxyConsumedError,
)

__version__ = "0.1.0"

__all__ = [
    # Declarations
    'Resource',
    'Model',
    'Types',
    'TypeRegistry',
    'BelongsTo',
    'HasOne',
    'HasMany',
    'ManyToMany',
    'PolymorphicBelongsTo',

    # Persistence calls
    'Payload',
    'Proxy',
    'PersistenceResult',

    # Adapters
    'PersistenceAdapter',
    'MemoryAdapter',
    'SQLAdapter',
    'register_adapter',
    'get_adapter',
    'reset_adapters',

    # Configuration
    'SidepostConfig',
    'configure_logging',
    'get_config',
    'set_config',

    # Errors
    'SidepostError',
    'ConfigurationError',
    'AroundCallbackError',
    'UnknownTypeError',
    'RelationshipError',
    'ResourceAttributeError',
    'TypecastFailed',
    'PayloadError',
    'RecordNotFound',
    'HookError',
    'ProxyConsumedError',
]
