"""
Sidepost Persistence Module

Storage adapters and the process-wide adapter registry. Resources without
an explicit ``adapter`` use the registry's default, chosen by
``persistence.default_adapter`` in the active configuration.
"""

from typing import Any, Callable, Dict, Optional

from ..configuration import get_config
from .base import PersistenceAdapter, normalize_id
from .memory import MemoryAdapter
from .sql import SQLAdapter

AdapterFactory = Callable[..., PersistenceAdapter]

_factories: Dict[str, AdapterFactory] = {}
_instances: Dict[str, PersistenceAdapter] = {}


def register_adapter(name: str, factory: AdapterFactory) -> None:
    """
    Register an adapter factory.

    The factory is called with the adapter's options from
    ``persistence.adapters[name]``; a cached instance is dropped.
    """
    _factories[name] = factory
    _instances.pop(name, None)


def get_adapter(name: Optional[str] = None) -> PersistenceAdapter:
    """Get the (cached) adapter instance for ``name`` or the configured default."""
    config = get_config().persistence
    name = name or config.default_adapter
    if name not in _instances:
        if name not in _factories:
            raise ValueError(f"Unknown persistence adapter: {name}")
        options: Dict[str, Any] = dict(config.adapters.get(name, {}))
        _instances[name] = _factories[name](**options)
    return _instances[name]


def reset_adapters() -> None:
    """Drop cached adapter instances (factories stay registered)."""
    for adapter in _instances.values():
        dispose = getattr(adapter, "dispose", None)
        if dispose is not None:
            dispose()
    _instances.clear()


register_adapter("memory", MemoryAdapter)
register_adapter("sql", SQLAdapter)

__all__ = [
    "PersistenceAdapter",
    "MemoryAdapter",
    "SQLAdapter",
    "normalize_id",
    "register_adapter",
    "get_adapter",
    "reset_adapters",
]
