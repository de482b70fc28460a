"""
Sidepost Errors

Exception hierarchy for resource configuration, payload handling and
attribute typecasting. Validation failures reported by an adapter are never
raised; they are recorded on the failing model instead.
"""

from typing import Any, Iterable, Optional


class SidepostError(Exception):
    """Base exception for all sidepost errors"""
    pass


class ConfigurationError(SidepostError):
    """Raised when a resource is declared incorrectly"""
    pass


class UnknownTypeError(ConfigurationError):
    """Raised when an attribute references an unregistered type"""

    def __init__(self, type_name: str, known: Iterable[str] = ()):
        self.type_name = type_name
        known = sorted(known)
        message = f"Type '{type_name}' is not registered"
        if known:
            message += f" (known types: {', '.join(known)})"
        super().__init__(message)


class AroundCallbackError(ConfigurationError):
    """Raised when an around hook is registered without a continuation parameter"""

    def __init__(self, hook_name: str, implementation: Any = None):
        self.hook_name = hook_name
        self.implementation = implementation
        super().__init__(
            f"{hook_name} hooks must be registered with a method name or a named "
            f"function that accepts a continuation, e.g. "
            f"{hook_name}('do_{hook_name}') with "
            f"'def do_{hook_name}(self, payload, proceed)'. Got {implementation!r}."
        )


class RelationshipError(ConfigurationError):
    """Raised when a relationship is declared or used incorrectly"""
    pass


class ResourceAttributeError(SidepostError):
    """Raised when a payload writes an unknown or non-writable attribute"""

    def __init__(self, resource_name: str, attribute: str, reason: str):
        self.resource_name = resource_name
        self.attribute = attribute
        self.reason = reason
        super().__init__(
            f"{resource_name}: Tried to write attribute '{attribute}', but {reason}."
        )


class TypecastFailed(SidepostError):
    """Raised when a value cannot be coerced to its declared type"""

    def __init__(self, attribute: Optional[str], value: Any, cause: Any, type_name: Optional[str] = None):
        self.attribute = attribute
        self.value = value
        self.cause = cause
        self.type_name = type_name
        label = f"'{attribute}'" if attribute else f"type '{type_name}'"
        super().__init__(
            f"Failed typecasting {label}! Given {value!r} but the following "
            f"error was raised:\n\n{cause}"
        )


class PayloadError(SidepostError):
    """Raised when a nested write payload is malformed"""

    def __init__(self, message: str, pointer: Optional[str] = None):
        self.pointer = pointer
        if pointer:
            message = f"{message} (at {pointer})"
        super().__init__(message)


class RecordNotFound(SidepostError):
    """Raised when a record referenced by id cannot be loaded"""

    def __init__(self, resource_name: str, record_id: Any):
        self.resource_name = resource_name
        self.record_id = record_id
        super().__init__(f"{resource_name}: could not find record with id {record_id!r}")


class HookError(SidepostError):
    """Raised when an around hook breaks its continuation contract"""
    pass


class ProxyConsumedError(SidepostError):
    """Raised when a persistence proxy is used for a second operation"""
    pass


# Export main components
__all__ = [
    "SidepostError", "ConfigurationError", "UnknownTypeError",
    "AroundCallbackError", "RelationshipError", "ResourceAttributeError",
    "TypecastFailed", "PayloadError", "RecordNotFound", "HookError",
    "ProxyConsumedError",
]
