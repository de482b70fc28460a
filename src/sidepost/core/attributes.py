"""
Attribute Table

Per-resource mapping of attribute name to its declared type and access
flags. Writes are checked against this table before any value reaches a
model.
"""

from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, Iterator, List, Optional, Union

from ..errors import ConfigurationError

ATTRIBUTE_FLAGS = ("readable", "writable")
WRITE_ACTIONS = ("create", "update")

Writable = Union[bool, FrozenSet[str]]


@dataclass(frozen=True)
class Attribute:
    """A declared resource attribute"""
    name: str
    type: str
    readable: bool = True
    writable: Writable = True
    description: Optional[str] = None

    def writable_for(self, action: str) -> bool:
        """Whether the attribute accepts writes during ``action``"""
        if isinstance(self.writable, frozenset):
            return action in self.writable
        return bool(self.writable)


def _normalize_writable(name: str, writable) -> Writable:
    if isinstance(writable, bool):
        return writable
    if isinstance(writable, str):
        writable = [writable]
    actions = frozenset(writable)
    unknown = actions - set(WRITE_ACTIONS)
    if unknown:
        raise ConfigurationError(
            f"Attribute '{name}' declares writable={sorted(actions)}, "
            f"but only {list(WRITE_ACTIONS)} are supported"
        )
    return actions


class AttributeTable:
    """Ordered collection of attribute declarations"""

    def __init__(self, attributes: Optional[Dict[str, Attribute]] = None):
        self._attributes: Dict[str, Attribute] = dict(attributes or {})

    def add(
        self,
        name: str,
        type: str,
        only: Optional[Iterable[str]] = None,
        except_: Optional[Iterable[str]] = None,
        readable: bool = True,
        writable: Union[bool, Iterable[str]] = True,
        description: Optional[str] = None,
    ) -> Attribute:
        """
        Declare an attribute.

        ``only`` keeps the listed flags and switches every other flag off
        (``only=["writable"]`` declares a write-only attribute); ``except_``
        switches the listed flags off.
        """
        flags = {"readable": readable, "writable": _normalize_writable(name, writable)}

        for option, values in (("only", only), ("except_", except_)):
            if values is None:
                continue
            unknown = set(values) - set(ATTRIBUTE_FLAGS)
            if unknown:
                raise ConfigurationError(
                    f"Attribute '{name}' got unknown flags {sorted(unknown)} in {option}; "
                    f"expected any of {list(ATTRIBUTE_FLAGS)}"
                )

        if only is not None:
            only = set(only)
            flags = {flag: (value if flag in only else False) for flag, value in flags.items()}
        if except_ is not None:
            for flag in except_:
                flags[flag] = False

        attribute = Attribute(name=name, type=type, description=description, **flags)
        self._attributes[name] = attribute
        return attribute

    def remove(self, name: str) -> Optional[Attribute]:
        return self._attributes.pop(name, None)

    def get(self, name: str) -> Optional[Attribute]:
        return self._attributes.get(name)

    def names(self) -> List[str]:
        return list(self._attributes)

    def copy(self) -> "AttributeTable":
        return AttributeTable(self._attributes)

    def __contains__(self, name: object) -> bool:
        return name in self._attributes

    def __iter__(self) -> Iterator[Attribute]:
        return iter(self._attributes.values())

    def __len__(self) -> int:
        return len(self._attributes)


__all__ = ["Attribute", "AttributeTable", "ATTRIBUTE_FLAGS", "WRITE_ACTIONS"]
