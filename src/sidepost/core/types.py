"""
Type Coercion Registry

🔤 Attribute Typecasting:
Maps a type name to its write/read/params coercion functions. Every incoming
attribute value is cast through its declared type before it is assigned to a
model, so resources never see raw payload values.

Scalar parsing leans on pydantic's lax mode; dates and times go through a
small parser that understands the loose formats clients send (``2018/01``,
``2018-01-06 4:36pm PST``) and keeps any explicit UTC offset.
"""

import logging
import re
import uuid
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Union

from pydantic import TypeAdapter

from ..errors import TypecastFailed, UnknownTypeError

logger = logging.getLogger(__name__)

Coercer = Callable[[Any], Any]

COERCION_CONTEXTS = ("write", "read", "params")


@dataclass(frozen=True)
class Type:
    """A registered type and its coercion functions"""
    name: str
    write: Coercer
    read: Coercer
    params: Coercer
    kind: str = "scalar"
    description: str = ""
    item_type: Optional[str] = None

    def coercer(self, context: str) -> Coercer:
        if context not in COERCION_CONTEXTS:
            raise ValueError(f"Unknown coercion context '{context}'")
        return getattr(self, context)


# Scalar coercers

_INTEGER = TypeAdapter(int)
_FLOAT = TypeAdapter(float)
_DECIMAL = TypeAdapter(Decimal)
_BOOLEAN = TypeAdapter(bool)


def _nullable(adapter: TypeAdapter) -> Coercer:
    def coerce(value: Any) -> Any:
        if value is None:
            return None
        return adapter.validate_python(value)
    return coerce


def _to_string(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def _to_uuid(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, uuid.UUID):
        return str(value)
    return str(uuid.UUID(str(value)))


def _to_integer_id_read(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(_INTEGER.validate_python(value))


# Date and time parsing

_ZONE_OFFSETS: Dict[str, int] = {
    "Z": 0, "UTC": 0, "GMT": 0,
    "EST": -5, "EDT": -4,
    "CST": -6, "CDT": -5,
    "MST": -7, "MDT": -6,
    "PST": -8, "PDT": -7,
}

_DATETIME_PATTERN = re.compile(
    r"^(?P<year>\d{4})[-/](?P<month>\d{1,2})(?:[-/](?P<day>\d{1,2}))?"
    r"(?:(?:T|\s+)(?P<hour>\d{1,2})(?::(?P<minute>\d{2}))?"
    r"(?::(?P<second>\d{2})(?:\.(?P<fraction>\d+))?)?"
    r"\s*(?P<meridian>[aApP][mM])?)?"
    r"\s*(?P<zone>Z|[+-]\d{2}(?::?\d{2})?|[A-Za-z]{1,4})?$"
)


def _parse_zone(zone: str) -> timezone:
    upper = zone.upper()
    if upper in _ZONE_OFFSETS:
        hours = _ZONE_OFFSETS[upper]
        return timezone.utc if hours == 0 else timezone(timedelta(hours=hours))
    if zone[0] in "+-":
        digits = zone[1:].replace(":", "")
        hours = int(digits[:2])
        minutes = int(digits[2:4] or 0)
        offset = timedelta(hours=hours, minutes=minutes)
        return timezone(-offset if zone[0] == "-" else offset)
    raise ValueError(f"unknown time zone '{zone}'")


def parse_datetime_string(text: str) -> datetime:
    """
    Parse a loosely formatted date/time string.

    Missing day defaults to the first of the month, missing time to
    midnight. Offsets and known zone abbreviations become ``tzinfo``;
    strings without a zone produce naive datetimes.
    """
    stripped = text.strip()
    if not stripped:
        raise ValueError("blank string is not a date")

    match = _DATETIME_PATTERN.match(stripped)
    if match is None:
        try:
            return datetime.fromisoformat(stripped)
        except ValueError:
            raise ValueError(f"unable to parse {text!r} as a date/time") from None

    parts = match.groupdict()
    hour = int(parts["hour"] or 0)
    meridian = (parts["meridian"] or "").lower()
    if meridian:
        if not 1 <= hour <= 12:
            raise ValueError(f"hour {hour} is invalid with {meridian}")
        hour = hour % 12 + (12 if meridian == "pm" else 0)

    fraction = parts["fraction"] or ""
    microsecond = int(fraction[:6].ljust(6, "0")) if fraction else 0
    tzinfo = _parse_zone(parts["zone"]) if parts["zone"] else None

    return datetime(
        int(parts["year"]),
        int(parts["month"]),
        int(parts["day"] or 1),
        hour,
        int(parts["minute"] or 0),
        int(parts["second"] or 0),
        microsecond,
        tzinfo=tzinfo,
    )


def _to_date(value: Any) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return parse_datetime_string(value).date()
    raise TypeError(f"cannot convert {type(value).__name__} to a date")


def _to_datetime(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        return parse_datetime_string(value)
    raise TypeError(f"cannot convert {type(value).__name__} to a datetime")


# Container coercers

def _to_hash(value: Any) -> Dict[Any, Any]:
    if not isinstance(value, Mapping):
        raise TypeError(f"expected a mapping, got {type(value).__name__}")
    return dict(value)


def _to_array(value: Any) -> List[Any]:
    if not isinstance(value, (list, tuple)):
        raise TypeError(f"expected an array, got {type(value).__name__}")
    return list(value)


def _split_array(value: Any) -> List[Any]:
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    return _to_array(value)


def _array_of(item: Coercer, split_strings: bool = False) -> Coercer:
    def coerce(value: Any) -> List[Any]:
        items = _split_array(value) if split_strings else _to_array(value)
        return [item(element) for element in items]
    return coerce


def _pluralize(name: str) -> str:
    return name if name.endswith("s") else f"{name}s"


class TypeRegistry:
    """
    Registry of attribute types.

    A process-wide default instance lives at ``Types``; resources may point
    ``type_registry`` at their own instance. Registrations and removals take
    effect for every subsequent coercion.
    """

    def __init__(self, include_defaults: bool = True):
        self._types: Dict[str, Type] = {}
        if include_defaults:
            _register_defaults(self)

    def register(
        self,
        name: str,
        write: Optional[Coercer] = None,
        read: Optional[Coercer] = None,
        params: Optional[Coercer] = None,
        kind: str = "scalar",
        description: str = "",
        item_type: Optional[str] = None,
    ) -> Type:
        """
        Register (or replace) a type.

        Args:
            name: Type name referenced by attribute declarations
            write: Coercion applied to payload values
            read: Coercion applied when rendering values; defaults to ``write``
            params: Coercion applied to query params; defaults to ``write``
            kind: "scalar", "record" or "array"
            description: Human readable description

        Returns:
            The registered Type
        """
        if write is None:
            raise ValueError(f"Type '{name}' requires a write coercion")
        type_ = Type(
            name=name,
            write=write,
            read=read or write,
            params=params or write,
            kind=kind,
            description=description,
            item_type=item_type,
        )
        self._types[name] = type_
        logger.debug(f"Registered type '{name}' ({kind})")
        return type_

    def remove(self, name: str) -> Optional[Type]:
        """Remove a type; returns the removed definition, if any"""
        return self._types.pop(name, None)

    def get(self, name: str) -> Type:
        try:
            return self._types[name]
        except KeyError:
            raise UnknownTypeError(name, self._types) from None

    def names(self) -> List[str]:
        return sorted(self._types)

    def __getitem__(self, name: str) -> Type:
        return self.get(name)

    def __setitem__(self, name: str, definition: Union[Type, Mapping[str, Any]]) -> None:
        if isinstance(definition, Type):
            self._types[name] = definition if definition.name == name else Type(
                name=name,
                write=definition.write,
                read=definition.read,
                params=definition.params,
                kind=definition.kind,
                description=definition.description,
                item_type=definition.item_type,
            )
            return
        self.register(name, **dict(definition))

    def __delitem__(self, name: str) -> None:
        del self._types[name]

    def __contains__(self, name: object) -> bool:
        return name in self._types

    def __iter__(self) -> Iterator[str]:
        return iter(self._types)

    def __len__(self) -> int:
        return len(self._types)

    def coerce(self, name: str, value: Any, context: str = "write", attribute: Optional[str] = None) -> Any:
        """
        Coerce a value through a registered type.

        Raises:
            UnknownTypeError: if the type is not registered
            TypecastFailed: if the coercion function raised
        """
        coercer = self.get(name).coercer(context)
        try:
            return coercer(value)
        except TypecastFailed:
            raise
        except Exception as e:
            raise TypecastFailed(attribute, value, e, type_name=name) from e


def _register_defaults(registry: TypeRegistry) -> None:
    scalars = {
        "string": (_to_string, "Base string type"),
        "integer": (_nullable(_INTEGER), "Base integer type"),
        "float": (_nullable(_FLOAT), "Base float type"),
        "big_decimal": (_nullable(_DECIMAL), "Arbitrary-precision decimal"),
        "boolean": (_nullable(_BOOLEAN), "Base boolean type"),
        "date": (_to_date, "Calendar date"),
        "datetime": (_to_datetime, "Date and time, keeping explicit offsets"),
        "uuid": (_to_uuid, "UUID rendered as a canonical string"),
    }
    for name, (coercer, description) in scalars.items():
        registry.register(name, write=coercer, description=description)
        registry.register(
            f"array_of_{_pluralize(name)}",
            write=_array_of(coercer),
            params=_array_of(coercer, split_strings=True),
            kind="array",
            description=f"Array of {name} values",
            item_type=name,
        )

    registry.register(
        "integer_id",
        write=_nullable(_INTEGER),
        read=_to_integer_id_read,
        description="Integer primary key rendered as a string",
    )
    registry.register("hash", write=_to_hash, kind="record", description="Key/value mapping")
    registry.register(
        "array",
        write=_to_array,
        params=_split_array,
        kind="array",
        description="Array of untyped values",
    )


# Process-wide default registry
Types = TypeRegistry()


# Export main components
__all__ = [
    "Type", "TypeRegistry", "Types", "COERCION_CONTEXTS", "parse_datetime_string",
]
