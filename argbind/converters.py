"""
Argbind type conversion registry.

A ConverterRegistry maps a target type to a callable turning one raw string
into a value of that type. Every CommandSpec owns its own registry, forked
from the defaults (or from the registry it was given) when the command is
built; registering on a command afterwards only reaches the subcommands that
are attached at that moment (see CommandSpec.register_converter).

Built-ins
- str, int, float, complex, bool, Char, bytes
- decimal.Decimal, fractions.Fraction
- pathlib.Path, pathlib.PurePath
- uuid.UUID, re.Pattern
- datetime.date (YYYY-MM-DD), datetime.time, datetime.datetime (ISO 8601),
  datetime.timedelta (seconds)
- urllib.parse.ParseResult (URIs), codecs.CodecInfo (charsets)
- ipaddress.IPv4Address, ipaddress.IPv6Address
- zoneinfo.ZoneInfo
- any enum.Enum subclass, by member name (case-insensitive on request)

Failures
- Converters may raise anything; convert() reports them as a
  TypeConversionError chained to the original exception.
- Looking up a type nobody registered raises MissingTypeConverterError.
"""
import builtins
import codecs
import datetime
import decimal
import enum
import fractions
import ipaddress
import logging
import pathlib
import re
import urllib.parse
import uuid
import zoneinfo
from typing import NewType

from .faults import MissingTypeConverterError, TypeConversionError
from .utils import rename

logger = logging.getLogger(__name__)

Char = NewType("Char", str)
"""Target type for single-character values."""


def _typename(type, /):
    return getattr(type, "__name__", None) or str(type)


@rename("bool")
def _boolean(value, /):
    match value.lower():
        case "true":
            return True
        case "false":
            return False
    raise TypeConversionError(f"{value!r} is not a boolean")


@rename("Char")
def _character(value, /):
    if len(value) != 1:
        raise TypeConversionError(f"{value!r} is not a single character")
    return Char(value)


@rename("int")
def _integer(value, /):
    # "0x1F", "0o17" and "0b101" are accepted along with plain decimals.
    try:
        return int(value, 0)
    except ValueError:
        try:
            return int(value)
        except ValueError:
            raise TypeConversionError(f"{value!r} is not an int") from None


@rename("float")
def _floating(value, /):
    try:
        return float(value)
    except ValueError:
        raise TypeConversionError(f"{value!r} is not a float") from None


@rename("bytes")
def _bytes(value, /):
    return value.encode()


@rename("URI")
def _uri(value, /):
    result = urllib.parse.urlparse(value)
    if not (result.scheme or result.path or result.netloc):
        raise TypeConversionError(f"{value!r} is not a URI")
    return result


@rename("timedelta")
def _timedelta(value, /):
    return datetime.timedelta(seconds=float(value))


@rename("time")
def _time(value, /):
    try:
        return datetime.time.fromisoformat(value)
    except ValueError:
        raise TypeConversionError(f"{value!r} is not a HH:mm[:ss[.SSS]] time") from None


@rename("date")
def _date(value, /):
    try:
        return datetime.date.fromisoformat(value)
    except ValueError:
        raise TypeConversionError(f"{value!r} is not a yyyy-MM-dd date") from None


_BUILTINS = {
    str: str,
    int: _integer,
    float: _floating,
    complex: complex,
    bool: _boolean,
    Char: _character,
    bytes: _bytes,
    decimal.Decimal: decimal.Decimal,
    fractions.Fraction: fractions.Fraction,
    pathlib.Path: pathlib.Path,
    pathlib.PurePath: pathlib.PurePath,
    uuid.UUID: uuid.UUID,
    re.Pattern: re.compile,
    datetime.date: _date,
    datetime.time: _time,
    datetime.datetime: datetime.datetime.fromisoformat,
    datetime.timedelta: _timedelta,
    urllib.parse.ParseResult: _uri,
    codecs.CodecInfo: codecs.lookup,
    ipaddress.IPv4Address: ipaddress.IPv4Address,
    ipaddress.IPv6Address: ipaddress.IPv6Address,
    zoneinfo.ZoneInfo: zoneinfo.ZoneInfo,
}


def enumeration(type, /, *, case_insensitive=False):
    """
    Build a converter resolving member names of an Enum subclass.

    Matching is exact unless case_insensitive is set, in which case the
    first member whose name matches ignoring case wins.
    """
    if not (isinstance(type, builtins.type) and issubclass(type, enum.Enum)):
        raise TypeError("enumeration() argument must be an Enum subclass")

    @rename(type.__name__)
    def converter(value, /):
        if value in type.__members__:
            return type.__members__[value]
        if case_insensitive:
            for name, member in type.__members__.items():
                if name.lower() == value.lower():
                    return member
        raise TypeConversionError(f"expected one of {list(type.__members__)} but was {value!r}")

    return converter


class ConverterRegistry:
    """
    Mapping of target types to string converters.

    The registry is deliberately not shared: copy() forks it, and a
    CommandSpec always works on its own fork.
    """

    def __init__(self, converters=(), /):
        self._converters = dict(converters)

    @classmethod
    def default(cls):
        """A fresh registry holding the built-in converters."""
        return cls(_BUILTINS)

    def register(self, type, converter, /):
        if not callable(converter):
            raise TypeError("register() converter must be callable")
        logger.debug("registering converter %r for %s", converter, _typename(type))
        self._converters[type] = converter
        return self

    def unregister(self, type, /):
        self._converters.pop(type, None)
        return self

    def lookup(self, type, /, *, case_insensitive=False):
        """
        Converter for the given type.

        Explicit registrations win; Enum subclasses without one get a
        member-name converter. Anything else raises MissingTypeConverterError.
        """
        try:
            return self._converters[type]
        except (KeyError, TypeError):
            pass
        if isinstance(type, builtins.type) and issubclass(type, enum.Enum):
            return enumeration(type, case_insensitive=case_insensitive)
        raise MissingTypeConverterError(f"No converter registered for {_typename(type)}", target=type)

    def convert(self, type, value, /, *, case_insensitive=False):
        """
        Convert one raw string to the given type.

        Raises
        - MissingTypeConverterError: nothing can convert to this type.
        - TypeConversionError: the converter rejected the value; the original
          exception, if any, is chained as __cause__.
        """
        return apply(self.lookup(type, case_insensitive=case_insensitive), value, type)

    def copy(self):
        return type(self)(self._converters)

    def __contains__(self, type, /):
        return type in self._converters

    def __len__(self):
        return len(self._converters)

    def __repr__(self):
        return f"{type(self).__name__}({len(self._converters)} converters)"


def apply(converter, value, target, /):
    """
    Run a converter over one raw value, normalizing failures.

    TypeConversionErrors raised by the converter keep their message; any
    other exception becomes "cannot convert ..." naming value and target.
    """
    try:
        return converter(value)
    except TypeConversionError as fault:
        if fault.target is not None and "value" in fault.options:
            raise
        raise TypeConversionError(fault.message, **{**fault.options, "value": value, "target": target}) from fault
    except Exception as exc:
        raise TypeConversionError(
            f"cannot convert {value!r} to {_typename(target)} ({type(exc).__name__}: {exc})",
            value=value,
            target=target,
        ) from exc


__all__ = (
    "Char",
    "ConverterRegistry",
    "enumeration",
    "apply",
)
