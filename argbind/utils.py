"""
Argbind utilities (internal helpers shared by the specification model)

Scope
- Small building blocks used by ranges, arguments, commands and the interpreter
  so that they agree on "not provided" semantics, naming and read-only exposure.

Overview
- UnsetType / Unset
  • Singleton sentinel for "value not provided", distinct from None.
  • Falsey, printable as "Unset", and sealed against subclassing.

- coalesce(value, default=None)
  • Replace Unset with a concrete default; None/0/""/[] are kept as given.

- rename(callable, name) / @rename("name")
  • Give generated callables stable __name__/__qualname__ for tracebacks.

- mirror("attr")
  • Read-only property over a private backing field (self._attr). Containers
    come back as frozen views (tuple, frozenset, MappingProxyType) so the
    public surface cannot be used to mutate spec state.

- SpecType
  • Metaclass for specification classes: derives __typename__, publishes the
    names in __introspectable__ as mirrored properties and provides
    __repr__/__rich_repr__.

Usage guidance
- Prefer Unset for API defaults when None is a meaningful user value.
- Names not in __all__ are internal and may change without notice.

Quick examples
    >>> coalesce(Unset, "fallback")
    'fallback'
    >>> coalesce(None, "fallback") is None
    True
"""
import builtins
import functools
import operator
import re
from collections.abc import Mapping, Sequence, Set
from types import MappingProxyType
from typing import final


@final
class UnsetType:
    """
    Sentinel type representing a value that was not provided.

    A single instance, Unset, is exposed. It is used wherever None is a
    legitimate user value (a default of None, a binding holding None) and the
    API still needs to tell "absent" apart from "explicitly None".

    Characteristics
    - bool(Unset) is False.
    - repr(Unset) is "Unset".
    - UnsetType() always yields the same instance; subclassing is rejected.
    """

    def __or__(self, other, /):
        """
        Support PEP 604 unions in annotations (e.g., str | UnsetType).
        """
        try:
            return other | type(self)
        except TypeError:
            return NotImplemented

    def __ror__(self, other, /):
        try:
            return other | type(self)
        except TypeError:
            return NotImplemented

    @functools.cache
    def __new__(cls):
        return super().__new__(cls)

    def __bool__(self):
        return False

    def __repr__(self):
        return "Unset"

    def __copy__(self):
        return self

    def __deepcopy__(self, memo, /):
        return self

    def __init_subclass__(cls, **options):
        raise TypeError("type 'UnsetType' is not an acceptable base type")


def coalesce(object, default=None, /):
    """
    Resolve the Unset sentinel to a concrete default.

    Returns object unless it is Unset, in which case default is returned.
    Falsey values such as None, 0 or "" are preserved.

    Examples
    - coalesce("name", "fallback") -> "name"
    - coalesce(Unset, "fallback")  -> "fallback"
    - coalesce(None, "fallback")   -> None
    """
    return object if object is not Unset else default


def rename(*parameters):
    """
    Set a stable __name__/__qualname__ on a callable, or return a decorator
    that will do so later.

    Forms
    - rename(callable, name) -> callable
    - rename(name) -> decorator

    Raises
    - TypeError: wrong argument kinds, or a callable whose names cannot be
      updated (most builtins).
    """
    match len(parameters):
        case 2:
            callable, name = parameters
            if not builtins.callable(callable):
                raise TypeError("rename() first argument must be callable")
            if not isinstance(name, str):
                raise TypeError("rename() second argument must be a string")
            try:
                callable.__qualname__ = name
                callable.__name__ = name
            except (AttributeError, TypeError):
                raise TypeError("rename() first argument must be a updatable callable") from None
            return callable
        case 1:
            name, = parameters
            if not isinstance(name, str):
                raise TypeError("@rename() argument must be a string")

            def wrapper(callable):
                if not builtins.callable(callable):
                    raise TypeError("@rename() must be applied to a callable")
                return rename(callable, name)

            return rename(wrapper, "rename")
        case _:
            raise TypeError("rename takes 1 to 2 arguments but %d were given" % len(parameters))


def _freeze(object):
    """
    Shallow read-only view of a container value.

    - str/bytes and non-containers are returned unchanged.
    - Mapping -> MappingProxyType over a copy.
    - Set -> frozenset.
    - Other sequences -> tuple.
    """
    if isinstance(object, str | bytes):
        return object
    elif isinstance(object, Mapping):
        return MappingProxyType(dict(object))
    elif isinstance(object, Set):
        return frozenset(object)
    elif isinstance(object, Sequence):
        return tuple(object)
    return object


def mirror(name, /):
    """
    Define a read-only property that mirrors a private backing attribute.

    The property reads "_{name}" on the instance and returns a frozen view for
    container types (see _freeze), so callers may keep the result without
    observing later mutations made by the owner.
    """
    if not isinstance(name, str):
        raise TypeError("mirror() argument must be a string")

    @rename(name)
    def getter(self):
        return _freeze(getattr(self, "_" + name))

    return property(getter)


class SpecType(type):
    """
    Metaclass shared by the specification classes (ranges excluded).

    Responsibilities
    - Derive __typename__ from the class name ("OptionSpec" -> "option-spec")
      for diagnostics.
    - Publish every name listed in the class' own __introspectable__ as a
      read-only property mirroring the "_" + name field.
    - Provide __repr__ and __rich_repr__ over __displayable__ when set,
      otherwise over __introspectable__ (inherited lists included).
    """
    __introspectable__ = ()
    __displayable__ = None

    def __new__(cls, name, bases, namespace, **options):
        self = super().__new__(
            cls,
            name,
            bases,
            namespace | {"__typename__": re.sub(r"(?<!^)(?=[A-Z])", r"-", name).lower()},
            **options,
        )

        # Fields already provided by the class or a base keep their own accessor.
        for field in namespace.get("__introspectable__", ()):
            if not hasattr(self, field):
                setattr(self, field, mirror(field))

        if "__repr__" not in namespace:
            @rename("__repr__")
            def __repr__(self):
                return f"{type(self).__typename__}({
                    ", ".join(map(functools.partial(operator.mod, "%s=%r"), self.__rich_repr__()))
                })"
            self.__repr__ = __repr__

        if "__rich_repr__" not in namespace:
            @rename("__rich_repr__")
            def __rich_repr__(self):
                for field in type(self).__displayable__ or type(self).__introspectable__:
                    yield field, getattr(self, field)
            self.__rich_repr__ = __rich_repr__

        return self


Unset = UnsetType()
"""
Sentinel for "not provided".

Use Unset as a default when None is a valid, user-meaningful value. Resolve it
with coalesce(value, default) where a concrete value is needed.
"""


__all__ = (
    # Functions
    "coalesce",
    "rename",
    "mirror",

    # Types
    "UnsetType",
    "SpecType",

    # Constants
    "Unset",
)
