r"""
Argbind argument specifications.

Overview
- Specs
  • ArgSpec: shared base describing one value-bearing slot of a command
    (type, arity, default, split policy, binding, captured values).
  • OptionSpec: named argument with one or more aliases (e.g., -o/--output),
    optionally flagged as the usage-help or version-help trigger.
  • PositionalParamSpec: unnamed argument claiming a range of argument
    positions (index) of its command.

- Bindings
  • ValueBinding: in-memory slot, used when no binding is given.
  • AttributeBinding: reads/writes an attribute of a host object.
  Any object with get()/set(value) methods can be used as a binding.

- Introspection & representation
  • SpecType (see utils) provides __typename__, read-only properties for the
    names in __introspectable__ and __repr__/__rich_repr__.

Metadata (sanitized on construction)
- type: Unset | type | parameterized container (list[int], dict[str, int], ...)
- auxiliary: Unset | iterable of element types (container parameters)
- arity: Unset | Range | "N..M" | int
- required: bool (forced False when a default is given)
- default: Unset | str (converted at parse time like any other value)
- initial / reset: value written back through the binding before each parse
  (initial defaults to what the binding holds at construction)
- split: Unset | str (regular expression)
- label: Unset | str (defaults to "PARAM")
- descr: Unset | str
- hidden, interactive: bool
- completions: Unset | iterable of str (defaults to Enum member names)
- converters: iterable of callables (or classes, built by the command's factory)
- binding: Unset | object with get()/set()

Validation highlights
- interactive arguments must have arity exactly 1.
- option names must be non-empty, whitespace-free and unique within the spec.
- empty strings are rejected for label/descr/split; wrong kinds raise TypeError.

Quick example:
    >>> from argbind import OptionSpec, PositionalParamSpec
    >>> verbose = OptionSpec("-v", "--verbose")
    >>> files = PositionalParamSpec(index="0..*", type=list[str])
    ...
"""
import builtins
import collections
import copy
import enum
import re
import typing
import warnings

from .faults import InitializationError, UnbalancedQuotesWarning
from .ranges import Range, UNBOUNDED
from .utils import *

_SEQUENCES = (list, tuple, collections.deque)
_SETS = (set, frozenset)


class ValueBinding:
    """In-memory value slot (the default binding of an ArgSpec)."""
    __slots__ = ("_value",)

    def __init__(self, value=None, /):
        self._value = value

    def get(self):
        return self._value

    def set(self, value, /):
        previous, self._value = self._value, value
        return previous

    def __repr__(self):
        return f"ValueBinding({self._value!r})"


class AttributeBinding:
    """Binding onto ``getattr(target, name)`` / ``setattr(target, name, value)``."""
    __slots__ = ("_target", "_name")

    def __init__(self, target, name, /):
        if not isinstance(name, str):
            raise TypeError("AttributeBinding() name must be a string")
        self._target = target
        self._name = name

    @property
    def target(self):
        return self._target

    @property
    def name(self):
        return self._name

    def get(self):
        return getattr(self._target, self._name, None)

    def set(self, value, /):
        previous = self.get()
        setattr(self._target, self._name, value)
        return previous

    def __repr__(self):
        return f"AttributeBinding({type(self._target).__name__}.{self._name})"


def _resolve_container(type, /):
    """
    Split a declared type into (container, element types).

    container is None for single-valued types, a sequence/set type for
    collections and dict for maps.
    """
    origin = typing.get_origin(type) or type
    arguments = tuple(argument for argument in typing.get_args(type) if argument is not Ellipsis)
    if origin in _SEQUENCES or origin in _SETS:
        return origin, arguments[:1] or (str,)
    if origin is dict:
        return dict, arguments[:2] if len(arguments) == 2 else (str, str)
    return None, (type,)


def _sanitize_metadata(cls, metadata, /):
    """
    Internal: normalize shared presentation metadata (label, descr, hidden,
    completions) in place.

    Raises
    - TypeError: when a field has the wrong kind.
    - ValueError: when a string field is empty after trimming.
    """
    if not isinstance(label := metadata["label"], str | Unset):
        raise TypeError(f"{cls.__typename__} 'label' must be a string")
    elif isinstance(label, str) and not (label := label.strip()):
        raise ValueError(f"{cls.__typename__} 'label' cannot be empty")
    metadata["label"] = coalesce(label, "PARAM")

    if not isinstance(descr := metadata["descr"], str | Unset):
        raise TypeError(f"{cls.__typename__} 'descr' must be a string")
    elif isinstance(descr, str) and not (descr := descr.strip()):
        raise ValueError(f"{cls.__typename__} 'descr' cannot be empty")
    metadata["descr"] = coalesce(descr)

    metadata["hidden"] = bool(metadata["hidden"])

    if (completions := metadata["completions"]) is not Unset:
        if isinstance(completions, str) or not all(isinstance(item, str) for item in completions):
            raise TypeError(f"{cls.__typename__} 'completions' must be an iterable of strings")
        metadata["completions"] = tuple(completions)


def _sanitize_typed_metadata(cls, metadata, /, *, flag):
    """
    Internal: resolve type, auxiliary types and arity in place.

    - arity: coerced to a Range; when Unset, a default marked unspecified is
      derived (0 for boolean options, 1 otherwise).
    - type: inferred from the arity when Unset (list[str] for multi-value,
      str for single value, bool for zero-arity options).
    - auxiliary: container parameters of the type unless given explicitly.
    - interactive arguments must keep an arity of exactly 1.

    flag tells whether zero-arity inference should produce a boolean (options)
    or a string (positionals).
    """
    if (arity := metadata["arity"]) is not Unset:
        if not isinstance(arity, Range | str | int) or isinstance(arity, bool):
            raise TypeError(f"{cls.__typename__} 'arity' must be a range, a range string or an int")
        arity = Range.of(arity)

    if (auxiliary := metadata["auxiliary"]) is not Unset:
        if isinstance(auxiliary, str) or not (auxiliary := tuple(auxiliary)):
            raise TypeError(f"{cls.__typename__} 'auxiliary' must be a non-empty iterable of types")

    if (type := metadata["type"]) is Unset:
        if auxiliary is not Unset:
            type = auxiliary[0]
        elif arity is Unset:
            type = bool if flag else str
        elif arity.variable or arity.max > 1:
            type = list[str]
        elif arity.max == 1:
            type = str
        else:
            type = bool if flag else str

    container, elements = _resolve_container(type)
    metadata["type"] = type
    metadata["container"] = container
    metadata["auxiliary"] = coalesce(auxiliary, elements)

    if arity is Unset:
        arity = Range(0 if flag and type is bool else 1, unspecified=True)
    metadata["arity"] = arity

    metadata["interactive"] = bool(metadata["interactive"])
    if metadata["interactive"] and (arity.min, arity.max) != (1, 1):
        raise InitializationError(
            "Interactive options and positional parameters are only supported "
            f"for arity=1, not for arity={arity}"
        )

    if (completions := metadata["completions"]) is Unset:
        element = metadata["auxiliary"][0]
        if isinstance(element, builtins.type) and issubclass(element, enum.Enum):
            completions = tuple(element.__members__)
        metadata["completions"] = coalesce(completions, ())


def _sanitize_value_metadata(cls, metadata, /):
    """
    Internal: validate default/initial/split/converters/binding in place.
    """
    if not isinstance(default := metadata["default"], str | Unset):
        raise TypeError(f"{cls.__typename__} 'default' must be a string")
    metadata["required"] = bool(metadata["required"]) and default is Unset
    metadata["reset"] = bool(metadata["reset"])

    if not isinstance(split := metadata["split"], str | Unset):
        raise TypeError(f"{cls.__typename__} 'split' must be a string")
    elif isinstance(split, str):
        if not split:
            raise ValueError(f"{cls.__typename__} 'split' cannot be empty")
        try:
            re.compile(split)
        except re.error as exc:
            raise ValueError(f"{cls.__typename__} 'split' is not a valid regular expression: {exc}") from None
    metadata["split"] = coalesce(split)

    if isinstance(converters := metadata["converters"], str) or not all(map(callable, converters := tuple(converters))):
        raise TypeError(f"{cls.__typename__} 'converters' must be an iterable of callables")
    metadata["converters"] = converters

    if (binding := metadata["binding"]) is Unset:
        binding = ValueBinding()
    elif not (callable(getattr(binding, "get", None)) and callable(getattr(binding, "set", None))):
        raise TypeError(f"{cls.__typename__} 'binding' must provide get() and set() methods")
    metadata["binding"] = binding


class ArgSpec(metaclass=SpecType):
    """
    Shared base of OptionSpec and PositionalParamSpec.

    An ArgSpec is built once, attached to exactly one CommandSpec, and then
    only its captured values change: they are cleared at the start of every
    parse and filled by the interpreter while tokens are matched.

    Properties
    - The names listed in __introspectable__ are exposed as read-only
      attributes mirroring the sanitized metadata.
    - string_values / original_string_values / typed_values /
      typed_value_at_position are read-only views over the values captured by
      the last parse.
    """

    __introspectable__ = (
        "type",
        "container",
        "auxiliary",
        "arity",
        "required",
        "default",
        "initial",
        "reset",
        "split",
        "label",
        "descr",
        "hidden",
        "interactive",
        "completions",
        "converters",
        "binding",
        "string_values",
        "original_string_values",
        "typed_values",
        "typed_value_at_position",
    )
    __displayable__ = ("type", "arity", "required", "default", "split", "label")

    def __init_subclass__(cls, **options):
        super().__init_subclass__(**options)
        cls.__introspectable__ = tuple(dict.fromkeys(ArgSpec.__introspectable__ + cls.__introspectable__))

    def __init__(
            self,
            *,
            type=Unset,
            auxiliary=Unset,
            arity=Unset,
            required=False,
            default=Unset,
            initial=Unset,
            reset=True,
            split=Unset,
            label=Unset,
            descr=Unset,
            hidden=False,
            interactive=False,
            completions=Unset,
            converters=(),
            binding=Unset,
    ):
        if builtins.type(self) is ArgSpec:
            raise TypeError("ArgSpec cannot be instantiated directly, use OptionSpec or PositionalParamSpec")
        metadata = {
            "type": type,
            "auxiliary": auxiliary,
            "arity": arity,
            "required": required,
            "default": default,
            "initial": initial,
            "reset": reset,
            "split": split,
            "label": label,
            "descr": descr,
            "hidden": hidden,
            "interactive": interactive,
            "completions": completions,
            "converters": converters,
            "binding": binding,
        }
        # kept for copy.replace(); holds the arguments as given
        self._arguments = dict(metadata)

        _sanitize_metadata(builtins.type(self), metadata)
        _sanitize_typed_metadata(builtins.type(self), metadata, flag=isinstance(self, OptionSpec))
        _sanitize_value_metadata(builtins.type(self), metadata)

        for name, object in metadata.items():
            setattr(self, "_" + name, object)

        if self._initial is Unset:
            self._initial = self._binding.get()

        self._command = None
        self._string_values = []
        self._original_string_values = []
        self._typed_values = []
        self._typed_value_at_position = {}

    @property
    def command(self):
        """The CommandSpec this argument was added to, or None."""
        return self._command

    @property
    def multivalue(self):
        return self._container is not None

    @property
    def mapping(self):
        return self._container is dict

    @property
    def option(self):
        return isinstance(self, OptionSpec)

    @property
    def positional(self):
        return isinstance(self, PositionalParamSpec)

    @property
    def value(self):
        """Current value, read through the binding."""
        return self._binding.get()

    def set_value(self, value, /):
        """Write a value through the binding; returns the previous value."""
        return self._binding.set(value)

    def default_value(self):
        """
        The default string for this argument.

        The owning command's default provider is consulted first; its answer
        wins unless it is None. Returns None when there is no default.
        """
        if self._command is not None and (provider := self._command.default_provider) is not None:
            if (provided := provider(self)) is not None:
                return provided
        return coalesce(self._default)

    def clear(self):
        """
        Clear captured values and, when configured, restore the initial value.

        Called by the interpreter at the start of each parse.
        """
        self._string_values.clear()
        self._original_string_values.clear()
        self._typed_values.clear()
        self._typed_value_at_position.clear()
        if self._reset:
            self._binding.set(copy.copy(self._initial))

    def capture(self, raw, /, *, strings=(), typed=()):
        """
        Record values matched by the interpreter.

        raw is the token as given (before splitting), strings the split
        fragments and typed their converted values.
        """
        if raw is not None:
            self._original_string_values.append(raw)
        self._string_values.extend(strings)
        self._typed_values.extend(typed)

    def reserve(self, position, /):
        """File an (initially empty) value list for the given position."""
        return self._typed_value_at_position.setdefault(position, [])

    def split_value(self, value, parser, arity, consumed, /):
        """
        Split one raw token into values using the split regex.

        Parameters
        - value: raw token (None passes through as [None]).
        - parser: ParserSpec providing limit_split, split_quoted_strings and
          trim_quotes.
        - arity: the arity in effect for this match.
        - consumed: how many values were already taken for this match.

        Behavior
        - Without a split regex the token is returned as is.
        - With limit_split, at most arity.max - consumed values are produced.
        - Double-quoted segments are not split unless split_quoted_strings is
          set; quotes around them are removed when trim_quotes is set.
        """
        if self._split is None or value is None:
            return [value]
        limit = max(arity.max - consumed, 0) if parser.limit_split else 0
        if parser.split_quoted_strings:
            return _split(self._split, value, limit)
        return _split_respecting_quotes(self._split, value, limit, parser.trim_quotes, self)

    def __replace__(self, *unused, **changes):
        assert not unused, "positional arguments are not allowed"
        return builtins.type(self)(**{**self._arguments, **changes})


def _split(pattern, value, limit, /):
    """re.split with a split-count limit (0 = unlimited, trailing empties dropped)."""
    if limit == 1:
        return [value]
    if limit > 0:
        return re.split(pattern, value, maxsplit=limit - 1)
    parts = re.split(pattern, value)
    while len(parts) > 1 and not parts[-1]:
        parts.pop()
    return parts


def _split_respecting_quotes(pattern, value, limit, trim, argument, /):
    """
    Split value on pattern, leaving double-quoted segments intact.

    The text between a pair of quotes is lifted out before splitting (only the
    two quote characters stay behind) and put back afterwards, without the
    quotes when trim is set. Backslash-escaped quotes do not open or close a
    segment.
    """
    quoted = []
    buffer = []
    current = None
    escaping = False
    for char in value:
        if current is None:
            buffer.append(char)
            if char == '"' and not escaping:
                current = []
        elif char == '"' and not escaping:
            quoted.append("".join(current))
            buffer.append(char)
            current = None
        else:
            current.append(char)
        escaping = char == "\\" and not escaping
    if current is not None:
        warnings.warn(
            UnbalancedQuotesWarning(f"Unbalanced quotes in [{value}] for {argument} (value={value})"),
            stacklevel=4,
        )
        buffer.extend(current)

    segments = iter(quoted)

    def restore(part):
        result = []
        inside = escaping = False
        for char in part:
            if char == '"' and not escaping:
                inside = not inside
                if not inside:
                    result.append(next(segments, ""))
                if not trim:
                    result.append(char)
            else:
                result.append(char)
            escaping = char == "\\" and not escaping
        return "".join(result)

    return [restore(part) for part in _split(pattern, "".join(buffer), limit)]


def _sanitize_named_metadata(cls, metadata, /):
    """
    Internal: validate option names and help triggers in place.

    - names: at least one; each a non-empty string without whitespace;
      duplicates rejected; order preserved.
    - usage_help / version_help: booleans; the boolean-type requirement for
      help triggers is checked by CommandSpec.validate().
    """
    if not (names := metadata["names"]):
        raise InitializationError(f"{cls.__typename__} requires at least one name")
    for name in names:
        if not isinstance(name, str):
            raise TypeError(f"{cls.__typename__} names must be strings")
        elif not name or any(char.isspace() for char in name):
            raise ValueError(f"Invalid names: {list(names)}")
    if len(set(names)) != len(names):
        raise ValueError(f"{cls.__typename__} names must not contain duplicates")
    metadata["names"] = tuple(names)
    metadata["usage_help"] = bool(metadata["usage_help"])
    metadata["version_help"] = bool(metadata["version_help"])


class OptionSpec(ArgSpec):
    """
    Named argument (e.g., -o/--output) of a command.

    Highlights
    - Aliases via names; the longest name is used in messages.
    - Zero-arity boolean options are flags: matching them toggles (or sets)
      the value unless an explicit true/false follows.
    - usage_help / version_help mark the help triggers; matching one of them
      suppresses required-argument validation for the whole parse.
    """

    __introspectable__ = (
        "names",
        "usage_help",
        "version_help",
    )
    __displayable__ = ("names", "type", "arity", "required", "default", "split", "label")

    def __init__(self, *names, usage_help=False, version_help=False, **options):
        metadata = {"names": names, "usage_help": usage_help, "version_help": version_help}
        _sanitize_named_metadata(type(self), metadata)
        super().__init__(**options)
        for name, object in metadata.items():
            setattr(self, "_" + name, object)

    @property
    def longest_name(self):
        return max(self._names, key=len)

    @property
    def shortest_name(self):
        return min(self._names, key=len)

    def __replace__(self, *unused, **changes):
        assert not unused, "positional arguments are not allowed"
        names = changes.pop("names", self._names)
        return type(self)(
            *names,
            usage_help=changes.pop("usage_help", self._usage_help),
            version_help=changes.pop("version_help", self._version_help),
            **{**self._arguments, **changes},
        )

    def __str__(self):
        return f"option '{self.longest_name}'"


class PositionalParamSpec(ArgSpec):
    """
    Positional argument claiming the argument positions in its index range.

    index defaults to "0..*" (every remaining position). capacity is the total
    number of tokens the positional can take (index span x arity).
    """

    __introspectable__ = (
        "index",
    )
    __displayable__ = ("index", "type", "arity", "required", "default", "split", "label")

    def __init__(self, *, index=Unset, **options):
        if index is Unset:
            index = Range(0, UNBOUNDED, unspecified=True)
        elif not isinstance(index, Range | str | int) or isinstance(index, bool):
            raise TypeError(f"{type(self).__typename__} 'index' must be a range, a range string or an int")
        self._index = Range.of(index)
        super().__init__(**options)

    @property
    def capacity(self):
        return Range.capacity(self._arity, self._index)

    def __replace__(self, *unused, **changes):
        assert not unused, "positional arguments are not allowed"
        index = changes.pop("index", self._index)
        return type(self)(index=index, **{**self._arguments, **changes})

    def __str__(self):
        return f"positional parameter[{self._index}]"


def positional_order(argument, /):
    """
    Sort key ordering arguments by index then arity (options count as index 0).
    """
    index = argument.index if isinstance(argument, PositionalParamSpec) else Range(0)
    return index, argument.arity


__all__ = (
    "ValueBinding",
    "AttributeBinding",
    "ArgSpec",
    "OptionSpec",
    "PositionalParamSpec",
    "positional_order",
)
