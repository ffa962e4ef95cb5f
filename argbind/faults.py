"""
Argbind faults (errors and warnings) and rendering.

Scope
- FaultCode: stable numeric identifiers for every fault, grouped by domain.
- ArgbindException: base type carrying a message plus read-only options, able
  to render itself with rich and to be copied with changes (copy.replace).
- InitializationError family: the specification itself is invalid. Raised
  while building or validating a CommandSpec, never mid-parse.
- ParameterError family: user input does not satisfy the grammar. Every
  instance knows the command level it was raised at (``fault.command``).
- ParseErrors: aggregate raised after a collect-errors parse.
- ArgbindWarning: grammar problems that do not stop anything.
- getdoc(): optional description lookup for a code from the host application.

Integration
- Command-agnostic helpers (ranges, converters, arguments) raise faults
  without a command; the interpreter attaches the failing level through
  copy.replace(fault, command=...) before surfacing them.
- Rendering is opt-in: faults are rich renderables, the library never prints.
"""
import copy
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset, coalesce


class FaultCode(IntEnum):
    """
    canonical fault codes (stable identifiers).

    grouping
    - specification (1100x): faults raised while building or validating specs.
    - parameters (1110x/1111x): faults raised while matching user input.
    - aggregate (1119x): collected faults.
    - warnings (12xxx).

    normalize() lets a host remap a code to a friendlier label.
    """
    # --- specification errors (11xxx) ---
    INITIALIZATION              = 11001
    INVALID_RANGE               = 11002
    DUPLICATE_OPTION            = 11003
    DUPLICATE_SUBCOMMAND        = 11004
    PARAMETER_INDEX_GAP         = 11005
    INVALID_HELP_OPTION         = 11006
    UNREADABLE_ARGUMENT_FILE    = 11007

    # --- parameter errors (11xxx) ---
    PARAMETER                   = 11101
    MISSING_PARAMETER           = 11102
    MAX_VALUES_EXCEEDED         = 11103
    OVERWRITTEN_OPTION          = 11104
    UNMATCHED_ARGUMENT          = 11105
    UNKNOWN_OPTION              = 11106
    TYPE_CONVERSION             = 11111
    MISSING_TYPE_CONVERTER      = 11112
    MALFORMED_KEY_VALUE         = 11113

    # --- aggregate errors (11xxx) ---
    COLLECTED_ERRORS            = 11191

    # --- warnings (12xxx) ---
    WARNING                     = 12001
    MULTIPLE_HELP_OPTIONS       = 12101
    UNBALANCED_QUOTES           = 12102

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__
        to override numeric ids with friendlier labels. when no mapping
        is present, the numeric value is returned as a string.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


_ERROR_STYLES = {
    "command-name": "bold #E6E6F0",
    "code": "bold #00E5FF",
    "title": "bold #FF4DA6",
    "message": "#C8C8D0",
    "hint-arrow": "#9CE19C dim",
    "hint": "italic #9CE19C",
}

_WARNING_STYLES = _ERROR_STYLES | {
    "code": "bold #FFB400",
    "title": "bold #FFC2E0",
    "message": "#D6D6DE",
}


def _render(fault, defaults, /):
    """
    shared rich rendering for exceptions and warnings.

    options read from the fault
    - colorful (default True): apply styles.
    - fancy (default False): wrap the body in a panel.
    - hint: optional one-line hint rendered under the message.
    styles can be overridden with a __styles__ mapping in __main__.
    """
    styles = defaultdict(str, defaults | getattr(__import__("__main__"), "__styles__", {}))
    colorful = fault.options.get("colorful", True)

    def text(fragment, style):
        if not fragment:
            return Text("")
        return Text(str(fragment), styles[style] if colorful else "")

    command = fault.options.get("command")
    header = Text.assemble(
        "[ ",
        text(command.qualified_name() if command is not None else "argbind", "command-name"),
        " - ",
        text(fault.code.normalize(), "code"),
        " | ",
        text(fault.title.title(), "title"),
        " ]",
    )
    parts = [text(coalesce(fault.message, ""), "message")]
    if hint := fault.options.get("hint"):
        parts.append(Text.assemble(text(" -> ", "hint-arrow"), text(hint, "hint")))

    if fault.options.get("fancy", False):
        return Panel(Group(*parts), title=header, title_align="left")
    return Group(header, *parts)


class ArgbindException(Exception):
    """
    Base of every argbind error.

    message is positional; everything else is an option kept in a read-only
    mapping. Subclasses pin a default code and title; both can be overridden
    per instance through the options of the same name.
    """
    __code__ = FaultCode.INITIALIZATION
    __title__ = "specification error"

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(coalesce(message, ""))
        self.message = message
        self.options = MappingProxyType(options)

    def __str__(self):
        return coalesce(self.message, "")

    @property
    def code(self):
        return self.options.get("code", type(self).__code__)

    @property
    def title(self):
        return self.options.get("title", type(self).__title__)

    @property
    def command(self):
        """The CommandSpec level the fault belongs to, or None."""
        return self.options.get("command")

    def __rich__(self):
        return _render(self, _ERROR_STYLES)

    def __replace__(self, *unused, **overrides):
        assert not unused, "unused arguments are not allowed"
        replica = type(self)(self.message, **{**self.options, **overrides})
        replica.__cause__ = self.__cause__
        return replica


class InitializationError(ArgbindException):
    """The specification is invalid (always raised while building it)."""


class InvalidRangeError(InitializationError):
    __code__ = FaultCode.INVALID_RANGE
    __title__ = "invalid range"


class DuplicateOptionError(InitializationError):
    __code__ = FaultCode.DUPLICATE_OPTION
    __title__ = "duplicate option"

    @property
    def name(self):
        return self.options.get("name")


class DuplicateSubcommandError(InitializationError):
    __code__ = FaultCode.DUPLICATE_SUBCOMMAND
    __title__ = "duplicate subcommand"


class ParameterIndexGapError(InitializationError):
    __code__ = FaultCode.PARAMETER_INDEX_GAP
    __title__ = "positional index gap"


class InvalidHelpOptionError(InitializationError):
    __code__ = FaultCode.INVALID_HELP_OPTION
    __title__ = "invalid help option"


class ArgumentFileError(InitializationError):
    __code__ = FaultCode.UNREADABLE_ARGUMENT_FILE
    __title__ = "unreadable argument file"


class ParameterError(ArgbindException):
    """
    User input does not satisfy the grammar.

    options commonly present
    - command: the CommandSpec level where matching failed.
    - argument: the ArgSpec involved, when there is one.
    - value: the offending raw string, when there is one.
    """
    __code__ = FaultCode.PARAMETER
    __title__ = "invalid input"

    @property
    def argument(self):
        return self.options.get("argument")

    @property
    def value(self):
        return self.options.get("value")


class MissingParameterError(ParameterError):
    __code__ = FaultCode.MISSING_PARAMETER
    __title__ = "missing parameter"

    @property
    def missing(self):
        """The ArgSpecs that did not receive a value."""
        return tuple(self.options.get("missing", ()))


class MaxValuesExceededError(ParameterError):
    __code__ = FaultCode.MAX_VALUES_EXCEEDED
    __title__ = "too many values"


class OverwrittenOptionError(ParameterError):
    __code__ = FaultCode.OVERWRITTEN_OPTION
    __title__ = "option specified twice"


class TypeConversionError(ParameterError):
    """A raw value could not be converted; the original failure is __cause__."""
    __code__ = FaultCode.TYPE_CONVERSION
    __title__ = "invalid value"

    @property
    def target(self):
        return self.options.get("target")


class MissingTypeConverterError(ParameterError):
    __code__ = FaultCode.MISSING_TYPE_CONVERTER
    __title__ = "no converter"

    @property
    def target(self):
        return self.options.get("target")


class UnmatchedArgumentError(ParameterError):
    """
    Tokens that matched no option, positional or subcommand.

    The message and the suggestions are derived from the unmatched tokens and
    the command level; see the ``suggestions`` property.
    """
    __code__ = FaultCode.UNMATCHED_ARGUMENT
    __title__ = "unmatched argument"

    def __init__(self, message=Unset, /, **options):
        if message is Unset:
            message = _describe_unmatched(options.get("command"), options.get("unmatched", ()))
        super().__init__(message, **options)

    @property
    def unmatched(self):
        return tuple(self.options.get("unmatched", ()))

    @property
    def unknown_option(self):
        """True when the first unmatched token looks like an option."""
        unmatched = self.unmatched
        return bool(unmatched) and self.command is not None and self.command.resembles_option(unmatched[0])

    @property
    def code(self):
        if "code" in self.options:
            return self.options["code"]
        return FaultCode.UNKNOWN_OPTION if self.unknown_option else FaultCode.UNMATCHED_ARGUMENT

    @property
    def suggestions(self):
        """
        candidate corrections for the first unmatched token.

        - option-like tokens: option names sharing the first two characters
          (after stripping the prefix) of the token.
        - anything else: up to three most similar subcommand names.
        """
        from .similarity import most_similar

        command, unmatched = self.command, self.unmatched
        if command is None or not unmatched:
            return ()
        token = unmatched[0]
        if command.resembles_option(token):
            stripped = command.strip_prefix(token)
            return tuple(command.find_option_names_with_prefix(stripped[:2]))
        if command.subcommands:
            return tuple(most_similar(token, command.subcommands.keys())[:3])
        return ()

    @property
    def hint(self):
        suggestions = self.suggestions
        if not suggestions:
            return None
        if len(suggestions) == 1:
            return f"did you mean: {suggestions[0]}?"
        return f"did you mean: {", ".join(suggestions[:-1])} or {suggestions[-1]}?"

    def __rich__(self):
        if "hint" in self.options or not (hint := self.hint):
            return super().__rich__()
        return _render(copy.replace(self, hint=hint), _ERROR_STYLES)


def _describe_unmatched(command, unmatched, /):
    unmatched = tuple(unmatched)
    if not unmatched:
        return "Unmatched arguments"
    quoted = ", ".join(map(repr, unmatched))
    if command is not None and command.resembles_option(unmatched[0]):
        return ("Unknown option: " if len(unmatched) == 1 else "Unknown options: ") + quoted
    return ("Unmatched argument: " if len(unmatched) == 1 else "Unmatched arguments: ") + quoted


class ParseErrors(ExceptionGroup):
    """
    Every fault collected during a collect-errors parse.

    ``result`` is the (partial) root ParseResult of the parse.
    """
    __code__ = FaultCode.COLLECTED_ERRORS

    def __new__(cls, exceptions, **options):
        return super().__new__(cls, "invalid input", tuple(exceptions))

    def __init__(self, exceptions, **options):
        super().__init__("invalid input", tuple(exceptions))
        self.options = MappingProxyType(options)

    @property
    def result(self):
        return self.options.get("result")

    def derive(self, exceptions):
        return type(self)(exceptions, **self.options)

    def __rich__(self):
        styles = defaultdict(str, _ERROR_STYLES | getattr(__import__("__main__"), "__styles__", {}))
        colorful = self.options.get("colorful", True)
        header = Text.assemble(
            "[ ",
            Text(FaultCode.COLLECTED_ERRORS.normalize(), styles["code"] if colorful else ""),
            " | ",
            Text(f"{len(self.exceptions)} errors", styles["title"] if colorful else ""),
            " ]",
        )
        renders = [copy.replace(exception, colorful=colorful) for exception in self.exceptions]
        if self.options.get("fancy", False):
            return Panel(Group(*renders), title=header, title_align="left")
        return Group(header, *renders)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.exceptions, **{**self.options, **overrides})


class ArgbindWarning(Warning):
    """Base of argbind warnings; same message/options shape as the errors."""
    __code__ = FaultCode.WARNING
    __title__ = "warning"

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(coalesce(message, ""))
        self.message = message
        self.options = MappingProxyType(options)

    def __str__(self):
        return coalesce(self.message, "")

    @property
    def code(self):
        return self.options.get("code", type(self).__code__)

    @property
    def title(self):
        return self.options.get("title", type(self).__title__)

    def __rich__(self):
        return _render(self, _WARNING_STYLES)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class MultipleHelpOptionsWarning(ArgbindWarning):
    __code__ = FaultCode.MULTIPLE_HELP_OPTIONS
    __title__ = "multiple help options"


class UnbalancedQuotesWarning(ArgbindWarning):
    __code__ = FaultCode.UNBALANCED_QUOTES
    __title__ = "unbalanced quotes"


def getdoc(code, /):
    """
    optional documentation fetch for a fault code.

    the host application may expose a __docs__ mapping in __main__ where keys
    are FaultCode members and values are short documentation strings. returns
    None when no entry exists.
    """
    if not isinstance(code, FaultCode):
        raise TypeError("getdoc() argument must be a fault-code")
    return getattr(__import__("__main__"), "__docs__", {}).get(code)


__all__ = (
    "FaultCode",
    "ArgbindException",
    "InitializationError",
    "InvalidRangeError",
    "DuplicateOptionError",
    "DuplicateSubcommandError",
    "ParameterIndexGapError",
    "InvalidHelpOptionError",
    "ArgumentFileError",
    "ParameterError",
    "MissingParameterError",
    "MaxValuesExceededError",
    "OverwrittenOptionError",
    "TypeConversionError",
    "MissingTypeConverterError",
    "UnmatchedArgumentError",
    "ParseErrors",
    "ArgbindWarning",
    "MultipleHelpOptionsWarning",
    "UnbalancedQuotesWarning",
    "getdoc",
)
