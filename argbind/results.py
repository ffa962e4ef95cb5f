"""
Argbind parse results.

One ParseResult is produced per command level reached by a parse: the root
command, then one per subcommand traversed, chained through ``subcommand``.
Results are filled by the interpreter and read-only for everybody else.
"""
from .arguments import OptionSpec, PositionalParamSpec
from .utils import *


class ParseResult(metaclass=SpecType):
    """
    What one command level matched.

    Properties
    - command: the CommandSpec of this level.
    - matched_options: options matched at this level, in match order, once each.
    - matched_positionals: positionals matched at this level, once each.
    - matched_args: every match in order (an argument repeats when matched
      more than once).
    - unmatched: tokens nothing could take.
    - original_args: the tokens given to the parse (before at-file expansion).
    - errors: faults collected at this level (collect-errors mode only).
    - subcommand: the ParseResult of the subcommand level, or None.
    - usage_help_requested / version_help_requested: a help trigger of this
      level was matched.
    """

    __introspectable__ = (
        "command",
        "matched_options",
        "matched_positionals",
        "matched_args",
        "unmatched",
        "original_args",
        "errors",
        "subcommand",
        "usage_help_requested",
        "version_help_requested",
    )
    __displayable__ = ("command", "matched_args", "unmatched", "subcommand")

    def __init__(self, command, /, *, original_args=()):
        self._command = command
        self._matched_options = []
        self._matched_positionals = []
        self._matched_args = []
        self._positional_matches = {}
        self._unmatched = []
        self._original_args = tuple(original_args)
        self._errors = []
        self._subcommand = None
        self._usage_help_requested = False
        self._version_help_requested = False

    def matched_option(self, name, /):
        """The matched option known by name (or short character), or None."""
        option = self._command.find_option(name)
        return option if option is not None and option in self._matched_options else None

    def has_matched_option(self, name, /):
        return self.matched_option(name) is not None

    def matched_option_value(self, name, default=None, /):
        """Value of a matched option; default when it was not matched."""
        option = self.matched_option(name)
        return option.value if option is not None else default

    def matched_positionals_at(self, position, /):
        """Positionals that took the token at the given argument position."""
        return tuple(self._positional_matches.get(position, ()))

    def has_matched_positional(self, position, /):
        return bool(self._positional_matches.get(position))

    def matched_positional_value(self, position, default=None, /):
        """Value of the first positional matched at position; default otherwise."""
        matches = self._positional_matches.get(position)
        return matches[0].value if matches else default

    def has_subcommand(self):
        return self._subcommand is not None

    def as_list(self):
        """This level followed by every subcommand level below it."""
        chain = []
        result = self
        while result is not None:
            chain.append(result)
            result = result._subcommand
        return chain

    def _add(self, argument, position=None, /):
        """Record a match (called by the interpreter)."""
        if isinstance(argument, OptionSpec):
            if argument not in self._matched_options:
                self._matched_options.append(argument)
        elif isinstance(argument, PositionalParamSpec):
            if argument not in self._matched_positionals:
                self._matched_positionals.append(argument)
            if position is not None:
                self._positional_matches.setdefault(position, []).append(argument)
        self._matched_args.append(argument)


__all__ = (
    "ParseResult",
)
