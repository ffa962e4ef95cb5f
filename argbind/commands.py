"""
Argbind command specifications.

Overview
- ParserSpec: immutable parser configuration of one command (separator,
  clustering, split and quote policies, leniency switches, at-file expansion).
  Derive changed copies with copy.replace().
- CommandSpec: the grammar of one command level: options (ordered, by name
  and by POSIX short character), positionals (sorted by index on validate),
  subcommands (name and alias -> CommandSpec), mixins, required arguments and
  the parent back-reference.

Configuration propagation
- configure(**settings) and register_converter(type, converter) apply to the
  command and every subcommand attached at the time of the call. Subcommands
  attached later keep the settings they were built with.

Validation
- validate() sorts positionals by index then arity, checks that positional
  indexes leave no gap, and checks the help triggers: a usage-help or
  version-help option must be boolean (error), and more than one of a kind
  is suspicious (warning). Subcommands are validated too.

Quick example:
    >>> from argbind import CommandSpec, OptionSpec
    >>> git = CommandSpec("git")
    >>> status = CommandSpec("status", arguments=[OptionSpec("-v", "--verbose")])
    >>> git.add_subcommand("status", status)
    ...
"""
import copy
import logging
import os
import re
import sys
import warnings

from .arguments import OptionSpec, PositionalParamSpec, positional_order
from .converters import ConverterRegistry
from .faults import (
    DuplicateOptionError,
    DuplicateSubcommandError,
    InitializationError,
    InvalidHelpOptionError,
    MultipleHelpOptionsWarning,
    ParameterIndexGapError,
)
from .ranges import UNBOUNDED
from .utils import *

logger = logging.getLogger(__name__)


def resembles_option(command, token, /):
    """
    Default predicate deciding whether an unknown token looks like an option.

    - never, when the parser treats unmatched options as positionals;
    - for commands without options, when the token starts with "-";
    - otherwise when the characters the token shares, position by position,
      with the beginning of each option name add up to at least 90% of the
      number of option names.

    The heuristic is approximate: "-1" resembles an option of a command whose
    options all start with "-".
    """
    if command.parser.unmatched_options_are_positional:
        return False
    names = command.options_map
    if not names:
        return token.startswith("-")
    count = 0
    for name in names:
        for char, expected in zip(token, name):
            if char != expected:
                break
            count += 1
    return count > 0 and count * 10 >= len(names) * 9


def strip_prefix(token, /):
    """Drop leading characters that cannot be part of an identifier ("--foo" -> "foo")."""
    return re.sub(r"^[^\w$]+", "", token) or token


class ParserSpec(metaclass=SpecType):
    """
    Parser configuration of one command.

    Fields (defaults)
    - separator ("="): joins an option name and an attached value. Tracks
      whether it was set explicitly (mixins only fill it in when not).
    - end_of_options ("--"): everything after it is positional.
    - posix_clustered (True): "-xvf" is read as "-x -v -f".
    - overwritten_options_allowed (False): a repeated single-value option
      overwrites instead of failing.
    - unmatched_arguments_allowed (False): unmatched tokens are recorded
      instead of failing.
    - stop_at_unmatched (False): the first unmatched token ends the scan and
      every remaining token is unmatched.
    - stop_at_positional (False): the first positional ends option processing.
    - unmatched_options_are_positional (False): option-like unknown tokens are
      positional values.
    - toggle_boolean_flags (True): a flag flips its current value instead of
      setting it to True.
    - case_insensitive_enums (False): enum member names match ignoring case.
    - limit_split (False): splitting never produces more values than the
      arity has left.
    - arity_satisfied_by_attached (False): an attached value ("-o=x")
      satisfies the whole arity of the option.
    - collect_errors (False): collect faults instead of failing fast.
    - trim_quotes (False): remove surrounding double quotes from values.
    - split_quoted_strings (False): split regexes apply inside quotes too.
    - expand_at_files (True): "@file" tokens expand to the file's tokens.
    - at_file_comment ("#"): comment character in argument files (None: none).
    - resembles (resembles_option): predicate(command, token) -> bool.
    """

    __introspectable__ = (
        "end_of_options",
        "posix_clustered",
        "overwritten_options_allowed",
        "unmatched_arguments_allowed",
        "stop_at_unmatched",
        "stop_at_positional",
        "unmatched_options_are_positional",
        "toggle_boolean_flags",
        "case_insensitive_enums",
        "limit_split",
        "arity_satisfied_by_attached",
        "collect_errors",
        "trim_quotes",
        "split_quoted_strings",
        "expand_at_files",
        "at_file_comment",
        "resembles",
    )
    __displayable__ = ("separator",) + __introspectable__[:-1]

    def __init__(
            self,
            *,
            separator=Unset,
            end_of_options="--",
            posix_clustered=True,
            overwritten_options_allowed=False,
            unmatched_arguments_allowed=False,
            stop_at_unmatched=False,
            stop_at_positional=False,
            unmatched_options_are_positional=False,
            toggle_boolean_flags=True,
            case_insensitive_enums=False,
            limit_split=False,
            arity_satisfied_by_attached=False,
            collect_errors=False,
            trim_quotes=False,
            split_quoted_strings=False,
            expand_at_files=True,
            at_file_comment="#",
            resembles=Unset,
    ):
        if not isinstance(separator, str | Unset):
            raise TypeError("parser 'separator' must be a string")
        elif isinstance(separator, str) and not separator:
            raise ValueError("parser 'separator' cannot be empty")
        if not isinstance(end_of_options, str):
            raise TypeError("parser 'end_of_options' must be a string")
        elif not end_of_options:
            raise ValueError("parser 'end_of_options' cannot be empty")
        if at_file_comment is not None and not isinstance(at_file_comment, str):
            raise TypeError("parser 'at_file_comment' must be a string or None")
        elif isinstance(at_file_comment, str) and len(at_file_comment) != 1:
            raise ValueError("parser 'at_file_comment' must be a single character")
        if resembles is not Unset and not callable(resembles):
            raise TypeError("parser 'resembles' must be callable")

        self._separator = separator
        self._end_of_options = end_of_options
        self._posix_clustered = bool(posix_clustered)
        self._overwritten_options_allowed = bool(overwritten_options_allowed)
        self._unmatched_arguments_allowed = bool(unmatched_arguments_allowed)
        self._stop_at_unmatched = bool(stop_at_unmatched)
        self._stop_at_positional = bool(stop_at_positional)
        self._unmatched_options_are_positional = bool(unmatched_options_are_positional)
        self._toggle_boolean_flags = bool(toggle_boolean_flags)
        self._case_insensitive_enums = bool(case_insensitive_enums)
        self._limit_split = bool(limit_split)
        self._arity_satisfied_by_attached = bool(arity_satisfied_by_attached)
        self._collect_errors = bool(collect_errors)
        self._trim_quotes = bool(trim_quotes)
        self._split_quoted_strings = bool(split_quoted_strings)
        self._expand_at_files = bool(expand_at_files)
        self._at_file_comment = at_file_comment
        self._resembles = coalesce(resembles, resembles_option)

    @property
    def separator(self):
        return coalesce(self._separator, "=")

    @property
    def separator_initialized(self):
        """True when the separator was set explicitly."""
        return self._separator is not Unset

    def __replace__(self, *unused, **changes):
        assert not unused, "positional arguments are not allowed"
        settings = {name: getattr(self, "_" + name) for name in ("separator",) + type(self).__introspectable__}
        unknown = changes.keys() - settings.keys()
        if unknown:
            raise TypeError(f"unknown parser settings: {", ".join(sorted(unknown))}")
        return type(self)(**settings | changes)

    def __eq__(self, other):
        if not isinstance(other, ParserSpec):
            return NotImplemented
        return dict(self.__rich_repr__()) == dict(other.__rich_repr__()) and self._resembles == other._resembles

    def __hash__(self):
        return hash(tuple(self.__rich_repr__()))


class CommandSpec(metaclass=SpecType):
    """
    Grammar of one command level.

    Parameters
    - name: command name; the basename of sys.argv[0] when Unset. A name set
      by add_subcommand() or a mixin counts as explicit.
    - aliases: alternative names used when attached as a subcommand.
    - version: version lines (informational).
    - help_command: marks a help subcommand; reaching it suppresses required
      argument validation for the parse.
    - parser: ParserSpec (a default one when Unset).
    - converters: ConverterRegistry to fork (the built-ins when Unset).
    - factory: callable(cls) -> instance, used for converters given as classes.
    - default_provider: callable(arg) -> str | None, consulted before an
      argument's own default.
    - arguments: options and positionals to add right away.

    Invariants
    - option names and subcommand names/aliases are unique per command.
    - an ArgSpec belongs to at most one command.
    """

    __introspectable__ = (
        "aliases",
        "version",
        "options",
        "options_map",
        "posix_options_map",
        "positionals",
        "subcommands",
        "mixins",
        "required",
        "parser",
        "converters",
        "factory",
        "default_provider",
        "parent",
    )
    __displayable__ = ("name", "aliases", "options", "positionals", "subcommands")

    def __init__(
            self,
            name=Unset,
            /,
            *,
            aliases=(),
            version=(),
            help_command=Unset,
            parser=Unset,
            converters=Unset,
            factory=Unset,
            default_provider=Unset,
            arguments=(),
    ):
        if not isinstance(name, str | Unset):
            raise TypeError("command 'name' must be a string")
        elif isinstance(name, str) and not (name := name.strip()):
            raise ValueError("command 'name' cannot be empty")
        if isinstance(aliases, str):
            raise TypeError("command 'aliases' must be an iterable of non-empty strings")
        aliases = tuple(aliases)
        if not all(isinstance(alias, str) and alias for alias in aliases):
            raise TypeError("command 'aliases' must be an iterable of non-empty strings")
        if isinstance(version, str):
            version = (version,)
        version = tuple(version)
        if not all(isinstance(line, str) for line in version):
            raise TypeError("command 'version' must be an iterable of strings")
        if not isinstance(help_command, bool | Unset):
            raise TypeError("command 'help_command' must be a boolean")
        if not isinstance(parser, ParserSpec | Unset):
            raise TypeError("command 'parser' must be a ParserSpec")
        if not isinstance(converters, ConverterRegistry | Unset):
            raise TypeError("command 'converters' must be a ConverterRegistry")
        if factory is not Unset and not callable(factory):
            raise TypeError("command 'factory' must be callable")
        if default_provider is not Unset and not callable(default_provider):
            raise TypeError("command 'default_provider' must be callable")

        self._name = name
        self._aliases = aliases
        self._version = version
        self._help_command = help_command
        self._parser = coalesce(parser, ParserSpec())
        # copy-on-fork: the registry given here is never shared
        self._converters = coalesce(converters, ConverterRegistry.default()).copy()
        self._factory = coalesce(factory, _instantiate)
        self._default_provider = coalesce(default_provider)
        self._options = []
        self._options_map = {}
        self._posix_options_map = {}
        self._positionals = []
        self._subcommands = {}
        self._mixins = {}
        self._required = []
        self._parent = None

        for argument in arguments:
            self.add(argument)

    @property
    def name(self):
        return coalesce(self._name, os.path.basename(sys.argv[0]) or "<main command>")

    @property
    def help_command(self):
        return coalesce(self._help_command, False)

    @property
    def arguments(self):
        """Options then positionals."""
        return tuple(self._options) + tuple(self._positionals)

    @property
    def root(self):
        command = self
        while command._parent is not None:
            command = command._parent
        return command

    def qualified_name(self, separator=" ", /):
        names = []
        command = self
        while command is not None:
            names.append(command.name)
            command = command._parent
        return separator.join(reversed(names))

    def add(self, argument, /):
        """Add an OptionSpec or a PositionalParamSpec."""
        if isinstance(argument, OptionSpec):
            return self.add_option(argument)
        if isinstance(argument, PositionalParamSpec):
            return self.add_positional(argument)
        raise TypeError(f"add() argument must be an option or a positional, not {type(argument).__name__!r}")

    def _adopt(self, argument, /):
        if argument.command is not None and argument.command is not self:
            raise InitializationError(
                f"{argument} already belongs to command {argument.command.qualified_name()!r}",
                command=self,
            )

    def add_option(self, option, /):
        """
        Register an option under all its names.

        Raises DuplicateOptionError when one of the names is already used by
        another option of this command; nothing is registered in that case.
        """
        if not isinstance(option, OptionSpec):
            raise TypeError("add_option() argument must be an option")
        self._adopt(option)
        for name in option.names:
            if (existing := self._options_map.get(name)) is not None and existing is not option:
                raise DuplicateOptionError(
                    f"Option name {name!r} is used by both {existing} and {option}",
                    name=name,
                    command=self,
                )
        if option in self._options:
            return self
        self._options.append(option)
        for name in option.names:
            self._options_map[name] = option
            if len(name) == 2 and name.startswith("-"):
                self._posix_options_map[name[1]] = option
        if option.required:
            self._required.append(option)
        option._command = self
        logger.debug("added %s to command %r", option, self.name)
        return self

    def add_positional(self, positional, /):
        if not isinstance(positional, PositionalParamSpec):
            raise TypeError("add_positional() argument must be a positional")
        self._adopt(positional)
        if positional in self._positionals:
            return self
        self._positionals.append(positional)
        if positional.required:
            self._required.append(positional)
        positional._command = self
        logger.debug("added %s to command %r", positional, self.name)
        return self

    def add_subcommand(self, name, command, /):
        """
        Attach a subcommand under name and its aliases.

        The subcommand takes name as its own name when it has none, and this
        command becomes its parent. Raises DuplicateSubcommandError when name
        or an alias is already taken by another subcommand.
        """
        if not isinstance(name, str) or not name:
            raise TypeError("add_subcommand() name must be a non-empty string")
        if not isinstance(command, CommandSpec):
            raise TypeError("add_subcommand() command must be a command")
        if name in self._subcommands:
            raise DuplicateSubcommandError(
                f"Another subcommand named {name!r} already exists for command {self.name!r}",
                command=self,
            )
        for alias in command.aliases:
            if (existing := self._subcommands.get(alias)) is not None and existing is not command:
                raise DuplicateSubcommandError(
                    f"Alias {alias!r} for subcommand {name!r} is already used by another subcommand of {self.name!r}",
                    command=self,
                )
        if command._name is Unset:
            command._name = name
        command._parent = self
        self._subcommands[name] = command
        for alias in command.aliases:
            self._subcommands[alias] = command
        logger.debug("added subcommand %r to command %r", name, self.name)
        return self

    def add_mixin(self, name, mixin, /):
        """
        Merge a partial command into this one.

        Options and positionals are added as detached copies (sharing their
        binding), subcommands are attached here, and separator, name, version
        and help-command flag are filled in only where this command has none.
        """
        if not isinstance(mixin, CommandSpec):
            raise TypeError("add_mixin() mixin must be a command")
        self._mixins[name] = mixin
        if not self._parser.separator_initialized and mixin.parser.separator_initialized:
            self._parser = copy.replace(self._parser, separator=mixin.parser.separator)
        if self._name is Unset:
            self._name = mixin._name
        if not self._version:
            self._version = mixin._version
        if self._help_command is Unset:
            self._help_command = mixin._help_command

        seen = set()
        for subname, subcommand in tuple(mixin.subcommands.items()):
            if id(subcommand) not in seen:
                seen.add(id(subcommand))
                self.add_subcommand(subname, subcommand)
        for option in mixin.options:
            self.add_option(copy.replace(option))
        for positional in mixin.positionals:
            self.add_positional(copy.replace(positional))
        logger.debug("merged mixin %r into command %r", name, self.name)
        return self

    def configure(self, **settings):
        """
        Replace parser settings here and on every subcommand attached now.
        """
        for command in self._walk():
            command._parser = copy.replace(command._parser, **settings)
        return self

    def register_converter(self, type, converter, /):
        """
        Register a converter here and on every subcommand attached now.
        """
        for command in self._walk():
            command._converters.register(type, converter)
        return self

    def _walk(self):
        """This command and its subcommands, depth first, each once."""
        seen = set()
        pending = [self]
        while pending:
            command = pending.pop()
            if id(command) in seen:
                continue
            seen.add(id(command))
            yield command
            pending.extend(reversed(tuple(command._subcommands.values())))

    def validate(self):
        """
        Check the grammar of this command and of its subcommands.

        Raises
        - ParameterIndexGapError: a position no positional claims lies before
          the last claimed one.
        - InvalidHelpOptionError: a usage/version help option is not boolean.
        Warns MultipleHelpOptionsWarning for more than one help option of a kind.
        """
        for command in self._walk():
            command._validate()
        return self

    def _validate(self):
        self._positionals.sort(key=positional_order)
        highest = -1
        for positional in self._positionals:
            minimum = highest if highest == UNBOUNDED else highest + 1
            if (index := positional.index).min > minimum:
                raise ParameterIndexGapError(
                    f"Command definition should have a positional parameter with index={minimum}. "
                    f"Nearest positional parameter '{positional.label}' has index={index.min}",
                    command=self,
                )
            highest = max(highest, index.max)

        for kind in ("usage_help", "version_help"):
            triggers = [option for option in self._options if getattr(option, kind)]
            for option in triggers:
                if option.type is not bool:
                    raise InvalidHelpOptionError(
                        f"Non-boolean options like {option} should not be marked as {kind}=True. "
                        f"{kind}=True options must be boolean",
                        command=self,
                    )
            if len(triggers) > 1:
                warnings.warn(
                    MultipleHelpOptionsWarning(
                        f"Multiple options {[option.longest_name for option in triggers]} are marked "
                        f"as {kind}=True. Usually a command has only one {kind} option that triggers display "
                        f"of the help message.",
                        command=self,
                    ),
                    stacklevel=3,
                )

    def find_option(self, name, /):
        """
        Look up an option by exact name, by name without prefix, or by its
        short character.
        """
        if len(name) == 1 and name in self._posix_options_map:
            return self._posix_options_map[name]
        if (option := self._options_map.get(name)) is not None:
            return option
        for option in self._options:
            if any(strip_prefix(prefixed) == name for prefixed in option.names):
                return option
        return None

    def find_option_names_with_prefix(self, prefix, /):
        """Option names that start with prefix once their own prefix is stripped."""
        return [name for option in self._options for name in option.names if strip_prefix(name).startswith(prefix)]

    def resembles_option(self, token, /):
        result = self._parser.resembles(self, token)
        logger.debug("%s %s an option", token, "resembles" if result else "doesn't resemble")
        return result

    strip_prefix = staticmethod(strip_prefix)


def _instantiate(cls, /):
    return cls()


__all__ = (
    "ParserSpec",
    "CommandSpec",
    "resembles_option",
    "strip_prefix",
)
