"""
Argbind interpreter: matches raw tokens against a CommandSpec tree.

Overview
- Parser: entry point. Validates the command tree once, then parse(tokens)
  returns the root ParseResult (one ParseResult per command level reached).
- FailFast / CollectErrors: traversal strategies. The first raises every
  fault as soon as it is found; the second records faults on the level's
  ParseResult and keeps scanning. A command's parser setting collect_errors
  picks the strategy of its level.
- expand(): at-file expansion of the raw tokens.

Scan (per command level, left to right, no backtracking)
- after the end-of-options delimiter everything is positional;
- a known option name, or "name<separator>value" with a known name, is an
  option token and consumes values according to its arity;
- a subcommand name hands the remaining tokens to the subcommand's level;
- a "-xyz" token is tried as a cluster of short options (POSIX clustering);
- anything else is a positional value, or unmatched when it resembles an
  option or no positional can take it.

Post-scan
- required options/positionals without a value are reported per level,
  unless any level matched a usage/version help option or reached a help
  subcommand;
- unmatched tokens are reported unless the level allows them.
- in collect-errors mode, everything reported is raised once as ParseErrors.
"""
import collections
import copy
import enum
import getpass
import logging
import os
import re
import shlex

from .arguments import OptionSpec, PositionalParamSpec, positional_order
from .commands import CommandSpec
from .converters import apply
from .faults import (
    ArgumentFileError,
    FaultCode,
    MaxValuesExceededError,
    MissingParameterError,
    MissingTypeConverterError,
    OverwrittenOptionError,
    ParameterError,
    ParseErrors,
    TypeConversionError,
    UnmatchedArgumentError,
)
from .ranges import UNBOUNDED
from .results import ParseResult

logger = logging.getLogger(__name__)


class LookBehind(enum.Enum):
    """How the value being consumed was attached to its option name."""
    SEPARATE = "separate"
    ATTACHED = "attached"
    ATTACHED_WITH_SEPARATOR = "attached-with-separator"

    @property
    def attached(self):
        return self is not LookBehind.SEPARATE


class FailFast:
    """Abort-on-error traversal: every reported fault is raised at once."""
    collecting = False

    def report(self, fault, /):
        raise fault


class CollectErrors:
    """Continue-on-error traversal: faults are kept on the level's result."""
    collecting = True

    def __init__(self, result, /):
        self._result = result

    def report(self, fault, /):
        logger.debug("collecting error: %s", fault)
        self._result._errors.append(fault)


def expand(tokens, parser, /):
    """
    Apply at-file expansion to tokens according to parser.

    - "@path" is replaced by the tokens of the file (shell-like quoting,
      whitespace separated, parser.at_file_comment starts a comment),
      recursively; a file already expanded for the same token is skipped.
    - "@@text" stands for the literal "@text".
    - "@" alone and "@path" for an unreadable path stay as they are.
    """
    expanded = []
    for token in tokens:
        _expand(token, parser, expanded, set())
    return expanded


def _expand(token, parser, expanded, visited, /):
    if not parser.expand_at_files or not token.startswith("@") or token == "@":
        expanded.append(token)
        return
    if token.startswith("@@"):
        logger.debug("not expanding %r: treating it as literal %r", token, token[1:])
        expanded.append(token[1:])
        return
    path = token[1:]
    if not (os.path.isfile(path) and os.access(path, os.R_OK)):
        logger.info("%s is not a readable file, keeping %r as a literal argument", path, token)
        expanded.append(token)
        return
    if (key := os.path.realpath(path)) in visited:
        logger.info("already visited file %s, ignoring it", key)
        return
    visited.add(key)
    logger.info("expanding argument file %s", path)
    try:
        with open(path, encoding="utf-8") as file:
            text = file.read()
    except (OSError, UnicodeDecodeError) as exc:
        raise ArgumentFileError(f"Could not read argument file @{path}", path=path) from exc
    lexer = shlex.shlex(text, posix=True)
    lexer.whitespace_split = True
    lexer.commenters = parser.at_file_comment or ""
    lexer.escape = ""
    try:
        words = list(lexer)
    except ValueError as exc:
        raise ArgumentFileError(f"Could not read argument file @{path}: {exc}", path=path) from exc
    for word in words:
        _expand(word, parser, expanded, visited)


class _Session:
    """State shared by every level of one parse."""

    def __init__(self, tokens, prompt, /):
        self.original = tuple(tokens)
        self.prompt = prompt
        self.help = False
        self.levels = []

    def finish(self):
        if self.levels and self.levels[-1].command.help_command:
            self.help = True
        for level in self.levels:
            level.validate()


class _Interpreter:
    """Matches tokens for one command level."""

    def __init__(self, command, session, /):
        self.command = command
        self.session = session
        self.result = ParseResult(command, original_args=session.original)
        self.strategy = CollectErrors(self.result) if command.parser.collect_errors else FailFast()
        self.position = 0
        self.end_of_options = False
        self.required = []
        self.initialized = set()
        self.defaulting = False

    # -- reporting ---------------------------------------------------------

    def report(self, fault, /):
        if fault.command is None:
            fault = copy.replace(fault, command=self.command)
        self.strategy.report(fault)

    def fault(self, cls, message, /, **options):
        return cls(message, command=self.command, **options)

    # -- level driver ------------------------------------------------------

    def parse(self, stack, /):
        logger.info("parsing command %r: %s", self.command.qualified_name(), list(stack))
        for argument in self.command.arguments:
            argument.clear()
        self.required = sorted(self.command.required, key=positional_order)
        self.session.levels.append(self)

        try:
            self.apply_defaults()
        except ParameterError as fault:
            self.report(fault)

        while True:
            size = len(stack)
            try:
                self.process_arguments(stack)
            except ParameterError as fault:
                self.report(fault)
            if not (self.strategy.collecting and stack):
                break
            if len(stack) == size:
                self.result._unmatched.append(stack.popleft())
        logger.info("command %r matched %d arguments", self.command.qualified_name(), len(self.result.matched_args))
        return self.result

    def validate(self):
        parser = self.command.parser
        if self.required and not self.session.help:
            options = [argument for argument in self.required if isinstance(argument, OptionSpec)]
            if options:
                self.report(self.missing_options(options))
            for positional in self.required:
                if isinstance(positional, PositionalParamSpec):
                    self.assert_no_missing_parameters(positional, positional.arity, collections.deque())
        if self.result._unmatched and not parser.unmatched_arguments_allowed:
            self.report(UnmatchedArgumentError(command=self.command, unmatched=tuple(self.result._unmatched)))

    def missing_options(self, options, /):
        separator = self.command.parser.separator
        described = [f"{option.longest_name}{separator}{option.label}" for option in options]
        if len(described) == 1:
            message = f"Missing required option '{described[0]}'"
        else:
            message = f"Missing required options [{", ".join(described)}]"
        return self.fault(MissingParameterError, message, missing=tuple(options), argument=options[0])

    def apply_defaults(self):
        self.defaulting = True
        try:
            for argument in self.command.arguments:
                if (default := argument.default_value()) is None:
                    continue
                logger.debug("applying default value %r to %s", default, argument)
                arity = argument.arity.with_min(max(1, argument.arity.min))
                self.apply_option(argument, LookBehind.SEPARATE, arity, collections.deque([default]), set(), f"default of {argument}")
                self.discard_required(argument)
        finally:
            self.defaulting = False

    def discard_required(self, argument, /):
        if argument in self.required:
            self.required.remove(argument)

    # -- classification ----------------------------------------------------

    def process_arguments(self, stack, /):
        command = self.command
        parser = command.parser
        while stack:
            if self.end_of_options:
                self.process_remainder_as_positionals(stack)
                return
            token = stack.popleft()
            logger.debug("processing token %r", token)

            if token == parser.end_of_options:
                logger.debug("found end-of-options delimiter %r, treating remainder as positional parameters", token)
                self.end_of_options = True
                self.process_remainder_as_positionals(stack)
                return

            name, attached = token, False
            options = command.options_map
            if token not in options and (index := token.find(parser.separator)) > 0:
                if (key := token[:index]) in options:
                    logger.debug("separated %r option from %r option parameter", key, token[index + len(parser.separator):])
                    stack.appendleft(token[index + len(parser.separator):])
                    name, attached = key, True

            if name in options:
                self.process_standalone_option(name, stack, attached)
            elif token in command.subcommands:
                self.process_subcommand(token, stack)
                return
            elif parser.posix_clustered and len(token) > 2 and token.startswith("-"):
                logger.debug("trying to process %r as clustered short options", token)
                self.process_clustered_short_options(token, stack)
            else:
                stack.appendleft(token)
                if command.resembles_option(token):
                    self.handle_unmatched(stack)
                else:
                    logger.debug("could not find option named %r, deciding whether to treat it as a positional parameter", token)
                    self.process_positional(stack)

    def process_subcommand(self, name, stack, /):
        subcommand = self.command.subcommands[name]
        logger.debug("found subcommand %r (%s)", name, subcommand.qualified_name())
        self.result._subcommand = _Interpreter(subcommand, self.session).parse(stack)

    def process_remainder_as_positionals(self, stack, /):
        while stack:
            self.process_positional(stack)

    def process_standalone_option(self, name, stack, attached, /):
        option = self.command.options_map[name]
        self.discard_required(option)
        arity, look = option.arity, LookBehind.SEPARATE
        if attached:
            arity, look = arity.with_min(max(1, arity.min)), LookBehind.ATTACHED_WITH_SEPARATOR
            logger.debug("found option named %r with attached value", name)
        else:
            logger.debug("found option named %r", name)
        self.apply_option(option, look, arity, stack, self.initialized, f"option {name}")

    def process_clustered_short_options(self, token, stack, /):
        command = self.command
        separator = command.parser.separator
        prefix, cluster = token[0], token[1:]
        attached = True
        while True:
            if cluster and cluster[0] in command.posix_options_map:
                option = command.posix_options_map[cluster[0]]
                arity = option.arity
                description = f"option {prefix}{cluster[0]}"
                logger.debug("found option %r in %s", prefix + cluster[0], token)
                self.discard_required(option)
                cluster = cluster[1:]
                attached = bool(cluster)
                look = LookBehind.ATTACHED if attached else LookBehind.SEPARATE
                if cluster.startswith(separator):
                    look = LookBehind.ATTACHED_WITH_SEPARATOR
                    cluster = cluster[len(separator):]
                    arity = arity.with_min(max(1, arity.min))
                if cluster:
                    stack.appendleft(cluster)
                size = len(stack)
                self.apply_option(option, look, arity, stack, self.initialized, description)
                # done when the cluster is exhausted or was taken as the option's value
                if not cluster or not stack or len(stack) < size:
                    return
                cluster = stack.popleft()
                continue

            if not cluster:
                return
            if token.endswith(cluster):
                stack.appendleft(prefix + cluster if attached else cluster)
                if stack[0] == token:
                    logger.debug("%r is not a cluster of known short options", token)
                    if command.resembles_option(token):
                        self.handle_unmatched(stack)
                    else:
                        self.process_positional(stack)
                    return
                logger.debug("%r is part of a cluster that could not be completely parsed", stack[0])
                self.handle_unmatched(stack)
            else:
                stack.appendleft(cluster)
                logger.debug("%r is neither an option nor a value of one, treating it as positional", cluster)
                self.process_positional(stack)
            return

    def process_positional(self, stack, /):
        if self.command.parser.stop_at_positional and not self.end_of_options:
            logger.debug("parser is configured to stop at the first positional, treating remainder as positional")
            self.end_of_options = True
        consumed = interactive = 0
        for positional in self.command.positionals:
            if self.position not in positional.index or self.position in positional.typed_value_at_position:
                continue
            working = collections.deque(stack)
            logger.debug("position %d is in index range %s, trying to assign args to %s", self.position, positional.index, positional)
            if not self.assert_no_missing_parameters(positional, positional.arity, working):
                break
            size = len(working)
            taken = self.apply_option(positional, LookBehind.SEPARATE, positional.arity, working, self.initialized, f"args[{positional.index}] at position {self.position}")
            count = size - len(working)
            if count > 0 or taken > 0:
                self.discard_required(positional)
                interactive = 1 if positional.interactive else 0
            consumed = max(consumed, count)

        for _ in range(consumed):
            stack.popleft()
        self.position += consumed + interactive
        logger.debug("consumed %d arguments and %d interactive values, moving position to %d", consumed, interactive, self.position)
        if not consumed and not interactive and stack:
            self.handle_unmatched(stack)

    def handle_unmatched(self, stack, /):
        if stack:
            self.result._unmatched.append(token := stack.popleft())
            logger.debug("%r is unmatched", token)
        if self.command.parser.stop_at_unmatched:
            self.result._unmatched.extend(stack)
            stack.clear()

    # -- value consumption -------------------------------------------------

    def apply_option(self, argument, look, arity, stack, initialized, description, /):
        self.update_help_requested(argument)
        working = stack
        if self.command.parser.arity_satisfied_by_attached and look.attached:
            working = collections.deque([stack.popleft()] if stack else [])
        elif not self.assert_no_missing_parameters(argument, arity, stack):
            return 0

        if argument.interactive:
            working.appendleft(self.prompt(argument))

        if argument.mapping:
            consumed = self.apply_mapping(argument, look, arity, working, initialized, description)
        elif argument.multivalue:
            consumed = self.apply_collection(argument, look, arity, working, initialized, description)
        else:
            consumed = self.apply_single(argument, look, arity, working, initialized, description)

        if working is not stack and working:
            stack.appendleft(working.popleft())
        return consumed

    def prompt(self, argument, /):
        text = f"Enter value for {self.describe(argument)}"
        if argument.descr:
            text += f" ({argument.descr})"
        return self.session.prompt(text + ": ")

    def apply_single(self, argument, look, arity, stack, initialized, description, /):
        parser = self.command.parser
        exhausted = not stack
        value = self.trim(stack.popleft()) if stack else None
        declared = argument.arity
        if declared.max == 0 and not declared.unspecified and look is LookBehind.ATTACHED_WITH_SEPARATOR:
            raise self.fault(
                MaxValuesExceededError,
                f"{self.describe(argument, 0)} should be specified without {value!r} parameter",
                argument=argument,
                value=value,
            )

        consumed = arity.min
        target = argument.auxiliary[0]
        if arity.min <= 0:
            if target is bool:
                if arity.max > 0 and value is not None and value.lower() in ("true", "false"):
                    consumed = 1
                elif look is not LookBehind.ATTACHED_WITH_SEPARATOR:
                    if value is not None:
                        stack.appendleft(value)
                    if parser.toggle_boolean_flags:
                        value = "false" if argument.value else "true"
                    else:
                        value = "true"
            elif self.is_option(value):
                stack.appendleft(value)
                value = ""
            elif value is None:
                value = ""
        if exhausted and value is None:
            return 0

        typed = self.convert(argument, -1, self.converter(argument, target, 0), value, target)
        if argument in initialized and not parser.overwritten_options_allowed:
            raise self.fault(
                OverwrittenOptionError,
                f"{self.describe(argument, 0)} should be specified only once",
                argument=argument,
                value=value,
            )
        initialized.add(argument)
        logger.debug("setting %s to %r (%s)", argument, typed, description)
        argument.set_value(typed)
        self.capture(argument, value, [value], [typed], self.reserve(argument, self.position))
        self.record(argument)
        return consumed

    def apply_collection(self, argument, look, arity, stack, initialized, description, /):
        values = self.consume_arguments(argument, look, arity, stack, self.consume_one, description)
        current = argument.value
        if argument in initialized and current is not None:
            if isinstance(current, list | collections.deque):
                current.extend(values)
            elif isinstance(current, set):
                current.update(values)
            else:
                current = argument.container((*current, *values))
        else:
            logger.debug("initializing %s with an empty %s", argument, argument.container.__name__)
            current = argument.container(values)
        initialized.add(argument)
        logger.debug("setting %s to %r (%s)", argument, current, description)
        argument.set_value(current)
        self.record(argument)
        self.check_exceeded(argument, len(values), stack)
        return len(values)

    def apply_mapping(self, argument, look, arity, stack, initialized, description, /):
        if len(argument.auxiliary) < 2:
            raise self.fault(
                ParameterError,
                f"{argument} needs two types (one for the map key, one for the value) "
                f"but only has {len(argument.auxiliary)} types configured.",
                argument=argument,
            )
        entries = self.consume_arguments(argument, look, arity, stack, self.consume_one_entry, description, pairs=2)
        current = argument.value
        if argument in initialized and current is not None:
            mapping = current if isinstance(current, dict) else dict(current)
        else:
            logger.debug("initializing %s with an empty dict", argument)
            mapping = {}
        mapping.update(entries)
        initialized.add(argument)
        logger.debug("setting %s to %r (%s)", argument, mapping, description)
        argument.set_value(mapping)
        self.record(argument)
        self.check_exceeded(argument, len(entries), stack)
        return len(entries)

    def consume_arguments(self, argument, look, arity, stack, one, description, /, *, pairs=1):
        """
        Take arity.min values unconditionally, then up to arity.max while the
        next token looks like a value this argument can convert.
        """
        values = []
        current = self.position
        initial = len(argument.string_values)
        consumed = self.consumed_count(0, initial, argument, pairs)
        index = 0
        while consumed < arity.min and stack:
            bucket = self.reserve(argument, current)
            current += 1
            self.assert_no_missing_mandatory_parameter(argument, stack, index, arity)
            values.extend(one(argument, look, arity, consumed, stack.popleft(), bucket, index, description))
            index += 1
            consumed = self.consumed_count(index, initial, argument, pairs)
            look = LookBehind.SEPARATE

        index = consumed
        while consumed < arity.max and stack:
            if not self.vararg_can_consume(argument, stack[0], current):
                break
            bucket = self.reserve(argument, current)
            current += 1
            if not self.can_consume_one(argument, arity, consumed, stack[0], one):
                # the empty bucket keeps this position from being tried again
                break
            values.extend(one(argument, look, arity, consumed, stack.popleft(), bucket, index, description))
            index += 1
            consumed = self.consumed_count(index, initial, argument, pairs)
            look = LookBehind.SEPARATE

        if not values and arity.min == 0 and arity.max <= 1 and argument.auxiliary[0] is bool and not argument.mapping:
            return [True]
        return values

    def consumed_count(self, index, initial, argument, pairs, /):
        if self.command.parser.limit_split:
            return (len(argument.string_values) - initial) // pairs
        return index

    def consume_one(self, argument, look, arity, consumed, token, bucket, index, description, /):
        raw = self.trim(token)
        strings = argument.split_value(raw, self.command.parser, arity, consumed)
        target = argument.auxiliary[0]
        converter = self.converter(argument, target, 0)
        typed = [self.convert(argument, index, converter, string, target) for string in strings]
        logger.debug("adding %r to %s for %s", typed, argument, description)
        self.capture(argument, raw, strings, typed, bucket)
        return typed

    def consume_one_entry(self, argument, look, arity, consumed, token, bucket, index, description, /):
        raw = self.trim(token)
        strings = argument.split_value(raw, self.command.parser, arity, consumed)
        key_type, value_type = argument.auxiliary[:2]
        key_converter = self.converter(argument, key_type, 0)
        value_converter = self.converter(argument, value_type, 1)
        entries = []
        fragments = []
        for string in strings:
            key, value = self.split_key_value(argument, string)
            entries.append((
                self.convert(argument, index, key_converter, key, key_type),
                self.convert(argument, index, value_converter, value, value_type),
            ))
            fragments.extend((key, value))
        logger.debug("putting %r into %s for %s", entries, argument, description)
        self.capture(argument, raw, fragments, entries, bucket)
        return entries

    def split_key_value(self, argument, value, /):
        parts = re.split(r"(?<!\\)=", value, maxsplit=1)
        if len(parts) < 2:
            if argument.split is None:
                shape = "KEY=VALUE"
            else:
                shape = f"KEY=VALUE[{argument.split}KEY=VALUE]..."
            raise self.fault(
                ParameterError,
                f"Value for {self.describe(argument, 0)} should be in {shape} format but was {value}",
                argument=argument,
                value=value,
                code=FaultCode.MALFORMED_KEY_VALUE,
            )
        return parts

    def can_consume_one(self, argument, arity, consumed, token, one, /):
        """Trial run of one() on a scratch copy: True when token converts."""
        raw = self.trim(token)
        try:
            for string in argument.split_value(raw, self.command.parser, arity, consumed):
                if argument.mapping:
                    key, value = self.split_key_value(argument, string)
                    key_type, value_type = argument.auxiliary[:2]
                    self.convert(argument, 0, self.converter(argument, key_type, 0), key, key_type)
                    self.convert(argument, 0, self.converter(argument, value_type, 1), value, value_type)
                else:
                    target = argument.auxiliary[0]
                    self.convert(argument, 0, self.converter(argument, target, 0), string, target)
        except ParameterError:
            logger.debug("%s cannot consume %r", argument, token)
            return False
        return True

    def check_exceeded(self, argument, count, stack, /):
        """
        Raise MaxValuesExceededError when a bounded multi-value option took its
        maximum and is followed by a value nothing else can take.
        """
        arity = argument.arity
        if not isinstance(argument, OptionSpec) or self.defaulting or arity.unspecified:
            return
        if not (1 < arity.max < UNBOUNDED) or count < arity.max or not stack:
            return
        parser = self.command.parser
        token = stack[0]
        if parser.unmatched_arguments_allowed or parser.stop_at_unmatched or self.end_of_options:
            return
        if not self.vararg_can_consume(argument, token, self.position) or self.command.resembles_option(token):
            return
        if any(self.position in positional.index for positional in self.command.positionals):
            return
        raise self.fault(
            MaxValuesExceededError,
            f"{self.describe(argument, 0)} accepts at most {arity.max} values, but found an extra value {token!r}",
            argument=argument,
            value=token,
        )

    # -- checks ------------------------------------------------------------

    def assert_no_missing_parameters(self, argument, arity, stack, /):
        if argument.interactive:
            return True
        available = len(stack)
        if available and self.command.parser.limit_split and argument.split is not None:
            available += len(argument.split_value(stack[0], self.command.parser, arity, 0)) - 1
        if arity.min <= available:
            return True

        if arity.min == 1:
            if isinstance(argument, OptionSpec):
                message = f"Missing required parameter for {self.describe(argument, 0)}"
            else:
                labels = [
                    positional.label for positional in self.command.positionals
                    if positional.index.max >= argument.index.min and positional.arity.min > 0
                ]
                plural = "s" if len(labels) > 1 or arity.min - available > 1 else ""
                message = f"Missing required parameter{plural}: {", ".join(labels) or argument.label}"
        elif not stack:
            message = f"{self.describe(argument, 0)} requires at least {arity.min} values, but none were specified."
        else:
            message = (
                f"{self.describe(argument, 0)} requires at least {arity.min} values, "
                f"but only {available} were specified: {list(stack)}"
            )
        self.report(self.fault(MissingParameterError, message, missing=(argument,), argument=argument))
        return False

    def assert_no_missing_mandatory_parameter(self, argument, stack, index, arity, /):
        if self.vararg_can_consume(argument, stack[0], self.position):
            return
        if arity.min > 1:
            expected = f"Expected parameter {index + 1} (of {arity.min} mandatory parameters) for "
        else:
            expected = "Expected parameter for "
        self.report(self.fault(
            MissingParameterError,
            f"{expected}{self.describe(argument, -1)} but found {stack[0]!r}",
            missing=(argument,),
            argument=argument,
            value=stack[0],
        ))

    def vararg_can_consume(self, argument, token, position, /):
        if isinstance(argument, PositionalParamSpec):
            if self.end_of_options:
                return True
            if self.reserved_by_later(argument, position):
                return False
        return token not in self.command.subcommands and not self.is_option(token)

    def reserved_by_later(self, argument, position, /):
        """True when position belongs to a positional indexed after argument."""
        return any(
            position in positional.index
            for positional in self.command.positionals
            if positional is not argument and positional.index.min > argument.index.max
        )

    def is_option(self, token, /):
        if token is None:
            return False
        command = self.command
        parser = command.parser
        options = command.options_map
        if token == parser.end_of_options or token in options:
            return True
        if (index := token.find(parser.separator)) > 0 and token[:index] in options:
            return True
        return len(token) > 2 and token.startswith("-") and token[1] in command.posix_options_map

    # -- conversion --------------------------------------------------------

    def converter(self, argument, target, index, /):
        converters = argument.converters
        if index < len(converters):
            converter = converters[index]
            return self.command.factory(converter) if isinstance(converter, type) else converter
        try:
            return self.command.converters.lookup(target, case_insensitive=self.command.parser.case_insensitive_enums)
        except MissingTypeConverterError as fault:
            raise self.fault(
                MissingTypeConverterError,
                f"{fault.message} of {argument}",
                argument=argument,
                target=target,
            ) from None

    def convert(self, argument, index, converter, value, target, /):
        try:
            return apply(converter, value, target)
        except TypeConversionError as fault:
            raise self.fault(
                TypeConversionError,
                f"Invalid value for {self.describe(argument, index)}: {fault.message}",
                argument=argument,
                value=value,
                target=target,
            ) from fault.__cause__ or fault

    # -- bookkeeping -------------------------------------------------------

    def update_help_requested(self, argument, /):
        if self.defaulting or not isinstance(argument, OptionSpec):
            return
        if argument.usage_help:
            self.result._usage_help_requested = True
            self.session.help = True
        if argument.version_help:
            self.result._version_help_requested = True
            self.session.help = True

    def reserve(self, argument, position, /):
        if self.defaulting or not isinstance(argument, PositionalParamSpec):
            return None
        return argument.reserve(position)

    def capture(self, argument, raw, strings, typed, bucket, /):
        if self.defaulting:
            return
        argument.capture(raw, strings=strings, typed=typed)
        if bucket is not None:
            bucket.extend(typed)

    def record(self, argument, /):
        if self.defaulting:
            return
        self.result._add(argument, self.position if isinstance(argument, PositionalParamSpec) else None)

    def trim(self, value, /):
        if value is None or not self.command.parser.trim_quotes:
            return value
        if len(value) > 1 and value.startswith('"') and value.endswith('"'):
            return value[1:-1]
        return value

    def describe(self, argument, index=0, /):
        if isinstance(argument, OptionSpec):
            description = f"option '{argument.longest_name}'"
            if index >= 0:
                if argument.arity.max > 1:
                    description += f" at index {index}"
                description += f" ({argument.label})"
            return description
        return f"positional parameter at index {argument.index} ({argument.label})"


class Parser:
    """
    Parses token sequences against a command tree.

    The tree is validated when the parser is built. Each parse() resets the
    captured values of every argument it reaches, so results of an earlier
    parse must be read before parsing again. Parsing the same CommandSpec
    from several threads at once is not supported.

    Parameters
    - command: root CommandSpec.
    - prompt: callable(text) -> str reading the value of interactive
      arguments (getpass.getpass by default).
    """

    def __init__(self, command, /, *, prompt=getpass.getpass):
        if not isinstance(command, CommandSpec):
            raise TypeError("Parser() argument must be a command")
        if not callable(prompt):
            raise TypeError("Parser() prompt must be callable")
        self._command = command.validate()
        self._prompt = prompt

    @property
    def command(self):
        return self._command

    def parse(self, tokens, /):
        """
        Match tokens against the command tree.

        Returns the root ParseResult.

        Raises
        - TypeError: tokens is a string or holds non-strings.
        - ArgumentFileError: an argument file exists but cannot be read.
        - ParameterError (fail-fast levels): the first grammar violation.
        - ParseErrors (collect-errors levels): every violation found.
        """
        if isinstance(tokens, str):
            raise TypeError("parse() argument must be a sequence of strings, not a string")
        tokens = tuple(tokens)
        for token in tokens:
            if not isinstance(token, str):
                raise TypeError(f"parse() tokens must be strings, not {type(token).__name__!r}")

        session = _Session(tokens, self._prompt)
        stack = collections.deque(expand(tokens, self._command.parser))
        root = _Interpreter(self._command, session)
        root.parse(stack)
        session.finish()

        if errors := [fault for result in root.result.as_list() for fault in result.errors]:
            raise ParseErrors(errors, result=root.result)
        return root.result


def parse(command, tokens, /, **options):
    """Shorthand for Parser(command, **options).parse(tokens)."""
    return Parser(command, **options).parse(tokens)


__all__ = (
    "Parser",
    "parse",
    "expand",
    "FailFast",
    "CollectErrors",
    "LookBehind",
)
