"""
Parse/resolve engine: raw tokens in, ParseResult out, nothing invoked.

Phases
- resolution: Command.resolve() walks consecutive name/alias tokens from the
  root and returns the deepest matching node (plus an unrecognized-subcommand
  fault when a bare token matches no child).
- collection: the remaining tokens are assigned to the visible options of the
  resolved node (its own, its ancestors', then the built-in help/version flags).
  Spaced (--name value) and inline (--name=value) forms are accepted.
- binding: per visible option, tokenizer → coercion → last-write-wins collapse
  → required/default handling → case-insensitive allowed-set check.

Every user error becomes a fault appended to ParseResult.errors; parsing
always completes.
"""
import difflib
import logging
from collections import deque

from .faults import (
    MissingRequiredValueError,
    TypeCoercionError,
    UnexpectedArgumentError,
    UnknownOptionError,
    ValueNotInAllowedSetError,
)
from .options import HELP, VERSION, Option, isboolean
from .utils import Unset, fold, ordinal

log = logging.getLogger(__name__)


def optionlike(token, /):
    """
    A token is an option spelling when it starts with '-' and is not a lone dash.
    """
    return token.startswith("-") and len(token) > 1


class ParseResult:
    """
    Outcome of one parse: resolved command, bound values and ordered faults.

    Lookup
    - result[key] / result.get(key) / key in result accept an Option, any of
      its names ("--pizza", "-o") or its dest ("pizza").
    - namespace() maps dest → value for every bound option.

    State for help and completion
    - help / version: the built-in flags were given.
    - arguments: tokens left after resolution (empty at a routing point).
    - pending: the option still accepting values when the input ended.
    """

    def __init__(self, command, tokens, arguments=()):
        self.command = command
        self.tokens = tuple(tokens)
        self.arguments = tuple(arguments)
        self.values = {}
        self.errors = []
        self.pending = None
        self.help = False
        self.version = False

    def __repr__(self):
        return "parse-result(command=%r, values=%r, errors=%r)" % (
            self.command.route, self.namespace(), list(self.messages)
        )

    @property
    def messages(self):
        return tuple(str(error) for error in self.errors)

    @property
    def ok(self):
        return not self.errors

    def lookup(self, key, /):
        """
        Return the visible Option addressed by 'key' (Option, name, or dest).
        """
        if isinstance(key, Option):
            return key
        if not isinstance(key, str):
            raise TypeError("parse-result key must be an option or a string")
        for option in self.command.visible:
            if key in option.names or key == option.dest:
                return option
        raise KeyError(key)

    def __getitem__(self, key):
        return self.values[self.lookup(key)]

    def __contains__(self, key):
        try:
            return self.lookup(key) in self.values
        except KeyError:
            return False

    def get(self, key, default=None, /):
        try:
            return self[key]
        except KeyError:
            return default

    def namespace(self):
        return {option.dest: value for option, value in self.values.items()}


def _accepts(option, token):
    """
    Tell whether the optional value slot of 'option' can take 'token'.
    """
    if optionlike(token):
        return False
    return isboolean(token) if option.flag else True


def _collect(result, tokens, offset):
    """
    Assign raw tokens to options; record unknown options and stray arguments.

    Returns a mapping option → list[str] of raw values. Options that failed to
    receive a mandatory value map to None so binding skips them.
    """
    command = result.command
    route = command.route
    switches = {name: option for option in command.visible for name in option.names}
    raw = {}
    queue = deque(tokens)
    index = offset

    while queue:
        token = queue.popleft()
        index += 1
        result.pending = None

        if not optionlike(token):
            result.errors.append(UnexpectedArgumentError(
                "unexpected argument %r at %s position" % (token, ordinal(index)),
                input=token,
                index=index,
                hint="remove this extra value or run '%s --help' to see the expected usage" % route,
            ))
            continue

        input, inline, value = token.partition("=")
        if (option := switches.get(input)) is None:
            suggestions = difflib.get_close_matches(input, switches.keys(), 5)
            try:
                hint = "did you mean %r? you can also run '%s --help' to see all options" % (suggestions[0], route)
            except IndexError:
                hint = "try '%s --help' to see all available options" % route
            result.errors.append(UnknownOptionError(
                "unknown option %r at %s position" % (input, ordinal(index)),
                input=input,
                index=index,
                suggestions=suggestions,
                hint=hint,
            ))
            continue

        # last write wins for single-valued options, repeats accumulate otherwise
        if option.multiple:
            values = raw.setdefault(option, [])
        else:
            values = raw[option] = []

        if inline:
            values.append(value)
            continue

        match option.nargs:
            case None:
                if queue and not optionlike(queue[0]):
                    values.append(queue.popleft())
                    index += 1
                else:
                    raw[option] = None
                    result.pending = None if queue else option
                    result.errors.append(MissingRequiredValueError(
                        "option %r at %s position requires a value" % (input, ordinal(index)),
                        input=input,
                        index=index,
                        option=option,
                        hint="provide a value (e.g., %s <value>)" % input,
                    ))
            case "?":
                if queue and _accepts(option, queue[0]):
                    values.append(queue.popleft())
                    index += 1
                elif not queue:
                    result.pending = option
            case "*":
                while queue and not optionlike(queue[0]):
                    values.append(queue.popleft())
                    index += 1
                if not queue:
                    result.pending = option

    return raw


def _coerce(result, option, values):
    """
    Tokenize and convert raw values; returns (ok, converted).
    """
    if option.tokenizer is not None:
        values = list(option.tokenizer(values))

    converted = []
    failed = False
    for value in values:
        try:
            converted.append(option.type(value))
        except (TypeError, ValueError) as exception:
            failed = True
            result.errors.append(TypeCoercionError(
                "value %r for option %r cannot be converted to %s" % (
                    value, option.name, getattr(option.type, "__name__", "the expected type")
                ),
                input=option.name,
                option=option,
                value=value,
                exception=exception,
                hint="check the value format for %s" % option.name,
            ))
    return not failed, converted


def _restrict(result, option, value):
    """
    Case-insensitive allowed-set check; returns (ok, value in declared casing).
    """
    if not option.choices:
        return True, value

    canonical = {fold(choice): choice for choice in option.choices}
    allowed = ", ".join(map(str, option.choices))
    values = value if option.multiple else [value]
    accepted = []
    for item in values:
        try:
            accepted.append(canonical[fold(item)])
        except KeyError:
            result.errors.append(ValueNotInAllowedSetError(
                "value %r for option %r is not one of: %s" % (item, option.name, allowed),
                input=option.name,
                option=option,
                value=item,
                allowed=option.choices,
                hint="use one of: %s" % allowed,
            ))
    if len(accepted) != len(values):
        return False, value
    return True, accepted if option.multiple else accepted[0]


def _fallback(result, option):
    if option.default_factory is not Unset:
        result.values[option] = option.default_factory()
    elif option.default is not Unset:
        # frozen sequence defaults of multiple-value options bind as lists
        result.values[option] = list(option.default) if option.multiple and isinstance(option.default, tuple) else option.default


def _bind(result, raw):
    for option in result.command.visible:
        if option in raw:
            if (values := raw[option]) is None:
                continue
            ok, converted = _coerce(result, option, values)
            if not ok:
                continue
            if not converted:
                if option.flag:
                    converted = [True]
                elif not option.multiple:
                    # "--name" of a zero-or-one option without value behaves as absent
                    _fallback(result, option)
                    continue
            value = converted if option.multiple else converted[-1]
            ok, value = _restrict(result, option, value)
            if ok:
                result.values[option] = value
        elif option.required:
            result.errors.append(MissingRequiredValueError(
                "option %r is required" % option.name,
                input=option.name,
                option=option,
                hint="add %s <value> or run '%s --help' to see the expected usage" % (
                    option.name, result.command.route
                ),
            ))
        else:
            _fallback(result, option)


def parse(root, tokens, /):
    """
    Resolve 'tokens' against the tree rooted at 'root' and bind option values.

    Parameters
    - root: Command; the node whose name is implied (tokens do not repeat it).
    - tokens: Iterable[str] already split shell-style.

    Returns
    - ParseResult: resolved node, bound values, and every fault found so far.
      Validators and actions are never run here.
    """
    tokens = list(tokens)
    command, consumed, faults = root.resolve(tokens)

    result = ParseResult(command, tokens, tokens[consumed:])
    result.errors.extend(faults)

    raw = _collect(result, result.arguments, consumed)
    _bind(result, raw)

    result.help = bool(result.values.get(HELP))
    result.version = bool(result.values.get(VERSION))

    log.debug("parsed %r → %s (%d errors)", tokens, command.route, len(result.errors))
    return result


__all__ = (
    "ParseResult",
    "parse",
    "optionlike",
)
