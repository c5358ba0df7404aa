"""
Validation runner: two tiers, no short-circuit.

Order
1. per-option validators, for every bound visible option in visible order
   (own options, then inherited ones), each called as validator(value, result).
2. command-level validators of the resolved node, each called as validator(result).

Outcomes
- A validator returns None, a message, a CommandException, or an iterable of
  those (generators are fine). Plain messages become InvalidValueError in the
  first tier and BusinessRuleViolationError in the second.
- An exception escaping a validator is wrapped in DelegatedCommandError; the
  run continues with the next validator.
"""
import logging
from collections.abc import Iterable

from rich.text import Text

from .faults import (
    BusinessRuleViolationError,
    CommandException,
    DelegatedCommandError,
    InvalidValueError,
    ValueNotInAllowedSetError,
)
from .utils import Unset, coalesce, fold, rename

log = logging.getLogger(__name__)


def _outcomes(outcome):
    if outcome is None:
        return
    if isinstance(outcome, str | Text | CommandException):
        yield outcome
        return
    if not isinstance(outcome, Iterable):
        raise TypeError("validator must return None, a message, a fault, or an iterable of those")
    for item in outcome:
        yield from _outcomes(item)


def _run(result, validator, arguments, *, option=None):
    """
    Call one validator and append whatever it reports to result.errors.
    """
    route = result.command.route
    name = getattr(validator, "__name__", type(validator).__name__)
    try:
        # materialize inside the guard: generator validators fail lazily
        outcomes = list(_outcomes(validator(*arguments)))
    except CommandException as fault:
        result.errors.append(fault)
        return
    except Exception as exception:
        log.debug("validator %s raised %r", name, exception)
        if option is None:
            message = "validator %r of command '%s' failed: %s" % (name, route, exception)
        else:
            message = "validator %r of option %r failed: %s" % (name, option.name, exception)
        result.errors.append(DelegatedCommandError(
            message,
            option=option,
            exception=exception,
            hint="check additional logs for more details",
        ))
        return

    for outcome in outcomes:
        if isinstance(outcome, CommandException):
            result.errors.append(outcome)
        elif option is None:
            result.errors.append(BusinessRuleViolationError(
                str(outcome),
                hint="run '%s --help' to see the rules of this command" % route,
            ))
        else:
            result.errors.append(InvalidValueError(
                str(outcome),
                input=option.name,
                option=option,
                hint="check the value given to %s" % option.name,
            ))


def validate(result, /):
    """
    Run both validator tiers against 'result', appending faults in order.

    Returns the complete, ordered error list (parse faults first).
    """
    before = len(result.errors)
    command = result.command

    for option in command.visible:
        if option not in result.values:
            continue
        for validator in option.validators:
            _run(result, validator, (result.values[option], result), option=option)

    for validator in command.validators:
        _run(result, validator, (result,))

    log.debug("validated %s: %d new errors", command.route, len(result.errors) - before)
    return result.errors


def among(supplier, what, /):
    """
    Build a case-insensitive membership validator.

    'supplier' is called on every validation (so a mutable catalog stays
    current); one ValueNotInAllowedSetError is reported per invalid value,
    naming the value and listing every allowed one.

    Example
        Option("--pizza", validators=[among(lambda: catalog.pizzas, "pizza")])
    """
    if not callable(supplier):
        raise TypeError("among() first argument must be callable")
    if not isinstance(what, str) or not what.strip():
        raise TypeError("among() second argument must be a non-empty string")

    @rename("among")
    def validator(value, result, /):
        allowed = tuple(supplier())
        known = set(map(fold, allowed))
        listing = ", ".join(map(str, allowed))
        for item in value if isinstance(value, list | tuple) else [value]:
            if fold(item) in known:
                continue
            yield ValueNotInAllowedSetError(
                "invalid %s %r, allowed values are: %s" % (what, item, listing),
                value=item,
                allowed=allowed,
                hint="use one of: %s" % listing,
            )

    return validator


def at_most(option, limit, /, when=None, message=Unset):
    """
    Build a command-level validator capping how many values 'option' binds.

    'when' is an optional predicate over the result; the rule only applies
    when it returns a truthy value.
    """
    if not isinstance(limit, int) or limit < 0:
        raise ValueError("at_most() limit must be a non-negative integer")
    if when is not None and not callable(when):
        raise TypeError("at_most() 'when' must be callable")

    @rename("at_most")
    def validator(result, /):
        if when is not None and not when(result):
            return None
        if len(values := result.get(option) or ()) <= limit:
            return None
        return coalesce(message, "too many values for %s (max %d, got %d)" % (
            getattr(option, "name", option), limit, len(values)
        ))

    return validator


__all__ = (
    "validate",
    "among",
    "at_most",
)
