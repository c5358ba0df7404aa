"""
Kubepizza faults (user-facing errors) and rendering.

Scope
- FaultCode: canonical, stable numeric identifiers for every user-facing issue.
  Codes are grouped by domain (routing, binding, validation) to keep copy
  consistent and make logs/searches predictable.
- CommandException: base type that carries message + options and knows how to
  render itself in a friendly, lowercased, and actionable way.
- CommandExit: an exception group aggregating every fault of one invocation.
- trigger(): central entry point to surface a fault (respecting shell/fancy/colorful).

UX goals
- Soft but technical language: short titles, one-sentence bodies, a single clear hint.
- Lowercased tone with readable styling (configurable via __styles__ in __main__).
- Every fault of one invocation is reported together; nothing stops at the first.

Integration
- The parse/resolve engine and the validation runner append faults to the
  ParseResult; Command.run() surfaces them through trigger(CommandExit(...)).
- In non-shell mode, exceptions are raised; in shell mode, they are rendered via rich.
"""
import sys
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset

console = Console(stderr=True)


class FaultCode(IntEnum):
    """
    canonical fault codes used across the cli (stable identifiers).

    grouping (by high-level domain)
    - routing (111xx)
      • UNRECOGNIZED_SUBCOMMAND
    - binding (112xx)
      • UNKNOWN_OPTION, UNEXPECTED_ARGUMENT, MISSING_REQUIRED_VALUE,
        VALUE_NOT_IN_ALLOWED_SET, TYPE_COERCION_FAILED
    - validation (113xx)
      • INVALID_VALUE, BUSINESS_RULE_VIOLATION, DELEGATED_ERROR

    normalize() allows host remapping to custom labels while keeping code-stability.
    """
    # --- routing errors (111xx) ---
    UNRECOGNIZED_SUBCOMMAND     = 11101

    # --- binding errors (112xx) ---
    UNKNOWN_OPTION              = 11201
    UNEXPECTED_ARGUMENT         = 11202
    MISSING_REQUIRED_VALUE      = 11203
    VALUE_NOT_IN_ALLOWED_SET    = 11204
    TYPE_COERCION_FAILED        = 11205

    # --- validation errors (113xx) ---
    INVALID_VALUE               = 11301
    BUSINESS_RULE_VIOLATION     = 11302
    DELEGATED_ERROR             = 11331

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__
        to override numeric ids with friendlier labels.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


def _palette(defaults):
    return defaultdict(str, defaults | getattr(__import__("__main__"), "__styles__", {}))


class CommandException(Exception):
    """
    base class of every user-input fault.

    options
    - code: FaultCode, title: str, hint: str (rendering essentials).
    - tool: the command that produced the fault (used for the program name).
    - shell/fancy/colorful: runtime flags merged in by trigger().
    - any other context (input, option, value, allowed, exception, ...).
    """
    __code__ = FaultCode.DELEGATED_ERROR
    __title__ = "error"

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(message)
        self.message = message
        self.options = MappingProxyType(options)

    @property
    def code(self):
        return self.options.get("code", type(self).__code__)

    @property
    def title(self):
        return self.options.get("title", type(self).__title__)

    @property
    def hint(self):
        return self.options.get("hint")

    def __str__(self):
        return str(self.message)

    def __rich__(self):
        main = __import__("__main__")
        colorful = self.options.get("colorful", False)
        fancy = self.options.get("fancy", False)

        styles = _palette({
            # header parts
            "prog-name": "bold #E6E6F0",  # near-white program name
            "code": "bold #00E5FF",  # neon cyan fault code
            "error-title": "bold #FF4DA6",  # friendly pinky title

            # body
            "error-message": "#C8C8D0",  # soft light gray message
            "hint-arrow": "#9CE19C dim",  # gentle green arrow
            "hint": "italic #9CE19C",  # gentle green hint text
        })

        def styler(style):
            return styles[style] if colorful else ""

        def text(fragment, style=""):
            if not fragment:
                return Text("")
            if not colorful:
                return Text(str(fragment))
            if isinstance(fragment, Text):
                return fragment
            return Text(str(fragment), style)

        tool = self.options.get("tool")
        prog = text(getattr(main, "__prog__", tool.root.name if tool else "kubepizza"), styler("prog-name"))

        header = Text.assemble(
            "[ ",
            prog,
            " — ",
            text(self.code.normalize(), styler("code")),
            " | ",
            text(self.title.title(), styler("error-title")),
            " ]"
        )
        message = text(self.message, styler("error-message"))
        renders = [message]
        if self.hint:
            renders.append(Text.assemble(text(" → ", styler("hint-arrow")), text(self.hint, styler("hint"))))

        if fancy:
            try:
                width = int((console.width - 4) * self.options["ratio"])
            except KeyError:
                width = None
            return Panel(Group(*renders), title=header, title_align="left", width=width)

        return Group(header, *renders)

    def __trigger__(self):
        if not self.options.get("shell", False):
            raise self from None
        console.print(self)
        sys.exit(1)

    def replace(self, /, **overrides):
        """
        return a copy of this fault with merged options (the message is kept).
        """
        return type(self)(self.message, **{**self.options, **overrides})

    __replace__ = replace


class UnrecognizedSubcommandError(CommandException):
    __code__ = FaultCode.UNRECOGNIZED_SUBCOMMAND
    __title__ = "unrecognized subcommand"


class UnknownOptionError(CommandException):
    __code__ = FaultCode.UNKNOWN_OPTION
    __title__ = "unknown option"


class UnexpectedArgumentError(CommandException):
    __code__ = FaultCode.UNEXPECTED_ARGUMENT
    __title__ = "unexpected argument"


class MissingRequiredValueError(CommandException):
    __code__ = FaultCode.MISSING_REQUIRED_VALUE
    __title__ = "missing required value"


class ValueNotInAllowedSetError(CommandException):
    __code__ = FaultCode.VALUE_NOT_IN_ALLOWED_SET
    __title__ = "value not allowed"


class TypeCoercionError(CommandException):
    __code__ = FaultCode.TYPE_COERCION_FAILED
    __title__ = "invalid type"


class InvalidValueError(CommandException):
    __code__ = FaultCode.INVALID_VALUE
    __title__ = "invalid value"


class BusinessRuleViolationError(CommandException):
    __code__ = FaultCode.BUSINESS_RULE_VIOLATION
    __title__ = "rule violation"


class DelegatedCommandError(CommandException):
    __code__ = FaultCode.DELEGATED_ERROR
    __title__ = "delegated error"


class CommandExit(ExceptionGroup[CommandException]):
    """
    every fault of one invocation, surfaced at once.
    """

    def __new__(cls, exceptions, **options):
        return super().__new__(cls, "bad exit", tuple(exceptions))

    def __init__(self, exceptions, **options):
        super().__init__("bad exit", tuple(exceptions))
        self.options = MappingProxyType(options)

    @property
    def messages(self):
        return tuple(str(exception) for exception in self.exceptions)

    def derive(self, exceptions):
        return type(self)(exceptions, **self.options)

    def __rich__(self):
        main = __import__("__main__")
        colorful = self.options.get("colorful", False)

        styles = _palette({
            "prog-name": "bold #E6E6F0",  # near-white program name
            "title": "bold #FF4DA6",  # friendly pinky group title (Bad Exit)
        })

        def text(fragment, style=""):
            if not fragment:
                return Text("")
            if not colorful:
                return Text(str(fragment))
            return Text(str(fragment), style)

        tool = self.options.get("tool")
        prog = text(getattr(main, "__prog__", tool.root.name if tool else "kubepizza"), styles["prog-name"])
        header = Text.assemble("[ ", prog, " — ", text(self.message.title(), styles["title"]), " ]")

        renders = []
        for exception in self.exceptions:
            renders.append(exception.replace(
                ratio=2/3,
                tool=tool,
                colorful=colorful,
                fancy=self.options.get("fancy", False),
            ))

        if self.options.get("fancy", False):
            return Panel(Group(*renders), title=header, title_align="left")

        return Group(header, *renders)

    def __trigger__(self):
        if not self.options.get("shell", False):
            raise self from None
        console.print(self)
        sys.exit(1)

    def replace(self, /, **overrides):
        return type(self)(self.exceptions, **{**self.options, **overrides})

    __replace__ = replace


def trigger(fault, /, **options):
    """
    surface a fault with the given runtime options.

    contract
    - fault must provide __trigger__ and replace methods (see base classes).
    - options are merged into the fault via replace(**options) before triggering.
    - in shell mode, rendering happens via rich console and the process exits
      with status 1; otherwise, the fault is raised.
    """
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "replace") or
        not callable(fault.replace)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and replace methods")
    fault.replace(**options).__trigger__()


__all__ = (
    "CommandException",
    "UnrecognizedSubcommandError",
    "UnknownOptionError",
    "UnexpectedArgumentError",
    "MissingRequiredValueError",
    "ValueNotInAllowedSetError",
    "TypeCoercionError",
    "InvalidValueError",
    "BusinessRuleViolationError",
    "DelegatedCommandError",
    "CommandExit",
    "FaultCode",
    "trigger",
)
