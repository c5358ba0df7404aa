r"""
Kubepizza option definitions.

Overview
- Option: named, value-bearing parameter with one or more aliases (e.g., -o/--output).
- Flag: boolean Option; present alone binds True, "--flag false" binds False.
- boolean: converter accepting true/false, yes/no, on/off, 1/0 (case-insensitive).
- delimited(","): tokenizer splitting raw tokens on a separator, trimming and
  dropping empty pieces.

Metadata (sanitized on construction)
- names: validated as shell-style names, unique within the option; the longest
  one is the display name and derives the destination key (dest).
- type: converter applied to every string value.
- nargs: Unset (exactly one) | "?" (zero or one) | "*" (zero or more).
- required: absence is an error; no default is ever consulted.
- default / default_factory: plain value / zero-argument supplier, mutually exclusive.
- choices: closed, case-insensitive allowed-value set (duplicates rejected).
- tokenizer: callable reshaping the raw token list before coercion.
- validators: callables (value, result) run by the validation runner.
- completions: callables (context) producing candidate suggestions.
- group / descr / metavar / hidden: help rendering.

Validation highlights
- Names must match r"--?[^\W\d_](-?[^\W_]+)*" and be unique within a definition.
- Option cannot combine metavar and choices simultaneously.
- A plain default must belong to choices when both are declared.
"""
import re
from collections.abc import Iterable, Set

from rich.text import Text

from .internals import DefinitionType
from .utils import *

_TRUTHY = frozenset({"true", "yes", "on", "1"})
_FALSY = frozenset({"false", "no", "off", "0"})


def boolean(value, /):
    """
    Convert a boolean literal to bool; raise ValueError on anything else.
    """
    if isinstance(value, bool):
        return value
    if (literal := str(value).strip().casefold()) in _TRUTHY:
        return True
    if literal in _FALSY:
        return False
    raise ValueError(f"invalid boolean literal {value!r}")


def isboolean(value, /):
    """
    Tell whether a raw token is a boolean literal accepted by boolean().
    """
    return str(value).strip().casefold() in _TRUTHY | _FALSY


def delimited(separator=",", /):
    """
    Build a tokenizer that splits every raw token on 'separator'.

    Each piece is trimmed and empty pieces are dropped, so both
    "--toppings a,b" and "--toppings a --toppings b" end as ["a", "b"].
    """
    if not isinstance(separator, str) or not separator:
        raise TypeError("delimited() argument must be a non-empty string")

    @rename("delimited")
    def tokenizer(tokens, /):
        return [piece for token in tokens for piece in map(str.strip, token.split(separator)) if piece]

    tokenizer.separator = separator
    return tokenizer


def _sanitize_metadata(cls, metadata, /):
    """
    Internal: normalize and validate 'group', 'descr' and 'metavar'.

    - group: defaults to "options" (or "flags" for Flag); non-empty when provided.
    - descr: defaults to None; non-empty when provided.
    - metavar: defaults to None; non-empty when provided.
    """
    if not isinstance(group := metadata["group"], str | Unset):
        raise TypeError(f"{cls.__typename__} 'group' must be a string")
    elif isinstance(group, str) and not (group := group.strip()):
        raise ValueError(f"{cls.__typename__} 'group' cannot be empty")
    metadata["group"] = coalesce(group, cls.__typename__.replace("-", " ") + "s")

    for name in ("descr", "metavar"):
        if not isinstance(object := metadata[name], str | Text | Unset):
            raise TypeError(f"{cls.__typename__} {name!r} must be a string")
        elif isinstance(object, str) and not (object := object.strip()):
            raise ValueError(f"{cls.__typename__} {name!r} cannot be empty")
        metadata[name] = coalesce(object)


def _sanitize_named_metadata(cls, metadata, /):
    r"""
    Internal: validate names and derive 'dest'.

    - names: at least one; each must match r"--?[^\W\d_](-?[^\W_]+)*"; duplicates
      rejected. Declaration order is kept (the first long name leads in help).
    - dest: the longest name without leading dashes, inner dashes as underscores.
    """
    names = []
    if not metadata["names"]:
        raise TypeError(f"{cls.__typename__} must specify at least one name")

    for name in metadata["names"]:
        if not isinstance(name, str):
            raise TypeError(f"{cls.__typename__} names must be strings")
        elif not (name := name.strip()):
            raise ValueError(f"{cls.__typename__} names cannot be empty-strings")
        elif not re.fullmatch(r"--?[^\W\d_](-?[^\W_]+)*", name):
            raise ValueError(f"{cls.__typename__} names must be valid shell-style option names (unicodes are allowed)")
        elif name in names:
            raise ValueError(f"{cls.__typename__} names cannot contain duplicates")
        names.append(name)

    metadata["names"] = tuple(names)
    metadata["name"] = max(names, key=len)
    metadata["dest"] = metadata["name"].lstrip("-").replace("-", "_")


def _sanitize_parametric_metadata(cls, metadata, /):
    """
    Internal: validate value-bearing fields.

    - type: must be callable.
    - nargs: Unset | "?" | "*".
    - default / default_factory: at most one; default_factory must be callable.
    - choices: iterable; duplicates (case-insensitive) rejected unless a Set.
    - tokenizer: Unset or callable.
    """
    if not callable(metadata["type"]):
        raise TypeError(f"{cls.__typename__} 'type' must be callable")

    if not isinstance(nargs := metadata["nargs"], str | Unset):
        raise TypeError(f"{cls.__typename__} 'nargs' must be a string")
    if isinstance(nargs, str) and nargs not in ("?", "*"):
        raise ValueError(f"{cls.__typename__} 'nargs' must be one of '?' or '*'")
    metadata["nargs"] = coalesce(nargs)

    if metadata["default"] is not Unset and metadata["default_factory"] is not Unset:
        raise TypeError(f"{cls.__typename__} cannot have both 'default' and 'default_factory'")
    if metadata["default_factory"] is not Unset and not callable(metadata["default_factory"]):
        raise TypeError(f"{cls.__typename__} 'default_factory' must be callable")

    if not isinstance(choices := metadata["choices"], Iterable) or isinstance(choices, str):
        raise TypeError(f"{cls.__typename__} 'choices' must be iterable")
    if not isinstance(choices, Set):
        sanitized = []
        for choice in choices:
            if fold(choice) in map(fold, sanitized):
                raise ValueError(f"{cls.__typename__} 'choices' cannot contain duplicates")
            sanitized.append(choice)
        choices = sanitized
    metadata["choices"] = tuple(choices)

    if metadata["tokenizer"] is not Unset and not callable(metadata["tokenizer"]):
        raise TypeError(f"{cls.__typename__} 'tokenizer' must be callable")


def _sanitize_callables(cls, metadata, /):
    """
    Internal: 'validators' and 'completions' must be iterables of callables.
    """
    for name in ("validators", "completions"):
        if not isinstance(object := metadata[name], Iterable):
            raise TypeError(f"{cls.__typename__} {name!r} must be an iterable of callables")
        object = tuple(object)
        if not all(map(callable, object)):
            raise TypeError(f"{cls.__typename__} {name!r} must be an iterable of callables")
        metadata[name] = object


class Option(metaclass=DefinitionType):
    """
    Named, value-bearing option definition.

    An Option is declared once, owned by a Command, and never mutated. Values
    are bound fresh on every parse (see kubepizza.parsing); the definition only
    describes how tokens become a typed value.

    Properties
    - The names listed in __introspectable__ are exposed as read-only attributes
      on instances, mirroring the sanitized metadata values.
    """

    __introspectable__ = (
        "names",
        "name",
        "dest",
        "metavar",
        "type",
        "nargs",
        "required",
        "default",
        "default_factory",
        "choices",
        "tokenizer",
        "validators",
        "completions",
        "group",
        "descr",
        "hidden",
    )

    __displayable__ = (
        "names",
        "dest",
        "nargs",
        "required",
        "default",
        "choices",
        "group",
    )

    def __new__(
            cls,
            *names,
            metavar=Unset,
            type=str,
            nargs=Unset,
            required=False,
            default=Unset,
            default_factory=Unset,
            choices=(),
            tokenizer=Unset,
            validators=(),
            completions=(),
            group=Unset,
            descr=Unset,
            hidden=False
    ):
        """
        Construct an Option with the provided metadata.

        Parameters
        - names: one or more str, e.g. "-o", "--output".
        - metavar: label for the value in help.
        - type: converter applied to each string value.
        - nargs: Unset (exactly one), "?" (zero or one), "*" (zero or more).
        - required: when True, absence is always an error and no default is used.
        - default: value bound when the option is absent.
        - default_factory: zero-argument supplier invoked when the option is absent.
        - choices: closed set of allowed values, compared case-insensitively.
        - tokenizer: callable(list[str]) -> Iterable[str], applied before coercion.
        - validators: callables (value, result) -> None | str | fault | Iterable.
        - completions: callables (context) -> Iterable[str].
        - group, descr, hidden: help layout.

        Raises
        - TypeError/ValueError on malformed metadata (programmer errors).
        """
        metadata = {
            "names": names,
            "metavar": metavar,
            "type": type,
            "nargs": nargs,
            "required": bool(required),
            "default": default,
            "default_factory": default_factory,
            "choices": choices,
            "tokenizer": tokenizer,
            "validators": validators,
            "completions": completions,
            "group": group,
            "descr": descr,
            "hidden": bool(hidden),
        }
        _sanitize_metadata(cls, metadata)
        _sanitize_named_metadata(cls, metadata)
        _sanitize_parametric_metadata(cls, metadata)
        _sanitize_callables(cls, metadata)

        self = super().__new__(cls)
        for name, object in metadata.items():
            # default/default_factory keep Unset: None is a legitimate default
            setattr(self, "_" + name, object if name.startswith("default") else coalesce(object))

        if self.metavar and self.choices:
            raise TypeError(f"{cls.__typename__} cannot have both 'metavar' and 'choices'")

        if self.choices and self.default is not Unset and not self.multiple and fold(self.default) not in map(fold, self.choices):
            raise ValueError(f"{cls.__typename__} 'default' must be one of its 'choices'")

        return self

    @property
    def multiple(self):
        """
        True when the option binds a list (zero-or-more arity).
        """
        return self.nargs == "*"

    @property
    def flag(self):
        return self.type is boolean


class Flag(Option):
    """
    Boolean option: "--flag" binds True, "--flag false" binds False.

    A following token is consumed only when it is a boolean literal, so
    "--delivery order" keeps "order" for the parser.
    """

    def __new__(cls, *names, default=Unset, group=Unset, descr=Unset, validators=(), hidden=False):
        return super().__new__(
            cls,
            *names,
            type=boolean,
            nargs="?",
            default=default,
            choices=(),
            validators=validators,
            group=group,
            descr=descr,
            hidden=hidden,
        )


HELP = Flag("-h", "--help", descr="show this help message and exit")
VERSION = Flag("--version", descr="show the version and exit")


__all__ = (
    "Option",
    "Flag",
    "boolean",
    "isboolean",
    "delimited",
    "HELP",
    "VERSION",
)
