"""
Kubepizza command layer: compose, resolve and run a command tree.

What this module provides
- Command: a named, aliasable tree node that owns options, command-level
  validators, child commands, curated examples, and an optional action.
  • Static composition: children are passed at construction and adopted once.
  • Inherited options: options declared on an ancestor are visible (and
    bindable) at every descendant, followed by the built-in -h/--help flag
    and, when the root carries a version, --version.
  • Polished help/version renderers (Rich-based, color-aware).

Control flow of Command.run(prompt)
    tokens → parse (resolve + bind) → help/version short-circuit → validate
    → zero errors: invoke the resolved node's action
    → otherwise: surface every fault at once (CommandExit)

Quick start
    from kubepizza import Command, Option

    def greet(name):
        print("hello", name)

    tool = Command("tool", "demo", children=[
        Command("greet", "say hello", options=[Option("--name", required=True)], action=greet),
    ])
    tool.run("greet --name world")

Design notes
- Definition defects (bad names, duplicated siblings, colliding visible
  option names, re-attached nodes) raise TypeError/ValueError immediately.
- User mistakes never raise during parsing; they are collected as faults.
"""
import difflib
import inspect
import logging
import re
import shlex
import sys
import threading
from collections import defaultdict, deque
from collections.abc import Iterable
from inspect import Parameter

from rich.box import ROUNDED
from rich.console import Console, Group
from rich.containers import Lines
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from . import faults
from .faults import *
from .internals import DefinitionType
from .options import HELP, VERSION, Option
from .parsing import optionlike, parse
from .utils import *
from .validation import validate

log = logging.getLogger(__name__)


def _process_names(cls, metadata):
    """
    Validate the command name and its aliases.

    - name: non-empty word (letters, digits and inner single dashes).
    - aliases: iterable of such words; duplicates, and an alias equal to the
      command's own name, are rejected. Stabilized to a tuple.
    """
    def check(name, label):
        if not isinstance(name, str):
            raise TypeError(f"{cls.__typename__} {label} must be a string")
        elif not (name := name.strip()):
            raise ValueError(f"{cls.__typename__} {label} cannot be empty")
        elif not re.fullmatch(r"[^\W_](-?[^\W_]+)*", name):
            raise ValueError(f"{cls.__typename__} {label} {name!r} must be a valid command word")
        return name

    metadata["name"] = check(metadata["name"], "name")

    if not isinstance(metadata["aliases"], Iterable) or isinstance(metadata["aliases"], str):
        raise TypeError(f"{cls.__typename__} 'aliases' must be an iterable of strings")
    aliases = []
    for alias in metadata["aliases"]:
        alias = check(alias, "alias")
        if alias == metadata["name"] or alias in aliases:
            raise ValueError(f"{cls.__typename__} alias {alias!r} is already in use")
        aliases.append(alias)
    metadata["aliases"] = tuple(aliases)


def _process_strings(cls, metadata):
    """
    Normalize scalar string/Text metadata fields ('descr', 'version').

    Strings are trimmed and empty strings rejected; Unset becomes None.
    """
    for name in ("descr", "version"):
        if not isinstance(object := metadata[name], str | Text | Unset):
            raise TypeError(f"{cls.__typename__} {name!r} must be a string")
        elif isinstance(object, str) and not (object := object.strip()):
            raise ValueError(f"{cls.__typename__} {name!r} cannot be empty")
        metadata[name] = coalesce(object)


def _process_examples(cls, metadata):
    """
    Normalize the curated examples shown by help (duplicates rejected).
    """
    if not isinstance(examples := metadata["examples"], Iterable) or isinstance(examples, str):
        raise TypeError(f"{cls.__typename__} 'examples' must be an iterable of strings")
    seen = []
    for example in examples:
        if not isinstance(example, str | Text):
            raise TypeError(f"{cls.__typename__} 'examples' must be an iterable of strings")
        elif isinstance(example, str) and not (example := example.strip()):
            raise ValueError(f"{cls.__typename__} 'examples' must be an iterable of non-empty strings")
        elif str(example) in map(str, seen):
            raise ValueError(f"{cls.__typename__} 'examples' cannot contain duplicates")
        seen.append(example)
    metadata["examples"] = tuple(seen)


def _process_definitions(cls, metadata):
    """
    Validate owned options, command-level validators and children.

    - options: Option instances, each at most once.
    - validators: callables taking the parse result.
    - children: Command instances not attached anywhere yet, with unique
      names and aliases among siblings.
    """
    options = []
    for option in metadata["options"]:
        if not isinstance(option, Option):
            raise TypeError(f"{cls.__typename__} 'options' must be an iterable of options")
        if option in options:
            raise ValueError(f"{cls.__typename__} option {option.name!r} is declared twice")
        options.append(option)
    metadata["options"] = tuple(options)

    validators = tuple(metadata["validators"])
    if not all(map(callable, validators)):
        raise TypeError(f"{cls.__typename__} 'validators' must be an iterable of callables")
    metadata["validators"] = validators

    children = []
    words = {}
    for child in metadata["children"]:
        if not isinstance(child, Command):
            raise TypeError(f"{cls.__typename__} 'children' must be an iterable of commands")
        if child.parent is not None or child in children:
            raise TypeError(f"{cls.__typename__} {child.name!r} is already attached to a parent")
        for word in (child.name, *child.aliases):
            if words.setdefault(word, child) is not child:
                raise ValueError(f"{cls.__typename__} subcommand name {word!r} is already in use")
        children.append(child)
    metadata["children"] = tuple(children)


def _process_action(cls, metadata):
    """
    Validate the terminal action (optional).

    Every parameter must be passable by keyword: parameters are filled from
    the bound option destinations, plus 'cancel' (threading.Event) and
    'console' (rich Console) when requested.
    """
    if (action := metadata["action"]) is Unset:
        metadata["action"] = None
        metadata["parameters"] = ()
        return
    try:
        signature = inspect.signature(action)
    except TypeError:
        raise TypeError(f"{cls.__typename__} 'action' must be callable") from None
    except ValueError:
        raise ValueError(f"{cls.__typename__} 'action' must be an inspectable callable") from None

    for parameter in signature.parameters.values():
        if parameter.kind in (Parameter.POSITIONAL_ONLY, Parameter.VAR_POSITIONAL):
            raise TypeError(f"{cls.__typename__} 'action' parameter {parameter.name!r} must be passable by keyword")
    metadata["parameters"] = tuple(signature.parameters.values())


def _check_visible(command):
    """
    Ensure no two distinct visible options share a name or a destination,
    for 'command' and its whole subtree.
    """
    names = {}
    dests = {}
    for option in command.visible:
        for name in option.names:
            if names.setdefault(name, option) is not option:
                raise ValueError(f"{type(command).__typename__} option name {name!r} is already in use at '{command.route}'")
        if dests.setdefault(option.dest, option) is not option:
            raise ValueError(f"{type(command).__typename__} option destination {option.dest!r} is already in use at '{command.route}'")
    for child in command.children:
        _check_visible(child)


def _tokenize(prompt):
    """
    Normalize a prompt into a token list.

    - Unset: sys.argv[1:].
    - str: shell-like string split with shlex.split.
    - Iterable[str]: items kept as given (trimmed; empty items dropped).
    """
    if prompt is Unset:
        return sys.argv[1:]
    if isinstance(prompt, str):
        return shlex.split(prompt)
    if isinstance(prompt, Iterable):
        tokens = []
        for item in prompt:
            if not isinstance(item, str):
                raise TypeError("prompt must be a string or an iterable of strings")
            if item := item.strip():
                tokens.append(item)
        return tokens
    raise TypeError("prompt must be a string or an iterable of strings")


class Command(metaclass=DefinitionType):
    """
    One addressable point of the command tree (e.g. 'order', 'order create').

    Responsibilities
    - Introspection: exposes metadata as read-only properties.
    - Composition: adopts its children at construction (exactly one parent each).
    - Resolution: resolve(tokens) finds the deepest node named by the tokens.
    - Execution: parse/run/invoke drive a single invocation.
    - Rendering: help (usage, subcommands, options, examples) and version.

    Runtime flags (shell, fancy, colorful) and the output console inherit from
    the parent when left Unset.
    """

    __introspectable__ = (
        "name",
        "aliases",
        "descr",
        "version",
        "options",
        "validators",
        "children",
        "parent",
        "action",
        "examples",
    )

    __displayable__ = (
        "route",
        "aliases",
        "descr",
        "options",
        "subcommands",
        "shell",
        "fancy",
        "colorful",
    )

    def __new__(
            cls,
            name,
            /,
            descr=Unset,
            *,
            aliases=(),
            options=(),
            validators=(),
            children=(),
            action=Unset,
            examples=(),
            version=Unset,
            console=Unset,
            shell=Unset,
            fancy=Unset,
            colorful=Unset
    ):
        """
        Construct a command node and adopt its children.

        Parameters
        - name: command word, unique among siblings.
        - descr: short description (help).
        - aliases: alternative words (e.g. "o" for "order").
        - options: Option definitions owned by this node (visible to descendants).
        - validators: command-level validators, called as validator(result).
        - children: subcommands, in resolution order.
        - action: terminal action; None/Unset makes this node a pure router.
        - examples: curated example lines shown by help.
        - version: version string (root only; enables --version).
        - console: rich Console for help and action output.
        - shell, fancy, colorful: runtime flags (inherit from parent when Unset).

        Raises
        - TypeError/ValueError on malformed metadata, sibling collisions,
          colliding visible options, or children already attached elsewhere.
        """
        if not isinstance(console, Console | Unset):
            raise TypeError(f"{cls.__typename__} 'console' must be a rich console")

        metadata = {
            "name": name,
            "aliases": aliases,
            "descr": descr,
            "version": version,
            "options": options,
            "validators": validators,
            "children": children,
            "action": action,
            "examples": examples,
        }
        _process_names(cls, metadata)
        _process_strings(cls, metadata)
        _process_examples(cls, metadata)
        _process_definitions(cls, metadata)
        _process_action(cls, metadata)

        self = super().__new__(cls)
        for name, object in metadata.items():
            setattr(self, "_" + name, object)
        self._parent = None
        self._console = console
        self._shell = shell
        self._fancy = fancy
        self._colorful = colorful

        for child in self.children:
            child._parent = self

        _check_visible(self)
        return self

    # ── Runtime flags (inherited) ────────────────────────────────────────────

    @property
    def shell(self):
        return bool(coalesce(self._shell, self._parent.shell if self._parent else False))

    @property
    def fancy(self):
        return bool(coalesce(self._fancy, self._parent.fancy if self._parent else False))

    @property
    def colorful(self):
        return bool(coalesce(self._colorful, self._parent.colorful if self._parent else False))

    @property
    def console(self):
        if self._console is Unset:
            if self._parent is not None:
                return self._parent.console
            self._console = Console()
        return self._console

    # ── Tree ─────────────────────────────────────────────────────────────────

    @property
    def root(self):
        """
        Return the topmost command in the current command hierarchy.
        """
        child, parent = self, self.parent
        while parent:
            child, parent = parent, parent.parent
        return child

    @property
    def path(self):
        """
        Return the full ancestry from root to this command as a tuple.
        """
        path = [command := self]
        while command.parent:
            path.append(command := command.parent)
        return tuple(reversed(path))

    @property
    def route(self):
        """
        Names from the root to this node joined by single spaces ('kubepizza order create').
        """
        return " ".join(step.name for step in self.path)

    @property
    def subcommands(self):
        return tuple(child.name for child in self.children)

    @property
    def visible(self):
        """
        Options bindable at this node: own options, then every ancestor's
        options walking upwards, then the built-in flags.
        """
        options = []
        for command in reversed(self.path):
            for option in command.options:
                if option not in options:
                    options.append(option)
        if HELP not in options:
            options.append(HELP)
        if self.root.version and VERSION not in options:
            options.append(VERSION)
        return tuple(options)

    def child(self, word, /):
        """
        Return the first child whose name or alias equals 'word', or None.
        """
        for child in self.children:
            if word == child.name or word in child.aliases:
                return child
        return None

    def find(self, route, /):
        """
        Address a node by its route ('order create', or 'kubepizza order create').

        Raises KeyError when the route does not name a node under this one.
        """
        words = route.split() if isinstance(route, str) else list(route)
        if words and words[0] == self.name:
            words = words[1:]
        command = self
        for word in words:
            if (command := command.child(word)) is None:
                raise KeyError(route)
        return command

    def walk(self):
        """
        Yield this node and every descendant, depth-first in declaration order.
        """
        yield self
        for child in self.children:
            yield from child.walk()

    def resolve(self, tokens, /):
        """
        Walk consecutive name/alias tokens from this node.

        Returns (command, consumed, problems):
        - command: the deepest node matched (the last good one on failure).
        - consumed: how many leading tokens were used for routing.
        - problems: at most one UnrecognizedSubcommandError, for a bare token
          matching no child of a node that has children. That token counts
          as consumed so it is not reported twice.
        """
        command = self
        consumed = 0
        problems = []
        for token in tokens:
            if optionlike(token) or not command.children:
                break
            if (child := command.child(token)) is None:
                words = [word for each in command.children for word in (each.name, *each.aliases)]
                suggestions = difflib.get_close_matches(token, words, 5)
                try:
                    hint = "did you mean %r? you can also run '%s --help' to see available subcommands" % (
                        suggestions[0], command.route
                    )
                except IndexError:
                    hint = "run '%s --help' to see available subcommands" % command.route
                problems.append(UnrecognizedSubcommandError(
                    "unrecognized command or argument %r at %s position" % (token, ordinal(consumed + 1)),
                    input=token,
                    index=consumed + 1,
                    suggestions=suggestions,
                    hint=hint,
                ))
                consumed += 1
                break
            command = child
            consumed += 1
        log.debug("resolved %r to '%s'", list(tokens[:consumed]), command.route)
        return command, consumed, problems

    # ── Execution ────────────────────────────────────────────────────────────

    def parse(self, prompt=Unset, /):
        """
        Tokenize 'prompt' and return a ParseResult (no validation, no action).
        """
        return parse(self, _tokenize(prompt))

    def invoke(self, result, /, cancel=None):
        """
        Run this node's action with the bound values of 'result'.

        - Nothing runs when the result carries any error (returns False).
        - A node without an action is a pure router: invoking it is legal and
          does nothing (returns True).
        - Parameters are filled by option destination; 'cancel' receives a
          threading.Event and 'console' the node's console when requested.
          Parameters matching nothing get their default, or None.
        """
        if result.command is not self:
            raise ValueError(f"{type(self).__typename__} cannot invoke a result resolved to '{result.command.route}'")
        if result.errors:
            log.debug("skipping '%s': %d errors", self.route, len(result.errors))
            return False
        if self.action is None:
            log.debug("'%s' has no action", self.route)
            return True

        namespace = result.namespace()
        extras = {
            "cancel": cancel if cancel is not None else threading.Event(),
            "console": self.console,
        }
        kwargs = {}
        for parameter in self._parameters:
            if parameter.kind is Parameter.VAR_KEYWORD:
                kwargs.update({key: value for key, value in namespace.items() if key not in kwargs})
            elif parameter.name in namespace:
                kwargs[parameter.name] = namespace[parameter.name]
            elif parameter.name in extras:
                kwargs[parameter.name] = extras[parameter.name]
            elif parameter.default is Parameter.empty:
                kwargs[parameter.name] = None

        log.debug("invoking '%s' with %r", self.route, sorted(kwargs))
        self.action(**kwargs)
        return True

    def run(self, prompt=Unset, /, *, cancel=None):
        """
        Execute one invocation and return the exit status.

        Parameters
        - prompt:
          • Unset: read tokens from sys.argv[1:].
          • str: shell-like string; will be split via shlex.split.
          • Iterable[str]: pre-tokenized sequence; each element is trimmed.
        - cancel: optional threading.Event forwarded to the action.

        Behavior
        - --help at any node prints that node's help and returns 0.
        - --version prints the version block and returns 0.
        - Any parse or validation fault is surfaced through a CommandExit:
          raised when shell is False, rendered (after the node's help, on
          stderr) with exit status 1 when shell is True.
        """
        result = self.parse(prompt)
        command = result.command

        if result.help:
            command._helper()
            return 0

        if result.version:
            command.root._versioner()
            return 0

        validate(result)

        if result.errors:
            if command.shell:
                command._helper(stderr=True)
            trigger(
                CommandExit(result.errors),
                tool=command,
                shell=command.shell,
                fancy=command.fancy,
                colorful=command.colorful,
            )
            return 1

        command.invoke(result, cancel=cancel)
        return 0

    # ── Rendering ────────────────────────────────────────────────────────────

    def _helper(self, *, stderr=False):
        """
        Render CLI help to the console.

        Palette keys
        - usage-label, program-name, usage-section, description-section
        - group-label, argument-description, option-name, flag-name, metavar, choice
        - children-title, children-table, children, children-description, name-column
        - examples-label, examples-dot, example
        - panel-title

        Customization
        - Define a mapping named __styles__ in __main__ to override any palette entry.
        - When colorful is False, styling is suppressed.
        """
        console = faults.console if stderr else self.console
        styles = defaultdict(str, {
            # === Head sections ===
            "usage-label": "bold #00E6FF",  # CYAN → signature info color
            "program-name": "bold #FF4D94",  # MAGENTA-PINK → brand pop
            "description-section": "italic #A3A3A3",  # Neutral gray

            # === Groups / options ===
            "group-label": "bold #FFFFFF",  # Pure white headers
            "argument-description": "#9CA3AF",  # Muted gray
            "option-name": "bold #00E6FF",  # CYAN for options
            "flag-name": "bold #22C55E",  # GREEN for flags
            "metavar": "bold #FFD600",  # AMBER for parameters
            "choice": "bold #FF4D94",  # MAGENTA → choices stand out

            # === Children table ===
            "children-title": "bold #FFFFFF",
            "children-table": "#4B5563",  # Slate border
            "children": "bold #36C5F0",  # Sky-blue subcommands
            "children-description": "#9CA3AF",
            "name-column": "",

            # === Examples ===
            "examples-label": "bold #22C55E",
            "examples-dot": "#22C55E dim",
            "example": "#E5E7EB",

            # === Fancy panel ===
            "panel-title": "bold #FF4D94",
        } | getattr(__import__('__main__'), "__styles__", {}))

        def styler(style):
            return styles[style] if self.colorful else ""

        def text(fragment, style=""):
            if not fragment:
                return Text("")
            if not self.colorful:
                return Text(str(fragment))
            if isinstance(fragment, Text):
                return fragment
            return Text(str(fragment), style)

        renders = []
        width = console.width - 4 * self.fancy
        visible = [option for option in self.visible if not option.hidden]

        def names(option):
            style = "flag-name" if option.flag else "option-name"
            return Text(" | ").join(text(name, styler(style)) for name in sorted(option.names, key=len))

        def metavar(option):
            if option.flag:
                return Text("")
            if option.choices:
                label = Text.assemble("{", Text(",").join(text(choice, styler("choice")) for choice in option.choices), "}")
            else:
                label = Text.assemble("<", text(option.metavar or option.dest.replace("_", "-"), styler("metavar")), ">")
            match option.nargs:
                case "?":
                    return Text.assemble("[", label, "]")
                case "*":
                    return Text.assemble("[", label, " ", "...", "]")
                case _:
                    return label

        # Usage line: route + [options] + <command> when routing continues
        usage = Text()
        usage.append("usage", styler("usage-label")).append(":")
        usage.append(" ")
        usage.append(text(self.route, styler("program-name")))
        usage.append(" ")

        offset = len(usage)
        inputs = deque()
        for option in visible:
            item = Text.assemble(names(option), " ", metavar(option)) if not option.flag else names(option)
            inputs.append(item if option.required else Text.assemble("[", item, "]"))
        if self.children:
            inputs.append(Text("<command>"))

        try:
            lines = Lines([inputs.popleft()])
        except IndexError:
            lines = Lines()

        while inputs:
            if len(lines[-1]) + 1 + len(input := inputs.popleft()) > width - offset:
                lines.append(input)
            else:
                lines[-1].append(Text(" ") + input)

        try:
            usage.append(lines.pop(0))
        except IndexError:
            pass
        for line in lines:
            usage.append("\n").append(" " * offset).append(line)

        renders.append(usage.append("\n"))

        if self.descr:
            renders.append(text(self.descr, styler("description-section")).append("\n"))

        # Subcommands table (names with their aliases)
        if self.children:
            table = Table(
                "name", "help",
                title=text("subcommands" if self.parent else "commands", styler("children-title")),
                width=int(width * (2 / 3)),
                box=ROUNDED,
                style=styler("children-table"),
                header_style=styler("children-title"),
            )
            for child in self.children:
                if child.descr:
                    help = text(child.descr, styler("children-description"))
                else:
                    help = Text.assemble(
                        text("no description", styler("children-description")),
                        " — ",
                        text(f"run '{child.route} --help' for details", styler("examples-label")),
                    )
                table.add_row(
                    text(", ".join((child.name, *child.aliases)), styler("children")),
                    help,
                    style=styler("name-column"),
                )
            renders.append(table)

        # Option groups with hanging indents
        groups = defaultdict(list)
        for option in visible:
            groups[option.group].append(option)

        section = Text("\n" if self.children else "")
        padding = 2
        indent = 24
        for index, (group, options) in enumerate(groups.items()):
            section.append(text(group, styler("group-label"))).append(":")
            section.append("\n")
            for option in options:
                entry = Text(" " * padding)
                entry.append(names(option))
                if label := metavar(option):
                    entry.append(" ").append(label)

                details = [str(option.descr)] if option.descr else []
                if option.required:
                    details.append("(required)")
                elif option.default is not Unset and not option.flag:
                    details.append("[default: %s]" % option.default)
                if details:
                    if len(entry) >= indent:
                        entry.append("\n").append(" " * indent)
                    else:
                        entry.append(" " * (indent - len(entry)))
                    wrapped = text(" ".join(details), styler("argument-description")).wrap(console, max(width - indent, 20))
                    try:
                        entry.append(wrapped.pop(0))
                    except IndexError:
                        pass
                    for line in wrapped:
                        entry.append("\n").append(" " * indent).append(line)
                section.append(entry).append("\n")
            section.append("\n" * (index < len(groups) - 1))
        renders.append(section)

        if self.examples:
            padding = len(dot := text(" • ", styler("examples-dot")))
            examples = Text()
            examples.append(text("examples", styler("examples-label")).append(":"))
            examples.append("\n")
            for example in map(lambda x: text(x, styler("example")), self.examples):
                for index, segment in enumerate(example.wrap(console, width - padding)):
                    examples.append(dot if index == 0 else " " * padding).append(segment).append("\n")
            renders.append(examples)

        renders[-1].rstrip()

        renderable = Group(*renders)
        if self.fancy:
            renderable = Panel(
                renderable,
                title=Text.assemble("[", " ", f"{self.route} HELP".upper(), " ", "]", style=styler("panel-title")),
                title_align="left",
            )

        console.print(renderable)

    def _versioner(self):
        """
        Render version information ("<name> — <version>") to the console.
        """
        styles = defaultdict(str, {
            "program-name": "bold #FF4D94",  # Magenta-pink brand pop
            "program-version": "bold #00E6FF",  # Cyan version (clear contrast)
            "panel-title": "bold #FF4D94",
        } | getattr(__import__('__main__'), "__styles__", {}))

        def text(fragment, style):
            return Text(str(fragment), styles[style] if self.colorful else "")

        renderable = Text(" — ").join((
            text(self.name, "program-name"),
            text(self.version or "0.0.0", "program-version"),
        ))
        if self.fancy:
            renderable = Panel(
                renderable,
                title=Text.assemble("[", " ", f"{self.name} VERSION".upper(), " ", "]", style=styles["panel-title"] if self.colorful else ""),
                title_align="left",
            )
        self.console.print(renderable)


__all__ = (
    "Command",
)
