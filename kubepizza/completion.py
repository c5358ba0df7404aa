"""
Completion resolver: a read-only query over a partial command line.

complete(root, tokens, word) parses the already-typed tokens (nothing is
validated or invoked) and returns candidates for 'word', the text under the
cursor:

- a value for the option still accepting values, from its completion sources
  (or its choices when it declares none);
- option names when 'word' starts with a dash;
- child command names at a routing point;
- otherwise the option names visible at the resolved node.

Candidates are filtered by case-insensitive substring, de-duplicated
case-insensitively across sources, and ranked with prefix matches first.
"""
import logging
from typing import NamedTuple

from .parsing import parse
from .utils import contains, fold, unique

log = logging.getLogger(__name__)


class CompletionContext(NamedTuple):
    """
    What a completion source sees.

    - word: the partial text being completed (after the last delimiter, if any).
    - command: the resolved command node.
    - result: the in-progress ParseResult (bound sibling values, errors).
    """
    word: str
    command: object
    result: object


def _rank(candidates, word):
    candidates = [candidate for candidate in unique(map(str, candidates)) if contains(candidate, word)]
    folded = fold(word)
    return sorted(candidates, key=lambda candidate: not fold(candidate).startswith(folded))


def suggest(option, context, /):
    """
    Return ranked value candidates for 'option' in 'context'.

    - Sources are called in order; a source that raises is logged and skipped.
    - Options with a separator-splitting tokenizer complete the last piece of
      the word; earlier pieces are kept as prefix and excluded from candidates.
    - Values already bound to a multi-valued option are excluded.
    """
    word = context.word
    prefix = ""
    if (separator := getattr(option.tokenizer, "separator", None)) and separator in word:
        head, _, word = word.rpartition(separator)
        prefix = head + separator
        context = context._replace(word=word)

    if option.completions:
        candidates = []
        for source in option.completions:
            try:
                candidates.extend(source(context))
            except Exception as exception:
                log.debug("completion source %r of %s failed: %r", source, option.name, exception)
    else:
        candidates = list(option.choices)

    taken = set()
    if option.multiple:
        taken.update(map(fold, context.result.get(option) or ()))
    if prefix:
        taken.update(fold(piece) for piece in prefix.split(separator) if piece.strip())

    candidates = [candidate for candidate in candidates if fold(candidate) not in taken]
    return [prefix + candidate for candidate in _rank(candidates, word)]


def complete(root, tokens, word="", /):
    """
    Return completion candidates for 'word' after the already-typed 'tokens'.

    An empty list is a valid answer; this path never raises for user input.
    """
    result = parse(root, tokens)
    command = result.command
    visible = [option for option in command.visible if not option.hidden]

    if result.pending is not None and not word.startswith("-"):
        context = CompletionContext(word, command, result)
        if candidates := suggest(result.pending, context):
            return candidates

    names = [name for option in visible for name in option.names]

    if word.startswith("-"):
        return sorted(name for name in names if name.startswith(word))

    if not result.arguments and command.children:
        return _rank([child.name for child in command.children], word)

    return sorted(names)


__all__ = (
    "CompletionContext",
    "suggest",
    "complete",
)
