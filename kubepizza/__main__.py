"""
Console entry point: `kubepizza ...` or `python -m kubepizza ...`.

- `kubepizza [suggest] <tokens...> <word>` prints completion candidates for
  the last token, one per line (pass "" to complete an empty word).
- Ctrl-C while an action runs cancels it cooperatively (exit status 130).
"""
import logging
import signal
import sys
import threading

from pydantic import ValidationError
from rich.logging import RichHandler

from . import faults
from .app import build
from .completion import complete
from .config import Settings
from .faults import InvalidValueError, trigger

SUGGEST = "[suggest]"

log = logging.getLogger("kubepizza")


class Cancellation(threading.Event):
    """
    Cancel event that remembers whether a waiter observed it.
    """

    observed = False

    def wait(self, timeout=None):
        if cancelled := super().wait(timeout):
            self.observed = True
        return cancelled


def configure(level):
    """
    Attach a rich handler (stderr) to the package logger, once.
    """
    log.setLevel(level)
    if getattr(log, "_configured", False):
        return
    log.propagate = False
    handler = RichHandler(console=faults.console, show_path=False, rich_tracebacks=True)
    handler.setLevel(logging.NOTSET)
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    log.addHandler(handler)
    setattr(log, "_configured", True)


def main(argv=None):
    argv = sys.argv[1:] if argv is None else list(argv)

    try:
        settings = Settings()
    except ValidationError as exception:
        message = "; ".join(
            "%s: %s" % (".".join(map(str, error["loc"])), error["msg"]) for error in exception.errors()
        )
        trigger(InvalidValueError(message, hint="check the KUBEPIZZA_* environment variables"), shell=True)
        return 1

    configure(settings.level)
    root = build(settings=settings, shell=True)

    if argv[:1] == [SUGGEST]:
        tokens = argv[1:]
        word = tokens.pop() if tokens else ""
        for candidate in complete(root, tokens, word):
            root.console.print(candidate, markup=False, highlight=False)
        return 0

    cancel = Cancellation()
    # signal handlers can only be installed from the main thread
    interactive = threading.current_thread() is threading.main_thread()
    if interactive:
        previous = signal.signal(signal.SIGINT, lambda signum, frame: cancel.set())
    try:
        status = root.run(argv, cancel=cancel)
    finally:
        if interactive:
            signal.signal(signal.SIGINT, previous)

    if cancel.observed:
        log.info("interrupted")
        return 130
    return status


if __name__ == "__main__":
    sys.exit(main())
