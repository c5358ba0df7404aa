__title__ = 'kubepizza'
__license__ = 'MIT'
__version__ = "1.0.0"

from .options import *
from .commands import *
from .faults import *
from .parsing import *
from .validation import *
from .completion import *
from .catalog import *
from .app import *

VersionInfo = __import__("collections").namedtuple("VersionInfo", (
    "major",
    "minor",
    "micro",
    "releaselevel",
    "serial",
    "metadata"
))

version_info = VersionInfo(1, 0, 0, "final", 0, "")

__all__ = (
    "__title__",
    "__license__",
    "__version__",
    "version_info"
)

# Load the exposed API of the options
__all__ += options.__all__  # type: ignore[attr-defined]
# Load the exposed API of the commands
__all__ += commands.__all__  # type: ignore[attr-defined]
# Load the exposed API of the faults
__all__ += faults.__all__  # type: ignore[attr-defined]
# Load the exposed API of the parse engine
__all__ += parsing.__all__  # type: ignore[attr-defined]
# Load the exposed API of the validation runner
__all__ += validation.__all__  # type: ignore[attr-defined]
# Load the exposed API of the completion resolver
__all__ += completion.__all__  # type: ignore[attr-defined]
# Load the exposed API of the catalog
__all__ += catalog.__all__  # type: ignore[attr-defined]
# Load the exposed API of the application tree
__all__ += app.__all__  # type: ignore[attr-defined]
