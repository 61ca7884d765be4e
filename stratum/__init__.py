__path__ = __import__("pkgutil").extend_path(__path__, __name__)  # NOQA: F-821
__title__ = 'stratum'
__author__ = 'Eiko Reishin (影皇嶺臣)'
__license__ = 'MIT'
# Placeholder, modified by dynamic-versioning.
__version__ = "0.0.0"

from .chain import *
from .commands import *
from .faults import *
from .identity import *
from .options import *
from .sources import *
from .store import *

VersionInfo = __import__("collections").namedtuple("VersionInfo", (
    "major",
    "minor",
    "micro",
    "releaselevel",
    "serial",
    "metadata"
))

# Placeholder, modified by dynamic-versioning.
version_info = VersionInfo(0, 0, 0, "final", 0, "")

__all__ = (
    "__path__",
    "__title__",
    "__author__",
    "__license__",
    "__version__",
    "version_info"
)

# Load the exposed API of the cross-level store
__all__ += chain.__all__  # type: ignore[attr-defined]
# Load the exposed API of the command tree
__all__ += commands.__all__  # type: ignore[attr-defined]
# Load the exposed API of the faults
__all__ += faults.__all__  # type: ignore[attr-defined]
# Load the exposed API of the identities
__all__ += identity.__all__  # type: ignore[attr-defined]
# Load the exposed API of the option descriptors
__all__ += options.__all__  # type: ignore[attr-defined]
# Load the exposed API of the option sources
__all__ += sources.__all__  # type: ignore[attr-defined]
# Load the exposed API of the option store
__all__ += store.__all__  # type: ignore[attr-defined]
