"""Error taxonomy for manifest resolution and plan execution.

Every failure the installer can hit belongs to one of four kinds. Core
functions raise these exceptions and never terminate the process; the CLI is
the only place that turns them into an exit status.
"""

from enum import Enum


class ErrorKind(Enum):
    """Category of a fatal installer error."""

    CONFIGURATION = "configuration"
    RESOLUTION = "resolution"
    TRANSFER = "transfer"
    EXTRACTION = "extraction"


class PackagesError(Exception):
    """Base class for all installer errors."""

    kind: ErrorKind = ErrorKind.CONFIGURATION


class ManifestError(PackagesError):
    """Raised when a manifest file is missing, unreadable, or malformed."""

    kind = ErrorKind.CONFIGURATION


class PropertiesError(PackagesError):
    """Raised when a properties file (boards.txt, platform.txt) cannot be read."""

    kind = ErrorKind.CONFIGURATION


class ResolutionError(PackagesError):
    """Raised when a platform, tool, or host variant cannot be resolved."""

    kind = ErrorKind.RESOLUTION


class ToolNotFoundError(ResolutionError):
    """Raised when no loaded manifest provides a tool name+version."""

    pass


class ToolVariantNotFoundError(ResolutionError):
    """Raised when a tool has no download for any of the allowed hosts."""

    pass


class PinnedVersionNotFoundError(ResolutionError):
    """Raised in strict mode when a pinned platform version does not exist."""

    pass


class DownloadError(PackagesError):
    """Raised when an archive download fails."""

    kind = ErrorKind.TRANSFER


class ExtractionError(PackagesError):
    """Raised when an archive cannot be extracted or placed."""

    kind = ErrorKind.EXTRACTION
