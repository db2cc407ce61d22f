"""Exception hierarchy for the build tools.

    BuildToolError
    ├── InvalidArguments
    ├── ConfigError
    ├── ProvisionError
    │   ├── DownloadFailure(url)
    │   └── ExtractionFailure(archive)
    ├── ExecutionFailure
    └── TagError

Every error carries the process exit code the entry points use for it.
"""

from pathlib import Path


class BuildToolError(Exception):
    exit_code: int = 1


class InvalidArguments(BuildToolError):
    """Positional arguments given to a command that takes none."""

    exit_code = 64


class ProvisionError(BuildToolError):
    """Base for failures while populating the tool cache."""


class DownloadFailure(ProvisionError):
    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        super().__init__(f"download of {url} failed: {reason}")


class ExtractionFailure(ProvisionError):
    def __init__(self, archive: Path, reason: str) -> None:
        self.archive = archive
        super().__init__(f"cannot unpack {archive.name}: {reason}")


class ExecutionFailure(BuildToolError):
    """The cached binary could not be started."""

    exit_code = 126


class TagError(BuildToolError):
    """Image tag could not be derived from the repository."""


class ConfigError(BuildToolError):
    """Unusable value in the environment."""

    exit_code = 78
