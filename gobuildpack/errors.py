"""Exceptions raised by the build pipeline.

Fatal errors derive from BuildpackError and end the build on the Failed path.
ConfigWarning and CacheIOError are caught by the orchestrator and turned into
recorded warnings.
"""


class BuildpackError(Exception):
    """Base class for every error the buildpack raises on purpose."""


class DetectionFailure(BuildpackError):
    """No dependency-management tool marker and no Go sources were found."""


class InstallError(BuildpackError):
    """A toolchain or tool binary could not be fetched or is unusable."""

    def __init__(self, tool, version, reason):
        super().__init__(f"Unable to install {tool} {version}: {reason}")
        self.tool = tool
        self.version = version
        self.reason = reason


class BuildFailure(BuildpackError):
    """A package-manager or build command returned non-zero."""

    def __init__(self, message, command=None, returncode=None, output=""):
        super().__init__(message)
        self.command = command
        self.returncode = returncode
        self.output = output or ""


class BuildInterrupted(BuildpackError):
    """The process received a termination signal while building."""

    def __init__(self, signum):
        super().__init__(f"Build interrupted by signal {signum}")
        self.signum = signum


class ConfigWarning(Exception):
    """Malformed or legacy configuration; the build continues with a fallback."""


class CacheIOError(Exception):
    """The cache could not be read or written."""
