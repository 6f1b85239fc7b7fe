"""Failure diagnosis from captured build output."""

from dataclasses import dataclass

from .cli_logger import logger
from .errors import BuildFailure, BuildInterrupted, DetectionFailure, InstallError

GENERIC_MESSAGE = "Build failed, see the log above for details."


@dataclass(frozen=True)
class Diagnosis:
    code: str
    message: str


# Checked in order, first match wins; patterns are lower-case substrings
KNOWN_FAILURES = (
    (
        "dep-lock-out-of-sync",
        (
            "gopkg.lock is out of sync",
            "lock is out of sync",
            "digest in lock does not match",
        ),
        "Gopkg.lock is out of date with Gopkg.toml. Run `dep ensure` locally and commit Gopkg.lock.",
    ),
    (
        "go-sum-out-of-date",
        (
            "missing go.sum entry",
            "go.mod and go.sum are out of sync",
            "updates to go.mod needed",
            "go.sum: missing",
        ),
        "go.mod or go.sum is out of date. Run `go mod tidy` locally and commit both files.",
    ),
    (
        "inconsistent-vendoring",
        ("inconsistent vendoring",),
        "vendor/modules.txt does not match go.mod. Run `go mod vendor` locally and commit vendor/.",
    ),
    (
        "unsupported-go-version",
        (
            "requires go >=",
            "requires go1.",
            "go.mod requires go",
            "unknown directive: toolchain",
        ),
        "The project needs a newer Go than the one installed. Raise the Go version in go.mod or set GOVERSION.",
    ),
    (
        "missing-package",
        (
            "cannot find package",
            "no required module provides package",
            "is not in goroot",
        ),
        "A dependency could not be found. Make sure every dependency is declared and vendored or locked.",
    ),
    (
        "no-go-files",
        ("no go files in",),
        "An install target has no Go files. Check GO_INSTALL_PACKAGE_SPEC or the tool's install setting.",
    ),
    (
        "glide-lock-out-of-date",
        ("lock file may be out of date",),
        "glide.lock is out of date with glide.yaml. Run `glide up` locally and commit glide.lock.",
    ),
)


def diagnose(output):
    """Classify build output; return a Diagnosis or None when no signature matches."""
    text = (output or "").lower()
    for code, patterns, message in KNOWN_FAILURES:
        if any(pattern in text for pattern in patterns):
            return Diagnosis(code, message)
    return None


def describe_failure(error, recent_output=()):
    """Return (diagnosis, message) for a fatal error, most specific cause first."""
    if isinstance(error, DetectionFailure):
        return Diagnosis("detection-failure", str(error)), str(error)
    if isinstance(error, InstallError):
        return Diagnosis("install-error", str(error)), str(error)
    if isinstance(error, BuildInterrupted):
        return Diagnosis("interrupted", str(error)), str(error)

    output = error.output if isinstance(error, BuildFailure) else ""
    text = "\n".join([output, *recent_output])
    diagnosis = diagnose(text)
    if diagnosis:
        return diagnosis, diagnosis.message
    return Diagnosis("build-failed", GENERIC_MESSAGE), GENERIC_MESSAGE


def report_failure(error, recent_output=()):
    """Log the most specific known cause, then the generic failure line."""
    diagnosis, message = describe_failure(error, recent_output)
    logger.error(message)
    if message != str(error):
        logger.error(str(error))
    if diagnosis.code not in ("build-failed", "interrupted"):
        logger.error(GENERIC_MESSAGE)
    return diagnosis
