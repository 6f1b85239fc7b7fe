"""Dependency-manager detection.

Markers are checked in a fixed order, module system first and legacy
vendoring tools last. The first marker found wins.

  go.mod                 -> modules
  Gopkg.lock             -> dep
  Godeps/Godeps.json     -> godep
  vendor/vendor.json     -> govendor
  glide.yaml             -> glide
  src/**/*.go            -> gb
"""

from enum import Enum

from . import manifest as m
from .errors import DetectionFailure


class ToolStrategy(str, Enum):
    MODULES = "modules"
    DEP = "dep"
    GODEP = "godep"
    GOVENDOR = "govendor"
    GLIDE = "glide"
    GB = "gb"


DEPRECATED_STRATEGIES = {
    ToolStrategy.DEP,
    ToolStrategy.GODEP,
    ToolStrategy.GOVENDOR,
    ToolStrategy.GLIDE,
    ToolStrategy.GB,
}

DEFAULT_STRATEGY = ToolStrategy.MODULES

MARKERS = (
    (ToolStrategy.MODULES, lambda project: project.has(m.GO_MOD)),
    (ToolStrategy.DEP, lambda project: project.has(m.GOPKG_LOCK)),
    (ToolStrategy.GODEP, lambda project: project.has(m.GODEPS_JSON)),
    (ToolStrategy.GOVENDOR, lambda project: project.has(m.VENDOR_JSON)),
    (ToolStrategy.GLIDE, lambda project: project.has(m.GLIDE_YAML)),
    (ToolStrategy.GB, lambda project: project.has_workspace_sources()),
)


def detect(project):
    """Return the first ToolStrategy whose marker is present, or None."""
    for strategy, present in MARKERS:
        if present(project):
            return strategy
    return None


def select_strategy(project):
    """Pick the strategy for a build.

    Returns ``(strategy, warning)``. A project with Go sources at its root but
    no tool marker falls back to modules with a warning; a project with
    neither raises DetectionFailure.
    """
    strategy = detect(project)
    if strategy is not None:
        return strategy, None
    if project.has_root_go_sources():
        return DEFAULT_STRATEGY, (
            "No dependency manager marker found (go.mod, Gopkg.lock, Godeps/Godeps.json, "
            "vendor/vendor.json, glide.yaml, src/). Defaulting to Go modules."
        )
    raise DetectionFailure(
        f"No Go dependency manager or Go sources found in {project.build_dir}"
    )
