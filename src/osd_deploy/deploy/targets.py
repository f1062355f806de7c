"""Build modes, deploy targets and the variant table.

Target resolution is a pure function of the target name::

    frontend  ->  live_day.tar, live_thermal.tar
    gallery   ->  default.tar (built from recording_day)
    all       ->  frontend entries, then gallery entries
"""

from dataclasses import dataclass
from typing import Dict, Tuple

from .exceptions import UsageError

BUILD_MODES = ("dev", "production")
TARGETS = ("frontend", "gallery", "all")
DEFAULT_TARGET = "all"


@dataclass(frozen=True)
class PackageSpec:
    """A variant and the logical name it is published under."""
    variant: str
    logical_name: str


FRONTEND_PACKAGES: Tuple[PackageSpec, ...] = (
    PackageSpec("live_day", "live_day.tar"),
    PackageSpec("live_thermal", "live_thermal.tar"),
)

GALLERY_PACKAGES: Tuple[PackageSpec, ...] = (
    PackageSpec("recording_day", "default.tar"),
)

TARGET_TABLE: Dict[str, Tuple[PackageSpec, ...]] = {
    "frontend": FRONTEND_PACKAGES,
    "gallery": GALLERY_PACKAGES,
    "all": FRONTEND_PACKAGES + GALLERY_PACKAGES,
}


def validate_build_mode(build_mode: str) -> str:
    """Return build_mode unchanged, or raise UsageError."""
    if build_mode not in BUILD_MODES:
        raise UsageError(
            f"Invalid build mode: {build_mode} (must be 'dev' or 'production')"
        )
    return build_mode


def resolve_target(target: str = DEFAULT_TARGET) -> Tuple[PackageSpec, ...]:
    """
    Resolve a target name to its ordered package entries.

    Raises:
        UsageError: If target is not one of frontend, gallery, all
    """
    try:
        return TARGET_TABLE[target]
    except KeyError:
        raise UsageError(
            f"Invalid target: {target} (must be 'frontend', 'gallery', or 'all')"
        ) from None
