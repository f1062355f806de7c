"""Package naming: version file, source filenames, store keys."""

from pathlib import Path
from typing import Optional, Union

from .exceptions import PreconditionError

DEFAULT_PACKAGE_PREFIX = "jettison-osd"
DEFAULT_KEY_PREFIX = "osd:package:"
META_SUFFIX = ":meta"


def read_version(path: Union[str, Path], filesystem=None) -> str:
    """
    Read the build version from the metadata file, with all whitespace removed.

    Args:
        path: Path to the VERSION file
        filesystem: Optional FileSystemService (defaults to direct pathlib access)

    Raises:
        PreconditionError: If the file is missing or holds no version
    """
    path = Path(path)
    try:
        if filesystem is not None:
            raw = filesystem.read_text(path)
        else:
            raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise PreconditionError(f"Version file not found: {path}") from None
    except OSError as e:
        raise PreconditionError(f"Could not read version file {path}: {e}") from e

    version = "".join(raw.split())
    if not version:
        raise PreconditionError(f"Version file is empty: {path}")
    return version


def package_filename(
    variant: str,
    version: str,
    build_mode: str,
    prefix: str = DEFAULT_PACKAGE_PREFIX
) -> str:
    """
    Build the archive filename produced by the build for a variant.

    Example:
        >>> package_filename("live_day", "1.4.0", "dev")
        'jettison-osd-live_day-1.4.0-dev.tar'
    """
    if build_mode == "dev":
        return f"{prefix}-{variant}-{version}-dev.tar"
    return f"{prefix}-{variant}-{version}.tar"


def store_key(logical_name: str, key_prefix: Optional[str] = None) -> str:
    """Key under which the package blob is stored."""
    return f"{key_prefix or DEFAULT_KEY_PREFIX}{logical_name}"


def meta_key(logical_name: str, key_prefix: Optional[str] = None) -> str:
    """Key of the hash holding the blob's sha256, size and deploy stamp."""
    return store_key(logical_name, key_prefix) + META_SUFFIX
