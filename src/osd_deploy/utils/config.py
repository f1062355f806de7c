"""Deploy configuration: defaults, YAML file, .env and environment overrides."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from dotenv import dotenv_values

from osd_deploy.deploy.exceptions import PreconditionError

LOGGER = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = "deploy.yaml"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}

# Environment variable -> DeployConfig field
ENV_VARS: Dict[str, str] = {
    "DEPLOY_HOST": "deploy_host",
    "DEPLOY_USER": "deploy_user",
    "DEPLOY_SSH_PORT": "ssh_port",
    "REMOTE_OSD_PATH": "remote_osd_path",
    "REDIS_HOST": "redis_host",
    "REDIS_PORT": "redis_port",
    "REDIS_DB": "redis_db",
    "REDIS_PASSWORD": "redis_password",
    "OSD_STORE_VIA_SSH": "store_via_ssh",
    "OSD_DISK_COPY": "disk_copy",
}


@dataclass(frozen=True)
class DeployConfig:
    """Everything a deploy needs besides the build mode and target."""

    project_root: Path
    dist_dir: Path
    version_file: Path
    package_prefix: str = "jettison-osd"
    deploy_host: str = "sych.local"
    deploy_user: str = "archer"
    ssh_port: int = 22
    connect_timeout: int = 10
    remote_osd_path: str = "/home/archer/web/osd"
    # Store address as seen from the deploy host when tunnelling.
    redis_host: str = "127.0.0.1"
    redis_port: int = 8085
    redis_db: int = 0
    redis_password: Optional[str] = None
    key_prefix: str = "osd:package:"
    reload_channel: str = "osd:reload"
    store_via_ssh: bool = True
    disk_copy: bool = False

    def validate(self) -> "DeployConfig":
        """
        Check required settings before any network action.

        Raises:
            PreconditionError: Naming the missing or invalid setting
        """
        if not self.redis_password:
            raise PreconditionError(
                "REDIS_PASSWORD is not set.\n"
                f"Export it, or add REDIS_PASSWORD=... to {self.project_root / '.env'}"
            )
        if not self.deploy_host or not self.deploy_user:
            raise PreconditionError("DEPLOY_HOST and DEPLOY_USER must both be set")
        for name in ("ssh_port", "redis_port"):
            value = getattr(self, name)
            if not 0 < value < 65536:
                raise PreconditionError(f"{name} out of range: {value}")
        if self.redis_db < 0:
            raise PreconditionError(f"redis_db must not be negative: {self.redis_db}")
        if self.connect_timeout <= 0:
            raise PreconditionError(f"connect_timeout must be positive: {self.connect_timeout}")
        return self


_FIELD_TYPES = {f.name: f.type for f in fields(DeployConfig)}


def _coerce(name: str, value: Any, source: str) -> Any:
    kind = _FIELD_TYPES[name]
    if kind == "bool":
        if isinstance(value, bool):
            return value
        lowered = str(value).strip().lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
        raise PreconditionError(f"{source}: expected a boolean for {name}, got {value!r}")
    if kind == "int":
        try:
            return int(str(value).strip())
        except ValueError:
            raise PreconditionError(f"{source}: expected an integer for {name}, got {value!r}") from None
    if kind == "Path":
        return Path(str(value)).expanduser()
    if value is None:
        return None
    return str(value).strip()


def load_yaml_overrides(path: Path) -> Dict[str, Any]:
    """Load a YAML mapping of DeployConfig fields."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        raise PreconditionError(f"Config file not found: {path}") from None
    except yaml.YAMLError as e:
        raise PreconditionError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise PreconditionError(f"{path}: expected a mapping at top level")

    unknown = sorted(set(data) - set(_FIELD_TYPES) - {"project_root"})
    if unknown:
        raise PreconditionError(f"{path}: unknown setting(s): {', '.join(unknown)}")

    return {k: _coerce(k, v, str(path)) for k, v in data.items() if k != "project_root"}


def load_config(
    project_root: Optional[Path] = None,
    config_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
    **overrides: Any
) -> DeployConfig:
    """
    Build the deploy configuration.

    Precedence (lowest first): built-in defaults, YAML file, ``.env`` in
    the project root, process environment, keyword overrides.

    Args:
        project_root: Directory holding VERSION, dist/ and .env (default: cwd)
        config_path: YAML file; ``<project_root>/deploy.yaml`` is used when present
        environ: Environment to read (default: os.environ)
        **overrides: Final values for DeployConfig fields (None is ignored)

    Returns:
        Unvalidated DeployConfig; call ``validate()`` before connecting
    """
    root = Path(project_root or Path.cwd()).resolve()
    config = DeployConfig(
        project_root=root,
        dist_dir=root / "dist",
        version_file=root / "VERSION",
    )

    if config_path is None and (root / DEFAULT_CONFIG_NAME).is_file():
        config_path = root / DEFAULT_CONFIG_NAME
    if config_path is not None:
        LOGGER.debug("Loading config from %s", config_path)
        values = load_yaml_overrides(Path(config_path))
        for name in ("dist_dir", "version_file"):
            if name in values and not values[name].is_absolute():
                values[name] = root / values[name]
        config = replace(config, **values)

    env: Dict[str, str] = {}
    dotenv_path = root / ".env"
    if dotenv_path.is_file():
        LOGGER.debug("Loading environment from %s", dotenv_path)
        env.update({k: v for k, v in dotenv_values(dotenv_path).items() if v is not None})
    env.update(os.environ if environ is None else environ)

    env_values = {
        field_name: _coerce(field_name, env[var], var)
        for var, field_name in ENV_VARS.items()
        if env.get(var, "").strip()
    }
    config = replace(config, **env_values)

    explicit = {k: v for k, v in overrides.items() if v is not None}
    unknown = sorted(set(explicit) - set(_FIELD_TYPES))
    if unknown:
        raise TypeError(f"Unknown config override(s): {', '.join(unknown)}")
    return replace(config, **explicit)
