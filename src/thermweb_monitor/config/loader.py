"""Configuration loading: YAML file, environment, and credential secret files."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

import structlog
import yaml
from pydantic import ValidationError

from thermweb_monitor.config.settings import MonitorSettings

log = structlog.get_logger()

ENV_PREFIX = "THERMWEB_"

# Credential fields and every variable name they are read from, preferred first
CREDENTIAL_ENV_NAMES: Dict[str, Tuple[str, ...]] = {
    "portal_user": ("THERMWEB_PORTAL_USER", "THERM_PORTAL_USER"),
    "portal_session": ("THERMWEB_PORTAL_SESSION", "THERM_PORTAL_SESSION"),
    "pushover_token": ("THERMWEB_PUSHOVER_TOKEN", "PUSHOVER_TOKEN"),
    "pushover_user": ("THERMWEB_PUSHOVER_USER", "PUSHOVER_USER"),
}


class SettingsError(Exception):
    """Raised when configuration is invalid or cannot be loaded."""


def env_names_for(field_name: str) -> Tuple[str, ...]:
    return CREDENTIAL_ENV_NAMES.get(field_name, (f"{ENV_PREFIX}{field_name.upper()}",))


def _read_secret(env_var: str, filepath: str) -> Optional[str]:
    path = Path(filepath)
    if not path.exists():
        log.warning("secret_file_not_found", env_var=env_var, path=filepath)
        return None
    try:
        return path.read_text().strip()
    except PermissionError:
        raise SettingsError(f"Cannot read secret file '{filepath}' specified by {env_var}: permission denied")
    except OSError as e:
        raise SettingsError(f"Error reading secret file '{filepath}' specified by {env_var}: {e}")


def resolve_file_secrets(environ: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    """Read credentials from Docker-style secret files.

    For each credential, ``<NAME>_FILE`` is honoured under any of its accepted
    variable names (``THERMWEB_PORTAL_SESSION_FILE``,
    ``THERM_PORTAL_SESSION_FILE``, ...). A credential already set directly in
    the environment keeps that value and its secret file is ignored.

    Returns:
        Mapping of settings field name to the secret value.
    """
    environ = os.environ if environ is None else environ
    secrets: Dict[str, str] = {}

    for field_name, names in CREDENTIAL_ENV_NAMES.items():
        if any(environ.get(name) for name in names):
            continue
        for name in names:
            filepath = environ.get(f"{name}_FILE")
            if not filepath:
                continue
            value = _read_secret(f"{name}_FILE", filepath)
            if value:
                secrets[field_name] = value
                break

    return secrets


def check_yaml_config(path: Optional[str]) -> None:
    """Fail early with a readable message when the CONFIG_PATH file is unusable.

    The values themselves are read by the YAML settings source.
    """
    if not path:
        return
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        raise SettingsError(
            f"Configuration file not found: {path}\n"
            "Point CONFIG_PATH at a YAML file, or unset it to configure from the environment only."
        )
    except PermissionError:
        raise SettingsError(f"Cannot read configuration file {path}: permission denied")
    except yaml.YAMLError as e:
        raise SettingsError(f"Invalid YAML in configuration file {path}: {e}")

    if data is not None and not isinstance(data, dict):
        raise SettingsError(f"Configuration file {path} must contain a mapping of setting names to values")


def format_validation_errors(errors: List[Dict[str, Any]]) -> List[str]:
    """One readable line per pydantic error, naming the variables to fix."""
    messages: List[str] = []
    for error in errors:
        loc = ".".join(str(part) for part in error.get("loc", [])) or "settings"
        msg = error.get("msg", "Invalid value")
        input_val = error.get("input")
        env_hint = " or ".join(env_names_for(loc))

        if error.get("type") == "missing":
            messages.append(f"Configuration error: '{loc}' is required. Set {env_hint} or add '{loc}:' to the config file.")
        elif input_val is not None and not isinstance(input_val, dict):
            messages.append(f"Configuration error: '{loc}' {msg}, got: {input_val} (from {env_hint} or the config file)")
        else:
            messages.append(f"Configuration error: '{loc}' {msg}")

    return messages


def load_config(config_path: Optional[str] = None) -> MonitorSettings:
    """Load and validate configuration.

    Precedence, highest first: environment variables, credential secret
    files, ``.env``, the YAML file named by ``CONFIG_PATH``, defaults.

    Raises:
        SettingsError: If the config file or a secret file cannot be read.
        SystemExit: On validation failure, after printing the errors (code 1).
    """
    if config_path:
        os.environ["CONFIG_PATH"] = config_path
    check_yaml_config(os.environ.get("CONFIG_PATH"))

    secrets = resolve_file_secrets()
    if secrets:
        log.debug("secret_files_loaded", fields=sorted(secrets))

    try:
        return MonitorSettings(**secrets)
    except ValidationError as e:
        for msg in format_validation_errors(e.errors()):
            print(msg, file=sys.stderr)
        sys.exit(1)
