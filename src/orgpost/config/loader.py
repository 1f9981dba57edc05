"""Configuration loader with YAML and environment variable support.

This module reads ``orgpost.yaml`` (from the working directory unless a path
is given) and allows environment variable overrides using the ORGPOST_*
prefix.

Environment variables use the format ORGPOST_<SECTION>_<KEY>, for example:
- ORGPOST_PROJECT_SOURCE: Override project.source
- ORGPOST_PROJECT_BASE_DIR: Override project.base_dir
- ORGPOST_FRONT_MATTER_UTC_OFFSET: Override front_matter.utc_offset
- ORGPOST_EXPORT_WORKERS: Override export.workers
- ORGPOST_SITE_COMMAND: Override site.command

List-valued settings take comma-separated values
(e.g. ORGPOST_EXPORT_EXCLUDE_TAGS=noexport,private).
"""

import os
from pathlib import Path
from typing import Any, Mapping, Optional, get_origin

import yaml
from pydantic import ValidationError

from orgpost.models.config import Config
from orgpost.services.exceptions import ConfigError
from orgpost.utils.logging import get_logger


logger = get_logger(__name__)

DEFAULT_CONFIG_NAME = "orgpost.yaml"


def load_config(
    config_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Config:
    """Load configuration from YAML file with environment variable overrides.

    A missing default config file is not an error: every setting has a
    default. A missing explicitly requested file is.

    Args:
        config_path: Path to config file. If None, uses ./orgpost.yaml
        environ: Environment mapping (default: os.environ)

    Returns:
        Validated Config whose project.base_dir is absolute

    Raises:
        ConfigError: If the file is missing (when given explicitly), is not
            valid YAML, or fails validation
    """
    explicit = config_path is not None
    if config_path is None:
        config_path = Path.cwd() / DEFAULT_CONFIG_NAME
    environ = os.environ if environ is None else environ

    data: dict[str, Any] = {}
    if config_path.exists():
        try:
            with config_path.open(encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Configuration in {config_path} must be a mapping")
        logger.info("config_file_loaded", path=str(config_path))
    elif explicit:
        raise ConfigError(f"Configuration file not found at {config_path}")

    data = _apply_env_overrides(data, environ)

    try:
        config = Config(**data)
    except ValidationError as e:
        raise ConfigError(f"Configuration validation failed:\n{e}") from e

    base_path = Path(config.project.base_dir).expanduser()
    if not base_path.is_absolute():
        base_path = (config_path.parent / base_path).resolve()
    project = config.project.model_copy(update={"base_dir": str(base_path)})
    return config.model_copy(update={"project": project})


def _apply_env_overrides(data: dict[str, Any], environ: Mapping[str, str]) -> dict[str, Any]:
    """Apply environment variable overrides to configuration data.

    Args:
        data: Base configuration dictionary from YAML
        environ: Environment mapping

    Returns:
        Configuration dictionary with environment overrides applied
    """
    for section_name, section_field in Config.model_fields.items():
        section_model = section_field.annotation
        for key, key_field in section_model.model_fields.items():
            env_name = f"ORGPOST_{section_name}_{key}".upper()
            value = environ.get(env_name)
            if value is None:
                continue
            section = data.setdefault(section_name, {})
            if not isinstance(section, dict):
                raise ConfigError(f"Configuration section '{section_name}' must be a mapping")
            if get_origin(key_field.annotation) is list:
                section[key] = [item.strip() for item in value.split(",") if item.strip()]
            else:
                section[key] = value
            logger.debug("config_env_override", variable=env_name)
    return data
