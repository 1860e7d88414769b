"""YAML serialization for AnalysisConfig."""

from __future__ import annotations

from dataclasses import asdict, fields
from pathlib import Path
from typing import Any

import yaml

from glycopaint.core.config import AnalysisConfig
from glycopaint.core.exceptions import ConfigurationError

SECTION = "generate_squares"


def config_to_dict(config: AnalysisConfig) -> dict[str, Any]:
    """Plain mapping of ``config`` with the neighbour mode as its name."""
    data = asdict(config)
    data["neighbour_mode"] = config.neighbour_mode.value
    return data


def config_from_dict(data: dict[str, Any]) -> AnalysisConfig:
    """Build an AnalysisConfig; missing keys keep their defaults.

    Raises:
        ConfigurationError: If the mapping holds unknown keys or invalid values.
    """
    known = {f.name for f in fields(AnalysisConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigurationError(f"Unknown configuration keys: {', '.join(unknown)}")
    try:
        return AnalysisConfig(**data)
    except TypeError as exc:
        raise ConfigurationError(f"Invalid configuration value: {exc}") from exc


def config_to_yaml(config: AnalysisConfig, path: Path) -> None:
    """Serialize an AnalysisConfig to a YAML file.

    Args:
        config: The configuration to serialize.
        path: File path to write.
    """
    data = {SECTION: config_to_dict(config)}
    with open(path, "w") as f:
        yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)


def config_from_yaml(path: Path) -> AnalysisConfig:
    """Deserialize an AnalysisConfig from a YAML file.

    The file holds a ``generate_squares`` mapping. An empty file or an
    empty section yields the default configuration.

    Args:
        path: Path to the YAML file.

    Returns:
        An AnalysisConfig reconstructed from the YAML.

    Raises:
        FileNotFoundError: If the YAML file doesn't exist.
        ConfigurationError: If the YAML is not a mapping or holds invalid settings.
    """
    path = Path(path)
    with open(path) as f:
        data = yaml.safe_load(f)

    if data is None:
        return AnalysisConfig()
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Invalid configuration YAML: expected a mapping, got {type(data).__name__}"
        )

    section = data.get(SECTION, data)
    if section is None:
        return AnalysisConfig()
    if not isinstance(section, dict):
        raise ConfigurationError(f"Invalid configuration YAML: '{SECTION}' must be a mapping")
    return config_from_dict(section)
