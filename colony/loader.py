"""
YAML configuration loader with schema validation.

Loads a simulation configuration from YAML and validates it against
schemas/simulation.schema.json when a schema directory is supplied.
"""

import yaml
import json
from pathlib import Path
from typing import Optional, Type
import jsonschema

from .data_types import (
    SimulationConfig, WorldConfig, PerceptionConfig, PolicyConfig,
    LifecycleConfig, ReproductionConfig, DiseaseConfig
)

SECTIONS = {
    'world': WorldConfig,
    'perception': PerceptionConfig,
    'policy': PolicyConfig,
    'lifecycle': LifecycleConfig,
    'reproduction': ReproductionConfig,
    'disease': DiseaseConfig,
}


class DataLoadError(Exception):
    """Raised when data loading or validation fails"""
    pass


def load_yaml(file_path: Path) -> dict:
    """Load YAML file and return parsed dict"""
    file_path = Path(file_path)
    if not file_path.exists():
        raise DataLoadError(f"File not found: {file_path}")

    try:
        with open(file_path, 'r') as f:
            return yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise DataLoadError(f"YAML parse error in {file_path}: {e}")


def validate_against_schema(data: dict, schema_path: Path, data_path: Path):
    """Validate data dict against JSON schema"""
    if not schema_path.exists():
        # Schema validation optional (a bare checkout may ship without schemas)
        return

    try:
        with open(schema_path, 'r') as f:
            schema = json.load(f)
        jsonschema.validate(instance=data, schema=schema)
    except jsonschema.ValidationError as e:
        raise DataLoadError(f"Validation error in {data_path}: {e.message}")
    except json.JSONDecodeError as e:
        raise DataLoadError(f"Invalid JSON schema {schema_path}: {e}")


def _build_section(cls: Type, data: Optional[dict], name: str, file_path: Path):
    if data is None:
        return cls()
    if not isinstance(data, dict):
        raise DataLoadError(f"Section '{name}' in {file_path} must be a mapping")
    try:
        return cls(**data)
    except TypeError as e:
        raise DataLoadError(f"Invalid section '{name}' in {file_path}: {e}")


def config_from_dict(data: dict, file_path: Path = Path("<dict>")) -> SimulationConfig:
    """
    Build SimulationConfig from a parsed mapping.

    Missing sections fall back to defaults; unknown sections are ignored.
    """
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise DataLoadError(f"Top level of {file_path} must be a mapping")

    sections = {
        name: _build_section(cls, data.get(name), name, file_path)
        for name, cls in SECTIONS.items()
    }

    # Energy costs override per state; unspecified states keep their defaults
    costs = data.get('lifecycle', {}) or {}
    if 'energy_costs' in costs:
        merged = LifecycleConfig().energy_costs
        merged.update(costs['energy_costs'] or {})
        sections['lifecycle'].energy_costs = merged

    return SimulationConfig(description=data.get('description'), **sections)


def load_config(file_path: Path, schema_dir: Optional[Path] = None) -> SimulationConfig:
    """Load simulation configuration from YAML"""
    file_path = Path(file_path)
    data = load_yaml(file_path)

    # Validate if schema available
    if schema_dir:
        schema_path = Path(schema_dir) / "simulation.schema.json"
        validate_against_schema(data if data is not None else {}, schema_path, file_path)

    return config_from_dict(data, file_path)
