"""Condition preset catalogue — reads the packaged YAML definitions."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml

from pacing.domains.load.domain_logic.parameters import (
    CapacityLevel,
    ConditionPreset,
    ConfigurationError,
    LoadParameters,
    RecoveryWindow,
    SensitivityProfile,
    parse_enum,
)

logger = logging.getLogger(__name__)

DEFAULT_PRESET_FILE = Path(__file__).resolve().parent.parent / "presets" / "condition_presets.yaml"


@dataclass(frozen=True)
class PresetDefinition:
    """A named condition preset and the parameters it pins."""

    preset: ConditionPreset
    display_name: str
    description: str
    parameters: LoadParameters

    def as_dict(self) -> dict[str, Any]:
        return {
            "preset": self.preset.value,
            "display_name": self.display_name,
            "description": self.description,
            **self.parameters.as_dict(),
        }


class PresetCatalogue:
    """Lookup of every named preset (``custom`` is never in the catalogue)."""

    def __init__(self, definitions: list[PresetDefinition]) -> None:
        self._by_preset = {d.preset: d for d in definitions}
        missing = [
            p.value for p in ConditionPreset
            if p is not ConditionPreset.CUSTOM and p not in self._by_preset
        ]
        if missing:
            raise ConfigurationError(f"Preset catalogue is missing: {', '.join(missing)}")

    def get(self, preset: ConditionPreset) -> PresetDefinition:
        if preset is ConditionPreset.CUSTOM:
            raise ConfigurationError("'custom' is not a named preset")
        return self._by_preset[preset]

    def parameters_for(self, preset: ConditionPreset) -> LoadParameters:
        return self.get(preset).parameters

    def all(self) -> list[PresetDefinition]:
        return [self._by_preset[p] for p in ConditionPreset if p in self._by_preset]

    def __len__(self) -> int:
        return len(self._by_preset)


def load_preset_file(path: str | Path) -> PresetCatalogue:
    """Parse a preset YAML file into a PresetCatalogue.

    Raises:
        ConfigurationError: If the file references unknown presets or values.
    """
    with open(path) as f:
        data: dict[str, Any] = yaml.safe_load(f) or {}

    definitions = []
    for name, entry in (data.get("presets") or {}).items():
        preset = parse_enum(ConditionPreset, name, "condition preset")
        if preset is ConditionPreset.CUSTOM:
            raise ConfigurationError("'custom' cannot be defined as a named preset")
        definitions.append(PresetDefinition(
            preset=preset,
            display_name=entry.get("display_name", preset.value),
            description=str(entry.get("description", "")).strip(),
            parameters=LoadParameters(
                capacity=parse_enum(CapacityLevel, entry.get("capacity"), "capacity level"),
                sensitivity=parse_enum(SensitivityProfile, entry.get("sensitivity"), "sensitivity profile"),
                recovery=parse_enum(RecoveryWindow, entry.get("recovery"), "recovery window"),
            ),
        ))

    catalogue = PresetCatalogue(definitions)
    logger.info("Loaded %d condition presets from %s", len(catalogue), path)
    return catalogue


@lru_cache(maxsize=1)
def get_preset_catalogue() -> PresetCatalogue:
    """Return the packaged preset catalogue (parsed once)."""
    return load_preset_file(DEFAULT_PRESET_FILE)
