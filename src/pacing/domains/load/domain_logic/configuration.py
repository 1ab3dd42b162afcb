"""Active load configuration: a named preset or a custom parameter set.

The configuration is a tagged union, so the active parameters are always a
pure projection of it:

* ``PresetConfiguration`` — parameters come from the preset catalogue and
  cannot drift from it.
* ``CustomConfiguration`` — parameters (and optionally explicit threshold
  boundaries) are chosen individually.

Changing any parameter while a preset is active yields a custom
configuration; the returned ``ConfigurationChange`` reports that so callers
can tell the user.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Union

from pacing.domains.load.domain_logic.parameters import (
    CapacityLevel,
    ConditionPreset,
    ConfigurationError,
    LoadParameters,
    RecoveryWindow,
    SensitivityProfile,
    ThresholdProfile,
    parse_enum,
)
from pacing.domains.load.domain_logic.presets import get_preset_catalogue

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PresetConfiguration:
    """Configuration pinned to a named condition preset."""

    preset: ConditionPreset

    def __post_init__(self) -> None:
        if self.preset is ConditionPreset.CUSTOM:
            raise ConfigurationError(
                "Use CustomConfiguration for custom parameters, not PresetConfiguration"
            )

    @property
    def selected_preset(self) -> ConditionPreset:
        return self.preset

    @property
    def parameters(self) -> LoadParameters:
        return get_preset_catalogue().parameters_for(self.preset)

    @property
    def thresholds(self) -> ThresholdProfile | None:
        return None

    @property
    def is_custom(self) -> bool:
        return False

    def as_dict(self) -> dict[str, Any]:
        return {
            "selected_preset": self.preset.value,
            **self.parameters.as_dict(),
            "thresholds": None,
        }


@dataclass(frozen=True)
class CustomConfiguration:
    """Individually chosen parameters, optionally with explicit boundaries."""

    parameters: LoadParameters = field(default_factory=LoadParameters)
    thresholds: ThresholdProfile | None = None

    @property
    def selected_preset(self) -> ConditionPreset:
        return ConditionPreset.CUSTOM

    @property
    def is_custom(self) -> bool:
        return True

    def as_dict(self) -> dict[str, Any]:
        return {
            "selected_preset": ConditionPreset.CUSTOM.value,
            **self.parameters.as_dict(),
            "thresholds": self.thresholds.as_dict() if self.thresholds else None,
        }


LoadConfiguration = Union[PresetConfiguration, CustomConfiguration]

DEFAULT_CONFIGURATION: LoadConfiguration = PresetConfiguration(ConditionPreset.STANDARD)


@dataclass(frozen=True)
class ConfigurationChange:
    """Outcome of a configuration update."""

    configuration: LoadConfiguration
    previous: LoadConfiguration
    reclassified_as_custom: bool = False
    thresholds_cleared: bool = False

    @property
    def previous_preset(self) -> ConditionPreset:
        return self.previous.selected_preset

    def as_dict(self) -> dict[str, Any]:
        return {
            "configuration": self.configuration.as_dict(),
            "previous_preset": self.previous_preset.value,
            "reclassified_as_custom": self.reclassified_as_custom,
            "thresholds_cleared": self.thresholds_cleared,
        }


def select_preset(current: LoadConfiguration, preset: ConditionPreset | str) -> ConfigurationChange:
    """Switch to *preset*. Selecting ``custom`` keeps the current parameters."""
    preset = parse_enum(ConditionPreset, preset, "condition preset")
    if preset is ConditionPreset.CUSTOM:
        if isinstance(current, CustomConfiguration):
            return ConfigurationChange(configuration=current, previous=current)
        new: LoadConfiguration = CustomConfiguration(parameters=current.parameters)
    else:
        new = PresetConfiguration(preset)
    logger.info("Condition preset changed: %s -> %s", current.selected_preset.value, preset.value)
    return ConfigurationChange(configuration=new, previous=current)


def update_parameters(
    current: LoadConfiguration,
    *,
    capacity: CapacityLevel | str | None = None,
    sensitivity: SensitivityProfile | str | None = None,
    recovery: RecoveryWindow | str | None = None,
    thresholds: ThresholdProfile | None = None,
    clear_thresholds: bool = False,
) -> ConfigurationChange:
    """Change individual parameters.

    If a named preset is active and any value actually differs from the
    preset, the result is a custom configuration and
    ``reclassified_as_custom`` is True.

    An explicit threshold override on a custom configuration is dropped
    when ``clear_thresholds`` is set, or when the capacity level changes
    without new boundaries.
    ``thresholds_cleared`` reports either case.

    Raises:
        ConfigurationError: If both ``thresholds`` and ``clear_thresholds``
            are given, or a value is unknown.
    """
    if clear_thresholds and thresholds is not None:
        raise ConfigurationError("Give new thresholds or clear them, not both")
    changes: dict[str, Any] = {}
    if capacity is not None:
        changes["capacity"] = parse_enum(CapacityLevel, capacity, "capacity level")
    if sensitivity is not None:
        changes["sensitivity"] = parse_enum(SensitivityProfile, sensitivity, "sensitivity profile")
    if recovery is not None:
        changes["recovery"] = parse_enum(RecoveryWindow, recovery, "recovery window")

    new_params = replace(current.parameters, **changes)

    if isinstance(current, PresetConfiguration):
        if new_params == current.parameters and thresholds is None:
            return ConfigurationChange(configuration=current, previous=current)
        logger.warning(
            "Manual parameter change reclassified preset %s as custom",
            current.preset.value,
        )
        return ConfigurationChange(
            configuration=CustomConfiguration(parameters=new_params, thresholds=thresholds),
            previous=current,
            reclassified_as_custom=True,
        )

    override = thresholds if thresholds is not None else current.thresholds
    cleared = False
    if thresholds is None and current.thresholds is not None and (
        clear_thresholds or new_params.capacity is not current.parameters.capacity
    ):
        logger.info("Threshold override %s cleared; boundaries follow capacity %s",
                    current.thresholds.as_dict(), new_params.capacity.value)
        override, cleared = None, True
    return ConfigurationChange(
        configuration=CustomConfiguration(parameters=new_params, thresholds=override),
        previous=current,
        thresholds_cleared=cleared,
    )


def configuration_from_dict(data: dict[str, Any]) -> LoadConfiguration:
    """Rebuild a configuration from its ``as_dict()`` form.

    Raises:
        ConfigurationError: On unknown values or invalid thresholds.
    """
    preset = parse_enum(ConditionPreset, data.get("selected_preset", "standard"), "condition preset")
    if preset is not ConditionPreset.CUSTOM:
        return PresetConfiguration(preset)

    params = LoadParameters(
        capacity=parse_enum(CapacityLevel, data.get("capacity", "medium"), "capacity level"),
        sensitivity=parse_enum(SensitivityProfile, data.get("sensitivity", "medium"), "sensitivity profile"),
        recovery=parse_enum(RecoveryWindow, data.get("recovery", "fast"), "recovery window"),
    )
    raw = data.get("thresholds")
    thresholds = (
        ThresholdProfile(safe=raw["safe"], caution=raw["caution"], high=raw["high"])
        if raw else None
    )
    return CustomConfiguration(parameters=params, thresholds=thresholds)
