from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, model_validator

from apostles.core.errors import MidpointOutOfRange
from apostles.core.geometry import default_midpoint, parse_range
from apostles.core.models import Midpoint, ScaleRange, ZoneSizes
from apostles.core.schema import DEFAULT_SCALE, Axis


class SegmentationConfig(BaseModel):
    """
    Scale, boundary and feature-flag configuration for classification.

    Frozen so it can key memoized layouts. Scales are checked eagerly: an
    unknown identifier raises InvalidScale while the config is built, before
    anything is classified. When no midpoint is given the default for the
    scale pair is used.
    """
    model_config = ConfigDict(frozen=True)

    satisfaction_scale: str = DEFAULT_SCALE
    loyalty_scale: str = DEFAULT_SCALE
    midpoint: Midpoint
    zone_sizes: ZoneSizes = ZoneSizes()
    show_special_zones: bool = False
    show_near_apostles: bool = False

    @model_validator(mode="before")
    @classmethod
    def _fill_midpoint(cls, data: Any) -> Any:
        if not isinstance(data, dict) or data.get("midpoint") is not None:
            return data
        sat_range = parse_range(data.get("satisfaction_scale", DEFAULT_SCALE), Axis.SATISFACTION)
        loy_range = parse_range(data.get("loyalty_scale", DEFAULT_SCALE), Axis.LOYALTY)
        return {**data, "midpoint": default_midpoint(sat_range, loy_range)}

    @model_validator(mode="after")
    def _check_midpoint(self) -> SegmentationConfig:
        sat_range = self.satisfaction_range
        loy_range = self.loyalty_range

        if not sat_range.contains(self.midpoint.sat):
            raise MidpointOutOfRange(
                f"Midpoint satisfaction ({self.midpoint.sat}) out of range "
                f"for scale {self.satisfaction_scale}"
            )
        if not loy_range.contains(self.midpoint.loy):
            raise MidpointOutOfRange(
                f"Midpoint loyalty ({self.midpoint.loy}) out of range "
                f"for scale {self.loyalty_scale}"
            )
        return self

    @property
    def satisfaction_range(self) -> ScaleRange:
        return parse_range(self.satisfaction_scale, Axis.SATISFACTION)

    @property
    def loyalty_range(self) -> ScaleRange:
        return parse_range(self.loyalty_scale, Axis.LOYALTY)

    @property
    def default_midpoint(self) -> Midpoint:
        return default_midpoint(self.satisfaction_range, self.loyalty_range)

    def replace(self, **changes: Any) -> SegmentationConfig:
        """
        Return a re-validated copy with the given fields changed.

        Changing a scale without passing a midpoint resets the midpoint to the
        default for the new scale pair.
        """
        data = self.model_dump()
        scale_changed = any(
            key in changes and changes[key] != data[key]
            for key in ("satisfaction_scale", "loyalty_scale")
        )
        if scale_changed and "midpoint" not in changes:
            data.pop("midpoint")
        data.update(changes)
        return type(self).model_validate(data)


class ProximityRules(BaseModel):
    """Threshold and risk scoring for the proximity analysis."""
    threshold: float = Field(default=1.0, ge=0)
    warning_weight: float = Field(default=1.0, gt=0)
    opportunity_weight: float = Field(default=0.5, gt=0)
    high_risk_score: float = 70.0
    moderate_risk_score: float = 40.0

    @model_validator(mode="after")
    def _check_levels(self) -> ProximityRules:
        if self.moderate_risk_score > self.high_risk_score:
            raise ValueError("moderate_risk_score cannot exceed high_risk_score")
        return self


class RulesConfig(BaseModel):
    """Complete analysis configuration, loadable from YAML or JSON."""
    metadata: dict = {}
    segmentation: SegmentationConfig
    proximity: ProximityRules = ProximityRules()
    premium_enabled: bool = False

    @classmethod
    def from_file(cls, path: str | Path) -> RulesConfig:
        """Load rules from a YAML or JSON file."""
        file_path = Path(path)

        with open(file_path, 'r', encoding='utf-8') as f:
            if file_path.suffix.lower() in ['.yml', '.yaml']:
                data = yaml.safe_load(f) or {}
            else:
                data = json.load(f)

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict) -> RulesConfig:
        # Missing sections fall back to defaults
        segmentation_data = data.get('segmentation') or {}
        proximity_data = data.get('proximity') or {}

        return cls(
            metadata=data.get('metadata', {}),
            segmentation=SegmentationConfig(**segmentation_data),
            proximity=ProximityRules(**proximity_data),
            premium_enabled=bool(data.get('premium_enabled', False)),
        )

    @classmethod
    def default(cls) -> RulesConfig:
        """Create default rules configuration."""
        return cls(
            metadata={'version': '1.0.0', 'description': 'Default apostles model rules'},
            segmentation=SegmentationConfig(),
        )


def make_config(
    satisfaction_scale: str = DEFAULT_SCALE,
    loyalty_scale: str = DEFAULT_SCALE,
    midpoint: Optional[tuple[float, float]] = None,
    apostles_zone_size: int = 1,
    terrorists_zone_size: int = 1,
    show_special_zones: bool = False,
    show_near_apostles: bool = False) -> SegmentationConfig:
    """Convenience constructor taking plain values instead of nested models."""
    return SegmentationConfig(
        satisfaction_scale=satisfaction_scale,
        loyalty_scale=loyalty_scale,
        midpoint=Midpoint(sat=midpoint[0], loy=midpoint[1]) if midpoint else None,
        zone_sizes=ZoneSizes(apostles=apostles_zone_size, terrorists=terrorists_zone_size),
        show_special_zones=show_special_zones,
        show_near_apostles=show_near_apostles,
    )
