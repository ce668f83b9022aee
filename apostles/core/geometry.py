"""
Scale and boundary geometry.

Pure numeric helpers with no knowledge of respondents: parsing scale
identifiers, locating the special zones at the scale extremes, and measuring
signed distances from a coordinate to the boundaries used by both the
classifier and the proximity analyzer.

Distances are expressed in scale units. A boundary always has a *source*
side (where the respondent currently is) and a *target* side; the signed
distance is non-negative on the source side and negative across it.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from enum import StrEnum
from typing import NamedTuple, Optional

from apostles.core.errors import DegenerateZone, InvalidScale
from apostles.core.models import Midpoint, ScaleRange
from apostles.core.schema import Axis, accepted_scales

_SCALE_PATTERN = re.compile(r"^\s*(\d+)\s*-\s*(\d+)\s*$")


class Corner(StrEnum):
    LOW = "low"
    HIGH = "high"


class ZoneBounds(NamedTuple):
    low: float
    high: float

    def contains(self, value: float) -> bool:
        return self.low <= value <= self.high


def parse_range(identifier: str, axis: Axis = Axis.LOYALTY) -> ScaleRange:
    """Parse a scale identifier such as '1-5' and check it against the axis whitelist."""
    if not isinstance(identifier, str):
        raise InvalidScale(f"Scale identifier must be a string, got {type(identifier).__name__}")

    match = _SCALE_PATTERN.match(identifier)
    if not match:
        raise InvalidScale(f"Malformed scale identifier '{identifier}'")

    normalized = f"{int(match.group(1))}-{int(match.group(2))}"
    accepted = accepted_scales(axis)
    if normalized not in accepted:
        raise InvalidScale(
            f"Scale '{identifier}' is not accepted for {axis}; "
            f"expected one of {', '.join(accepted)}"
        )

    return ScaleRange(min=int(match.group(1)), max=int(match.group(2)))


def default_midpoint(satisfaction: ScaleRange, loyalty: ScaleRange) -> Midpoint:
    """Midpoint used until the operator moves it: the upper half of each scale maximum."""
    return Midpoint(
        sat=float(math.ceil(satisfaction.max / 2)),
        loy=float(math.ceil(loyalty.max / 2)),
    )


def special_zone_bounds(
    axis_range: ScaleRange,
    zone_size: int,
    corner: Corner) -> Optional[ZoneBounds]:
    """
    Sub-interval of an axis occupied by a special zone anchored at one end.

    A zone of size k covers the k outermost scale positions, so on a 1-5
    axis a high-corner zone of size 1 is [5, 5] and of size 2 is [4, 5].
    Size 0 means the zone does not exist and None is returned.

    Raises:
        ValueError: zone_size is negative
        DegenerateZone: the zone would leave no position for a main quadrant
    """
    if zone_size < 0:
        raise ValueError(f"Zone size cannot be negative, got {zone_size}")
    if zone_size == 0:
        return None
    if zone_size > axis_range.span:
        raise DegenerateZone(
            f"Zone size {zone_size} consumes the whole {axis_range.identifier} scale"
        )

    if corner == Corner.HIGH:
        return ZoneBounds(float(axis_range.max - zone_size + 1), float(axis_range.max))
    return ZoneBounds(float(axis_range.min), float(axis_range.min + zone_size - 1))


class BoundaryKind(StrEnum):
    LINE = "line"
    CORNER = "corner"
    ZONE = "zone"


@dataclass(frozen=True)
class Boundary:
    """
    A boundary between a source and a target region.

    sat/loy hold the boundary coordinate on each axis it constrains (None when
    the axis is unconstrained). sat_side/loy_side are +1 when the source
    region lies at or above that coordinate and -1 when it lies below.

    - LINE: a single axis-aligned line, e.g. the midpoint satisfaction line.
    - CORNER: the midpoint corner; crossing means crossing both lines.
    - ZONE: the inner corner of a special-zone rectangle. Zone edges are
      inclusive, so a coordinate equal to the edge is already inside.
    """
    kind: BoundaryKind
    sat: Optional[float] = None
    loy: Optional[float] = None
    sat_side: int = 1
    loy_side: int = 1

    @classmethod
    def satisfaction_line(cls, value: float, side: int) -> Boundary:
        return cls(BoundaryKind.LINE, sat=value, sat_side=side)

    @classmethod
    def loyalty_line(cls, value: float, side: int) -> Boundary:
        return cls(BoundaryKind.LINE, loy=value, loy_side=side)

    @classmethod
    def corner(cls, midpoint: Midpoint, sat_side: int, loy_side: int) -> Boundary:
        return cls(BoundaryKind.CORNER, midpoint.sat, midpoint.loy, sat_side, loy_side)

    @classmethod
    def zone(cls, sat_edge: float, loy_edge: float, sat_side: int, loy_side: int) -> Boundary:
        return cls(BoundaryKind.ZONE, sat_edge, loy_edge, sat_side, loy_side)

    def _gaps(self, satisfaction: float, loyalty: float) -> list[float]:
        gaps = []
        if self.sat is not None:
            gaps.append(self.sat_side * (satisfaction - self.sat))
        if self.loy is not None:
            gaps.append(self.loy_side * (loyalty - self.loy))
        return gaps


def distance_to_boundary(satisfaction: float, loyalty: float, boundary: Boundary) -> float:
    """Signed distance in scale units from a coordinate to a boundary."""
    gaps = boundary._gaps(satisfaction, loyalty)
    if not gaps:
        raise ValueError("Boundary does not constrain any axis")

    if boundary.kind == BoundaryKind.LINE:
        return gaps[0]

    if boundary.kind == BoundaryKind.CORNER:
        # Chebyshev distance: both axes have to move past the corner
        if min(gaps) < 0:
            return min(gaps)
        return max(gaps)

    # A positive zone gap is the travel still needed on that axis; an axis
    # already within the zone's range contributes nothing
    if max(gaps) > 0:
        return max(gaps)
    return max(gaps) - 1.0
