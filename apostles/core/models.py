"""Core models and data structures for quadrant classification and proximity analysis."""

from enum import StrEnum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class QuadrantType(StrEnum):
    LOYALISTS = "loyalists"
    MERCENARIES = "mercenaries"
    HOSTAGES = "hostages"
    DEFECTORS = "defectors"
    APOSTLES = "apostles"
    NEAR_APOSTLES = "near_apostles"
    TERRORISTS = "terrorists"
    NEUTRAL = "neutral"


MAIN_QUADRANTS: tuple[QuadrantType, ...] = (
    QuadrantType.LOYALISTS,
    QuadrantType.MERCENARIES,
    QuadrantType.HOSTAGES,
    QuadrantType.DEFECTORS,
)

SPECIAL_ZONES: tuple[QuadrantType, ...] = (
    QuadrantType.APOSTLES,
    QuadrantType.NEAR_APOSTLES,
    QuadrantType.TERRORISTS,
)


class RiskLevel(StrEnum):
    LOW = "LOW"
    MODERATE = "MODERATE"
    HIGH = "HIGH"

    @property
    def rank(self) -> int:
        return _RISK_RANK[self]


_RISK_RANK = {RiskLevel.LOW: 0, RiskLevel.MODERATE: 1, RiskLevel.HIGH: 2}


class Outlook(StrEnum):
    OPPORTUNITY = "opportunity"
    WARNING = "warning"


class RelationshipKind(StrEnum):
    LATERAL = "lateral"
    DIAGONAL = "diagonal"
    SPECIAL = "special"


class ProximityRelationship(StrEnum):
    # Lateral: neighbours sharing one boundary line
    LOYALISTS_CLOSE_TO_MERCENARIES = "loyalists_close_to_mercenaries"
    LOYALISTS_CLOSE_TO_HOSTAGES = "loyalists_close_to_hostages"
    MERCENARIES_CLOSE_TO_LOYALISTS = "mercenaries_close_to_loyalists"
    MERCENARIES_CLOSE_TO_DEFECTORS = "mercenaries_close_to_defectors"
    HOSTAGES_CLOSE_TO_LOYALISTS = "hostages_close_to_loyalists"
    HOSTAGES_CLOSE_TO_DEFECTORS = "hostages_close_to_defectors"
    DEFECTORS_CLOSE_TO_MERCENARIES = "defectors_close_to_mercenaries"
    DEFECTORS_CLOSE_TO_HOSTAGES = "defectors_close_to_hostages"

    # Diagonal: neighbours sharing only the midpoint corner
    LOYALISTS_CLOSE_TO_DEFECTORS = "loyalists_close_to_defectors"
    MERCENARIES_CLOSE_TO_HOSTAGES = "mercenaries_close_to_hostages"
    HOSTAGES_CLOSE_TO_MERCENARIES = "hostages_close_to_mercenaries"
    DEFECTORS_CLOSE_TO_LOYALISTS = "defectors_close_to_loyalists"

    # Special zones
    LOYALISTS_CLOSE_TO_APOSTLES = "loyalists_close_to_apostles"
    LOYALISTS_CLOSE_TO_NEAR_APOSTLES = "loyalists_close_to_near_apostles"
    NEAR_APOSTLES_CLOSE_TO_APOSTLES = "near_apostles_close_to_apostles"
    DEFECTORS_CLOSE_TO_TERRORISTS = "defectors_close_to_terrorists"

    @classmethod
    def between(cls, source: QuadrantType, target: QuadrantType) -> "ProximityRelationship":
        """Look up the relationship key for an ordered pair of segments."""
        return cls(f"{source}_close_to_{target}")

    @property
    def source(self) -> QuadrantType:
        return QuadrantType(self.value.split("_close_to_")[0])

    @property
    def target(self) -> QuadrantType:
        return QuadrantType(self.value.split("_close_to_")[1])


class ScaleRange(BaseModel):
    """A closed integer interval [min, max] for one axis."""
    model_config = ConfigDict(frozen=True)

    min: int
    max: int

    @model_validator(mode="after")
    def _check_order(self) -> "ScaleRange":
        if self.min >= self.max:
            raise ValueError(f"Scale minimum {self.min} must be below maximum {self.max}")
        return self

    @property
    def identifier(self) -> str:
        return f"{self.min}-{self.max}"

    @property
    def span(self) -> int:
        return self.max - self.min

    def contains(self, value: float) -> bool:
        return self.min <= value <= self.max


class Respondent(BaseModel):
    """
    A single survey respondent. Scores are read-only from the core's point of
    view; only the data entry and import collaborators mutate them.
    """
    id: str
    name: Optional[str] = None
    satisfaction: float
    loyalty: float
    excluded: bool = False
    attributes: dict[str, Any] = Field(default_factory=dict)

    @property
    def position(self) -> tuple[float, float]:
        return (self.satisfaction, self.loyalty)


class Midpoint(BaseModel):
    """The movable coordinate dividing the four main quadrants."""
    model_config = ConfigDict(frozen=True)

    sat: float
    loy: float


class ZoneSizes(BaseModel):
    """Number of outermost scale positions each special zone occupies per axis."""
    model_config = ConfigDict(frozen=True)

    apostles: int = Field(default=1, ge=0)
    terrorists: int = Field(default=1, ge=0)


class Distribution(BaseModel):
    """Per-segment respondent counts for the active (non-excluded) respondents."""
    counts: dict[QuadrantType, int]
    invalid: list[str] = Field(default_factory=list)

    @property
    def total(self) -> int:
        """Number of classified respondents (invalid ones not included)."""
        return sum(self.counts.values())

    def get(self, segment: QuadrantType) -> int:
        return self.counts.get(segment, 0)

    def percentages(self) -> dict[QuadrantType, float]:
        total = self.total
        if total == 0:
            return {segment: 0.0 for segment in self.counts}
        return {
            segment: round(count / total * 100.0, 1)
            for segment, count in self.counts.items()
        }


# ─────────────────────────────────────────────────────────────────────────────
# Proximity report
#
# Serialized with camelCase aliases (customerCount, distanceFromBoundary, ...)
# which is the shape the chart and reporting collaborators read.
# ─────────────────────────────────────────────────────────────────────────────

class ReportModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CustomerProximityDetail(ReportModel):
    """One respondent recorded under one proximity relationship."""
    id: str
    name: Optional[str] = None
    satisfaction: float
    loyalty: float
    distance_from_boundary: float
    current_quadrant: QuadrantType
    proximity_targets: list[QuadrantType]
    risk_score: float
    risk_level: RiskLevel


class ProximityDetail(ReportModel):
    customer_count: int = 0
    position_count: int = 0
    average_distance: float = 0.0
    risk_level: RiskLevel = RiskLevel.LOW
    customers: list[CustomerProximityDetail] = Field(default_factory=list)


class ProximitySummary(ReportModel):
    total_customers: int = 0
    total_proximity_customers: int = 0
    total_proximity_positions: int = 0
    opportunity_customers: int = 0
    warning_customers: int = 0


class ProximitySettings(ReportModel):
    threshold: float
    is_available: bool = True
    unavailability_reason: Optional[str] = None
    total_customers: int = 0
    premium_enabled: bool = False
    show_special_zones: bool = False
    show_near_apostles: bool = False


class ProximityReport(ReportModel):
    """Proximity details for every relationship, plus summary and settings."""
    analysis: dict[ProximityRelationship, ProximityDetail]
    summary: ProximitySummary
    settings: ProximitySettings

    def get(self, relationship: ProximityRelationship) -> ProximityDetail:
        return self.analysis[relationship]

    def non_empty(self) -> dict[ProximityRelationship, ProximityDetail]:
        return {key: detail for key, detail in self.analysis.items() if detail.customer_count}


class SegmentationResult(ReportModel):
    """Everything one analysis run produces for the presentation layer."""
    assignments: dict[str, QuadrantType]
    overridden: list[str] = Field(default_factory=list)
    distribution: Distribution
    proximity: ProximityReport
    issues: list[str] = Field(default_factory=list)
