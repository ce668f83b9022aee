"""Error taxonomy for the segmentation core.

Configuration errors are raised eagerly, before any respondent is classified.
Per-respondent errors are raised by the classifier and isolated by callers so
a single bad row never aborts an aggregate.
"""


class SegmentationError(Exception):
    """Base class for all segmentation errors."""


class InvalidScale(SegmentationError):
    """Raised when a scale identifier is malformed or not accepted for an axis."""


class MidpointOutOfRange(SegmentationError):
    """Raised when the midpoint lies outside the configured scale ranges."""


class DegenerateZone(SegmentationError):
    """Raised when a special zone would leave no room for a main quadrant."""


class OutOfRangeScore(SegmentationError):
    """Raised when a respondent's score falls outside its axis range."""

    def __init__(self, respondent_id: str, axis: str, value: float, scale: str):
        self.respondent_id = respondent_id
        self.axis = axis
        self.value = value
        self.scale = scale
        super().__init__(
            f"Respondent {respondent_id}: {axis} score {value} is outside scale {scale}"
        )
