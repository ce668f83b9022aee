"""
Schema definitions for data keys, axes and accepted scales.

DataKey
-------
Keys used in JSON files, DataFrames and serialized reports. These keep the
camelCase convention of the respondent files handed over by the data entry
and import collaborators.

Axis
----
The two scored dimensions of a respondent. Every scale, midpoint coordinate
and boundary is expressed against one of them.

Scale whitelists
----------------
Satisfaction is collected on short Likert scales only, loyalty additionally
accepts the 0-10 recommendation scale and a 1-10 scale:

| Axis         | Accepted identifiers       |
|--------------|----------------------------|
| satisfaction | 1-3, 1-5, 1-7              |
| loyalty      | 1-5, 1-7, 1-10, 0-10       |
"""

from enum import StrEnum
from typing import Final


class DataKey(StrEnum):
    RESPONDENT_ID = "id"
    NAME = "name"
    SATISFACTION = "satisfaction"
    LOYALTY = "loyalty"
    EXCLUDED = "excluded"
    SEGMENT = "segment"
    OVERRIDDEN = "overridden"


class Axis(StrEnum):
    SATISFACTION = "satisfaction"
    LOYALTY = "loyalty"


SATISFACTION_SCALES: Final[tuple[str, ...]] = ("1-3", "1-5", "1-7")
LOYALTY_SCALES: Final[tuple[str, ...]] = ("1-5", "1-7", "1-10", "0-10")

DEFAULT_SCALE: Final[str] = "1-5"

# Keys the loaders map onto Respondent fields; anything else becomes an attribute
RESPONDENT_FIELDS: Final[frozenset[str]] = frozenset(
    {
        DataKey.RESPONDENT_ID,
        DataKey.NAME,
        DataKey.SATISFACTION,
        DataKey.LOYALTY,
        DataKey.EXCLUDED,
    }
)


def accepted_scales(axis: Axis) -> tuple[str, ...]:
    if axis == Axis.SATISFACTION:
        return SATISFACTION_SCALES
    return LOYALTY_SCALES
