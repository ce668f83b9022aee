"""
Pipeline context keys for accessing tables and state.

All data lives in one of two namespaces:

- `ctx.tables[...]`  : tabular artifacts (pandas DataFrames)
- `ctx.state[...]`   : non-tabular artifacts (configs, the override store, reports)
"""

from enum import StrEnum


class Key(StrEnum):
    # ─────────────────────────────────────────────────────────────────────────────
    # Inputs
    # ─────────────────────────────────────────────────────────────────────────────

    # RulesConfig for this run
    STATE_RULES = "STATE_RULES"

    # ManualAssignmentStore holding operator overrides
    STATE_OVERRIDES = "STATE_OVERRIDES"

    # Optional threshold replacing rules.proximity.threshold (float)
    STATE_PARAM_THRESHOLD = "STATE_PARAM_THRESHOLD"

    # ─────────────────────────────────────────────────────────────────────────────
    # Preflight
    # ─────────────────────────────────────────────────────────────────────────────

    # ZoneLayout resolved from the segmentation config
    STATE_LAYOUT = "STATE_LAYOUT"

    # Configuration and data problems that did not stop the run (list[str])
    STATE_ISSUES = "STATE_ISSUES"

    # ─────────────────────────────────────────────────────────────────────────────
    # Classification and aggregates
    # ─────────────────────────────────────────────────────────────────────────────

    # One row per active respondent with a valid segment
    # | id | name | satisfaction | loyalty | segment   | overridden |
    # |----|------|--------------|---------|-----------|------------|
    # | r1 | Acme | 5.0          | 5.0     | apostles  | False      |
    # | r2 | None | 2.0          | 4.0     | loyalists | True       |
    DERIVED_TABLE_ASSIGNMENTS = "DERIVED_TABLE_ASSIGNMENTS"

    # Distribution of active respondents per segment
    GEN_DISTRIBUTION = "GEN_DISTRIBUTION"

    # ProximityReport for the active relationships
    GEN_PROXIMITY_REPORT = "GEN_PROXIMITY_REPORT"
