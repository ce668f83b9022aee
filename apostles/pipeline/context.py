"""Pipeline context carrying respondents, derived tables and state between steps."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import pandas as pd

from apostles.core.models import Respondent


@dataclass
class Context:
    """A lightweight pipeline context.

    Attributes:
        respondents: The respondents flowing through the pipeline
        tables: Named tabular artifacts (e.g. the assignments table)
        state: Key/value artifacts (config, store, distribution, report, issues)
    """

    respondents: List[Respondent] = field(default_factory=list)
    tables: Dict[str, pd.DataFrame] = field(default_factory=dict)
    state: Dict[str, Any] = field(default_factory=dict)

    # State methods

    def get_state(self, key: str, default: Any = None) -> Any:
        return self.state.get(key, default)

    def set_state(self, key: str, value: Any) -> None:
        if key in self.state:
            raise KeyError(f"State key '{key}' already exists")

        if value is None:
            raise KeyError(f"State value for '{key}' cannot be None")

        self.state[key] = value

    def require_state(self, key: str) -> Any:
        if key not in self.state:
            raise KeyError(f"Required state key '{key}' not found in context")
        return self.state[key]

    def has_state(self, key: str) -> bool:
        return key in self.state

    # Table methods

    def get_table(
        self, key: str, default: Optional[pd.DataFrame] = None
    ) -> Optional[pd.DataFrame]:
        return self.tables.get(key, default)

    def require_table(self, key: str) -> pd.DataFrame:
        if key not in self.tables:
            raise KeyError(f"Required table key '{key}' not found in context")
        return self.tables[key]

    def has_table(self, key: str) -> bool:
        return key in self.tables

    def add_table(self, key: str, df: Any) -> None:
        if not isinstance(df, pd.DataFrame):
            raise TypeError(f"Table must be a pandas DataFrame, got {type(df)}")
        self.tables[key] = df

    # Respondents

    def active_respondents(self) -> List[Respondent]:
        return [p for p in self.respondents if not p.excluded]
