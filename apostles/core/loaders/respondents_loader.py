"""
Load respondents from a JSON Lines file or a JSON list.

One object per respondent:

    {"id": "r1", "name": "Acme Ltd", "satisfaction": 4, "loyalty": 5, "excluded": false, "region": "EU"}

- `id`, `satisfaction` and `loyalty` are required; ids must be unique.
- `name` and `excluded` are optional.
- Every other key is kept in the respondent's `attributes`.

Scores are only checked for being numeric here. Whether they fit the
configured scales is decided by the classifier, so a file can be loaded
before its scales are known.
"""

import io
import json
import logging

import pandas as pd

from apostles.core.loaders.base_loader import BaseLoader
from apostles.core.models import Respondent
from apostles.core.schema import RESPONDENT_FIELDS, DataKey

logger = logging.getLogger(__name__)


class RespondentsLoadError(Exception):
    pass


class RespondentsLoader(BaseLoader):
    """Load respondents from JSONL (or a JSON list)."""

    def __init__(self, source, as_model: bool = False):
        super().__init__(source)
        self.as_model = as_model

    @property
    def _error_class(self):
        return RespondentsLoadError

    def load(self):
        """Load respondents as DataFrame or as a list of Respondent models."""
        df = super().load()
        if self.as_model:
            return respondents_from_dataframe(df)
        return df

    def _load_from_file(self, file_handle) -> pd.DataFrame:
        text = file_handle.read()
        if isinstance(text, bytes):
            text = text.decode('utf-8')

        if text.lstrip().startswith('['):
            rows = self._load_json(io.StringIO(text), expect_list=True)
        else:
            rows = self._parse_lines(text)

        if not rows:
            raise RespondentsLoadError("No respondents found")

        return self._validate(pd.DataFrame(rows))

    def _parse_lines(self, text: str) -> list[dict]:
        rows = []
        for i, line in enumerate(text.splitlines(), start=1):
            if not line.strip():
                continue
            try:
                row = json.loads(line)
            except json.JSONDecodeError as e:
                raise RespondentsLoadError(f"Invalid JSON on line {i}: {e}") from e
            if not isinstance(row, dict):
                raise RespondentsLoadError(f"Line {i} is not a JSON object")
            rows.append(row)
        return rows

    def _validate(self, df: pd.DataFrame) -> pd.DataFrame:
        for col in (DataKey.RESPONDENT_ID, DataKey.SATISFACTION, DataKey.LOYALTY):
            if col not in df.columns:
                raise RespondentsLoadError(f"Missing '{col}' column")

        if df[DataKey.RESPONDENT_ID].isnull().any():
            raise RespondentsLoadError("Every respondent needs an 'id'")
        df[DataKey.RESPONDENT_ID] = df[DataKey.RESPONDENT_ID].astype(str)

        duplicates = df[DataKey.RESPONDENT_ID].duplicated(keep=False)
        if duplicates.any():
            dup_ids = sorted(df.loc[duplicates, DataKey.RESPONDENT_ID].unique())
            raise RespondentsLoadError(f"Duplicate respondent ids: {', '.join(dup_ids)}")

        for col in (DataKey.SATISFACTION, DataKey.LOYALTY):
            try:
                df[col] = pd.to_numeric(df[col])
            except (ValueError, TypeError) as e:
                raise RespondentsLoadError(f"'{col}' must be numeric: {e}") from e
            missing = df.loc[df[col].isnull(), DataKey.RESPONDENT_ID].tolist()
            if missing:
                raise RespondentsLoadError(f"Missing '{col}' for respondents: {', '.join(missing)}")

        if DataKey.EXCLUDED in df.columns:
            df[DataKey.EXCLUDED] = [
                _to_flag(value, rid)
                for rid, value in zip(df[DataKey.RESPONDENT_ID], df[DataKey.EXCLUDED])
            ]
        else:
            df[DataKey.EXCLUDED] = False

        logger.debug(f"Loaded {len(df)} respondents ({int(df[DataKey.EXCLUDED].sum())} excluded)")
        return df


def _is_missing(value) -> bool:
    return pd.api.types.is_scalar(value) and pd.isna(value)


_TRUE_STRINGS = {"true", "yes", "1"}
_FALSE_STRINGS = {"false", "no", "0", ""}


def _to_flag(value, respondent_id: str) -> bool:
    """Read an `excluded` value; a string like "false" must not count as set."""
    if _is_missing(value):
        return False
    if pd.api.types.is_bool(value):
        return bool(value)
    if pd.api.types.is_number(value) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
    raise RespondentsLoadError(f"Invalid 'excluded' value for respondent {respondent_id}: {value!r}")


def respondents_from_dataframe(df: pd.DataFrame) -> list[Respondent]:
    """Build Respondent models from a loader DataFrame; unknown columns become attributes."""
    respondents = []
    for record in df.to_dict(orient='records'):
        name = record.get(DataKey.NAME)
        respondents.append(
            Respondent(
                id=str(record[DataKey.RESPONDENT_ID]),
                name=None if _is_missing(name) else str(name),
                satisfaction=float(record[DataKey.SATISFACTION]),
                loyalty=float(record[DataKey.LOYALTY]),
                excluded=bool(record.get(DataKey.EXCLUDED, False)),
                attributes={
                    key: value for key, value in record.items()
                    if key not in RESPONDENT_FIELDS and not _is_missing(value)
                },
            )
        )
    return respondents


def load_respondents(source) -> list[Respondent]:
    """Load a respondents file straight into models."""
    return RespondentsLoader(source, as_model=True).load()
