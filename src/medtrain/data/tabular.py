"""Survey CSV loading and categorical feature encoding."""

from __future__ import annotations

import csv
import re
from pathlib import Path
from typing import Mapping

from medtrain.data.contracts import LabeledTabularExample

AGE_FEATURE = "Age"
GENDER_FEATURE = "Gender"
TARGET_COLUMN = "treatment"
TARGET_POSITIVE = "Yes"
MISSING_VALUE = "NA"

MIN_AGE = 18
MAX_AGE = 100
_AGE_SPAN = 82

SURVEY_FEATURES: tuple[str, ...] = (
    "Age",
    "Gender",
    "family_history",
    "work_interfere",
    "no_employees",
    "remote_work",
    "tech_company",
    "benefits",
    "care_options",
    "wellness_program",
    "seek_help",
    "anonymity",
    "leave",
    "mental_health_consequence",
    "phys_health_consequence",
    "coworkers",
    "supervisor",
    "mental_health_interview",
    "phys_health_interview",
    "mental_vs_physical",
    "obs_consequence",
)

GENDER_MALE = 0
GENDER_FEMALE = 1
GENDER_OTHER = 2

# Free-text survey answers observed in the source data, matched after trim + lower.
_MALE_ALIASES = frozenset(
    {
        "male",
        "m",
        "male-ish",
        "maile",
        "mal",
        "male (cis)",
        "make",
        "man",
        "msle",
        "mail",
        "malr",
        "cis man",
        "cis male",
        "guy (-ish) ^_^",
    }
)
_FEMALE_ALIASES = frozenset(
    {
        "female",
        "cis female",
        "f",
        "woman",
        "femake",
        "cis-female/femme",
        "female (cis)",
        "femail",
    }
)

_INT_PREFIX = re.compile(r"\s*([+-]?[0-9]+)")


class CategoricalEncoder:
    """Per-feature value to id tables that grow in first-seen order.

    Ids depend on the order rows are encoded in. Two encoders fed the same
    values in different orders assign different ids; artifacts trained with one
    ordering are only compatible with its mapping.
    """

    def __init__(self) -> None:
        self._mappings: dict[str, dict[str, int]] = {}

    def encode(self, feature_name: str, raw_value: str | None) -> int:
        """Return the id for ``raw_value``, assigning the next id when unseen."""
        value = raw_value if raw_value else MISSING_VALUE
        mapping = self._mappings.setdefault(feature_name, {})
        if value not in mapping:
            mapping[value] = len(mapping)
        return mapping[value]

    def declare(self, feature_name: str) -> None:
        """Create an empty mapping so the feature appears even with no rows."""
        self._mappings.setdefault(feature_name, {})

    def mapping(self, feature_name: str) -> dict[str, int]:
        return dict(self._mappings.get(feature_name, {}))

    def to_jsonable(self) -> dict[str, dict[str, int]]:
        """Mappings in declaration order, each preserving first-seen order."""
        return {name: dict(mapping) for name, mapping in self._mappings.items()}


def parse_age(raw_value: str | None) -> int | None:
    """Parse the leading integer of ``raw_value``; ``None`` when there is none."""
    if raw_value is None:
        return None
    match = _INT_PREFIX.match(raw_value)
    if match is None:
        return None
    return int(match.group(1))


def is_valid_age(age: int | None) -> bool:
    return age is not None and MIN_AGE <= age <= MAX_AGE


def normalize_age(age: int) -> float:
    """Rescale age linearly so 18 maps to 0.0 and 100 maps to 1.0."""
    return (age - MIN_AGE) / _AGE_SPAN


def normalize_gender(raw_value: str | None) -> int:
    """Collapse free-text gender answers into male (0), female (1) or other (2)."""
    if not raw_value:
        return GENDER_OTHER
    token = raw_value.strip().lower()
    if token in _MALE_ALIASES:
        return GENDER_MALE
    if token in _FEMALE_ALIASES:
        return GENDER_FEMALE
    return GENDER_OTHER


def load_survey_csv(path: Path) -> tuple[LabeledTabularExample, ...]:
    """Read survey rows from a header-row CSV file; blank lines are skipped."""
    if not path.exists():
        raise FileNotFoundError(f"survey dataset does not exist: {path}")

    examples: list[LabeledTabularExample] = []
    with path.open("r", encoding="utf-8", newline="") as handle:
        reader = csv.DictReader(handle)
        for row in reader:
            examples.append(row_to_example(row))
    return tuple(examples)


def row_to_example(row: Mapping[str, str | None]) -> LabeledTabularExample:
    """Convert one CSV record into a labeled example."""
    features = {str(key): value for key, value in row.items() if key is not None}
    return LabeledTabularExample(
        features=features,
        target=row.get(TARGET_COLUMN) == TARGET_POSITIVE,
    )
