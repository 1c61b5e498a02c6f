"""Deterministic naming rules for registered assets.

Filenames follow ``<section>__<name>__v<major>.<minor>.<ext>``. The double
underscore is the field separator, so sanitized values never contain one.
"""

import re
from collections.abc import Iterable, Mapping, Sequence

from ..utils.errors import InvalidInputError
from ..utils.types import AssetCategory, VersionBump

DEFAULT_VERSION = "1.0"
DEFAULT_SECTION = "general"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")
_REPEATED_UNDERSCORES = re.compile(r"_{2,}")
_VERSION_PATTERN = re.compile(r"^[vV]?(\d+)(?:\.(\d+))?$")

# Checked in order; the first section with a matching keyword wins.
SECTION_KEYWORDS: dict[str, tuple[str, ...]] = {
    "forecasting": (
        "forecast",
        "lstm",
        "prediction",
        "predicted",
        "horizon",
        "time_series",
        "timeseries",
    ),
    "causal_inference": (
        "causal",
        "dml",
        "double_ml",
        "treatment",
        "cate",
        "ate",
        "causal_forest",
        "heterogeneous",
        "confound",
    ),
    "policy_analysis": (
        "policy",
        "scenario",
        "intervention",
        "counterfactual",
        "impact",
    ),
    "model_evaluation": (
        "evaluation",
        "residual",
        "rmse",
        "mae",
        "accuracy",
        "validation",
        "loss",
        "metric",
    ),
    "data_exploration": (
        "exploration",
        "distribution",
        "correlation",
        "descriptive",
        "raw",
    ),
}


def sanitize(value: str | None, *, lower: bool = False) -> str:
    """Make ``value`` safe for interpolation into a filename.

    Returns an empty string when nothing usable remains.
    """
    if value is None:
        return ""
    cleaned = _UNSAFE_CHARS.sub("_", str(value).strip())
    cleaned = _REPEATED_UNDERSCORES.sub("_", cleaned).strip("._")
    return cleaned.lower() if lower else cleaned


def sanitize_section(section: str | None) -> str:
    """Sanitize a section tag, lower-cased."""
    return sanitize(section, lower=True)


def sanitize_name(name: str | None) -> str:
    """Sanitize a short asset descriptor, preserving case."""
    return sanitize(name)


def parse_version(version: str | int | None) -> str:
    """Normalize a caller-supplied version to ``major.minor``."""
    if version is None:
        return DEFAULT_VERSION
    if isinstance(version, bool):
        raise InvalidInputError(f"Invalid version {version!r}")
    if isinstance(version, float):
        # 1.10 and 1.1 are the same float
        raise InvalidInputError(
            f"Float version {version!r} is ambiguous, pass a string such as \"1.10\""
        )
    if isinstance(version, int):
        if version < 0:
            raise InvalidInputError(f"Invalid version {version!r}")
        return f"{version}.0"

    match = _VERSION_PATTERN.match(str(version).strip())
    if not match:
        raise InvalidInputError(f"Invalid version {version!r}")
    major = int(match.group(1))
    minor = int(match.group(2) or 0)
    return f"{major}.{minor}"


def version_key(version: str) -> tuple[int, int]:
    """Sortable (major, minor) pair for a normalized version."""
    major, minor = parse_version(version).split(".")
    return int(major), int(minor)


def bump_version(version: str, bump: VersionBump | str = VersionBump.MINOR) -> str:
    """Return the version following ``version``."""
    major, minor = version_key(version)
    if VersionBump(bump) is VersionBump.MAJOR:
        return f"{major + 1}.0"
    return f"{major}.{minor + 1}"


def build_filename(
    category: AssetCategory, section: str, name: str, version: str
) -> str:
    """Derive the on-disk filename of an asset."""
    return f"{section}__{name}__v{version}.{category.extension}"


def infer_section(
    texts: Iterable[str | None],
    keywords: Mapping[str, Sequence[str]] | None = None,
) -> str:
    """Guess a section tag from free text such as name, description and tags."""
    if keywords is None:
        keywords = SECTION_KEYWORDS

    haystack = " ".join(
        _REPEATED_UNDERSCORES.sub("_", re.sub(r"[\s\-]+", "_", text.lower()))
        for text in texts
        if text
    )
    tokens = set(re.split(r"[^a-z0-9]+", haystack))

    for section, words in keywords.items():
        for word in words:
            word = word.lower()
            if "_" in word:
                if word in haystack:
                    return section
            elif word in tokens or any(
                token.startswith(word) and len(word) > 4 for token in tokens
            ):
                return section
    return DEFAULT_SECTION
