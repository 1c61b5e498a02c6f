"""Payload variants accepted by the asset registrar.

Each payload kind belongs to exactly one category and knows how to render
itself to the bytes stored under that category's fixed extension.
"""

import io
import json
import math
import pickle
from abc import ABC, abstractmethod
from collections.abc import Mapping
from pathlib import PurePath
from typing import Any, ClassVar

import pandas as pd
from matplotlib.figure import Figure

from ..utils.errors import InvalidInputError
from ..utils.types import AssetCategory

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


class AssetPayload(ABC):
    """In-memory artifact that can be serialized for one category."""

    category: ClassVar[AssetCategory]

    @abstractmethod
    def serialize(self) -> bytes:
        """Render the payload to file content."""

    @property
    def extension(self) -> str:
        """File extension the payload serializes to."""
        return self.category.extension


class FigurePayload(AssetPayload):
    """A matplotlib figure, or already-rendered PNG bytes."""

    category = AssetCategory.FIGURE

    def __init__(self, figure: Figure | bytes, dpi: int = 300):
        """Initialize figure payload."""
        if isinstance(figure, (bytes, bytearray)):
            if not bytes(figure).startswith(PNG_SIGNATURE):
                raise InvalidInputError(
                    "Figure bytes are not a PNG image", category=self.category.value
                )
        elif not isinstance(figure, Figure):
            raise InvalidInputError(
                f"Expected a matplotlib Figure or PNG bytes, got "
                f"{type(figure).__name__}",
                category=self.category.value,
            )
        self.figure = figure
        self.dpi = dpi

    def serialize(self) -> bytes:
        """Render the figure as PNG."""
        if isinstance(self.figure, (bytes, bytearray)):
            return bytes(self.figure)

        buffer = io.BytesIO()
        try:
            self.figure.savefig(buffer, format="png", dpi=self.dpi, bbox_inches="tight")
        except (ValueError, TypeError, RuntimeError) as e:
            raise InvalidInputError(
                "Figure could not be rendered", category=self.category.value, cause=e
            ) from e
        return buffer.getvalue()


class TablePayload(AssetPayload):
    """Tabular results written as CSV."""

    category = AssetCategory.TABLE

    def __init__(self, table: pd.DataFrame | pd.Series):
        """Initialize table payload."""
        if isinstance(table, pd.Series):
            table = table.to_frame()
        if not isinstance(table, pd.DataFrame):
            raise InvalidInputError(
                f"Expected a pandas DataFrame or Series, got {type(table).__name__}",
                category=self.category.value,
            )
        self.table = table

    def serialize(self) -> bytes:
        """Render the frame as UTF-8 CSV."""
        # A default RangeIndex carries no information worth a column.
        keep_index = not isinstance(self.table.index, pd.RangeIndex)
        return self.table.to_csv(index=keep_index).encode("utf-8")


class DataSnapshotPayload(TablePayload):
    """A frozen copy of input data, stored like a table."""

    category = AssetCategory.DATA_SNAPSHOT


def _finite(value: Any) -> Any:
    """Replace NaN and infinities with None, recursing into containers."""
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, Mapping):
        return {k: _finite(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_finite(v) for v in value]
    return value


def _json_fallback(value: Any) -> Any:
    if hasattr(value, "tolist"):
        return _finite(value.tolist())
    if hasattr(value, "item"):
        return _finite(value.item())
    if hasattr(value, "isoformat"):
        return value.isoformat()
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=str)
    if isinstance(value, PurePath):
        return str(value)
    return str(value)


class SummaryPayload(AssetPayload):
    """Structured results or free text, stored as JSON."""

    category = AssetCategory.SUMMARY

    def __init__(self, summary: Mapping[str, Any] | list[Any] | tuple[Any, ...] | str):
        """Initialize summary payload."""
        if isinstance(summary, str):
            summary = {"text": summary}
        elif isinstance(summary, Mapping):
            summary = dict(summary)
        elif isinstance(summary, (list, tuple)):
            summary = list(summary)
        else:
            raise InvalidInputError(
                f"Expected a mapping, list or string, got {type(summary).__name__}",
                category=self.category.value,
            )
        self.summary = summary

    def serialize(self) -> bytes:
        """Render the summary as indented JSON."""
        try:
            text = json.dumps(
                _finite(self.summary),
                indent=2,
                default=_json_fallback,
                allow_nan=False,
            )
        except (TypeError, ValueError) as e:
            raise InvalidInputError(
                "Summary is not JSON serializable",
                category=self.category.value,
                cause=e,
            ) from e
        return (text + "\n").encode("utf-8")


class ModelPayload(AssetPayload):
    """A fitted model object, pickled."""

    category = AssetCategory.MODEL

    def __init__(self, model: Any):
        """Initialize model payload."""
        if model is None:
            raise InvalidInputError("Model payload is None", category=self.category.value)
        self.model = model

    def serialize(self) -> bytes:
        """Pickle the model with the highest available protocol."""
        try:
            return pickle.dumps(self.model, protocol=pickle.HIGHEST_PROTOCOL)
        except (pickle.PicklingError, TypeError, AttributeError) as e:
            raise InvalidInputError(
                "Model could not be serialized",
                category=self.category.value,
                cause=e,
            ) from e
