"""Test payload serialization."""

import json
import math
import pickle
from datetime import date
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from thesis_assets.assets.payloads import (
    PNG_SIGNATURE,
    DataSnapshotPayload,
    FigurePayload,
    ModelPayload,
    SummaryPayload,
    TablePayload,
)
from thesis_assets.utils.errors import InvalidInputError
from thesis_assets.utils.types import AssetCategory


class TestFigurePayload:
    """Test figure payloads."""

    def test_renders_png(self, sample_figure):
        """Test a figure renders to PNG bytes."""
        payload = FigurePayload(sample_figure, dpi=50)

        assert payload.serialize().startswith(PNG_SIGNATURE)
        assert payload.extension == "png"

    def test_rejects_other_objects(self):
        """Test non-figure payloads are rejected."""
        with pytest.raises(InvalidInputError, match="matplotlib Figure"):
            FigurePayload(pd.DataFrame())


class TestTablePayload:
    """Test tabular payloads."""

    def test_range_index_omitted(self):
        """Test a default index is not written."""
        payload = TablePayload(pd.DataFrame({"ate": [0.1, 0.2]}))

        assert payload.serialize().decode("utf-8").splitlines() == [
            "ate",
            "0.1",
            "0.2",
        ]

    def test_rejects_non_tabular(self):
        """Test lists are not tables."""
        with pytest.raises(InvalidInputError):
            TablePayload([[1, 2], [3, 4]])

    def test_snapshot_category(self):
        """Test snapshots share table serialization but not the category."""
        payload = DataSnapshotPayload(pd.DataFrame({"x": [1]}))

        assert payload.category is AssetCategory.DATA_SNAPSHOT
        assert payload.extension == "csv"


class TestSummaryPayload:
    """Test summary payloads."""

    def test_numpy_and_dates(self):
        """Test values json cannot encode natively are converted."""
        payload = SummaryPayload(
            {
                "ate": np.float64(0.25),
                "effects": np.array([1, 2, 3]),
                "as_of": date(2024, 3, 31),
                "data_file": Path("data/inflation.csv"),
            }
        )

        decoded = json.loads(payload.serialize())

        assert decoded == {
            "ate": 0.25,
            "effects": [1, 2, 3],
            "as_of": "2024-03-31",
            "data_file": "data/inflation.csv",
        }

    def test_list_summary(self):
        """Test a list of records is accepted."""
        payload = SummaryPayload([{"policy": "rate_cut"}])

        assert json.loads(payload.serialize()) == [{"policy": "rate_cut"}]

    def test_non_finite_floats_become_null(self):
        """Test NaN and infinities are written as null, keeping the file strict JSON."""
        payload = SummaryPayload(
            {
                "p_value": math.nan,
                "ci": [0.1, math.inf],
                "cate_bins": np.array([0.3, np.nan]),
                "ate": np.float32(0.5),
            }
        )

        def _reject(token):
            raise ValueError(token)

        decoded = json.loads(payload.serialize(), parse_constant=_reject)

        assert decoded == {
            "p_value": None,
            "ci": [0.1, None],
            "cate_bins": [0.3, None],
            "ate": 0.5,
        }

    def test_rejects_scalars(self):
        """Test scalars are not summaries."""
        with pytest.raises(InvalidInputError):
            SummaryPayload(42)


class TestModelPayload:
    """Test model payloads."""

    def test_pickles_model(self):
        """Test models round-trip through pickle."""
        payload = ModelPayload({"alpha": 0.05})

        assert pickle.loads(payload.serialize()) == {"alpha": 0.05}
        assert payload.extension == "pkl"

    def test_rejects_none(self):
        """Test a missing model is rejected."""
        with pytest.raises(InvalidInputError):
            ModelPayload(None)
