"""Pytest configuration and fixtures."""

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402
import pandas as pd  # noqa: E402
import pytest  # noqa: E402
from structlog.testing import capture_logs  # noqa: E402

from thesis_assets.assets.manager import AssetRegistrar  # noqa: E402
from thesis_assets.utils import config  # noqa: E402


@pytest.fixture(autouse=True)
def set_test_environment(monkeypatch, tmp_path):
    """Point settings at a temporary root and reset the cached instance."""
    monkeypatch.setenv("ASSETS_ROOT", str(tmp_path / "default_outputs"))
    monkeypatch.setenv("ASSETS_DUPLICATE_POLICY", "overwrite")
    monkeypatch.setenv("LOG_LEVEL", "INFO")
    monkeypatch.setenv("DEVELOPMENT", "false")
    config.reset_settings()
    yield
    config.reset_settings()


@pytest.fixture(autouse=True)
def log_output():
    """Capture structlog output instead of printing it."""
    with capture_logs() as captured:
        yield captured


@pytest.fixture
def asset_root(tmp_path):
    """Return the root directory for a test registrar."""
    return tmp_path / "outputs"


@pytest.fixture
def registrar(asset_root) -> AssetRegistrar:
    """Create a registrar rooted in a temporary directory."""
    return AssetRegistrar(root=asset_root)


@pytest.fixture
def sample_table() -> pd.DataFrame:
    """Return a small policy impact table."""
    return pd.DataFrame(
        {
            "policy": ["rate_cut", "fiscal_stimulus", "tariff"],
            "ate": [0.42, 1.13, -0.27],
            "ci_low": [0.10, 0.80, -0.55],
            "ci_high": [0.74, 1.46, 0.01],
        }
    )


@pytest.fixture
def sample_figure():
    """Return a simple forecast plot and close it afterwards."""
    fig, ax = plt.subplots(figsize=(4, 3))
    ax.plot([1, 2, 3, 4], [2.0, 2.4, 2.1, 2.8], label="forecast")
    ax.legend()
    yield fig
    plt.close(fig)
