"""Asset registrar for thesis analysis outputs."""

from .manager import AssetRegistrar
from .manifest import ManifestStore
from .payloads import (
    AssetPayload,
    DataSnapshotPayload,
    FigurePayload,
    ModelPayload,
    SummaryPayload,
    TablePayload,
)

__all__ = [
    "AssetPayload",
    "AssetRegistrar",
    "DataSnapshotPayload",
    "FigurePayload",
    "ManifestStore",
    "ModelPayload",
    "SummaryPayload",
    "TablePayload",
]
