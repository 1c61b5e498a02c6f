"""Asset registrar for thesis figures, tables, snapshots, models and summaries."""

import inspect
import os
import uuid
from collections.abc import Callable, Iterable, Sequence
from pathlib import Path
from typing import Any

import pandas as pd
import structlog
from matplotlib.figure import Figure

from ..utils.config import get_settings
from ..utils.errors import DuplicateAssetError, InvalidInputError, IOFailureError
from ..utils.types import (
    MANIFEST_SUBDIRECTORY,
    TAG_SEPARATOR,
    Asset,
    AssetCategory,
    DuplicatePolicy,
    VersionBump,
    utc_now_iso,
)
from .manifest import ManifestStore, stage_bytes
from .naming import (
    SECTION_KEYWORDS,
    build_filename,
    bump_version,
    infer_section,
    parse_version,
    sanitize_name,
    sanitize_section,
)
from .payloads import (
    AssetPayload,
    DataSnapshotPayload,
    FigurePayload,
    ModelPayload,
    SummaryPayload,
    TablePayload,
)

logger = structlog.get_logger(__name__)

_THIS_FILE = os.path.normcase(os.path.abspath(__file__))


def _caller_reference() -> str | None:
    """Return ``file:line`` of the first frame outside this module."""
    frame = inspect.currentframe()
    try:
        while frame is not None:
            filename = os.path.normcase(os.path.abspath(frame.f_code.co_filename))
            if filename != _THIS_FILE:
                return f"{frame.f_code.co_filename}:{frame.f_lineno}"
            frame = frame.f_back
        return None
    finally:
        del frame


class AssetRegistrar:
    """Persists analysis artifacts under predictable names and records them.

    Every ``save_*`` call writes one artifact file and rewrites the manifest
    (JSON and CSV) before returning. The artifact only lands at its final
    location once the manifest has been persisted, so a failed call leaves
    neither an orphaned file nor a dangling record.
    """

    def __init__(
        self,
        root: Path | str | None = None,
        duplicate_policy: DuplicatePolicy | str | None = None,
        lock_timeout: float | None = None,
        figure_dpi: int | None = None,
        capture_source_reference: bool | None = None,
    ):
        """Initialize the registrar and its directory tree."""
        config = get_settings().assets

        self.root = Path(root) if root is not None else config.root
        self.duplicate_policy = DuplicatePolicy(
            duplicate_policy if duplicate_policy is not None else config.duplicate_policy
        )
        self.figure_dpi = figure_dpi if figure_dpi is not None else config.figure_dpi
        self.capture_source_reference = (
            capture_source_reference
            if capture_source_reference is not None
            else config.capture_source_reference
        )
        self.section_keywords: dict[str, tuple[str, ...]] = dict(SECTION_KEYWORDS)

        self.manifest_dir = self.root / MANIFEST_SUBDIRECTORY
        self.initialize()
        self.manifest = ManifestStore(
            self.manifest_dir,
            lock_timeout=lock_timeout if lock_timeout is not None else config.lock_timeout,
        )

        logger.info(
            "Asset registrar initialized",
            root=str(self.root),
            duplicate_policy=self.duplicate_policy.value,
        )

    def initialize(self) -> None:
        """Create the category and manifest directories if missing."""
        directories = [self.category_dir(category) for category in AssetCategory]
        directories.append(self.manifest_dir)
        try:
            for directory in directories:
                directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(
                "Failed to create asset directories", root=str(self.root), error=str(e)
            )
            raise IOFailureError(
                f"Could not create asset directories under {self.root}", cause=e
            ) from e

    def category_dir(self, category: AssetCategory | str) -> Path:
        """Directory holding assets of ``category``."""
        return self.root / AssetCategory(category).subdirectory

    # Public save operations

    def save_figure(
        self,
        figure: Figure | bytes,
        section: str | None,
        name: str,
        description: str = "",
        tags: Iterable[str] | None = None,
        version: str | int | None = None,
        source_code_reference: str | None = None,
    ) -> Asset:
        """Save a matplotlib figure (or PNG bytes) as ``figures/*.png``."""
        return self._register(
            lambda: FigurePayload(figure, dpi=self.figure_dpi),
            AssetCategory.FIGURE,
            section,
            name,
            description,
            tags,
            version,
            source_code_reference,
        )

    def save_table(
        self,
        table: pd.DataFrame | pd.Series,
        section: str | None,
        name: str,
        description: str = "",
        tags: Iterable[str] | None = None,
        version: str | int | None = None,
        source_code_reference: str | None = None,
    ) -> Asset:
        """Save a results table as ``tables/*.csv``."""
        return self._register(
            lambda: TablePayload(table),
            AssetCategory.TABLE,
            section,
            name,
            description,
            tags,
            version,
            source_code_reference,
        )

    def save_summary(
        self,
        summary: Any,
        section: str | None,
        name: str,
        description: str = "",
        tags: Iterable[str] | None = None,
        version: str | int | None = None,
        source_code_reference: str | None = None,
    ) -> Asset:
        """Save structured results or text as ``summaries/*.json``."""
        return self._register(
            lambda: SummaryPayload(summary),
            AssetCategory.SUMMARY,
            section,
            name,
            description,
            tags,
            version,
            source_code_reference,
        )

    def save_model(
        self,
        model: Any,
        section: str | None,
        name: str,
        description: str = "",
        tags: Iterable[str] | None = None,
        version: str | int | None = None,
        source_code_reference: str | None = None,
    ) -> Asset:
        """Save a picklable model as ``models/*.pkl``."""
        return self._register(
            lambda: ModelPayload(model),
            AssetCategory.MODEL,
            section,
            name,
            description,
            tags,
            version,
            source_code_reference,
        )

    def save_data_snapshot(
        self,
        frame: pd.DataFrame | pd.Series,
        section: str | None,
        name: str,
        description: str = "",
        tags: Iterable[str] | None = None,
        version: str | int | None = None,
        source_code_reference: str | None = None,
    ) -> Asset:
        """Save a copy of input data as ``data_snapshots/*.csv``."""
        return self._register(
            lambda: DataSnapshotPayload(frame),
            AssetCategory.DATA_SNAPSHOT,
            section,
            name,
            description,
            tags,
            version,
            source_code_reference,
        )

    # Queries

    def list_assets(
        self,
        category: AssetCategory | str | None = None,
        section: str | None = None,
        tag: str | None = None,
        tags: Sequence[str] | None = None,
    ) -> list[Asset]:
        """List registered assets, optionally filtered.

        ``tags`` keeps assets carrying every listed tag; ``tag`` is shorthand
        for a single one.
        """
        wanted_category = self._coerce_category(category) if category else None
        wanted_section = sanitize_section(section) if section else None
        wanted_tags = [tags] if isinstance(tags, str) else list(tags or [])
        if tag:
            wanted_tags.append(tag)

        assets = self.manifest.load()
        return [
            asset
            for asset in assets
            if (wanted_category is None or asset.category is wanted_category)
            and (wanted_section is None or asset.section == wanted_section)
            and all(t in asset.tags for t in wanted_tags)
        ]

    def get_asset(self, asset_id: str) -> Asset | None:
        """Get a registered asset by ID."""
        for asset in self.manifest.load():
            if asset.id == asset_id:
                return asset
        return None

    def find_asset(
        self,
        category: AssetCategory | str,
        section: str,
        name: str,
        version: str | int | None = None,
    ) -> Asset | None:
        """Find an asset by key; without a version, the highest one wins."""
        candidates = self._versions_of(category, section, name)
        if not candidates:
            return None
        if version is None:
            return max(candidates, key=lambda a: a.version_tuple)
        wanted = parse_version(version)
        for asset in candidates:
            if asset.version == wanted:
                return asset
        return None

    def next_version(
        self,
        category: AssetCategory | str,
        section: str,
        name: str,
        bump: VersionBump | str = VersionBump.MINOR,
    ) -> str:
        """Next unused version for a category/section/name."""
        candidates = self._versions_of(category, section, name)
        if not candidates:
            return parse_version(None)
        latest = max(candidates, key=lambda a: a.version_tuple)
        return bump_version(latest.version, bump)

    def verify(self) -> list[Asset]:
        """Return records whose files no longer exist on disk."""
        missing = [a for a in self.manifest.load() if not Path(a.path).is_file()]
        if missing:
            logger.warning(
                "Manifest references missing files",
                count=len(missing),
                ids=[a.id for a in missing],
            )
        return missing

    def get_statistics(self) -> dict[str, Any]:
        """Summarize the registered assets."""
        assets = self.manifest.load()

        by_category: dict[str, int] = {c.value: 0 for c in AssetCategory}
        by_section: dict[str, int] = {}
        total_bytes = 0
        for asset in assets:
            by_category[asset.category.value] += 1
            by_section[asset.section] = by_section.get(asset.section, 0) + 1
            path = Path(asset.path)
            if path.is_file():
                total_bytes += path.stat().st_size

        return {
            "total_assets": len(assets),
            "by_category": by_category,
            "by_section": by_section,
            "total_size_bytes": total_bytes,
            "manifest_json": str(self.manifest.json_path),
            "manifest_csv": str(self.manifest.csv_path),
        }

    def register_section_keywords(self, section: str, keywords: Iterable[str]) -> None:
        """Teach section inference a new section or extra keywords."""
        clean_section = sanitize_section(section)
        if not clean_section:
            raise InvalidInputError(f"Invalid section {section!r}")
        existing = self.section_keywords.get(clean_section, ())
        added = tuple(k.lower() for k in keywords if k and k.lower() not in existing)
        self.section_keywords[clean_section] = existing + added

    # Registration

    def _register(
        self,
        make_payload: Callable[[], AssetPayload],
        category: AssetCategory,
        section: str | None,
        name: str,
        description: str,
        tags: Iterable[str] | None,
        version: str | int | None,
        source_code_reference: str | None,
    ) -> Asset:
        if isinstance(tags, str):
            tags = [tags]
        tag_list = [str(t) for t in tags] if tags else []
        context = {"category": category.value, "section": section, "name": name}
        bad_tags = [t for t in tag_list if TAG_SEPARATOR in t]
        if bad_tags:
            raise InvalidInputError(
                f"Tags may not contain {TAG_SEPARATOR!r}: {bad_tags}", **context
            )

        if section is None:
            section = infer_section(
                [name, description, *tag_list], keywords=self.section_keywords
            )
            logger.debug("Inferred section", name=name, section=section)

        clean_section = sanitize_section(section)
        clean_name = sanitize_name(name)
        if not clean_section:
            raise InvalidInputError("Section is empty after sanitization", **context)
        if not clean_name:
            raise InvalidInputError("Name is empty after sanitization", **context)

        context.update(section=clean_section, name=clean_name)
        try:
            clean_version = parse_version(version)
        except InvalidInputError as e:
            raise InvalidInputError(str(e), **context) from e
        context["version"] = clean_version

        try:
            payload: AssetPayload = make_payload()
            content = payload.serialize()
        except InvalidInputError as e:
            logger.error("Invalid asset payload", error=str(e), **context)
            raise InvalidInputError(
                "Invalid payload", **context, cause=e.cause or e
            ) from e

        if source_code_reference is None and self.capture_source_reference:
            source_code_reference = _caller_reference()

        filename = build_filename(category, clean_section, clean_name, clean_version)
        target = self.category_dir(category) / filename

        with self.manifest.transaction() as records:
            key = (category.value, clean_section, clean_name, clean_version)
            existing = next((r for r in records if r.key == key), None)
            if existing is not None and self.duplicate_policy is DuplicatePolicy.ERROR:
                raise DuplicateAssetError(
                    "Asset already registered and overwrite is disabled", **context
                )

            asset = Asset(
                id=existing.id if existing is not None else uuid.uuid4().hex,
                category=category,
                section=clean_section,
                name=clean_name,
                version=clean_version,
                filename=filename,
                path=str(target),
                created_at=utc_now_iso(),
                tags=tag_list,
                description=description or "",
                source_code_reference=source_code_reference,
            )
            self._commit(records, asset, target, content, context)

        logger.info(
            "Saved asset",
            asset_id=asset.id,
            path=asset.path,
            overwritten=existing is not None,
            **context,
        )
        return asset

    def _commit(
        self,
        records: list[Asset],
        asset: Asset,
        target: Path,
        content: bytes,
        context: dict[str, Any],
    ) -> None:
        """Stage the artifact, persist the manifest, then move the artifact in."""
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            staged = stage_bytes(target, content)
        except OSError as e:
            logger.error("Failed to write asset file", path=str(target), error=str(e))
            raise IOFailureError("Could not write asset file", **context, cause=e) from e

        try:
            previous = self.manifest.snapshot()
            updated, _ = self.manifest.upsert(records, asset)
            self.manifest.persist(updated)
        except BaseException:
            staged.unlink(missing_ok=True)
            raise

        try:
            os.replace(staged, target)
        except OSError as e:
            staged.unlink(missing_ok=True)
            self.manifest.restore(previous)
            logger.error(
                "Failed to move asset into place", path=str(target), error=str(e)
            )
            raise IOFailureError("Could not write asset file", **context, cause=e) from e

    def _versions_of(
        self, category: AssetCategory | str, section: str, name: str
    ) -> list[Asset]:
        wanted_category = self._coerce_category(category)
        wanted_section = sanitize_section(section)
        wanted_name = sanitize_name(name)
        return [
            asset
            for asset in self.manifest.load()
            if asset.category is wanted_category
            and asset.section == wanted_section
            and asset.name == wanted_name
        ]

    @staticmethod
    def _coerce_category(category: AssetCategory | str) -> AssetCategory:
        try:
            return AssetCategory(category)
        except ValueError as e:
            raise InvalidInputError(f"Unknown asset category {category!r}") from e

