"""Error taxonomy for the asset registrar."""

from pathlib import Path


class AssetError(Exception):
    """Base error carrying the asset key the failure relates to."""

    def __init__(
        self,
        message: str,
        *,
        category: str | None = None,
        section: str | None = None,
        name: str | None = None,
        version: str | None = None,
        cause: BaseException | None = None,
    ):
        """Initialize asset error."""
        self.category = category
        self.section = section
        self.name = name
        self.version = version
        self.cause = cause
        super().__init__(self._format(message))

    def _format(self, message: str) -> str:
        context = [
            f"{label}={value}"
            for label, value in (
                ("category", self.category),
                ("section", self.section),
                ("name", self.name),
                ("version", self.version),
            )
            if value is not None
        ]
        if context:
            message = f"{message} [{', '.join(context)}]"
        if self.cause is not None:
            message = f"{message}: {self.cause}"
        return message

    @property
    def context(self) -> dict[str, str | None]:
        """Key fields for structured logging."""
        return {
            "category": self.category,
            "section": self.section,
            "name": self.name,
            "version": self.version,
        }


class InvalidInputError(AssetError):
    """Unsanitizable section/name, bad version, or payload/category mismatch."""


class DuplicateAssetError(InvalidInputError):
    """Key already registered while the duplicate policy forbids overwrite."""


class IOFailureError(AssetError):
    """Filesystem write failed or the manifest lock could not be acquired."""


class ManifestCorruptionError(AssetError):
    """Existing manifest is unreadable or malformed."""

    def __init__(
        self,
        message: str,
        *,
        manifest_path: Path,
        cause: BaseException | None = None,
    ):
        """Initialize manifest corruption error."""
        self.manifest_path = Path(manifest_path)
        super().__init__(f"{message} ({self.manifest_path})", cause=cause)
