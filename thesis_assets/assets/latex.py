"""LaTeX snippets that cite registered assets from the thesis sources."""

from pathlib import Path, PurePosixPath

from ..utils.errors import InvalidInputError
from ..utils.types import Asset, AssetCategory


def relative_asset_path(asset: Asset) -> str:
    """Path of the asset relative to the registrar root, with forward slashes."""
    return str(PurePosixPath(asset.category.subdirectory, Path(asset.path).name))


def default_label(asset: Asset, prefix: str = "fig") -> str:
    """Label of the form ``fig:<section>:<name>``."""
    return f"{prefix}:{asset.section}:{asset.name}"


def _escape(text: str) -> str:
    replacements = {
        "\\": r"\textbackslash{}",
        "&": r"\&",
        "%": r"\%",
        "$": r"\$",
        "#": r"\#",
        "_": r"\_",
        "{": r"\{",
        "}": r"\}",
    }
    return "".join(replacements.get(char, char) for char in text)


def latex_figure(
    asset: Asset,
    caption: str | None = None,
    label: str | None = None,
    width: str = r"\linewidth",
) -> str:
    """Build a ``figure`` environment including a registered figure."""
    if asset.category is not AssetCategory.FIGURE:
        raise InvalidInputError(
            "Only figures can be included with \\includegraphics",
            category=asset.category.value,
            section=asset.section,
            name=asset.name,
            version=asset.version,
        )

    caption_text = _escape(caption or asset.description or asset.name)
    lines = [
        r"\begin{figure}[htbp]",
        r"  \centering",
        f"  \\includegraphics[width={width}]{{{relative_asset_path(asset)}}}",
        f"  \\caption{{{caption_text}}}",
        f"  \\label{{{label or default_label(asset)}}}",
        r"\end{figure}",
    ]
    return "\n".join(lines)


def latex_table_input(asset: Asset) -> str:
    """Reference a CSV table through ``csvsimple``'s autotabular."""
    if asset.category not in (AssetCategory.TABLE, AssetCategory.DATA_SNAPSHOT):
        raise InvalidInputError(
            "Only tables and data snapshots can be typeset from CSV",
            category=asset.category.value,
            section=asset.section,
            name=asset.name,
            version=asset.version,
        )
    return f"\\csvautotabular{{{relative_asset_path(asset)}}}"


def latex_reference(asset: Asset, caption: str | None = None) -> str:
    """Snippet appropriate for the asset's category."""
    if asset.category is AssetCategory.FIGURE:
        return latex_figure(asset, caption=caption)
    if asset.category in (AssetCategory.TABLE, AssetCategory.DATA_SNAPSHOT):
        return latex_table_input(asset)
    return f"% {asset.category.value}: {relative_asset_path(asset)}"
