"""Page and index rendering."""

from __future__ import annotations

import hashlib
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pandas as pd
from jinja2 import Environment

from folio.api.artifact import Artifact
from folio.api.exceptions import FolioArtifactError, FolioValidationError
from folio.api.logging import log_event
from folio.config.models import SiteConfig
from folio.diagnostics.plots import figure_to_html
from folio.site.charts import get_chart_builder
from folio.site.content import (
    CodeBlock,
    FigureBlock,
    ImageBlock,
    PageDocument,
    TableBlock,
    TextBlock,
)

LOGGER = logging.getLogger("folio.site")
_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")
# Names the page itself writes next to its assets.
_RESERVED_ASSET_NAMES = {"index.html"}


@dataclass(slots=True)
class RenderedPage:
    html: str
    assets: list[tuple[Path, str]] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def split_paragraphs(body: str) -> list[str]:
    return [" ".join(chunk.split()) for chunk in _PARAGRAPH_BREAK.split(body) if chunk.strip()]


def _format_cell(value: Any) -> str:
    if isinstance(value, float):
        return "" if pd.isna(value) else f"{value:.4g}"
    if isinstance(value, pd.Timestamp):
        return value.date().isoformat()
    return str(value)


def _asset_name(source: Path, taken: dict[str, Path], slug: str) -> tuple[str, bool]:
    """Output file name for an image and whether it still has to be copied."""
    resolved = source.resolve()
    for name, path in taken.items():
        if path == resolved:
            return name, False
    name = source.name
    if name in taken or name.casefold() in _RESERVED_ASSET_NAMES:
        digest = hashlib.sha1(str(resolved).encode("utf-8")).hexdigest()[:8]
        name = f"{source.stem}-{digest}{source.suffix}"
    if name in taken:
        raise FolioValidationError(f"Page '{slug}' has two images that map to '{name}'.")
    taken[name] = resolved
    return name, True


def _load_page_artifact(page: PageDocument) -> tuple[Artifact | None, str | None]:
    path = page.artifact_path()
    if path is None:
        return None, f"Page '{page.slug}' declares no artifact."
    try:
        return Artifact.load(path), None
    except FolioArtifactError as exc:
        return None, f"Page '{page.slug}': artifact {path} could not be loaded ({exc})."


class _PlotlyJsInclusion:
    """First figure on a page carries the plotly.js loader; later ones reuse it."""

    def __init__(self, mode: str) -> None:
        self.mode = mode
        self.included = False

    def next(self) -> bool | str:
        if self.included:
            return False
        self.included = True
        return "cdn" if self.mode == "cdn" else True


def _figure_block(
    block: FigureBlock,
    artifact: Artifact | None,
    artifact_problem: str | None,
    plotly_js: _PlotlyJsInclusion,
    warnings: list[str],
) -> dict[str, Any]:
    builder = get_chart_builder(block.chart)
    rendered: dict[str, Any] = {"type": "figure", "caption": block.caption, "html": None}
    if artifact is None:
        message = artifact_problem or "artifact unavailable"
        warnings.append(f"{message} Chart '{block.chart}' skipped.")
        rendered["placeholder"] = f"Chart '{block.chart}' unavailable: {message}"
        return rendered
    try:
        fig = builder(artifact)
    except FolioArtifactError as exc:
        warnings.append(f"Chart '{block.chart}' skipped: {exc}")
        rendered["placeholder"] = f"Chart '{block.chart}' unavailable: {exc}"
        return rendered
    rendered["html"] = figure_to_html(fig, include_plotlyjs=plotly_js.next())
    return rendered


def _table_block(
    block: TableBlock,
    artifact: Artifact | None,
    artifact_problem: str | None,
    warnings: list[str],
) -> dict[str, Any]:
    rendered: dict[str, Any] = {
        "type": "table",
        "caption": block.caption,
        "columns": [],
        "rows": None,
        "truncated": False,
        "total_rows": 0,
    }
    frame = artifact.table(block.source) if artifact is not None else None
    if frame is None:
        message = artifact_problem or f"artifact has no '{block.source}' table"
        warnings.append(f"Table '{block.source}' skipped: {message}")
        rendered["placeholder"] = f"Table '{block.source}' unavailable: {message}"
        return rendered
    columns = block.columns or list(frame.columns)
    missing = [c for c in columns if c not in frame.columns]
    if missing:
        raise FolioValidationError(
            f"Table '{block.source}' has no column(s) {missing}. Available: {list(frame.columns)}"
        )
    view = frame.loc[:, columns].head(block.max_rows)
    rendered.update(
        columns=columns,
        rows=[[_format_cell(v) for v in row] for row in view.itertuples(index=False)],
        truncated=len(frame) > block.max_rows,
        total_rows=len(frame),
    )
    return rendered


def render_page(
    page: PageDocument,
    env: Environment,
    site: SiteConfig,
    run_id: str = "",
) -> RenderedPage:
    """Render one page document to HTML.

    Returns
    -------
    RenderedPage
        ``assets`` lists ``(source, output_name)`` pairs for image blocks that
        the caller copies next to the page. ``warnings`` collects skipped
        charts and tables.
    """
    warnings: list[str] = []
    assets: list[tuple[Path, str]] = []
    asset_names: dict[str, Path] = {}
    needs_artifact = any(isinstance(b, (FigureBlock, TableBlock)) for b in page.blocks)
    artifact, artifact_problem = (None, None)
    if needs_artifact:
        artifact, artifact_problem = _load_page_artifact(page)
    plotly_js = _PlotlyJsInclusion(site.plotly_js)

    blocks: list[dict[str, Any]] = []
    for block in page.blocks:
        if isinstance(block, TextBlock):
            blocks.append({"type": "text", "paragraphs": split_paragraphs(block.body)})
        elif isinstance(block, CodeBlock):
            blocks.append({"type": "code", "language": block.language, "body": block.body})
        elif isinstance(block, FigureBlock):
            blocks.append(_figure_block(block, artifact, artifact_problem, plotly_js, warnings))
        elif isinstance(block, TableBlock):
            blocks.append(_table_block(block, artifact, artifact_problem, warnings))
        elif isinstance(block, ImageBlock):
            source = page.asset_path(block.src)
            if not source.exists():
                raise FolioValidationError(f"Page '{page.slug}' image not found: {source}")
            name, is_new = _asset_name(source, asset_names, page.slug)
            if is_new:
                assets.append((source, name))
            blocks.append(
                {"type": "image", "src": name, "alt": block.alt, "caption": block.caption}
            )

    for message in warnings:
        log_event(
            LOGGER,
            logging.WARNING,
            "page block skipped",
            run_id=run_id,
            artifact_path=str(page.artifact_path()) if page.artifact else None,
            task_type="site",
            page=page.slug,
            detail=message,
        )

    html = env.get_template("page.html").render(
        site=site,
        page=page,
        blocks=blocks,
        root="../",
        has_static=site.static_dir is not None,
    )
    return RenderedPage(html=html, assets=assets, warnings=warnings)


def render_index(pages: list[PageDocument], env: Environment, site: SiteConfig) -> str:
    return env.get_template("index.html").render(
        site=site,
        pages=pages,
        root="",
        has_static=site.static_dir is not None,
    )
