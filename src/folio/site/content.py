"""Narrative page documents."""

from __future__ import annotations

import datetime as dt
import re
from pathlib import Path
from typing import Annotated, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from folio.api.exceptions import FolioValidationError

_SLUG_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
PAGE_SUFFIXES = (".yaml", ".yml")


class TextBlock(BaseModel):
    model_config = ConfigDict(extra="forbid")
    type: Literal["text"] = "text"
    body: str


class CodeBlock(BaseModel):
    model_config = ConfigDict(extra="forbid")
    type: Literal["code"] = "code"
    language: str = "python"
    body: str


class FigureBlock(BaseModel):
    model_config = ConfigDict(extra="forbid")
    type: Literal["figure"] = "figure"
    chart: str
    caption: str | None = None


class TableBlock(BaseModel):
    model_config = ConfigDict(extra="forbid")
    type: Literal["table"] = "table"
    source: str
    columns: list[str] | None = None
    max_rows: int = Field(default=20, ge=1)
    caption: str | None = None


class ImageBlock(BaseModel):
    model_config = ConfigDict(extra="forbid")
    type: Literal["image"] = "image"
    src: str
    alt: str = ""
    caption: str | None = None


Block = Annotated[
    TextBlock | CodeBlock | FigureBlock | TableBlock | ImageBlock,
    Field(discriminator="type"),
]


class PageDocument(BaseModel):
    """One narrative page.

    ``artifact`` is resolved against the document's directory when relative.
    ``source_path`` is filled by :func:`load_page` and never read from YAML.
    """

    model_config = ConfigDict(extra="forbid")
    slug: str
    title: str
    date: dt.date | None = None
    summary: str | None = None
    tags: list[str] = Field(default_factory=list)
    draft: bool = False
    artifact: str | None = None
    order: int = 0
    blocks: list[Block] = Field(default_factory=list)
    source_path: Path | None = Field(default=None, exclude=True)

    @field_validator("slug")
    @classmethod
    def _validate_slug(cls, value: str) -> str:
        if not _SLUG_PATTERN.match(value):
            raise ValueError(
                "slug must be lowercase letters, digits and single hyphens (e.g. 'my-page')"
            )
        return value

    @field_validator("title")
    @classmethod
    def _validate_title(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("title must not be blank")
        return value

    def artifact_path(self) -> Path | None:
        if self.artifact is None:
            return None
        path = Path(self.artifact)
        if path.is_absolute() or self.source_path is None:
            return path
        return self.source_path.parent / path

    def asset_path(self, src: str) -> Path:
        path = Path(src)
        if path.is_absolute() or self.source_path is None:
            return path
        return self.source_path.parent / path


def load_page(path: str | Path) -> PageDocument:
    source = Path(path)
    if not source.exists():
        raise FolioValidationError(f"Page document does not exist: {source}")
    try:
        payload = yaml.safe_load(source.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise FolioValidationError(f"Page {source} is not valid YAML: {exc}") from exc
    if not isinstance(payload, dict):
        raise FolioValidationError(f"Page {source} must deserialize to a mapping object.")
    try:
        page = PageDocument.model_validate(payload)
    except ValidationError as exc:
        raise FolioValidationError(f"Invalid page document {source}: {exc}") from exc
    page.source_path = source
    return page


def _sort_key(page: PageDocument) -> tuple[int, int]:
    ordinal = page.date.toordinal() if page.date is not None else 0
    return page.order, -ordinal


def discover_pages(content_dir: str | Path, include_drafts: bool = False) -> list[PageDocument]:
    """Load every page document under ``content_dir``.

    Pages are sorted by ``order`` ascending, then by ``date`` newest first.
    Drafts are skipped unless ``include_drafts`` is set.
    """
    root = Path(content_dir)
    if not root.is_dir():
        raise FolioValidationError(f"Content directory does not exist: {root}")
    pages: list[PageDocument] = []
    seen: dict[str, Path] = {}
    for path in sorted(root.rglob("*")):
        if path.suffix.lower() not in PAGE_SUFFIXES or not path.is_file():
            continue
        page = load_page(path)
        if page.draft and not include_drafts:
            continue
        if page.slug in seen:
            raise FolioValidationError(
                f"Duplicate page slug '{page.slug}' in {seen[page.slug]} and {path}."
            )
        seen[page.slug] = path
        pages.append(page)
    return sorted(pages, key=_sort_key)
