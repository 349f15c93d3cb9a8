"""Narrative pages and static HTML output."""

from folio.site.builder import build_site
from folio.site.charts import CHART_BUILDERS, get_chart_builder
from folio.site.content import PageDocument, discover_pages, load_page
from folio.site.render import render_index, render_page, split_paragraphs
from folio.site.templates import BUILTIN_TEMPLATES, build_environment

__all__ = [
    "BUILTIN_TEMPLATES",
    "CHART_BUILDERS",
    "PageDocument",
    "build_environment",
    "build_site",
    "discover_pages",
    "get_chart_builder",
    "load_page",
    "render_index",
    "render_page",
    "split_paragraphs",
]
