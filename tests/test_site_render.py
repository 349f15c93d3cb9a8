from __future__ import annotations

import logging
from pathlib import Path

import pytest

pytest.importorskip("plotly")

from folio.api.exceptions import FolioValidationError  # noqa: E402
from folio.config.models import SiteConfig  # noqa: E402
from folio.site.content import PageDocument  # noqa: E402
from folio.site.render import render_index, render_page, split_paragraphs  # noqa: E402
from folio.site.templates import build_environment  # noqa: E402


def _site(tmp_path: Path, **overrides: object) -> SiteConfig:
    payload = {
        "title": "Folio",
        "content_dir": str(tmp_path / "content"),
        "output_dir": str(tmp_path / "public"),
    }
    payload.update(overrides)
    return SiteConfig.model_validate(payload)


def _page(tmp_path: Path, blocks: list[dict], artifact: Path | str | None = None) -> PageDocument:
    page = PageDocument.model_validate(
        {
            "slug": "demo",
            "title": "Demo <Page>",
            "artifact": str(artifact) if artifact is not None else None,
            "blocks": blocks,
        }
    )
    page.source_path = tmp_path / "content" / "demo.yaml"
    return page


def _render(tmp_path: Path, page: PageDocument, **site_overrides: object):
    site = _site(tmp_path, **site_overrides)
    return render_page(page, build_environment(site), site, run_id="rid_render")


def test_split_paragraphs() -> None:
    assert split_paragraphs("one\ntwo\n\n  three  \n \n\n") == ["one two", "three"]
    assert split_paragraphs("   ") == []


def test_text_and_code_are_escaped(tmp_path) -> None:
    page = _page(
        tmp_path,
        [
            {"type": "text", "body": "Hello <script>alert(1)</script>\n\nSecond paragraph."},
            {"type": "code", "body": "x = a < b"},
        ],
    )
    rendered = _render(tmp_path, page)
    assert "<script>alert" not in rendered.html
    assert "&lt;script&gt;" in rendered.html
    assert "<p>Second paragraph.</p>" in rendered.html
    assert '<code class="language-python">x = a &lt; b</code>' in rendered.html
    assert "Demo &lt;Page&gt; | Folio" in rendered.html
    assert rendered.warnings == []


def test_figures_include_plotlyjs_once(tmp_path, cluster_artifact) -> None:
    page = _page(
        tmp_path,
        [
            {"type": "figure", "chart": "cluster_scatter", "caption": "Moods"},
            {"type": "figure", "chart": "elbow"},
            {"type": "figure", "chart": "listening_timeline"},
        ],
        artifact=cluster_artifact(),
    )
    rendered = _render(tmp_path, page)
    assert rendered.html.count('class="plotly-graph-div"') == 3
    assert rendered.html.count('src="https://cdn.plot.ly/') == 1
    assert "<figcaption>Moods</figcaption>" in rendered.html
    assert rendered.warnings == []


def test_missing_artifact_renders_placeholder_and_logs(tmp_path, caplog) -> None:
    page = _page(
        tmp_path,
        [
            {"type": "figure", "chart": "subset_scores"},
            {"type": "table", "source": "cluster_profile"},
        ],
        artifact=tmp_path / "missing-run",
    )
    with caplog.at_level(logging.WARNING, logger="folio.site"):
        rendered = _render(tmp_path, page)
    assert len(rendered.warnings) == 2
    assert rendered.html.count('class="placeholder"') == 2
    assert "plotly-graph-div" not in rendered.html
    events = [r for r in caplog.records if getattr(r, "event_message", "") == "page block skipped"]
    assert len(events) == 2
    assert events[0].payload["page"] == "demo"


def test_missing_payload_renders_placeholder(tmp_path, cluster_artifact) -> None:
    page = _page(
        tmp_path, [{"type": "figure", "chart": "confusion_matrix"}], artifact=cluster_artifact()
    )
    rendered = _render(tmp_path, page)
    assert "no 'confusion' payload" in rendered.warnings[0]
    assert 'class="placeholder"' in rendered.html


def test_unknown_chart_raises(tmp_path, cluster_artifact) -> None:
    page = _page(tmp_path, [{"type": "figure", "chart": "pie"}], artifact=cluster_artifact())
    with pytest.raises(FolioValidationError, match="Unknown chart"):
        _render(tmp_path, page)


def test_table_truncation_and_columns(tmp_path, cluster_artifact) -> None:
    path = cluster_artifact()
    page = _page(
        tmp_path,
        [
            {"type": "table", "source": "cluster_profile", "max_rows": 2, "caption": "Profile"},
            {"type": "table", "source": "metrics"},
            {"type": "table", "source": "elbow", "columns": ["k", "inertia"]},
        ],
        artifact=path,
    )
    rendered = _render(tmp_path, page)
    assert "Showing 2 of 3 rows." in rendered.html
    assert "<td>silhouette</td><td>0.71</td>" in rendered.html
    assert "<th>k</th><th>inertia</th></tr>" in rendered.html

    bad = _page(
        tmp_path, [{"type": "table", "source": "elbow", "columns": ["nope"]}], artifact=path
    )
    with pytest.raises(FolioValidationError, match="has no column"):
        _render(tmp_path, bad)


def test_image_blocks_are_collected_as_assets(tmp_path) -> None:
    content = tmp_path / "content"
    content.mkdir(parents=True, exist_ok=True)
    (content / "cover.png").write_bytes(b"\x89PNG")
    page = _page(tmp_path, [{"type": "image", "src": "cover.png", "alt": "Cover art"}])
    rendered = _render(tmp_path, page)
    assert rendered.assets == [(content / "cover.png", "cover.png")]
    assert '<img src="cover.png" alt="Cover art">' in rendered.html

    missing = _page(tmp_path, [{"type": "image", "src": "gone.png"}])
    with pytest.raises(FolioValidationError, match="image not found"):
        _render(tmp_path, missing)


def test_render_index_lists_pages(tmp_path) -> None:
    site = _site(tmp_path, tagline="Data projects")
    env = build_environment(site)
    pages = [
        PageDocument.model_validate({"slug": "one", "title": "One", "summary": "First & best"}),
        PageDocument.model_validate({"slug": "two", "title": "Two", "date": "2024-05-01"}),
    ]
    html = render_index(pages, env, site)
    assert '<a href="one/index.html">One</a>' in html
    assert "First &amp; best" in html
    assert "2024-05-01" in html
    assert "<p>Data projects</p>" in html
    assert "No pages yet." in render_index([], env, site)
