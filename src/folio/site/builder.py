"""Static site build."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from uuid import uuid4

from folio.api.exceptions import FolioValidationError
from folio.api.logging import log_event
from folio.api.types import SiteBuildResult
from folio.config.models import SiteConfig
from folio.site.content import PageDocument, discover_pages
from folio.site.render import render_index, render_page
from folio.site.templates import build_environment

LOGGER = logging.getLogger("folio.site")


def _prepare_output_dir(output_dir: Path, content_dir: Path) -> None:
    resolved_out = output_dir.resolve()
    resolved_content = content_dir.resolve()
    if resolved_content == resolved_out or resolved_out in resolved_content.parents:
        raise FolioValidationError(
            f"output_dir {output_dir} would delete content_dir {content_dir}."
        )
    if output_dir.exists():
        shutil.rmtree(output_dir)
    output_dir.mkdir(parents=True)


def _sitemap_entries(base_url: str, pages: list[PageDocument]) -> list[dict[str, str | None]]:
    root = base_url.rstrip("/") + "/"
    entries: list[dict[str, str | None]] = [{"loc": root, "lastmod": None}]
    for page in pages:
        entries.append(
            {
                "loc": f"{root}{page.slug}/",
                "lastmod": page.date.isoformat() if page.date else None,
            }
        )
    return entries


def build_site(site: SiteConfig, run_id: str | None = None) -> SiteBuildResult:
    """Render every page under ``site.content_dir`` into ``site.output_dir``.

    Notes
    -----
    - ``output_dir`` is removed and recreated on every build.
    - ``static_dir`` is copied to ``<output_dir>/static``.
    - ``sitemap.xml`` is only written when ``base_url`` is set.
    """
    run_id = run_id or uuid4().hex
    content_dir = Path(site.content_dir)
    output_dir = Path(site.output_dir)
    pages = discover_pages(content_dir, include_drafts=site.include_drafts)
    _prepare_output_dir(output_dir, content_dir)
    env = build_environment(site)
    files: list[str] = []
    warnings: list[str] = []

    if site.static_dir is not None:
        static_dir = Path(site.static_dir)
        if not static_dir.is_dir():
            raise FolioValidationError(f"static_dir does not exist: {static_dir}")
        shutil.copytree(static_dir, output_dir / "static")
        files.extend(
            sorted(
                p.relative_to(output_dir).as_posix()
                for p in (output_dir / "static").rglob("*")
                if p.is_file()
            )
        )

    for page in pages:
        rendered = render_page(page, env, site, run_id=run_id)
        page_dir = output_dir / page.slug
        page_dir.mkdir(parents=True, exist_ok=True)
        (page_dir / "index.html").write_text(rendered.html, encoding="utf-8")
        files.append(f"{page.slug}/index.html")
        for source, name in rendered.assets:
            shutil.copy2(source, page_dir / name)
            files.append(f"{page.slug}/{name}")
        warnings.extend(rendered.warnings)
        log_event(
            LOGGER,
            logging.INFO,
            "page rendered",
            run_id=run_id,
            artifact_path=str(page.artifact_path()) if page.artifact else None,
            task_type="site",
            page=page.slug,
            n_blocks=len(page.blocks),
            n_warnings=len(rendered.warnings),
        )

    (output_dir / "index.html").write_text(render_index(pages, env, site), encoding="utf-8")
    files.append("index.html")

    if site.base_url:
        sitemap = env.get_template("sitemap.xml").render(
            entries=_sitemap_entries(site.base_url, pages)
        )
        (output_dir / "sitemap.xml").write_text(sitemap, encoding="utf-8")
        files.append("sitemap.xml")

    log_event(
        LOGGER,
        logging.INFO,
        "site build completed",
        run_id=run_id,
        artifact_path=str(output_dir),
        task_type="site",
        n_pages=len(pages),
        n_files=len(files),
        n_warnings=len(warnings),
    )
    return SiteBuildResult(
        output_dir=str(output_dir),
        pages=[page.slug for page in pages],
        files=files,
        warnings=warnings,
    )
