"""Built-in HTML templates and the jinja2 environment."""

from __future__ import annotations

from pathlib import Path

from jinja2 import ChoiceLoader, DictLoader, Environment, FileSystemLoader, StrictUndefined
from jinja2 import select_autoescape

from folio.config.models import SiteConfig

BASE_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <title>{% block title %}{{ site.title }}{% endblock %}</title>
  {% if has_static %}<link rel="stylesheet" href="{{ root }}static/style.css">{% endif %}
  <style>
    body { font-family: system-ui, sans-serif; max-width: 56rem; margin: 0 auto; padding: 1rem; }
    nav a { margin-right: 1rem; }
    pre { background: #f5f5f5; padding: 0.75rem; overflow-x: auto; }
    table { border-collapse: collapse; }
    th, td { border: 1px solid #ddd; padding: 0.25rem 0.5rem; text-align: left; }
    figure { margin: 1.5rem 0; }
    .placeholder { border: 1px dashed #c00; color: #c00; padding: 1rem; }
    .tags span { background: #eee; border-radius: 3px; margin-right: 0.25rem; padding: 0 0.25rem; }
  </style>
</head>
<body>
  <header>
    <h1><a href="{{ root }}index.html">{{ site.title }}</a></h1>
    {% if site.tagline %}<p>{{ site.tagline }}</p>{% endif %}
    {% if site.nav %}
    <nav>
      {% for link in site.nav %}<a href="{{ link.href }}">{{ link.label }}</a>{% endfor %}
    </nav>
    {% endif %}
  </header>
  <main>
  {% block content %}{% endblock %}
  </main>
  <footer>
    {% if site.author %}<p>&copy; {{ site.author }}</p>{% endif %}
  </footer>
</body>
</html>
"""

PAGE_TEMPLATE = """{% extends "base.html" %}
{% block title %}{{ page.title }} | {{ site.title }}{% endblock %}
{% block content %}
<article>
  <h2>{{ page.title }}</h2>
  {% if page.date %}<p><time datetime="{{ page.date.isoformat() }}">{{ page.date.isoformat() }}</time></p>{% endif %}
  {% if page.tags %}<p class="tags">{% for tag in page.tags %}<span>{{ tag }}</span>{% endfor %}</p>{% endif %}
  {% for block in blocks %}
    {% if block.type == "text" %}
      {% for paragraph in block.paragraphs %}<p>{{ paragraph }}</p>{% endfor %}
    {% elif block.type == "code" %}
      <pre><code class="language-{{ block.language }}">{{ block.body }}</code></pre>
    {% elif block.type == "figure" %}
      <figure>
        {% if block.html %}{{ block.html | safe }}{% else %}<div class="placeholder">{{ block.placeholder }}</div>{% endif %}
        {% if block.caption %}<figcaption>{{ block.caption }}</figcaption>{% endif %}
      </figure>
    {% elif block.type == "table" %}
      <figure>
        {% if block.rows is none %}
        <div class="placeholder">{{ block.placeholder }}</div>
        {% else %}
        <table>
          <thead><tr>{% for column in block.columns %}<th>{{ column }}</th>{% endfor %}</tr></thead>
          <tbody>
          {% for row in block.rows %}<tr>{% for cell in row %}<td>{{ cell }}</td>{% endfor %}</tr>{% endfor %}
          </tbody>
        </table>
        {% if block.truncated %}<p><small>Showing {{ block.rows | length }} of {{ block.total_rows }} rows.</small></p>{% endif %}
        {% endif %}
        {% if block.caption %}<figcaption>{{ block.caption }}</figcaption>{% endif %}
      </figure>
    {% elif block.type == "image" %}
      <figure>
        <img src="{{ block.src }}" alt="{{ block.alt }}">
        {% if block.caption %}<figcaption>{{ block.caption }}</figcaption>{% endif %}
      </figure>
    {% endif %}
  {% endfor %}
</article>
{% endblock %}
"""

INDEX_TEMPLATE = """{% extends "base.html" %}
{% block content %}
<ul class="pages">
{% for page in pages %}
  <li>
    <a href="{{ page.slug }}/index.html">{{ page.title }}</a>
    {% if page.date %}<small>{{ page.date.isoformat() }}</small>{% endif %}
    {% if page.summary %}<p>{{ page.summary }}</p>{% endif %}
  </li>
{% else %}
  <li>No pages yet.</li>
{% endfor %}
</ul>
{% endblock %}
"""

SITEMAP_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
{% for entry in entries %}  <url><loc>{{ entry.loc }}</loc>{% if entry.lastmod %}<lastmod>{{ entry.lastmod }}</lastmod>{% endif %}</url>
{% endfor %}</urlset>
"""

BUILTIN_TEMPLATES = {
    "base.html": BASE_TEMPLATE,
    "page.html": PAGE_TEMPLATE,
    "index.html": INDEX_TEMPLATE,
    "sitemap.xml": SITEMAP_TEMPLATE,
}


def build_environment(site: SiteConfig) -> Environment:
    """Templates from ``site.template_dir`` win over the built-ins by name."""
    loaders = []
    if site.template_dir is not None:
        loaders.append(FileSystemLoader(str(Path(site.template_dir))))
    loaders.append(DictLoader(BUILTIN_TEMPLATES))
    return Environment(
        loader=ChoiceLoader(loaders),
        autoescape=select_autoescape(["html", "xml"]),
        undefined=StrictUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
    )
