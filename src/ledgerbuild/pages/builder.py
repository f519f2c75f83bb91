"""Build one page into a single self-contained markup file."""

from __future__ import annotations

import asyncio
import logging
import shutil
from pathlib import Path

from ledgerbuild.bundler import Bundler
from ledgerbuild.config import BuildConfig
from ledgerbuild.errors import ArtifactNotFoundError, TemplateMissingError
from ledgerbuild.imports import walk_files
from ledgerbuild.pages.discovery import Entry

logger = logging.getLogger(__name__)

TEMPLATE_PLACEHOLDERS = ("{{PAGE_NAME}}", "{{TITLE}}")

_MOUNT_SCRIPT = """\
import {{ StrictMode }} from 'react';
import {{ createRoot }} from 'react-dom/client';
import '@/client/index.css';
import App from '@/client/pages/{name}/App';

createRoot(document.getElementById('root')!).render(
  <StrictMode>
    <App />
  </StrictMode>,
);
"""


def render_markup(entry: Entry, config: BuildConfig) -> str:
    if entry.markup_path is not None:
        if not entry.markup_path.is_file():
            raise TemplateMissingError(
                f"markup for page {entry.name!r} not found: {entry.markup_path}", unit=entry.name
            )
        return entry.markup_path.read_text(encoding="utf-8")

    template = config.shared_template
    if not template.is_file():
        raise TemplateMissingError(
            f"page {entry.name!r} has no index.html and no shared template at {template}",
            unit=entry.name,
        )
    content = template.read_text(encoding="utf-8")
    for placeholder in TEMPLATE_PLACEHOLDERS:
        content = content.replace(placeholder, entry.name)
    return content


def render_mount_script(name: str) -> str:
    return _MOUNT_SCRIPT.format(name=name)


def find_markup(root: Path) -> Path | None:
    for path in walk_files(root):
        if path.name.lower().endswith(".html"):
            return path
    return None


def _prepare(entry: Entry, config: BuildConfig, page_dir: Path) -> Path:
    markup = render_markup(entry, config)
    page_dir.mkdir(parents=True, exist_ok=True)
    index = page_dir / "index.html"
    index.write_text(markup, encoding="utf-8")
    (page_dir / "main.tsx").write_text(render_mount_script(entry.name), encoding="utf-8")
    return index


def _publish(entry: Entry, config: BuildConfig, out_dir: Path) -> Path:
    produced = find_markup(out_dir)
    if produced is None:
        listing = sorted(p.name for p in out_dir.iterdir()) if out_dir.is_dir() else []
        logger.error("No markup in %s after build; contents: %s", out_dir, listing)
        raise ArtifactNotFoundError(
            f"no .html produced for page {entry.name!r} in {out_dir}", unit=entry.name
        )
    target = config.page_artifact(entry.name)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(produced.read_text(encoding="utf-8"), encoding="utf-8")
    return target


async def build_page(entry: Entry, config: BuildConfig, bundler: Bundler) -> Path:
    """Bundle ``entry`` and copy its markup to ``<out>/<name>.html``.

    The per-page temporary directory is removed whether or not the build
    succeeds.
    """
    work_dir = config.page_temp_dir(entry.name)
    page_dir = work_dir / "page"
    out_dir = work_dir / "out"
    await asyncio.to_thread(shutil.rmtree, work_dir, ignore_errors=True)
    logger.info("Building page %s", entry.name)
    try:
        index = await asyncio.to_thread(_prepare, entry, config, page_dir)
        await bundler.bundle_page(index, out_dir, work_dir)
        target = await asyncio.to_thread(_publish, entry, config, out_dir)
    finally:
        await asyncio.to_thread(shutil.rmtree, work_dir, ignore_errors=True)
    logger.info("Wrote %s", config.display_path(target))
    return target
