"""Generate the backend ``doGet`` that serves pre-built pages by name."""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from pathlib import Path

from ledgerbuild.config import BuildConfig

logger = logging.getLogger(__name__)

_ROUTER_TEMPLATE = """\
// GENERATED by ledgerbuild - do not edit
export function doGet(e: GoogleAppsScript.Events.DoGet): GoogleAppsScript.HTML.HtmlOutput {{
  const page = (e && e.parameter && e.parameter.page ? String(e.parameter.page) : '').trim();
  const known = new Set({known});
  const target = known.has(page) ? page : {default};
  return HtmlService.createHtmlOutputFromFile(target);
}}
"""


def default_page(names: Sequence[str], preferred: str = "home") -> str:
    if preferred in names:
        return preferred
    return names[0] if names else preferred


def render_router(names: Sequence[str], preferred: str = "home") -> str:
    return _ROUTER_TEMPLATE.format(
        known=json.dumps(list(names), separators=(",", ":")),
        default=json.dumps(default_page(names, preferred)),
    )


def write_router(config: BuildConfig, names: Sequence[str]) -> Path:
    path = config.router_path
    path.parent.mkdir(parents=True, exist_ok=True)
    source = render_router(names, config.default_page)
    if path.exists() and path.read_text(encoding="utf-8") == source:
        # Identical content: keep the existing mtime.
        logger.debug("Router unchanged: %s", path)
        return path
    path.write_text(source, encoding="utf-8")
    logger.info("Wrote %s", config.display_path(path))
    return path
