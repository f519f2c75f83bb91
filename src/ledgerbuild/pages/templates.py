"""Stage auxiliary markup files from the pages tree as server templates."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from ledgerbuild.cache import BuildCache
from ledgerbuild.config import BuildConfig
from ledgerbuild.hashing import hash_files
from ledgerbuild.imports import walk_files
from ledgerbuild.pages.discovery import PAGE_MARKUP_NAME

logger = logging.getLogger(__name__)

TEMPLATE_COLLISION_SUFFIX = ".template"


@dataclass(frozen=True, slots=True)
class TemplatePlan:
    key: str
    source: Path
    relative: str


@dataclass(slots=True)
class StageReport:
    copied: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)


def template_key(relative: str, page_names: frozenset[str]) -> str:
    """``reports/monthly.html`` -> ``reports.monthly``.

    A root-level file named like a page (``home.html`` next to ``home/``)
    becomes ``home.template`` so it cannot overwrite the built page.
    """
    *segments, file_name = relative.split("/")
    stem = file_name[: -len(".html")] if file_name.lower().endswith(".html") else file_name
    if not segments and stem in page_names:
        return f"{stem}{TEMPLATE_COLLISION_SUFFIX}"
    return ".".join([*segments, stem])


def plan_templates(pages_root: Path, page_names: Iterable[str]) -> list[TemplatePlan]:
    names = frozenset(page_names)
    plans: list[TemplatePlan] = []
    for path in walk_files(pages_root):
        if not path.name.lower().endswith(".html"):
            continue
        if path.name.lower() == PAGE_MARKUP_NAME:
            continue
        relative = path.relative_to(pages_root).as_posix()
        key = template_key(relative, names)
        if key:
            plans.append(TemplatePlan(key=key, source=path, relative=relative))
    plans.sort(key=lambda plan: plan.key)
    return plans


def stage_templates(
    plans: Iterable[TemplatePlan],
    config: BuildConfig,
    cache: BuildCache,
) -> StageReport:
    report = StageReport()
    for plan in plans:
        target = config.template_artifact(plan.key)
        try:
            digest = hash_files([plan.source])
            if config.only_changed and not cache.is_stale("templates", plan.key, digest, target):
                report.skipped.append(plan.key)
                continue
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(plan.source.read_text(encoding="utf-8"), encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            logger.warning("Failed to copy template %s", plan.relative, exc_info=True)
            report.failed.append(plan.key)
            continue
        cache.record("templates", plan.key, digest)
        report.copied.append(plan.key)
        logger.info("Copied template %s -> %s", plan.relative, config.display_path(target))
    return report
