"""Sequence discovery, cache decisions, builds, staging and pruning."""

from __future__ import annotations

import asyncio
import logging
import shutil
from dataclasses import dataclass, field

from ledgerbuild.bundler import Bundler, ViteBundler
from ledgerbuild.cache import BuildCache
from ledgerbuild.config import BuildConfig
from ledgerbuild.hashing import hash_files
from ledgerbuild.imports import collect_page_files, collect_server_files
from ledgerbuild.logging import bind_unit, clear_context
from ledgerbuild.pages import Entry, discover_entries, filter_entries
from ledgerbuild.pages.builder import build_page
from ledgerbuild.pages.templates import StageReport, plan_templates, stage_templates
from ledgerbuild.server import build_server, write_router
from ledgerbuild.tasks import run_with_concurrency

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class BuildReport:
    discovered: list[str] = field(default_factory=list)
    built_pages: list[str] = field(default_factory=list)
    skipped_pages: list[str] = field(default_factory=list)
    server_built: bool = False
    server_skipped_reason: str | None = None
    templates: StageReport = field(default_factory=StageReport)
    pruned: list[str] = field(default_factory=list)
    cache_saved: bool = False
    cache_recovered: bool = False

    @property
    def rebuilt_units(self) -> int:
        return len(self.built_pages) + int(self.server_built) + len(self.templates.copied)


def _page_digest(config: BuildConfig, name: str) -> str:
    return hash_files(collect_page_files(config, name))


def _server_digest(config: BuildConfig) -> str:
    return hash_files(collect_server_files(config))


async def _maybe_build_server(
    config: BuildConfig,
    bundler: Bundler,
    cache: BuildCache,
    report: BuildReport,
) -> None:
    if config.skip_server:
        logger.info("Skipping server build (--skip-server)")
        report.server_skipped_reason = "skip-server"
        return
    digest = await asyncio.to_thread(_server_digest, config)
    if config.only_changed and not cache.is_stale("server", "", digest, config.server_artifact):
        logger.info("Skipping server build (no changes detected)")
        report.server_skipped_reason = "unchanged"
        return
    bind_unit("server")
    try:
        await build_server(config, bundler)
    finally:
        clear_context()
    cache.record("server", "", digest)
    report.server_built = True


async def _plan_pages(
    config: BuildConfig,
    entries: list[Entry],
    cache: BuildCache,
    report: BuildReport,
) -> list[tuple[Entry, str]]:
    planned: list[tuple[Entry, str]] = []
    for entry in entries:
        if entry.markup_path is not None and not entry.markup_path.is_file():
            logger.warning("Page markup not found: %s; skipping", entry.markup_path)
            report.skipped_pages.append(entry.name)
            continue
        if entry.uses_shared_template:
            logger.info("Page %r has no index.html; using the shared template", entry.name)
        digest = await asyncio.to_thread(_page_digest, config, entry.name)
        artifact = config.page_artifact(entry.name)
        if config.only_changed and not cache.is_stale("pages", entry.name, digest, artifact):
            report.skipped_pages.append(entry.name)
            continue
        planned.append((entry, digest))
    return planned


def _prune(
    config: BuildConfig,
    cache: BuildCache,
    page_names: list[str],
    template_keys: list[str],
) -> list[str]:
    pruned: list[str] = []
    try:
        pruned += cache.prune("pages", page_names, config.page_artifact)
        pruned += cache.prune("templates", template_keys, config.template_artifact)
    except OSError:
        logger.warning("Pruning stale artifacts failed", exc_info=True)
    return pruned


def _copy_manifest(config: BuildConfig) -> None:
    if not config.manifest.is_file():
        logger.info("No local %s found (skipping copy)", config.manifest.name)
        return
    shutil.copyfile(config.manifest, config.out_dir / config.manifest.name)
    logger.info("Copied %s to %s", config.manifest.name, config.display_path(config.out_dir))


def _start(config: BuildConfig) -> tuple[list[Entry], list[Entry]]:
    config.out_dir.mkdir(parents=True, exist_ok=True)
    all_entries = discover_entries(config.pages_root)
    return all_entries, filter_entries(all_entries, config.pages)


def _finish(config: BuildConfig, cache: BuildCache, report: BuildReport) -> None:
    """Stage templates, prune, copy the manifest and persist the cache."""
    plans = plan_templates(config.pages_root, report.discovered)
    report.templates = stage_templates(plans, config, cache)
    report.pruned = _prune(config, cache, report.discovered, [plan.key for plan in plans])

    _copy_manifest(config)
    shutil.rmtree(config.temp_root, ignore_errors=True)
    report.cache_saved = cache.save()

    listing = sorted(path.name for path in config.out_dir.iterdir())
    logger.info("Build finished; %s contains: %s", config.display_path(config.out_dir), listing)


async def run_build(config: BuildConfig, bundler: Bundler | None = None) -> BuildReport:
    """Run one full build. Fatal errors propagate and leave the cache unsaved."""
    bundler = bundler or ViteBundler(config)
    report = BuildReport()

    all_entries, entries = await asyncio.to_thread(_start, config)
    report.discovered = [entry.name for entry in all_entries]
    logger.info("Discovered pages: %s", ", ".join(report.discovered) or "(none)")

    await asyncio.to_thread(write_router, config, report.discovered)

    loaded = await asyncio.to_thread(BuildCache.load, config.cache_file)
    cache = loaded.cache
    report.cache_recovered = loaded.recovered

    await _maybe_build_server(config, bundler, cache, report)

    planned = await _plan_pages(config, entries, cache, report)
    if not planned:
        logger.info("No pages to build (filtered by --pages or unchanged with --changed)")
    else:
        logger.info("Building %d page(s) with concurrency=%d", len(planned), config.concurrency)

        async def _build_one(item: tuple[Entry, str]) -> None:
            entry, digest = item
            bind_unit(entry.name)
            await build_page(entry, config, bundler)
            cache.record("pages", entry.name, digest)
            report.built_pages.append(entry.name)

        await run_with_concurrency(planned, config.concurrency, _build_one)

    await asyncio.to_thread(_finish, config, cache, report)
    return report
