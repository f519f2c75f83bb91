"""Bundle the backend and rewrite it for a runtime without modules."""

from __future__ import annotations

import asyncio
import logging
import shutil
from dataclasses import dataclass
from pathlib import Path

from ledgerbuild.bundler import Bundler
from ledgerbuild.config import BuildConfig
from ledgerbuild.errors import (
    JsSyntaxError,
    LedgerBuildError,
    ParserUnavailableError,
    ServerSyntaxError,
)
from ledgerbuild.jsparse import check_syntax
from ledgerbuild.server.transform import transform_bundle

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ServerBuild:
    artifact: Path
    strategy: str | None
    validated: bool
    degraded: bool = False


def _validate(code: str, config: BuildConfig) -> bool:
    """Return True when parsed, False when the parser is unavailable."""
    try:
        check_syntax(code)
    except ParserUnavailableError as exc:
        logger.warning("Skipping syntax validation of server code: %s", exc)
        return False
    except JsSyntaxError as exc:
        diagnostic = config.server_diagnostic
        try:
            diagnostic.write_text(code, encoding="utf-8")
        except OSError:
            logger.warning("Could not save invalid server output to %s", diagnostic)
        raise ServerSyntaxError(
            f"syntax error in transformed server code: {exc} "
            f"(invalid output saved as {config.display_path(diagnostic)})",
            diagnostic_path=diagnostic,
        ) from exc
    return True


def _write_server(bundle_path: Path, config: BuildConfig) -> ServerBuild:
    dest = config.server_artifact
    dest.parent.mkdir(parents=True, exist_ok=True)
    result = transform_bundle(bundle_path.read_text(encoding="utf-8"))
    if result.code is None:
        logger.warning(
            "Could not extract the server function body; copying the raw bundle. "
            "It may not load in the script runtime."
        )
        shutil.copyfile(bundle_path, dest)
        return ServerBuild(artifact=dest, strategy=None, validated=False, degraded=True)

    validated = _validate(result.code, config)
    dest.write_text(result.code.strip() + "\n", encoding="utf-8")
    logger.info("Wrote %s (extracted via %s)", config.display_path(dest), result.strategy)
    return ServerBuild(artifact=dest, strategy=result.strategy, validated=validated)


def _reset_work_dir(config: BuildConfig, work_dir: Path) -> None:
    config.legacy_aggregator.unlink(missing_ok=True)
    shutil.rmtree(work_dir, ignore_errors=True)


async def build_server(config: BuildConfig, bundler: Bundler) -> ServerBuild:
    work_dir = config.server_temp_dir
    out_dir = work_dir / "out"
    logger.info("Building server code -> %s", config.display_path(config.server_artifact))
    await asyncio.to_thread(_reset_work_dir, config, work_dir)
    try:
        bundle_path = await bundler.bundle_server(config.server_entry, out_dir, work_dir)
        return await asyncio.to_thread(_write_server, bundle_path, config)
    except OSError as exc:
        raise LedgerBuildError(f"error processing server bundle: {exc}", unit="server") from exc
    finally:
        await asyncio.to_thread(shutil.rmtree, work_dir, ignore_errors=True)
