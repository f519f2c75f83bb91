"""Adapter around the Vite CLI, the one bundler this pipeline wraps."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Protocol

from ledgerbuild.config import SERVER_ARTIFACT_NAME, BuildConfig
from ledgerbuild.errors import ArtifactNotFoundError, BundlerError

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "vite.ledgerbuild.config.mjs"
_OUTPUT_TAIL_CHARS = 4000

# Base config may export an object or a (possibly async) function of the env.
_CONFIG_TEMPLATE = """\
// GENERATED by ledgerbuild for a single build unit - do not edit
import {{ defineConfig, mergeConfig }} from 'vite';
{plugin_import}import base from {base_config};

export default defineConfig(async (env) => {{
  const resolved = typeof base === 'function' ? await base(env) : base;
  return mergeConfig(resolved ?? {{}}, {{
{plugins}    build: {build},
  }});
}});
"""


class Bundler(Protocol):
    async def bundle_server(self, entry: Path, out_dir: Path, work_dir: Path) -> Path:
        """Emit one IIFE bundle for ``entry`` and return its path."""
        ...

    async def bundle_page(self, input_html: Path, out_dir: Path, work_dir: Path) -> None:
        """Emit a single self-contained markup file for ``input_html``."""
        ...


def render_vite_config(
    base_config: Path,
    build: dict[str, Any],
    *,
    single_file: bool = False,
) -> str:
    plugin_import = ""
    plugins = ""
    if single_file:
        plugin_import = "import { viteSingleFile } from 'vite-plugin-singlefile';\n"
        plugins = "    plugins: [viteSingleFile({ useRecommendedBuildConfig: true })],\n"
    return _CONFIG_TEMPLATE.format(
        plugin_import=plugin_import,
        base_config=json.dumps(base_config.as_posix()),
        plugins=plugins,
        build=json.dumps(build, indent=2).replace("\n", "\n    "),
    )


def server_build_options(entry: Path, out_dir: Path) -> dict[str, Any]:
    return {
        "emptyOutDir": False,
        "outDir": out_dir.as_posix(),
        "sourcemap": False,
        "minify": False,
        "lib": {
            "entry": entry.as_posix(),
            "formats": ["iife"],
            "name": "globalThis",
            "fileName": "Code",
        },
        "rollupOptions": {
            "output": {"entryFileNames": SERVER_ARTIFACT_NAME, "extend": True},
        },
    }


def page_build_options(input_html: Path, out_dir: Path) -> dict[str, Any]:
    return {
        "outDir": out_dir.as_posix(),
        "emptyOutDir": True,
        "rollupOptions": {"input": input_html.as_posix()},
        "minify": True,
        "sourcemap": False,
    }


class ViteBundler:
    """Runs ``<command> build --config <generated config>`` per build unit."""

    def __init__(self, config: BuildConfig) -> None:
        self._config = config

    async def bundle_server(self, entry: Path, out_dir: Path, work_dir: Path) -> Path:
        source = render_vite_config(self._config.vite_config, server_build_options(entry, out_dir))
        await self._run(work_dir, source, unit="server")
        artifact = out_dir / SERVER_ARTIFACT_NAME
        if not artifact.is_file():
            raise ArtifactNotFoundError(f"bundler produced no {artifact}", unit="server")
        return artifact

    async def bundle_page(self, input_html: Path, out_dir: Path, work_dir: Path) -> None:
        source = render_vite_config(
            self._config.vite_config,
            page_build_options(input_html, out_dir),
            single_file=True,
        )
        await self._run(work_dir, source, unit=work_dir.name)

    async def _run(self, work_dir: Path, config_source: str, *, unit: str) -> None:
        work_dir.mkdir(parents=True, exist_ok=True)
        config_path = work_dir / CONFIG_FILE_NAME
        config_path.write_text(config_source, encoding="utf-8")
        argv = [*self._config.bundler_command, "build", "--config", str(config_path)]
        logger.debug("Running bundler for %s: %s", unit, " ".join(argv))

        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                cwd=str(self._config.project_root),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except OSError as exc:
            raise BundlerError(f"cannot start bundler {argv[0]!r}: {exc}", unit=unit) from exc

        try:
            stdout, _ = await asyncio.wait_for(
                proc.communicate(), timeout=self._config.bundler_timeout_s
            )
        except TimeoutError as exc:
            proc.kill()
            await proc.wait()
            raise BundlerError(
                f"bundler timed out after {self._config.bundler_timeout_s:.0f}s", unit=unit
            ) from exc

        output = stdout.decode("utf-8", errors="replace")
        if proc.returncode != 0:
            raise BundlerError(
                f"bundler exited with {proc.returncode}:\n{output[-_OUTPUT_TAIL_CHARS:]}",
                unit=unit,
            )
        logger.debug("Bundler output for %s:\n%s", unit, output)
