"""Build configuration contract."""

from __future__ import annotations

import shlex
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from ledgerbuild.errors import ConfigError

CACHE_FILE_NAME = ".build-cache.json"
SERVER_ARTIFACT_NAME = "Code.js"
SERVER_DIAGNOSTIC_NAME = "Code.invalid.js"
ROUTER_FILE_NAME = "doGet.generated.ts"
LEGACY_AGGREGATOR_NAME = "index.all.generated.ts"
MANIFEST_NAME = "appsscript.json"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = Field(alias="APP_ENV", default="dev")
    log_level: str = Field(alias="LOG_LEVEL", default="INFO")
    build_out_dir: str = Field(alias="BUILD_OUT_DIR", default="dist")
    build_temp_dir: str = Field(alias="BUILD_TEMP_DIR", default=".vite_tmp")
    build_concurrency: int = Field(alias="BUILD_CONCURRENCY", default=3)
    bundler_command: str = Field(alias="BUNDLER_COMMAND", default="npx vite")
    bundler_timeout_seconds: int = Field(alias="BUNDLER_TIMEOUT_SECONDS", default=600)
    default_page: str = Field(alias="DEFAULT_PAGE", default="home")


def validate_settings(settings: Settings) -> None:
    problems: list[str] = []
    if settings.build_concurrency < 1:
        problems.append("BUILD_CONCURRENCY(must be >= 1)")
    if not shlex.split(settings.bundler_command):
        problems.append("BUNDLER_COMMAND(empty)")
    if settings.bundler_timeout_seconds <= 0:
        problems.append("BUNDLER_TIMEOUT_SECONDS(must be > 0)")
    if not settings.build_out_dir.strip():
        problems.append("BUILD_OUT_DIR(empty)")
    if problems:
        raise ConfigError(f"invalid build configuration: {', '.join(problems)}")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


def parse_page_list(raw: str | None) -> frozenset[str] | None:
    """Split a ``--pages`` value into names; ``None`` means no filter."""
    if raw is None:
        return None
    names = frozenset(part.strip() for part in raw.split(",") if part.strip())
    return names or None


@dataclass(frozen=True, slots=True)
class BuildConfig:
    """Immutable per-run configuration threaded through every component."""

    project_root: Path
    pages: frozenset[str] | None = None
    only_changed: bool = False
    skip_server: bool = False
    concurrency: int = 3
    bundler_command: tuple[str, ...] = ("npx", "vite")
    bundler_timeout_s: float = 600.0
    default_page: str = "home"
    out_dir_name: str = "dist"
    temp_dir_name: str = ".vite_tmp"

    @classmethod
    def from_settings(
        cls,
        project_root: Path,
        settings: Settings,
        *,
        pages: frozenset[str] | None = None,
        only_changed: bool = False,
        skip_server: bool = False,
    ) -> BuildConfig:
        return cls(
            project_root=project_root.resolve(),
            pages=pages,
            only_changed=only_changed,
            skip_server=skip_server,
            concurrency=max(1, int(settings.build_concurrency)),
            bundler_command=tuple(shlex.split(settings.bundler_command)),
            bundler_timeout_s=float(settings.bundler_timeout_seconds),
            default_page=settings.default_page.strip() or "home",
            out_dir_name=settings.build_out_dir,
            temp_dir_name=settings.build_temp_dir,
        )

    @property
    def src_root(self) -> Path:
        return self.project_root / "src"

    @property
    def client_root(self) -> Path:
        return self.src_root / "client"

    @property
    def pages_root(self) -> Path:
        return self.client_root / "pages"

    @property
    def shared_template(self) -> Path:
        return self.client_root / "template.html"

    @property
    def global_css(self) -> Path:
        return self.client_root / "index.css"

    @property
    def server_src_dir(self) -> Path:
        return self.src_root / "server"

    @property
    def server_entry(self) -> Path:
        return self.server_src_dir / "index.ts"

    @property
    def router_path(self) -> Path:
        return self.server_src_dir / ROUTER_FILE_NAME

    @property
    def legacy_aggregator(self) -> Path:
        return self.server_src_dir / LEGACY_AGGREGATOR_NAME

    @property
    def vite_config(self) -> Path:
        return self.project_root / "vite.config.ts"

    @property
    def manifest(self) -> Path:
        return self.project_root / MANIFEST_NAME

    @property
    def out_dir(self) -> Path:
        return self.project_root / self.out_dir_name

    @property
    def cache_file(self) -> Path:
        return self.out_dir / CACHE_FILE_NAME

    @property
    def server_artifact(self) -> Path:
        return self.out_dir / SERVER_ARTIFACT_NAME

    @property
    def server_diagnostic(self) -> Path:
        return self.out_dir / SERVER_DIAGNOSTIC_NAME

    @property
    def temp_root(self) -> Path:
        return self.project_root / self.temp_dir_name

    def page_artifact(self, name: str) -> Path:
        return self.out_dir / f"{name}.html"

    def template_artifact(self, key: str) -> Path:
        return self.out_dir / f"{key}.html"

    def page_temp_dir(self, name: str) -> Path:
        return self.temp_root / "pages" / name

    @property
    def server_temp_dir(self) -> Path:
        return self.temp_root / "server"

    def display_path(self, path: Path) -> str:
        try:
            return path.relative_to(self.project_root).as_posix()
        except ValueError:
            return str(path)
