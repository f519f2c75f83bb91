from pathlib import Path

import pytest

from ledgerbuild.config import BuildConfig, get_settings
from ledgerbuild.errors import BundlerError

SETTINGS_ENV = (
    "APP_ENV",
    "LOG_LEVEL",
    "BUILD_OUT_DIR",
    "BUILD_TEMP_DIR",
    "BUILD_CONCURRENCY",
    "BUNDLER_COMMAND",
    "BUNDLER_TIMEOUT_SECONDS",
    "DEFAULT_PAGE",
)

SERVER_BUNDLE = """\
(function(exports) {
  "use strict";
  function getRows(sheet) {
    try {
      return SpreadsheetApp.getActive().getSheetByName(sheet).getDataRange().getValues();
    } catch {}
    return [];
  }
  function doGet(e) {
    const page = e && e.parameter ? e.parameter.page : "";
    return HtmlService.createHtmlOutputFromFile(page || "home");
  }
  exports.doGet = doGet;
  exports.getRows = getRows;
  Object.defineProperty(exports, Symbol.toStringTag, { value: "Module" });
})(this.globalThis = this.globalThis || {});
"""


class FakeBundler:
    """Stands in for Vite: echoes page markup and emits a canned IIFE bundle."""

    def __init__(self, server_bundle: str = SERVER_BUNDLE, fail_pages: tuple[str, ...] = ()):
        self.server_bundle = server_bundle
        self.fail_pages = fail_pages
        self.server_calls = 0
        self.page_calls: list[str] = []

    async def bundle_server(self, entry: Path, out_dir: Path, work_dir: Path) -> Path:
        del entry, work_dir
        self.server_calls += 1
        out_dir.mkdir(parents=True, exist_ok=True)
        path = out_dir / "Code.js"
        path.write_text(self.server_bundle, encoding="utf-8")
        return path

    async def bundle_page(self, input_html: Path, out_dir: Path, work_dir: Path) -> None:
        name = work_dir.name
        self.page_calls.append(name)
        if name in self.fail_pages:
            raise BundlerError(f"cannot bundle {name}", unit=name)
        nested = out_dir / "src" / "page"
        nested.mkdir(parents=True, exist_ok=True)
        markup = input_html.read_text(encoding="utf-8")
        (nested / "index.html").write_text(f"<!-- bundled:{name} -->\n{markup}", encoding="utf-8")


def _write(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture(autouse=True)
def test_env(monkeypatch: pytest.MonkeyPatch):
    for key in SETTINGS_ENV:
        monkeypatch.delenv(key, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """A small dashboard project: ``home`` uses the shared template, ``dashboard`` its own."""
    root = tmp_path / "app"
    client = root / "src" / "client"
    _write(
        client / "template.html",
        "<html><head><title>{{TITLE}}</title></head>"
        '<body data-page="{{PAGE_NAME}}"><div id="root"></div>'
        '<script type="module" src="./main.tsx"></script></body></html>\n',
    )
    _write(client / "index.css", "body { margin: 0; }\n")
    _write(
        client / "components" / "data-table.tsx",
        "export function DataTable() { return null; }\n",
    )
    _write(client / "types" / "index.ts", "export type Row = Record<string, unknown>;\n")
    _write(
        client / "pages" / "home" / "App.tsx",
        "import { useState } from 'react';\n"
        "import { DataTable } from '@/client/components/data-table';\n"
        "import type { Row } from '@/client/types';\n"
        "import Summary from './Summary';\n"
        "export default function App() { return <DataTable />; }\n",
    )
    _write(
        client / "pages" / "home" / "Summary.tsx",
        "import './summary.css';\nexport default function Summary() { return null; }\n",
    )
    _write(client / "pages" / "home" / "summary.css", ".summary { color: green; }\n")
    _write(
        client / "pages" / "dashboard" / "index.html",
        '<html><head><title>Dashboard</title></head><body><div id="root"></div></body></html>\n',
    )
    _write(
        client / "pages" / "dashboard" / "App.tsx",
        "import { DataTable } from '@/client/components/data-table';\n"
        "export default function App() { return <DataTable />; }\n",
    )
    _write(client / "pages" / "reports" / "monthly.html", "<p>monthly report</p>\n")
    _write(client / "pages" / "notes" / "README.md", "not a page\n")
    _write(
        root / "src" / "server" / "index.ts",
        "export { doGet } from './doGet.generated';\nexport { getRows } from './sheets';\n",
    )
    _write(root / "src" / "server" / "sheets.ts", "export function getRows() { return []; }\n")
    _write(root / "appsscript.json", '{"timeZone": "Europe/Madrid"}\n')
    return root


@pytest.fixture
def make_config(project: Path):
    def _make(**overrides: object) -> BuildConfig:
        params: dict[str, object] = {"project_root": project}
        params.update(overrides)
        return BuildConfig(**params)  # type: ignore[arg-type]

    return _make


@pytest.fixture
def fake_bundler() -> FakeBundler:
    return FakeBundler()


@pytest.fixture
def server_bundle() -> str:
    return SERVER_BUNDLE


@pytest.fixture
def make_bundler():
    return FakeBundler
