"""Static import-graph resolution for page and server sources."""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path

from ledgerbuild.config import BuildConfig

logger = logging.getLogger(__name__)

CODE_EXTENSIONS = (".ts", ".tsx", ".js", ".jsx")
PROBE_EXTENSIONS = (".ts", ".tsx", ".js", ".jsx", ".css", ".json")
TRACKED_EXTENSIONS = (*PROBE_EXTENSIONS, ".html")
SERVER_EXTENSIONS = (".ts", ".js", ".json")

# import ... from 'x' / export ... from 'x' / import('x') / import 'x'
_SPECIFIER_RE = re.compile(
    r"""(?:import|export)\s+[^'"\n]*from\s*['"]([^'"\n]+)['"]"""
    r"""|import\s*\(\s*['"]([^'"\n]+)['"]\s*\)"""
    r"""|\bimport\s*['"]([^'"\n]+)['"]"""
)


def _has_extension(path: Path | str, extensions: tuple[str, ...]) -> bool:
    return str(path).lower().endswith(extensions)


def is_code_file(path: Path | str) -> bool:
    return _has_extension(path, CODE_EXTENSIONS)


def is_tracked_file(path: Path | str) -> bool:
    return _has_extension(path, TRACKED_EXTENSIONS)


def _normalize(path: Path | str) -> Path:
    # Lexical normalisation; resolve() would follow symlinks.
    return Path(os.path.normpath(os.path.abspath(path)))


def scan_specifiers(text: str) -> list[str]:
    """Return every static, side-effect or dynamic import specifier in source order."""
    specs: list[str] = []
    for match in _SPECIFIER_RE.finditer(text):
        spec = match.group(1) or match.group(2) or match.group(3)
        if spec:
            specs.append(spec)
    return specs


class ImportGraphResolver:
    """Follow relative and ``@/``-aliased imports from an entry file.

    External specifiers (``react``, ``gas-client``...) and specifiers that do
    not resolve to a file on disk are ignored.
    """

    def __init__(self, src_root: Path, alias_prefix: str = "@/") -> None:
        self._src_root = _normalize(src_root)
        self._alias_prefix = alias_prefix

    def resolve_specifier(self, importer: Path, spec: str) -> Path | None:
        if spec.startswith(self._alias_prefix):
            base = _normalize(self._src_root / spec[len(self._alias_prefix):])
        elif spec.startswith("."):
            base = _normalize(importer.parent / spec)
        else:
            return None

        candidates: list[Path] = []
        if is_tracked_file(base):
            candidates.append(base)
        candidates.extend(Path(f"{base}{ext}") for ext in PROBE_EXTENSIONS)
        candidates.extend(base / f"index{ext}" for ext in PROBE_EXTENSIONS)
        for candidate in candidates:
            if candidate.is_file():
                return candidate
        return None

    def resolve(self, entry: Path) -> set[Path]:
        files: set[Path] = set()
        visited: set[Path] = set()
        stack = [_normalize(entry)]
        while stack:
            current = stack.pop()
            if current in visited:
                continue
            visited.add(current)
            files.add(current)
            if not is_code_file(current):
                continue
            try:
                text = current.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError):
                logger.debug("Cannot read %s while resolving imports", current)
                continue
            for spec in scan_specifiers(text):
                resolved = self.resolve_specifier(current, spec)
                if resolved is None:
                    continue
                files.add(resolved)
                if is_code_file(resolved):
                    stack.append(resolved)
        return files


def walk_files(root: Path) -> list[Path]:
    """List regular files below ``root`` without recursion or symlinked dirs."""
    found: list[Path] = []
    stack = [root]
    while stack:
        current = stack.pop()
        try:
            children = list(current.iterdir())
        except OSError:
            continue
        for child in children:
            if child.is_dir():
                if not child.is_symlink():
                    stack.append(child)
            elif child.is_file():
                found.append(child)
    return sorted(found)


def collect_page_files(config: BuildConfig, name: str) -> list[Path]:
    """Every tracked file whose change must trigger a rebuild of ``name``."""
    page_dir = config.pages_root / name
    entry = page_dir / "App.tsx"
    files: set[Path] = set()
    if entry.is_file():
        files |= ImportGraphResolver(config.src_root).resolve(entry)

    own_markup = page_dir / "index.html"
    if own_markup.is_file():
        files.add(_normalize(own_markup))
    elif config.shared_template.is_file():
        files.add(_normalize(config.shared_template))

    # The generated mount script imports the global stylesheet.
    if config.global_css.is_file():
        files.add(_normalize(config.global_css))

    return sorted(path for path in files if is_tracked_file(path))


def collect_server_files(config: BuildConfig) -> list[Path]:
    return [
        path
        for path in walk_files(config.server_src_dir)
        if _has_extension(path, SERVER_EXTENSIONS)
    ]
