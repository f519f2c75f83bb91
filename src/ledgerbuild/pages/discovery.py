"""Discover page entry points under the pages directory."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

PAGE_MARKUP_NAME = "index.html"
PAGE_COMPONENT_NAME = "App.tsx"


@dataclass(frozen=True, slots=True)
class Entry:
    name: str
    markup_path: Path | None = None

    @property
    def uses_shared_template(self) -> bool:
        return self.markup_path is None


def discover_entries(pages_root: Path) -> list[Entry]:
    """One entry per page directory, sorted by name.

    A directory with ``index.html`` brings its own markup; one with only
    ``App.tsx`` is rendered through the shared template; anything else is
    not a page.
    """
    try:
        children = list(pages_root.iterdir())
    except OSError:
        logger.error("Cannot scan pages directory %s", pages_root, exc_info=True)
        return []

    entries: list[Entry] = []
    for child in children:
        if not child.is_dir():
            continue
        markup = child / PAGE_MARKUP_NAME
        if markup.is_file():
            entries.append(Entry(name=child.name, markup_path=markup))
        elif (child / PAGE_COMPONENT_NAME).is_file():
            entries.append(Entry(name=child.name))
    entries.sort(key=lambda entry: entry.name)
    return entries


def filter_entries(entries: Iterable[Entry], allow: frozenset[str] | None) -> list[Entry]:
    if allow is None:
        return list(entries)
    return [entry for entry in entries if entry.name in allow]
