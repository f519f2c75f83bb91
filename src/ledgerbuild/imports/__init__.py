"""Import-graph resolution package."""

from ledgerbuild.imports.resolver import (
    ImportGraphResolver,
    collect_page_files,
    collect_server_files,
    walk_files,
)

__all__ = ["ImportGraphResolver", "collect_page_files", "collect_server_files", "walk_files"]
