"""Page discovery, staging and single-file builds."""

from ledgerbuild.pages.discovery import Entry, discover_entries, filter_entries

__all__ = ["Entry", "discover_entries", "filter_entries"]
