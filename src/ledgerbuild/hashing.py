"""Content digests over file sets, the basis of incremental rebuild decisions."""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Iterable
from pathlib import Path

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 1024 * 1024


def hash_files(paths: Iterable[Path | str]) -> str:
    """Return a SHA-1 hex digest over the given files.

    Paths are de-duplicated and sorted before hashing, so the result does not
    depend on the order the caller enumerated them in. Each file contributes
    its path string followed by its raw bytes. Missing or unreadable files
    are skipped.
    """
    digest = hashlib.sha1()
    for name in sorted({str(path) for path in paths}):
        try:
            with open(name, "rb") as handle:
                chunks = list(iter(lambda: handle.read(_CHUNK_SIZE), b""))
        except OSError:
            logger.debug("Skipping unreadable file in digest: %s", name)
            continue
        digest.update(name.encode("utf-8"))
        for chunk in chunks:
            digest.update(chunk)
    return digest.hexdigest()
