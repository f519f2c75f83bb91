"""Load, query, prune and persist the build cache."""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Callable, Iterable
from pathlib import Path

from pydantic import ValidationError

from ledgerbuild.cache.types import CacheLoad, CacheState, Namespace

logger = logging.getLogger(__name__)


class BuildCache:
    """Digest per build unit, keyed by namespace.

    The orchestrator is the only writer. Builders report digests back and
    never touch the cache themselves.
    """

    def __init__(self, path: Path, state: CacheState | None = None) -> None:
        self._path = path
        self._state = state or CacheState()

    @property
    def path(self) -> Path:
        return self._path

    @property
    def state(self) -> CacheState:
        return self._state

    @classmethod
    def load(cls, path: Path) -> CacheLoad:
        if not path.exists():
            return CacheLoad(cache=cls(path))
        try:
            raw = path.read_text(encoding="utf-8")
            state = CacheState.model_validate(json.loads(raw))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError, ValidationError) as exc:
            reason = f"{type(exc).__name__}: {exc}"
            logger.warning("Ignoring unreadable build cache %s (%s)", path, reason)
            return CacheLoad(cache=cls(path), recovered=True, reason=reason)
        return CacheLoad(cache=cls(path, state))

    def digest(self, namespace: Namespace, key: str = "") -> str | None:
        if namespace == "server":
            return self._state.server or None
        return self._bucket(namespace).get(key)

    def is_stale(self, namespace: Namespace, key: str, digest: str, artifact: Path) -> bool:
        if not artifact.exists():
            return True
        previous = self.digest(namespace, key)
        return previous is None or previous != digest

    def record(self, namespace: Namespace, key: str, digest: str) -> None:
        if namespace == "server":
            self._state.server = digest
            return
        self._bucket(namespace)[key] = digest

    def prune(
        self,
        namespace: Namespace,
        current_keys: Iterable[str],
        artifact_for: Callable[[str], Path],
    ) -> list[str]:
        """Forget units that no longer exist and delete their artifacts."""
        keep = set(current_keys)
        bucket = self._bucket(namespace)
        removed: list[str] = []
        for key in sorted(bucket):
            if key in keep:
                continue
            artifact = artifact_for(key)
            try:
                artifact.unlink(missing_ok=True)
                logger.info("Removed %s (%s no longer present)", artifact.name, namespace)
            except OSError:
                logger.warning("Failed to remove stale artifact %s", artifact, exc_info=True)
            del bucket[key]
            removed.append(key)
        return removed

    def save(self) -> bool:
        encoded = json.dumps(self._state.model_dump(), indent=2, sort_keys=True)
        tmp_path = self._path.with_name(f"{self._path.name}.tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(encoded + "\n", encoding="utf-8")
            os.replace(tmp_path, self._path)
        except OSError:
            logger.warning("Failed to save build cache %s", self._path, exc_info=True)
            return False
        return True

    def _bucket(self, namespace: Namespace) -> dict[str, str]:
        if namespace == "pages":
            return self._state.pages
        if namespace == "templates":
            return self._state.templates
        raise ValueError(f"namespace {namespace!r} has no keyed entries")
