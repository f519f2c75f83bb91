"""Turn an IIFE server bundle into top-level declarations for the script runtime."""

from __future__ import annotations

import re
from dataclasses import dataclass

from ledgerbuild.server.extract import extract_iife_body

PUBLISH_LOOP_MARKER = "for (const __mod of __modules)"

# Applied in order, after trim_publish_loop, so no loop body is left pointing
# at a removed __mN binding. Empty catch blocks are never touched: dropping
# one leaves a bare try, which does not parse.
_MODULE_ARTIFACT_PATTERNS: tuple[tuple[re.Pattern[str], int], ...] = (
    (re.compile(r"\n?\s*(?:var|const|let)\s+__m\d+[^\n]*?=[\s\S]*?;\s*"), 0),
    (re.compile(r"\n?\s*(?:var|const|let)\s+__modules\s*=\s*\[[\s\S]*?\];\s*"), 0),
    (re.compile(r"for\s*\(const\s+__mod\s+of\s+__modules\)[\s\S]*\Z"), 0),
    (re.compile(r"""^(?:\s*'use strict'|\s*"use strict");?""", re.MULTILINE), 1),
    (re.compile(r"(^|\n)\s*exports\.([A-Za-z0-9_$]+)\s*=\s*([^;\n]+);?"), 0),
    (re.compile(r"Object\.defineProperty\(exports,[\s\S]*?\);?"), 0),
    (re.compile(r"(^|\n)\s*exports\.__esModule\s*=\s*true;?"), 0),
)


@dataclass(frozen=True, slots=True)
class TransformResult:
    code: str | None
    strategy: str | None = None


def trim_publish_loop(body: str) -> str:
    """Cut the loop that republishes modules on globalThis.

    The runtime registers top-level function declarations by itself.
    """
    index = body.find(PUBLISH_LOOP_MARKER)
    return body[:index] if index >= 0 else body


def strip_module_artifacts(body: str) -> str:
    for pattern, count in _MODULE_ARTIFACT_PATTERNS:
        body = pattern.sub("", body, count=count)
    return body.strip()


def transform_bundle(text: str) -> TransformResult:
    extraction = extract_iife_body(text)
    if extraction is None:
        return TransformResult(code=None)
    code = strip_module_artifacts(trim_publish_loop(extraction.body))
    return TransformResult(code=code, strategy=extraction.strategy)
