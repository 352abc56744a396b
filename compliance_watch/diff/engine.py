from __future__ import annotations

import difflib
from datetime import datetime
from typing import List, Optional, Tuple

from compliance_watch.common.hashes import sha256_text
from compliance_watch.diff.models import DiffPayload, DiffResult
from compliance_watch.snapshot_store.models import SnapshotRecord
from compliance_watch.snapshot_store.service import SnapshotStoreService


NEW_PAGE_HEADER = "--- (no previous snapshot)\n+++ new page\n"


def normalize_content(content: str) -> str:
    lines = content.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    stripped = [line.rstrip() for line in lines]
    while stripped and not stripped[-1]:
        stripped.pop()
    return "\n".join(stripped)


def content_hash(content: str) -> str:
    return sha256_text(normalize_content(content))


def _fragments(old_lines: List[str], new_lines: List[str]) -> Tuple[List[str], List[str]]:
    added: List[str] = []
    removed: List[str] = []
    matcher = difflib.SequenceMatcher(a=old_lines, b=new_lines, autojunk=False)
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag in {"delete", "replace"}:
            block = "\n".join(old_lines[i1:i2]).strip()
            if block:
                removed.append(block)
        if tag in {"insert", "replace"}:
            block = "\n".join(new_lines[j1:j2]).strip()
            if block:
                added.append(block)
    return added, removed


class DiffEngine:
    def __init__(self, snapshot_store: SnapshotStoreService, *, context_lines: int = 3) -> None:
        self._snapshot_store = snapshot_store
        self._context_lines = context_lines

    def compare(self, new_content: str, previous: Optional[SnapshotRecord]) -> DiffResult:
        normalized = normalize_content(new_content)
        new_hash = sha256_text(normalized)

        if previous is None:
            text = NEW_PAGE_HEADER + "\n".join(f"+{line}" for line in normalized.split("\n"))
            return DiffResult(
                changed=True,
                first_seen=True,
                content_hash=new_hash,
                content=normalized,
                diff=DiffPayload(text=text, added=[normalized] if normalized else [], removed=[]),
            )

        if previous.content_hash == new_hash:
            return DiffResult(
                changed=False,
                first_seen=False,
                content_hash=new_hash,
                content=normalized,
                diff=DiffPayload(text=""),
            )

        old_lines = previous.content.split("\n")
        new_lines = normalized.split("\n")
        text = "\n".join(
            difflib.unified_diff(
                old_lines,
                new_lines,
                fromfile="previous",
                tofile="current",
                n=self._context_lines,
                lineterm="",
            )
        )
        added, removed = _fragments(old_lines, new_lines)
        return DiffResult(
            changed=True,
            first_seen=False,
            content_hash=new_hash,
            content=normalized,
            diff=DiffPayload(text=text, added=added, removed=removed),
        )

    def compare_with_current(self, target_id: str, new_content: str) -> DiffResult:
        return self.compare(new_content, self._snapshot_store.current(target_id))

    def commit(self, target_id: str, result: DiffResult, captured_at: datetime) -> Optional[SnapshotRecord]:
        if not result.changed:
            return None
        return self._snapshot_store.replace(
            target_id=target_id,
            content=result.content,
            content_hash=result.content_hash,
            captured_at=captured_at,
        )
