"""Merge step for the newest/older recent-token windows.

Pure functions over immutable inputs: the sync pipeline builds a new
merged view each cycle instead of editing the previous one.
"""

from collections.abc import Iterable
from dataclasses import dataclass

from src.parsers.odin.models import CreatorPerformance, OdinToken, TokenWithCreator


@dataclass(frozen=True)
class MergeResult:
    tokens: tuple[OdinToken, ...]
    new_token_ids: frozenset[str]

    @property
    def token_ids(self) -> frozenset[str]:
        return frozenset(t.id for t in self.tokens)


def merge_windows(
    newest: Iterable[OdinToken],
    older: Iterable[OdinToken],
    previous_ids: frozenset[str] | None,
) -> MergeResult:
    """Deduplicate both windows by id, newest window winning on overlap.

    ``previous_ids`` is the id-set of the last committed view, or None
    before the first commit (initial load is never reported as new).
    """
    by_id: dict[str, OdinToken] = {}
    for token in newest:
        by_id[token.id] = token
    for token in older:
        by_id.setdefault(token.id, token)

    merged = tuple(
        sorted(by_id.values(), key=lambda t: (t.created_time, t.id), reverse=True)
    )
    if previous_ids is None:
        new_ids: frozenset[str] = frozenset()
    else:
        new_ids = frozenset(by_id) - previous_ids
    return MergeResult(tokens=merged, new_token_ids=new_ids)


def creators_touched(tokens: Iterable[OdinToken], token_ids: frozenset[str]) -> set[str]:
    """Creators owning at least one of ``token_ids``."""
    return {t.creator for t in tokens if t.id in token_ids and t.creator}


def reconcile_creators(items: Iterable[TokenWithCreator]) -> list[TokenWithCreator]:
    """Give every occurrence of a creator the same record.

    The record with the longest token list wins (first seen on ties), so a
    creator never shows two different scores in one render.
    """
    items = list(items)
    best: dict[str, CreatorPerformance] = {}
    for item in items:
        creator = item.creator
        if creator is None:
            continue
        current = best.get(creator.principal)
        if current is None or len(creator.tokens) > len(current.tokens):
            best[creator.principal] = creator

    reconciled: list[TokenWithCreator] = []
    for item in items:
        if item.creator is not None and best[item.creator.principal] is not item.creator:
            item = item.model_copy(update={"creator": best[item.creator.principal]})
        reconciled.append(item)
    return reconciled
