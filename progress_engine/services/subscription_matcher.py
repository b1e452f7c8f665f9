"""Subscription matching.

A subscription matches a piece of content when all three filters pass:

- product_suite / product_concept: ``*`` matches any value (including
  none); an unset filter matches only content that has no value either;
  otherwise the content must carry exactly the same value;
- tags: a non-empty tag set must share at least one tag with the content.

An unset facet is not a wildcard.  A subscriber who wants everything in a
suite subscribes with ``product_concept="*"``.

Tags are compared after trimming whitespace; blank tags are ignored.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol

from progress_engine.models.subscription import WILDCARD, Subscription


class Faceted(Protocol):
    @property
    def product_suite(self) -> str | None: ...
    @property
    def product_concept(self) -> str | None: ...
    @property
    def tags(self) -> tuple[str, ...]: ...


def normalize_tags(tags: Iterable[str] | None) -> frozenset[str]:
    if not tags:
        return frozenset()
    return frozenset(t.strip() for t in tags if t and t.strip())


def _category_matches(wanted: str | None, actual: str | None) -> bool:
    if wanted == WILDCARD:
        return True
    if not wanted:
        return not actual
    return wanted == actual


def matches(subscription: Subscription, content: Faceted) -> bool:
    if not _category_matches(subscription.product_suite, content.product_suite):
        return False
    if not _category_matches(subscription.product_concept, content.product_concept):
        return False
    wanted_tags = normalize_tags(subscription.tags)
    if not wanted_tags:
        return True
    return not wanted_tags.isdisjoint(normalize_tags(content.tags))
