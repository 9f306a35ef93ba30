"""
SNI relation classifier — compares two domain lists as multisets.

Pure function, no I/O. The result decides whether a gateway object is the
binding we want (EXACT), collides with it on some domains (PARTIAL), or is
unrelated (DISJOINT).
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence

from apisix_certbind.domain.models import SniRelation


def classify_relation(existing: Sequence[str], desired: Sequence[str]) -> SniRelation:
    """
    Classify how `existing` relates to `desired`, counting duplicates.

    Each desired name is matched against one still-unmatched identical
    existing name. EXACT means both lists have the same size and every
    existing name was consumed; PARTIAL means at least one name matched;
    anything else, including an empty side, is DISJOINT.

        >>> classify_relation(["b.com", "a.com"], ["a.com", "b.com"])
        <SniRelation.EXACT: 'exact'>
        >>> classify_relation(["a.com", "a.com"], ["a.com"])
        <SniRelation.PARTIAL: 'partial'>
    """
    if not existing or not desired:
        return SniRelation.DISJOINT

    remaining = Counter(existing)
    overlap = 0
    for name in desired:
        if remaining[name] > 0:
            remaining[name] -= 1
            overlap += 1

    if len(existing) == len(desired) and overlap == len(existing):
        return SniRelation.EXACT
    if overlap > 0:
        return SniRelation.PARTIAL
    return SniRelation.DISJOINT
