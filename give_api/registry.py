"""
Resource kinds served by the API and how each one is fetched.

REGISTRY is a fixed mapping built at import time and never mutated: each
ResourceKind points at its GiveStore finder, the tables it needs, an optional
secondary post type, and an optional composition routine that attaches
related records.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional

from give_api import compositions
from give_api.kinds import ResourceKind
from give_store.queries import DONATION_POST_TYPE, GiveStore


Finder = Callable[[GiveStore, int], Any]
Composition = Callable[[Any, Any], Mapping[str, Any]]


@dataclass(frozen=True)
class ResourceSpec:
    kind: ResourceKind
    finder: Finder
    tables: tuple[str, ...]
    post_type: Optional[str] = None
    composition: Optional[Composition] = None


REGISTRY: Mapping[ResourceKind, ResourceSpec] = MappingProxyType({
    ResourceKind.DONATION: ResourceSpec(
        kind=ResourceKind.DONATION,
        finder=GiveStore.find_donation,
        tables=("posts", "give_donationmeta"),
        post_type=DONATION_POST_TYPE,
        composition=compositions.donation_relations,
    ),
    ResourceKind.DONOR: ResourceSpec(
        kind=ResourceKind.DONOR,
        finder=GiveStore.find_donor,
        tables=("give_donors", "give_donormeta"),
        composition=compositions.donor_meta,
    ),
    ResourceKind.SUBSCRIPTION: ResourceSpec(
        kind=ResourceKind.SUBSCRIPTION,
        finder=GiveStore.find_subscription,
        tables=("give_subscriptions", "give_donationmeta"),
    ),
    ResourceKind.CAMPAIGN: ResourceSpec(
        kind=ResourceKind.CAMPAIGN,
        finder=GiveStore.find_campaign,
        tables=("give_campaigns",),
    ),
    ResourceKind.FORM: ResourceSpec(
        kind=ResourceKind.FORM,
        finder=GiveStore.find_form,
        tables=("posts", "give_formmeta"),
    ),
})
