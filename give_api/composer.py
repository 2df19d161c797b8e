"""
Locating records and composing them into response graphs.

RecordLocator finds one record by kind and id.  ResourceComposer flattens
it, runs the kind's composition routine, and wraps the result as
``{kind: data}``.

Failure handling:
  - NotFound / ServiceUnavailable from the locator reach the caller as-is.
  - Any other exception during a top-level fetch is logged and re-raised as
    FetchError, which carries no internal detail.
  - Related-record fetches (donor of a donation, etc.) never raise; a
    missing id, missing record or exception yields None for that key.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from give_api.errors import ApiError, FetchError, NotFound, ServiceUnavailable
from give_api.kinds import ResourceKind
from give_api.registry import REGISTRY, ResourceSpec
from give_store.flatten import Flattened, flatten
from give_store.queries import GiveStore
from give_store.records import Campaign, CampaignGoalType

logger = logging.getLogger(__name__)

_CAMPAIGN_TABLES = ("give_campaigns", "give_campaign_forms")
_GOAL_STATS_TABLES = ("posts", "give_donationmeta")
_MAX_ROW_ID = 2**63 - 1


class RecordLocator:
    """Find a single record of a given kind by id."""

    def __init__(self, store: GiveStore,
                 registry: Mapping[ResourceKind, ResourceSpec] = REGISTRY) -> None:
        self.store = store
        self.registry = registry

    def available(self, kind: ResourceKind) -> bool:
        """Return True if the store has every table ``kind`` is read from."""
        return self.store.has_tables(self.registry[kind].tables)

    def locate(self, kind: ResourceKind, record_id: int) -> Any:
        """Return the record for ``kind``/``record_id``.

        Raises:
            ServiceUnavailable: the store lacks the tables for this kind.
            NotFound: no record, or the post exists with another post type.
        """
        spec = self.registry[kind]
        if not self.available(kind):
            raise ServiceUnavailable(
                f"{kind.value.capitalize()} model is not available. Please ensure GiveWP is active.",
                code="model_not_available",
            )

        # Ids past SQLite's signed 64-bit range cannot name a row.
        if record_id > _MAX_ROW_ID:
            raise NotFound(kind.value)

        if spec.post_type is not None and self.store.post_type(record_id) != spec.post_type:
            raise NotFound(kind.value)

        record = spec.finder(self.store, record_id)
        if record is None:
            raise NotFound(kind.value)
        return record


class ResourceComposer:
    """Build the response body for one resource request."""

    def __init__(self, store: GiveStore,
                 registry: Mapping[ResourceKind, ResourceSpec] = REGISTRY) -> None:
        self.store = store
        self.registry = registry
        self.locator = RecordLocator(store, registry)

    def compose(self, kind: ResourceKind, record_id: int) -> dict[str, Flattened]:
        """Return ``{kind: flattened record plus related records}``."""
        kind = ResourceKind(kind)
        try:
            record = self.locator.locate(kind, record_id)
            data = self._flatten(kind, record)
        except ApiError:
            raise
        except Exception as exc:
            logger.error(
                "Error fetching %s %s: %s", kind.value, record_id, exc,
                exc_info=True,
                extra={"kind": kind.value, "resource_id": record_id},
            )
            raise FetchError(kind.value) from exc
        return {kind.value: data}

    def _flatten(self, kind: ResourceKind, record: Any) -> Optional[Flattened]:
        composition = self.registry[kind].composition
        if composition is None:
            return flatten(record)
        return flatten(record, lambda rec: composition(self, rec))

    # ── Related records ───────────────────────────────────────────────────────

    def fetch_related(self, kind: ResourceKind, record_id: Any) -> Optional[Flattened]:
        """Flattened record (with its composition) or None on any failure."""
        if not record_id:
            return None
        spec = self.registry[kind]
        try:
            if not self.store.has_tables(spec.tables):
                return None
            record = spec.finder(self.store, int(record_id))
            if record is None:
                return None
            return self._flatten(kind, record)
        except Exception as exc:
            logger.warning(
                "Error fetching related %s %s: %s", kind.value, record_id, exc,
                exc_info=True,
                extra={"kind": kind.value, "resource_id": record_id},
            )
            return None

    def fetch_campaign_by_form(self, form_id: Any) -> Optional[Flattened]:
        """Campaign owning ``form_id`` with ``goal_stats``, or None."""
        if not form_id:
            return None
        try:
            if not self.store.has_tables(_CAMPAIGN_TABLES):
                return None
            campaign = self.store.find_campaign_by_form_id(int(form_id))
            if campaign is None:
                return None
            return flatten(campaign, self._goal_stats)
        except Exception as exc:
            logger.warning(
                "Error fetching campaign for form %s: %s", form_id, exc,
                exc_info=True,
                extra={"kind": ResourceKind.CAMPAIGN.value, "resource_id": form_id},
            )
            return None

    def _goal_stats(self, campaign: Campaign) -> dict[str, Any]:
        if not isinstance(campaign.goal_type, CampaignGoalType):
            return {}
        if not self.store.has_tables(_GOAL_STATS_TABLES):
            return {}
        return {"goal_stats": self.store.campaign_goal_stats(campaign)}
