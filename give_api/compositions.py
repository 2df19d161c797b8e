"""
Composition routines for composite resource kinds.

Each routine takes the ResourceComposer handling the request and the record
it just located, and returns the extra keys to merge into the flattened
record.  Sub-fetches go through the composer so each one fails soft to None.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from give_api.kinds import ResourceKind

if TYPE_CHECKING:
    from give_api.composer import ResourceComposer
    from give_store.records import Donation, Donor


def donation_relations(composer: "ResourceComposer", donation: "Donation") -> dict[str, Any]:
    """Attach donor (with meta), form, campaign (through the form) and subscription."""
    return {
        "donor": composer.fetch_related(ResourceKind.DONOR, donation.donor_id),
        "form": composer.fetch_related(ResourceKind.FORM, donation.form_id),
        "campaign": composer.fetch_campaign_by_form(donation.form_id),
        "subscription": (
            composer.fetch_related(ResourceKind.SUBSCRIPTION, donation.subscription_id)
            if donation.subscription_id else None
        ),
    }


def donor_meta(composer: "ResourceComposer", donor: "Donor") -> dict[str, Any]:
    return {"meta": composer.store.donor_meta(donor.id)}
