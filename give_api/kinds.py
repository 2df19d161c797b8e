"""The closed set of resource kinds exposed by the API."""

from enum import Enum


class ResourceKind(str, Enum):
    DONATION = "donation"
    DONOR = "donor"
    SUBSCRIPTION = "subscription"
    CAMPAIGN = "campaign"
    FORM = "form"

    def __str__(self) -> str:
        return self.value
