"""
Single-resource endpoints.

GET {prefix}/donation/{id}      -> {"donation": {...}}
GET {prefix}/donor/{id}         -> {"donor": {...}}
GET {prefix}/subscription/{id}  -> {"subscription": {...}}
GET {prefix}/campaign/{id}      -> {"campaign": {...}}
GET {prefix}/form/{id}          -> {"form": {...}}

Every route requires the GiveWP ``key`` and ``token`` query parameters.
Non-numeric or non-positive ids are rejected by FastAPI validation before
any lookup happens.
"""

from fastapi import APIRouter, Depends, Path, Response
from pydantic import BaseModel

from give_api.auth import require_credentials
from give_api.composer import ResourceComposer
from give_api.database import ApiContext, get_context, get_store
from give_api.kinds import ResourceKind
from give_api.models import (
    CampaignEnvelope,
    DonationEnvelope,
    DonorEnvelope,
    ErrorResponse,
    FormEnvelope,
    SubscriptionEnvelope,
)
from give_store.queries import GiveStore

router = APIRouter(tags=["resources"])

_ENVELOPES: dict[ResourceKind, type[BaseModel]] = {
    ResourceKind.DONATION: DonationEnvelope,
    ResourceKind.DONOR: DonorEnvelope,
    ResourceKind.SUBSCRIPTION: SubscriptionEnvelope,
    ResourceKind.CAMPAIGN: CampaignEnvelope,
    ResourceKind.FORM: FormEnvelope,
}

_ERROR_RESPONSES = {
    status: {"model": ErrorResponse}
    for status in (401, 403, 404, 500, 503)
}


def get_resource(
    kind: ResourceKind,
    record_id: int,
    store: GiveStore,
    context: ApiContext,
) -> dict:
    """Compose the response body for one resource."""
    return ResourceComposer(store, context.registry).compose(kind, record_id)


def _register_single_resource_route(kind: ResourceKind) -> None:
    def endpoint(
        response: Response,
        record_id: int = Path(..., ge=1, description=f"{kind.value.capitalize()} ID"),
        store: GiveStore = Depends(get_store),
        context: ApiContext = Depends(get_context),
    ) -> dict:
        response.headers["Cache-Control"] = "no-store"
        return get_resource(kind, record_id, store, context)

    endpoint.__name__ = f"get_{kind.value}"
    router.add_api_route(
        f"/{kind.value}/{{record_id}}",
        endpoint,
        methods=["GET"],
        response_model=_ENVELOPES[kind],
        responses=_ERROR_RESPONSES,
        dependencies=[Depends(require_credentials)],
        summary=f"Get a single {kind.value}",
    )


for _kind in ResourceKind:
    _register_single_resource_route(_kind)
