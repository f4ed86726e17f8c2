"""Tagged update requests for shipments and containers.

Every write to a trackable goes through one of these, discriminated on
`kind`.  Combined payloads (create bodies, PATCH bodies, carrier webhooks)
are split into an ordered list of them by the assignment engine:
claim → partner_assign → status.
"""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field


class ClaimRequest(BaseModel):
    """Set the primary owner of an entity (customer XOR partner)."""
    kind: Literal["claim"] = "claim"
    customer_id: str | None = None
    partner_id: str | None = None
    customer_ids: list[str] | None = None
    partner_ids: list[str] | None = None


class StatusUpdateRequest(BaseModel):
    kind: Literal["status"] = "status"
    status: str = Field(..., min_length=1, max_length=30)


class PartnerAssignRequest(BaseModel):
    """Map one of the owning partner's customers onto the entity.

    `customer_id=None` removes the partner's entry.  `partner_id` defaults
    to the entity's owning partner.
    """
    kind: Literal["partner_assign"] = "partner_assign"
    partner_id: str | None = None
    customer_id: str | None = None


UpdateRequest = Annotated[
    Union[ClaimRequest, StatusUpdateRequest, PartnerAssignRequest],
    Field(discriminator="kind"),
]

# Apply order within one call; a claim may re-read the row so it goes first
REQUEST_ORDER = {"claim": 0, "partner_assign": 1, "status": 2}
