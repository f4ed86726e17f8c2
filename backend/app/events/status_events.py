"""Status-change event payload and entity snapshots."""

from dataclasses import dataclass, field
from datetime import date, datetime

from sqlalchemy import inspect


def snapshot_of(entity) -> dict:
    """JSON-safe dict of every mapped column on `entity`."""
    data = {}
    for attr in inspect(entity).mapper.column_attrs:
        value = getattr(entity, attr.key)
        if isinstance(value, (datetime, date)):
            value = value.isoformat()
        elif isinstance(value, list):
            value = [dict(v) if isinstance(v, dict) else v for v in value]
        data[attr.key] = value
    return data


@dataclass
class StatusChangedEvent:
    """Emitted once per stored status change, after the write commits.

    `snapshot` is the entity after the update, with `customer` and
    `partner` display info attached by the directory.
    """

    entity_type: str
    organization: str
    snapshot: dict = field(default_factory=dict)
    previous_status: str | None = None

    @property
    def entity_id(self) -> str:
        return self.snapshot["id"]

    @property
    def status(self) -> str:
        return self.snapshot["status"]

    @property
    def tracking_code(self) -> str:
        return self.snapshot.get("tracking_number") or self.snapshot.get("container_number")

    @property
    def customer_id(self) -> str | None:
        return self.snapshot.get("customer_id") or next(
            iter(self.snapshot.get("customer_ids") or []), None
        )

    @property
    def partner_id(self) -> str | None:
        return self.snapshot.get("partner_id") or next(
            iter(self.snapshot.get("partner_ids") or []), None
        )
