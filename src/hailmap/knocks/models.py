"""Knock data model.

A knock is one recorded door-to-door visit: where it happened, what the
outcome was, and any notes the rep left.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class KnockOutcome(str, Enum):
    """Visit outcomes a rep can record."""

    NOT_HOME = "not_home"
    REVISIT = "revisit"
    NO_SOLICITING = "no_soliciting"
    LEAD = "lead"
    SALE = "sale"
    CALLBACK = "callback"
    NEW_ROOF = "new_roof"
    COMPETITOR = "competitor"
    RENTER = "renter"
    POOR_CONDITION = "poor_condition"
    PROPOSAL_LEFT = "proposal_left"
    STAY_AWAY = "stay_away"
    NOT_INTERESTED = "not_interested"


class SyncStatus(str, Enum):
    PENDING = "pending"
    SYNCED = "synced"


@dataclass(frozen=True)
class Knock:
    """A recorded visit outcome at a location.

    Attributes:
        id: Stable unique id
        latitude: Latitude in decimal degrees
        longitude: Longitude in decimal degrees
        outcome: Visit outcome
        address: Street address, if geocoded
        notes: Free-text notes
        timestamp: When the knock was recorded
        rep_id: Id of the rep who recorded it
        sync_status: Cloud sync state
    """

    id: str
    latitude: float
    longitude: float
    outcome: KnockOutcome
    address: Optional[str] = None
    notes: Optional[str] = None
    timestamp: Optional[datetime] = None
    rep_id: Optional[str] = None
    sync_status: SyncStatus = SyncStatus.PENDING

    def __post_init__(self):
        # Accept plain strings ("lead", "synced") as well as enum members
        object.__setattr__(self, "outcome", KnockOutcome(self.outcome))
        object.__setattr__(self, "sync_status", SyncStatus(self.sync_status))

    def to_dict(self) -> dict:
        """Serialize to the camelCase JSON shape used by the map surface."""
        return {
            "id": self.id,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "outcome": self.outcome.value,
            "address": self.address,
            "notes": self.notes,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "repId": self.rep_id,
            "syncStatus": self.sync_status.value,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "Knock":
        """Create a knock from a dict with camelCase or snake_case keys.

        Raises:
            KeyError: If ``id`` or a coordinate is missing
            ValueError: If the outcome or sync status is unknown
        """
        timestamp = d.get("timestamp")
        if isinstance(timestamp, str):
            timestamp = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))

        return cls(
            id=str(d["id"]),
            latitude=float(d["latitude"]),
            longitude=float(d["longitude"]),
            outcome=KnockOutcome(d.get("outcome", KnockOutcome.NOT_HOME.value)),
            address=d.get("address"),
            notes=d.get("notes"),
            timestamp=timestamp,
            rep_id=d.get("repId", d.get("rep_id")),
            sync_status=SyncStatus(d.get("syncStatus", d.get("sync_status", "pending"))),
        )
