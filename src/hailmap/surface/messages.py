"""Pydantic schemas for messages sent to the map surface.

Every message is a JSON object with a ``type`` discriminator matching the
surface-side handler name, e.g.::

    {"type": "updateHailContours", "contours": {"type": "FeatureCollection", ...}}
"""

from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

CAMEL_CASE = {"populate_by_name": True}


class KnockPayload(BaseModel):
    """A knock as the surface renders it.

    Attributes:
        id: Knock id
        latitude: Latitude in decimal degrees
        longitude: Longitude in decimal degrees
        outcome: Outcome value (e.g. "lead")
        address: Street address
        notes: Rep notes
        timestamp: ISO 8601 timestamp
        rep_id: Id of the recording rep
        sync_status: "pending" or "synced"
    """

    id: str
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    outcome: str
    address: Optional[str] = None
    notes: Optional[str] = None
    timestamp: Optional[str] = None
    rep_id: Optional[str] = Field(default=None, alias="repId")
    sync_status: str = Field(default="pending", alias="syncStatus")

    model_config = CAMEL_CASE


class VerifiedReportPayload(BaseModel):
    """A ground-truth hail report shown as a marker."""

    id: str
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    size: float = Field(..., gt=0, description="Hail diameter in inches")
    timestamp: str
    confidence: Optional[float] = Field(default=None, ge=0, le=100)
    city: Optional[str] = None
    source: Optional[str] = None


class HailContoursMessage(BaseModel):
    """Replace the displayed contour overlay wholesale."""

    type: Literal["updateHailContours"] = "updateHailContours"
    contours: dict[str, Any]


class KnocksDifferentialMessage(BaseModel):
    """Apply incremental knock changes."""

    type: Literal["updateKnocksDifferential"] = "updateKnocksDifferential"
    added: list[KnockPayload] = Field(default_factory=list)
    updated: list[KnockPayload] = Field(default_factory=list)
    removed: list[str] = Field(default_factory=list)
    has_changes: bool = Field(..., alias="hasChanges")

    model_config = CAMEL_CASE


class KnocksMessage(BaseModel):
    """Replace all displayed knocks."""

    type: Literal["updateKnocks"] = "updateKnocks"
    knocks: list[KnockPayload]


class VerifiedReportsMessage(BaseModel):
    type: Literal["updateVerifiedReports"] = "updateVerifiedReports"
    reports: list[VerifiedReportPayload]
