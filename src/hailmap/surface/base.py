"""Map surface boundary.

The rendering surface is a passive consumer: it receives contour
collections and knock updates and never answers. Implementations must not
raise from the update methods; delivery is fire-and-forget.
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Callable, Sequence

import geojson
from pydantic import BaseModel

from hailmap.knocks.differential import KnockDelta
from hailmap.knocks.models import Knock
from hailmap.reports.models import HailReport
from hailmap.surface.messages import (
    HailContoursMessage,
    KnockPayload,
    KnocksDifferentialMessage,
    KnocksMessage,
    VerifiedReportPayload,
    VerifiedReportsMessage,
)

logger = logging.getLogger(__name__)


class MapSurface(ABC):
    """Abstract consumer of generated geometry and knock updates."""

    @abstractmethod
    def update_hail_contours(self, contours: dict) -> None:
        """Replace the displayed contour overlay."""

    @abstractmethod
    def update_knocks_differential(self, delta: KnockDelta) -> None:
        """Apply an incremental knock update."""

    @abstractmethod
    def update_knocks(self, knocks: Sequence[Knock]) -> None:
        """Replace all displayed knocks."""

    @abstractmethod
    def update_verified_reports(self, reports: Sequence[HailReport]) -> None:
        """Replace the ground-truth report markers."""


def contours_message(contours: dict) -> HailContoursMessage:
    # Normalise geojson objects to plain JSON types
    return HailContoursMessage(contours=json.loads(geojson.dumps(contours)))


def knocks_differential_message(delta: KnockDelta) -> KnocksDifferentialMessage:
    return KnocksDifferentialMessage(
        added=[KnockPayload.model_validate(k.to_dict()) for k in delta.added],
        updated=[KnockPayload.model_validate(k.to_dict()) for k in delta.updated],
        removed=list(delta.removed),
        has_changes=delta.has_changes,
    )


def knocks_message(knocks: Sequence[Knock]) -> KnocksMessage:
    return KnocksMessage(knocks=[KnockPayload.model_validate(k.to_dict()) for k in knocks])


def verified_reports_message(reports: Sequence[HailReport]) -> VerifiedReportsMessage:
    return VerifiedReportsMessage(
        reports=[VerifiedReportPayload.model_validate(r.to_dict()) for r in reports]
    )


class MessageSurface(MapSurface):
    """Surface reached through a serialized message channel.

    Each update is converted to a JSON message and handed to ``post``
    (e.g. a WebView bridge). Failures to build or deliver a message are
    logged and counted, never raised.

    Attributes:
        sent_count: Messages delivered to ``post``
        failed_count: Messages that could not be built or delivered
    """

    def __init__(self, post: Callable[[str], None]):
        self._post = post
        self.sent_count = 0
        self.failed_count = 0

    def update_hail_contours(self, contours: dict) -> None:
        self._send("updateHailContours", lambda: contours_message(contours))

    def update_knocks_differential(self, delta: KnockDelta) -> None:
        self._send("updateKnocksDifferential", lambda: knocks_differential_message(delta))

    def update_knocks(self, knocks: Sequence[Knock]) -> None:
        self._send("updateKnocks", lambda: knocks_message(knocks))

    def update_verified_reports(self, reports: Sequence[HailReport]) -> None:
        self._send("updateVerifiedReports", lambda: verified_reports_message(reports))

    def _send(self, kind: str, build: Callable[[], BaseModel]) -> None:
        try:
            payload = build().model_dump_json(by_alias=True)
            self._post(payload)
        except Exception as e:
            self.failed_count += 1
            logger.warning(f"Failed to send {kind} message: {e}")
            return
        self.sent_count += 1
        logger.debug(f"Sent {kind} message ({len(payload)} bytes)")
