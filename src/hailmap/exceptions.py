"""Exception hierarchy for the contour pipeline and report store."""


class HailMapError(Exception):
    """Base class for hailmap errors."""


class GenerationError(HailMapError):
    """Smooth contour generation could not produce valid geometry.

    Raised for insufficient or degenerate input (fewer than three distinct
    locations, collinear points) and for invalid output geometry. The
    coordinator recovers by switching to the fallback generator.
    """


class FallbackFailure(HailMapError):
    """The fallback generator failed, which indicates a logic defect."""


class MalformedReport(HailMapError, ValueError):
    """A hail report has missing or invalid coordinates or size."""

    def __init__(self, report_id: str | None, reason: str):
        self.report_id = report_id
        self.reason = reason
        super().__init__(f"Malformed report {report_id!r}: {reason}")


class StormNotFound(HailMapError, KeyError):
    """No storm with the requested id exists in the store."""
