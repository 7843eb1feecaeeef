"""Exception taxonomy for the resolution pipeline.

Each error carries the HTTP status the routers translate it to.
UpstreamFailure subclasses NotFound: a provider outage is reported to the
caller exactly like "no match".
"""


class ResolverError(Exception):
    """Base class for all resolution errors."""

    status_code: int = 500


class InvalidInput(ResolverError):
    """Malformed postal code, empty query, or unrecognised declared type."""

    status_code = 400


class NotFound(ResolverError):
    """No strategy produced a result."""

    status_code = 404


class UpstreamFailure(NotFound):
    """Geocoding provider unreachable or returned a non-success status."""


class InvalidResult(UpstreamFailure):
    """Provider returned coordinates that are not finite or not in Singapore."""


class InternalError(ResolverError):
    """Reference-data store failure or unexpected parse failure."""

    status_code = 500
