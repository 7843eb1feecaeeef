"""Location resolution pipeline: domain models and error taxonomy.

The pipeline itself lives in :mod:`neighbourly.resolver.pipeline`; it is not
re-exported here because the stores package imports these models.
"""

from .errors import (
    InternalError,
    InvalidInput,
    InvalidResult,
    NotFound,
    ResolverError,
    UpstreamFailure,
)
from .models import (
    AddressCandidate,
    BestEffortMatch,
    BoundingBox,
    Confidence,
    ContainmentMatch,
    Coordinate,
    ExactMatch,
    InputKind,
    Neighbourhood,
    Query,
    ResolutionTier,
    ResolvedAddress,
    Subzone,
)

__all__ = [
    "AddressCandidate",
    "BestEffortMatch",
    "BoundingBox",
    "Confidence",
    "ContainmentMatch",
    "Coordinate",
    "ExactMatch",
    "InputKind",
    "InternalError",
    "InvalidInput",
    "InvalidResult",
    "Neighbourhood",
    "NotFound",
    "Query",
    "ResolutionTier",
    "ResolvedAddress",
    "ResolverError",
    "Subzone",
    "UpstreamFailure",
]
