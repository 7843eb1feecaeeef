"""OneMap geocoding provider: HTTP client and response models."""

from .client import OneMapClient, OneMapUnavailableError
from .models import OneMapResult, OneMapSearchResponse

__all__ = [
    "OneMapClient",
    "OneMapResult",
    "OneMapSearchResponse",
    "OneMapUnavailableError",
]
