"""IP 定位：ipstack 客户端与并发定位"""

from geocoding.ipstack import (
    GeolocationError,
    HTTPStatusError,
    IPStackClient,
    IPStackConfig,
    MalformedResponseError,
    NoAddressError,
    ProviderError,
    QuotaExceededError,
    TransportError,
)
from geocoding.locator import fresh_locations, resolve_all, resolve_records
from geocoding.models import LocationRecord, Resolution, pinnable

__all__ = [
    "GeolocationError",
    "HTTPStatusError",
    "IPStackClient",
    "IPStackConfig",
    "LocationRecord",
    "MalformedResponseError",
    "NoAddressError",
    "ProviderError",
    "QuotaExceededError",
    "Resolution",
    "TransportError",
    "fresh_locations",
    "pinnable",
    "resolve_all",
    "resolve_records",
]
