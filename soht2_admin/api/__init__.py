from .endpoints import ConnectionApi, UserApi
from .errors import ApiError, FieldError, TransportError, as_api_error
from .http_client import Soht2Client
from .types import Page, Paging, Soht2Connection, Soht2User, SortOrder

__all__ = [
    "ApiError",
    "ConnectionApi",
    "FieldError",
    "Page",
    "Paging",
    "Soht2Client",
    "Soht2Connection",
    "Soht2User",
    "SortOrder",
    "TransportError",
    "UserApi",
    "as_api_error",
]
