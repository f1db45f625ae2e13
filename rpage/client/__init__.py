"""Python client for the rpage HTTP API."""

from .api import ApiError, OutputListing, RpageClient, normalize_listing
from .cache import TTLCache
from .outputs import OutputFeed
from .parsing import ParseQueue, make_preview
from .stream import EventStreamDecoder, RunOutcome, RunStreamConsumer

__all__ = [
    "ApiError",
    "EventStreamDecoder",
    "OutputFeed",
    "OutputListing",
    "ParseQueue",
    "RpageClient",
    "RunOutcome",
    "RunStreamConsumer",
    "TTLCache",
    "make_preview",
    "normalize_listing",
]
