"""
Error Taxonomy

Every failure the metrics pipeline and the cache can raise. Each class carries
the HTTP status and public error label the API renders for it.
"""

from typing import Optional


class SwaptAnalyticsError(Exception):
    """Base class for all pipeline and cache failures"""

    status_code: int = 500
    error: str = "Internal error"


class ConfigurationError(SwaptAnalyticsError):
    """Missing credentials or unresolvable metric identifiers"""

    error = "Failed to fetch store data"


class UpstreamFetchError(SwaptAnalyticsError):
    """A request to the events API failed or returned unusable data"""

    error = "Failed to fetch store data"

    def __init__(self, message: str, url: Optional[str] = None, page: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.page = page


class PersistenceError(SwaptAnalyticsError):
    """The computed result could not be written to the cache file"""

    error = "Failed to save data"


class CacheMissError(SwaptAnalyticsError):
    """No cached result exists yet"""

    status_code = 404
    error = "Data file not found"


class CacheReadError(SwaptAnalyticsError):
    """The cached result exists but cannot be read or decoded"""

    error = "Failed to fetch data"


class InvalidRequestError(SwaptAnalyticsError):
    """A caller request is missing required parameters"""

    status_code = 400
    error = "Missing required parameters"


class PipelineError(SwaptAnalyticsError):
    """An unexpected failure while computing metrics"""

    error = "Failed to fetch store data"
