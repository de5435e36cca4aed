"""
Error taxonomy for the search core.

Only option validation errors (pydantic.ValidationError) are allowed to reach
callers of the search engines. Everything below is caught at its boundary:

- AIBoundaryError: completion provider failed (network, status, bad payload).
  Caught by the AI reranker and converted into a degraded result set.
- AIResponseError: provider answered, but the payload does not match the
  expected JSON schema.
- PersistenceError: analytics store could not be read or written.
  Caught by the analytics recorder and logged.

Indexing never raises: an empty or malformed corpus yields an empty index.
"""


class SearchError(Exception):
    """Base class for search core errors"""


class AIBoundaryError(SearchError):
    """External completion call failed"""


class AIResponseError(AIBoundaryError):
    """Completion payload did not match the expected schema"""

    def __init__(self, message: str, raw_response: str = ""):
        super().__init__(message)
        self.raw_response = raw_response


class PersistenceError(SearchError):
    """Analytics snapshot could not be loaded or saved"""
