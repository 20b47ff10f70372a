"""
Error taxonomy for the fountain pipeline.

Query errors propagate to the caller. Cache errors are built and logged
inside the cache store and never leave it.
"""


class FountainError(Exception):
    """Base class for all fountain pipeline errors."""


class NetworkError(FountainError):
    """The remote query service could not be reached or answered with an error status."""


class EmptyResponseError(FountainError):
    """The remote query service returned no body."""


class ParseError(FountainError):
    """The response body was not JSON or did not match the expected schema."""


class CacheReadError(FountainError):
    """The persisted envelope could not be read or decoded."""


class CacheWriteError(FountainError):
    """The envelope could not be persisted."""


class DuplicateFountainError(FountainError):
    """A fountain with the same id already exists in the collection."""


class FountainNotFoundError(FountainError):
    """No fountain with the given id exists in the collection."""
