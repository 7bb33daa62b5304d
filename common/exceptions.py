"""Custom exception classes shared by the transfer and share-code layers."""

from typing import Optional


class PrivShareError(Exception):
    """
    Base exception class for all PrivShare errors.

    Carries structured context so callers can branch on type and fields
    instead of on message text.
    """

    def __init__(
        self,
        message: str,
        *,
        stage: Optional[str] = None,
        root_digest: Optional[str] = None,
        share_code: Optional[str] = None,
    ):
        super().__init__(message)
        self.stage = stage
        self.root_digest = root_digest
        self.share_code = share_code


class FormatError(PrivShareError):
    """
    Raised when an input does not follow the expected grammar.
    """
    pass


class InvalidFormatError(FormatError):
    """
    Raised when a share code is malformed. Never retried.
    """
    pass


class FileTooLargeError(PrivShareError):
    """
    Raised when an upload exceeds the configured maximum file size.
    """

    def __init__(self, size: int, limit: int):
        super().__init__(f"File size {size} exceeds maximum of {limit} bytes", stage="upload")
        self.size = size
        self.limit = limit


class LocationError(PrivShareError):
    """
    Raised when no storage location can serve a root digest.
    """
    pass


class NoLocationError(LocationError):
    """
    Raised when the indexer returns no candidate nodes, or none of them
    reports the file as finalized.
    """
    pass


class FetchError(PrivShareError):
    """
    Raised for a single node failing a single segment. Absorbed by fail-over.
    """

    def __init__(
        self,
        message: str,
        *,
        endpoint: Optional[str] = None,
        segment_index: Optional[int] = None,
        retryable: bool = False,
        **kwargs
    ):
        super().__init__(message, **kwargs)
        self.endpoint = endpoint
        self.segment_index = segment_index
        self.retryable = retryable


class SegmentsExhaustedError(PrivShareError):
    """
    Raised when every ranked node failed for at least one segment task.

    Attributes:
        attempts: Mapping of segment index to list of (rank, endpoint, outcome)
    """

    def __init__(self, message: str, attempts: dict, **kwargs):
        super().__init__(message, **kwargs)
        self.attempts = attempts


class IntegrityError(PrivShareError):
    """
    Raised when reassembled bytes do not hash to the expected root digest.
    Fatal, never retried.
    """

    def __init__(self, expected: str, actual: str, **kwargs):
        super().__init__(f"Root digest mismatch: expected {expected}, got {actual}", **kwargs)
        self.expected = expected
        self.actual = actual


class UnresolvedShareCodeError(PrivShareError):
    """
    Raised when neither the local cache nor the index knows a share code.
    """
    pass


class EncryptionError(PrivShareError):
    """
    Raised when key or IV material is missing, or the cipher fails.
    """
    pass


class SubmissionError(PrivShareError):
    """
    Raised when uploading segments or submitting the transaction fails.
    """
    pass


class PublishError(PrivShareError):
    """
    Raised when a pointer record cannot be written to the index.
    """
    pass


class StorageUnavailableError(PrivShareError):
    """
    Raised when the indexer or RPC endpoint is unreachable, either during
    connect or while looking up a file's locations.
    """
    pass
