"""
Recovery strategy classifications for error handling.

Errors here describe faults that are expected to clear on their own. Feed
errors are retried with backoff; an unknown order outcome is held until the
gateway can report what happened.
"""

from typing import Optional


class RecoverableError(Exception):
    """Base for errors that can be recovered from automatically."""

    def __init__(self, message: str, retry_count: int = 0,
                 max_retries: int = 3, **kwargs):
        super().__init__(message)
        self.retry_count = retry_count
        self.max_retries = max_retries
        self.recoverable = True


class TransientFeedError(RecoverableError):
    """Market data request failed (timeout, network, 5xx, unparsable body)."""

    def __init__(self, message: str, endpoint: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.endpoint = endpoint


class OrderOutcomeUnknownError(RecoverableError):
    """Order request sent but the venue's answer was lost.

    The order may or may not exist at the venue, so it must not be re-sent
    until its status is known.
    """

    def __init__(self, message: str, client_order_id: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.client_order_id = client_order_id
