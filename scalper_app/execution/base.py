"""Base classes for market data and order execution."""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Optional, TypeVar, Union

import structlog

from ..data.models import Bar, PriceSample
from ..errors import TransientFeedError

logger = structlog.get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Fill:
    """Confirmed execution of an order."""
    client_order_id: str
    side: str
    price: float
    quantity: float
    timestamp: int
    venue_order_id: Optional[str] = None


@dataclass(frozen=True)
class OrderFailure:
    """Order the venue definitively did not execute."""
    client_order_id: str
    side: str
    reason: str
    retryable: bool = False


OrderResult = Union[Fill, OrderFailure]


class MarketDataSource(ABC):
    """Read side of a venue."""

    @abstractmethod
    def historical_bars(self, instrument: str, interval: str, count: int) -> list[Bar]:
        """
        Fetch recent bars for warm-up.

        Returns:
            Bars ordered by interval start, oldest first

        Raises:
            TransientFeedError: Network or server error worth retrying
            DataQualityError: Payload could not be parsed
        """
        pass

    @abstractmethod
    def latest_price(self, instrument: str) -> PriceSample:
        """
        Fetch the most recent trade price.

        Raises:
            TransientFeedError: Network or server error worth retrying
            DataQualityError: Payload could not be parsed
        """
        pass


class ExecutionGateway(ABC):
    """Write side of a venue."""

    @abstractmethod
    def place_order(self, side: str, instrument: str, size: float, *,
                    reference_price: float, client_order_id: str) -> OrderResult:
        """
        Submit an order.

        Returns:
            Fill when executed, OrderFailure when definitively rejected

        Raises:
            OrderOutcomeUnknownError: The request may or may not have reached the venue
        """
        pass

    @abstractmethod
    def order_status(self, client_order_id: str) -> Optional[OrderResult]:
        """Look up a previously submitted order; None while still unknown."""
        pass

    @abstractmethod
    def balances(self) -> dict[str, float]:
        """Available balance per currency."""
        pass


class VenueAdapter(MarketDataSource, ExecutionGateway):
    """A venue offering both market data and order entry."""

    def fetch_price(self, instrument: str) -> PriceSample:
        return self.latest_price(instrument)

    def fetch_history(self, instrument: str, interval: str, count: int) -> list[Bar]:
        return self.historical_bars(instrument, interval, count)


def call_with_retry(
    func: Callable[..., T],
    *args: Any,
    max_retries: int = 2,
    base_delay: float = 0.5,
    sleep: Callable[[float], None] = time.sleep,
    **kwargs: Any
) -> T:
    """
    Call func, retrying TransientFeedError with exponential backoff.

    Args:
        func: Callable to invoke
        max_retries: Retries after the first attempt
        base_delay: Delay before the first retry; doubled on each later one
        sleep: Sleep function (injectable for tests)

    Returns:
        Whatever func returns

    Raises:
        TransientFeedError: Still failing after max_retries retries
    """
    attempt = 0
    while True:
        try:
            return func(*args, **kwargs)
        except TransientFeedError as e:
            if attempt >= max_retries:
                e.retry_count = attempt
                e.max_retries = max_retries
                raise

            delay = base_delay * (2 ** attempt)
            attempt += 1
            logger.warning(
                "Feed call failed, retrying",
                call=getattr(func, "__name__", repr(func)),
                attempt=attempt,
                max_retries=max_retries,
                retry_in_seconds=delay,
                error=str(e)
            )
            sleep(delay)
