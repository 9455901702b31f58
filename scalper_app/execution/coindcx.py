"""CoinDCX REST venue adapter."""

import hashlib
import hmac
import socket
from typing import Any, Callable, Optional
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

import orjson
import structlog

from ..data.models import Bar, PriceSample
from ..data.parsers import parse_candles, parse_number, parse_trade_tick
from ..errors import (
    ConfigurationError,
    MalformedDataError,
    MissingDataError,
    OrderOutcomeUnknownError,
    TransientFeedError,
)
from ..utils.time import now_ms
from .base import Fill, OrderFailure, OrderResult, VenueAdapter

logger = structlog.get_logger(__name__)

PUBLIC_BASE_URL = "https://public.coindcx.com"
API_BASE_URL = "https://api.coindcx.com"

CANDLES_PATH = "/market_data/candles"
TRADE_HISTORY_PATH = "/market_data/trade_history"
BALANCES_PATH = "/exchange/v1/users/balances"
CREATE_ORDER_PATH = "/exchange/v1/orders/create"
ORDER_STATUS_PATH = "/exchange/v1/orders/status"

_FILLED = {"filled"}
_FAILED = {"rejected", "cancelled", "partially_cancelled"}


def split_instrument(instrument: str) -> tuple[str, str]:
    """
    Split a CoinDCX pair into (base, quote) currencies.

    "B-BTC_USDT" -> ("BTC", "USDT")
    """
    pair = instrument.split("-", 1)[1] if "-" in instrument else instrument
    if "_" not in pair:
        raise ValueError(f"Cannot derive currencies from instrument {instrument!r}")
    base, quote = pair.split("_", 1)
    return base, quote


def market_code_for(instrument: str) -> str:
    """Order-side market symbol, e.g. "B-BTC_USDT" -> "BTCUSDT"."""
    base, quote = split_instrument(instrument)
    return f"{base}{quote}"


class CoinDCXAdapter(VenueAdapter):
    """Market data and signed order entry against the CoinDCX REST API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_secret: Optional[str] = None,
        market_code: Optional[str] = None,
        timeout_seconds: float = 10.0,
        clock: Callable[[], int] = now_ms,
        public_base_url: str = PUBLIC_BASE_URL,
        api_base_url: str = API_BASE_URL
    ):
        self.api_key = api_key
        self.api_secret = api_secret
        self.market_code = market_code
        self.timeout_seconds = timeout_seconds
        self.clock = clock
        self.public_base_url = public_base_url.rstrip("/")
        self.api_base_url = api_base_url.rstrip("/")
        self.logger = logger

    # Market data

    def historical_bars(self, instrument: str, interval: str, count: int) -> list[Bar]:
        payload = self._get_json(
            CANDLES_PATH,
            {"pair": instrument, "interval": interval, "limit": count}
        )
        bars = parse_candles(payload)
        return bars[-count:] if count > 0 else bars

    def latest_price(self, instrument: str) -> PriceSample:
        payload = self._get_json(TRADE_HISTORY_PATH, {"pair": instrument, "limit": 1})
        sample = parse_trade_tick(payload, fallback_ts=self.clock())
        if sample is None:
            raise MissingDataError("Trade history returned no trades", data_type="trade")
        return sample

    # Order entry

    def place_order(self, side: str, instrument: str, size: float, *,
                    reference_price: float, client_order_id: str) -> OrderResult:
        body = {
            "side": side.lower(),
            "order_type": "limit_order",
            "market": self.market_code or market_code_for(instrument),
            "price_per_unit": reference_price,
            "total_quantity": size,
            "client_order_id": client_order_id,
            "timestamp": self.clock(),
        }

        try:
            response = self._post_signed(CREATE_ORDER_PATH, body)
        except HTTPError as e:
            if e.code < 500:
                reason = f"HTTP {e.code}: {self._error_body(e)}"
                self.logger.warning("Order rejected by venue", client_order_id=client_order_id,
                                    reason=reason)
                return OrderFailure(client_order_id=client_order_id, side=side.upper(),
                                    reason=reason)
            raise OrderOutcomeUnknownError(
                f"Order create returned HTTP {e.code}",
                client_order_id=client_order_id
            ) from e
        except (OSError, URLError, socket.timeout, ValueError) as e:
            raise OrderOutcomeUnknownError(
                f"Order create failed in transit: {e}",
                client_order_id=client_order_id
            ) from e

        result = self._order_result(response, client_order_id, side, size, reference_price)
        if result is None:
            raise OrderOutcomeUnknownError(
                "Order accepted but not yet filled",
                client_order_id=client_order_id
            )
        return result

    def order_status(self, client_order_id: str) -> Optional[OrderResult]:
        body = {"client_order_id": client_order_id, "timestamp": self.clock()}
        try:
            response = self._post_signed(ORDER_STATUS_PATH, body)
        except HTTPError as e:
            if e.code == 404:
                return OrderFailure(client_order_id=client_order_id, side="",
                                    reason="order not found at venue")
            raise TransientFeedError(f"Order status returned HTTP {e.code}",
                                     endpoint=ORDER_STATUS_PATH) from e
        except (OSError, URLError, socket.timeout, ValueError) as e:
            raise TransientFeedError(f"Order status failed: {e}",
                                     endpoint=ORDER_STATUS_PATH) from e

        return self._order_result(response, client_order_id, "", None, None)

    def balances(self) -> dict[str, float]:
        try:
            response = self._post_signed(BALANCES_PATH, {"timestamp": self.clock()})
        except (OSError, URLError, socket.timeout, ValueError) as e:
            raise TransientFeedError(f"Balance request failed: {e}", endpoint=BALANCES_PATH) from e

        if not isinstance(response, list):
            raise TransientFeedError("Balance response is not a list", endpoint=BALANCES_PATH)

        return {
            item["currency"]: parse_number(item.get("balance", 0), "balance")
            for item in response
            if isinstance(item, dict) and "currency" in item
        }

    # HTTP

    def _get_json(self, path: str, params: dict[str, Any]) -> Any:
        url = f"{self.public_base_url}{path}?{urlencode(params)}"
        req = Request(url, headers={
            "Accept": "application/json",
            "Cache-Control": "no-cache",
            "User-Agent": "scalper-app/0.1",
        })

        try:
            with urlopen(req, timeout=self.timeout_seconds) as response:
                return orjson.loads(response.read())
        except HTTPError as e:
            if e.code >= 500 or e.code == 429:
                raise TransientFeedError(f"HTTP {e.code}: {e.reason}", endpoint=path) from e
            raise MissingDataError(f"Venue refused {path}: HTTP {e.code}",
                                   data_type=path) from e
        except (OSError, URLError, socket.timeout) as e:
            raise TransientFeedError(f"Network error: {e}", endpoint=path) from e
        except ValueError as e:
            raise TransientFeedError(f"Response is not JSON: {e}", endpoint=path) from e

    def _post_signed(self, path: str, body: dict[str, Any]) -> Any:
        """POST a signed JSON body. HTTP, network and decode errors propagate."""
        if not self.api_key or not self.api_secret:
            raise ConfigurationError("API credentials are required for private endpoints")

        data = orjson.dumps(body)
        req = Request(
            f"{self.api_base_url}{path}",
            data=data,
            headers={
                "Content-Type": "application/json",
                "X-AUTH-APIKEY": self.api_key,
                "X-AUTH-SIGNATURE": self.sign(data),
                "User-Agent": "scalper-app/0.1",
            },
            method="POST"
        )

        with urlopen(req, timeout=self.timeout_seconds) as response:
            return orjson.loads(response.read())

    def sign(self, payload: bytes) -> str:
        """HMAC-SHA256 hex digest of the request body."""
        return hmac.new(
            self.api_secret.encode("utf-8"),
            payload,
            hashlib.sha256
        ).hexdigest()

    def _order_result(self, response: Any, client_order_id: str, side: str,
                      size: Optional[float], reference_price: Optional[float]
                      ) -> Optional[OrderResult]:
        """Map an order payload to Fill / OrderFailure, or None while still open."""
        order = response
        if isinstance(order, dict) and "orders" in order:
            order = order["orders"]
        if isinstance(order, list):
            order = order[0] if order else None
        if not isinstance(order, dict):
            return None

        status = str(order.get("status", "")).lower()
        order_side = str(order.get("side") or side).upper()

        if status in _FILLED:
            price = order.get("avg_price") or order.get("price_per_unit") or reference_price
            quantity = order.get("total_quantity") or size
            try:
                fill_price = parse_number(price, "avg_price")
                fill_quantity = parse_number(quantity, "total_quantity")
            except MalformedDataError as e:
                # Filled at the venue but unreadable here; keep it unresolved
                self.logger.warning("Filled order payload unusable",
                                    client_order_id=client_order_id, error=str(e))
                return None
            return Fill(
                client_order_id=client_order_id,
                side=order_side,
                price=fill_price,
                quantity=fill_quantity,
                timestamp=self.clock(),
                venue_order_id=str(order["id"]) if order.get("id") is not None else None
            )

        if status in _FAILED:
            return OrderFailure(client_order_id=client_order_id, side=order_side,
                                reason=f"order {status}")

        return None

    @staticmethod
    def _error_body(error: HTTPError) -> str:
        try:
            return error.read().decode("utf-8")[:200]
        except (OSError, AttributeError):
            return str(error.reason)
