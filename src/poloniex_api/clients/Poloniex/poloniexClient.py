"""Poloniex exchange client implementation."""

import hashlib
import hmac
import json
import time
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Union
from urllib.parse import urlencode

import polars as pl
import requests
from loguru import logger

from .endpoints import REQUIRED, Endpoint, Param
from ...commands import CommandType, MOVE_ORDER_TYPES, ORDER_TYPES, classify, wire_name
from ...config import Settings
from ...exceptions import (
    ConfigurationError,
    ErrorKind,
    ProtocolError,
    RequestError,
    RetryExhausted,
    classify_error,
    parse_nonce_floor,
)
from ...models import CHART_PERIODS, DAY, MONTH, Candle
from ...nonce import Nonce

PUBLIC_API_BASE = "https://poloniex.com/public"
PRIVATE_API_BASE = "https://poloniex.com/tradingApi"

# Idle time after a failed attempt; one attempt per entry
RETRY_DELAYS = (0, 2, 5, 30)


def _now() -> int:
    return int(time.time())


def _day_ago() -> int:
    return _now() - DAY


def _month_ago() -> int:
    return _now() - MONTH


def _currency_pair(default: Any = REQUIRED) -> Param:
    return Param("currency_pair", "currencyPair", default=default, upper=True)


class PoloniexClient:
    """Poloniex REST API client.

    Public commands are sent as GET requests, private ones as signed POST
    requests. Transient failures are retried on the fixed RETRY_DELAYS
    schedule.

    `timeout` is passed to requests afresh on every attempt. It bounds the
    connection setup and each wait for response data, not the total
    transfer time of the attempt.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        secret_key: Optional[str] = None,
        timeout: float = 3,
        json_nums: Union[bool, Callable[[str], Any]] = False,
        nonce: Optional[Nonce] = None,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.api_key = api_key
        self.secret_key = secret_key
        self.timeout = timeout
        self.json_nums = json_nums
        self.nonce = nonce if nonce is not None else Nonce()
        self.session = session if session is not None else requests.Session()
        self._sleep = sleep

        logger.info(f"PoloniexClient initialized {'(authenticated)' if self.has_credentials else '(public only)'}")

    @property
    def has_credentials(self) -> bool:
        """True when both the API key and the secret are set."""
        return bool(self.api_key and self.secret_key)

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs) -> "PoloniexClient":
        """Create a client from a Settings object."""
        return cls(
            api_key=settings.api_key,
            secret_key=settings.api_secret,
            timeout=settings.timeout,
            json_nums=settings.json_nums,
            **kwargs,
        )

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    # Dispatcher

    def call(self, command: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """Send <command> with optional params and return the decoded JSON.

        Raises:
            ConfigurationError: unknown command, or private command without keys
            ProtocolError: the exchange reported an error, or sent invalid JSON
            RetryExhausted: every attempt failed with a transient error
        """
        command_type = self.check_command(command)

        args = {key: str(value) for key, value in (params or {}).items()}
        args["command"] = wire_name(command)

        problems: List[RequestError] = []
        for attempt, delay in enumerate(RETRY_DELAYS, start=1):
            try:
                if command_type == CommandType.PRIVATE:
                    body = self._post(args)
                else:
                    body = self._get(args)
                return self.handle_returned(body)

            except RequestError as problem:
                problems.append(problem)
                if attempt == len(RETRY_DELAYS):
                    logger.error(f"{command} failed after {attempt} attempts: {problem}")
                    raise RetryExhausted(f"Retry delays exhausted: {problem}", problems) from problem

                logger.debug(f"{command} attempt {attempt} failed: {problem}")
                logger.info(f"-- delaying for {delay} seconds")
                self._sleep(delay)

    def check_command(self, command: str) -> CommandType:
        """Classify a command, checking credentials for private ones."""
        command_type = classify(command)
        if command_type == CommandType.PRIVATE and not self.has_credentials:
            raise ConfigurationError("An API key and Secret Key are required!")
        return command_type

    def sign(self, body: str) -> str:
        """Hex HMAC-SHA512 of the request body keyed by the secret."""
        return hmac.new(
            self.secret_key.encode("utf-8"),
            body.encode("utf-8"),
            hashlib.sha512,
        ).hexdigest()

    def handle_returned(self, data: str) -> Any:
        """Decode a response body and classify any exchange error."""
        try:
            out = json.loads(data, **self._json_options())
        except ValueError:
            logger.error(f"Invalid json response: {data[:200]!r}")
            raise ProtocolError("Invalid json response returned!", body=data)

        if isinstance(out, dict) and "error" in out:
            message = str(out["error"])
            kind = classify_error(message)

            if kind == ErrorKind.NONCE_BEHIND:
                floor = parse_nonce_floor(message)
                if floor is not None:
                    self.nonce.resync(floor)
                else:
                    self.nonce.next()
                raise RequestError(f"PoloniexError {message}")

            if kind == ErrorKind.RETRY:
                raise RequestError(f"PoloniexError {message}")

            raise ProtocolError(message, body=data)

        return out

    def _json_options(self) -> Dict[str, Any]:
        if self.json_nums is True:
            return {"parse_float": Decimal}
        if callable(self.json_nums):
            return {"parse_float": self.json_nums, "parse_int": self.json_nums}
        return {}

    # Transport

    def _get(self, args: Dict[str, str]) -> str:
        """Perform the HTTP GET against the public endpoint."""
        url = f"{PUBLIC_API_BASE}?{urlencode(args)}"
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.Timeout:
            raise RequestError(f"Request took longer than {self.timeout} seconds!")
        except requests.RequestException as e:
            raise RequestError(f"Request failed: {e}")
        return response.text

    def _post(self, args: Dict[str, str]) -> str:
        """Perform the signed HTTP POST against the trading endpoint.

        A fresh nonce and signature are generated for every attempt.
        """
        data = dict(args)
        data["nonce"] = str(self.nonce.next())
        body = urlencode(data)

        headers = {
            "Content-Type": "application/x-www-form-urlencoded",
            "Sign": self.sign(body),
            "Key": self.api_key,
        }

        try:
            response = self.session.post(PRIVATE_API_BASE, data=body, headers=headers, timeout=self.timeout)
        except requests.Timeout:
            raise RequestError(f"Request took longer than {self.timeout} seconds!")
        except requests.RequestException as e:
            raise RequestError(f"Request failed: {e}")
        return response.text

    # Candles

    def get_candles(
        self,
        currency_pair: str,
        period: int = 300,
        start: Optional[int] = None,
        end: Optional[int] = None,
    ) -> List[Candle]:
        """Get candlestick data as Candle objects (defaults to the last day)."""
        rows = self.return_chart_data(currency_pair, period, start, end)
        candles = [Candle.from_response(row) for row in rows]
        logger.debug(f"Fetched {len(candles)} candles for {currency_pair}")
        return candles

    def get_candles_frame(
        self,
        currency_pair: str,
        period: int = 300,
        start: Optional[int] = None,
        end: Optional[int] = None,
    ) -> pl.DataFrame:
        """Get candlestick data as a polars DataFrame, oldest first."""
        candles = self.get_candles(currency_pair, period, start, end)
        if not candles:
            return pl.DataFrame()

        return pl.DataFrame([
            {
                "timestamp": c.timestamp,
                "open": c.open,
                "high": c.high,
                "low": c.low,
                "close": c.close,
                "volume": c.volume,
                "quote_volume": c.quote_volume,
                "weighted_average": c.weighted_average,
            }
            for c in candles
        ]).sort("timestamp")

    # PUBLIC COMMANDS

    return_ticker = Endpoint(
        "returnTicker",
        doc="Returns the ticker for all markets.",
    )

    return_24h_volume = Endpoint(
        "return24hVolume",
        doc="Returns the 24-hour volume for all markets, plus totals for primary currencies.",
    )

    return_order_book = Endpoint(
        "returnOrderBook",
        _currency_pair("all"),
        Param("depth", "depth", default=20),
        doc="""Returns the order book for a given market, as well as a sequence
        number and a frozen flag (defaults to 'all' markets at a depth of 20).""",
    )

    market_trade_hist = Endpoint(
        "marketTradeHist",
        _currency_pair(),
        Param("start", "start", default=None),
        Param("end", "end", default=None),
        doc="""Returns the past 200 public trades for a market, or up to 50,000
        trades between the UNIX timestamps `start` and `end`.""",
    )

    return_chart_data = Endpoint(
        "returnChartData",
        _currency_pair(),
        Param("period", "period", choices=CHART_PERIODS),
        Param("start", "start", default_factory=_day_ago),
        Param("end", "end", default_factory=_now),
        doc="""Returns candlestick chart data. `period` is the candle length in
        seconds (300, 900, 1800, 7200, 14400 or 86400); the range defaults to
        the last day.""",
    )

    return_currencies = Endpoint(
        "returnCurrencies",
        doc="Returns information about all currencies.",
    )

    return_loan_orders = Endpoint(
        "returnLoanOrders",
        Param("currency", "currency", upper=True),
        doc="Returns the list of loan offers and demands for a given currency.",
    )

    # PRIVATE COMMANDS

    return_balances = Endpoint(
        "returnBalances",
        doc="Returns all of your available balances.",
    )

    return_complete_balances = Endpoint(
        "returnCompleteBalances",
        Param("account", "account", default="all"),
        doc="""Returns all of your balances, including balance on orders and the
        estimated BTC value. `account='all'` includes margin and lending.""",
    )

    return_deposit_addresses = Endpoint(
        "returnDepositAddresses",
        doc="Returns all of your deposit addresses.",
    )

    generate_new_address = Endpoint(
        "generateNewAddress",
        Param("currency", "currency", upper=True),
        doc="Generates a new deposit address for the given currency.",
    )

    return_deposits_withdrawals = Endpoint(
        "returnDepositsWithdrawals",
        Param("start", "start", default_factory=_month_ago),
        Param("end", "end", default_factory=_now),
        doc="Returns your deposit and withdrawal history (defaults to the last month).",
    )

    return_open_orders = Endpoint(
        "returnOpenOrders",
        _currency_pair("all"),
        doc="Returns your open orders for a given market, or 'all' markets.",
    )

    return_trade_history = Endpoint(
        "returnTradeHistory",
        _currency_pair("all"),
        Param("start", "start", default=None),
        Param("end", "end", default=None),
        doc="""Returns your trade history for a given market, or 'all'. Without
        a range the exchange limits it to one day.""",
    )

    return_order_trades = Endpoint(
        "returnOrderTrades",
        Param("order_number", "orderNumber"),
        doc="Returns all trades involving a given order.",
    )

    buy = Endpoint(
        "buy",
        _currency_pair(),
        Param("rate", "rate"),
        Param("amount", "amount"),
        Param("order_type", default=None, modifiers=ORDER_TYPES),
        doc="""Places a limit buy order. `order_type` may be 'fillOrKill',
        'immediateOrCancel' or 'postOnly'. Returns the order number.""",
    )

    sell = Endpoint(
        "sell",
        _currency_pair(),
        Param("rate", "rate"),
        Param("amount", "amount"),
        Param("order_type", default=None, modifiers=ORDER_TYPES),
        doc="Places a sell order. Parameters and output are the same as for buy.",
    )

    cancel_order = Endpoint(
        "cancelOrder",
        Param("order_number", "orderNumber"),
        doc="Cancels an order you have placed.",
    )

    move_order = Endpoint(
        "moveOrder",
        Param("order_number", "orderNumber"),
        Param("rate", "rate"),
        Param("amount", "amount", default=None),
        Param("order_type", default=None, modifiers=MOVE_ORDER_TYPES),
        doc="""Cancels an order and places a new one of the same type atomically.
        Only 'immediateOrCancel' and 'postOnly' are valid order types.""",
    )

    withdraw = Endpoint(
        "withdraw",
        Param("currency", "currency", upper=True),
        Param("amount", "amount"),
        Param("address", "address"),
        Param("payment_id", "paymentId", default=None),
        doc="""Immediately places a withdrawal with no email confirmation. The
        API key needs the withdrawal privilege.""",
    )

    return_fee_info = Endpoint(
        "returnFeeInfo",
        doc="Returns your current trading fees and trailing 30-day volume in BTC.",
    )

    return_available_account_balances = Endpoint(
        "returnAvailableAccountBalances",
        Param("account", "account", default=None),
        doc="Returns your balances sorted by account, optionally for one account.",
    )

    return_tradable_balances = Endpoint(
        "returnTradableBalances",
        doc="Returns your tradable balances for each margin-enabled market.",
    )

    transfer_balance = Endpoint(
        "transferBalance",
        Param("currency", "currency", upper=True),
        Param("amount", "amount"),
        Param("from_account", "fromAccount"),
        Param("to_account", "toAccount"),
        Param("confirmed", "confirmed", default=False, flag=True),
        doc="Transfers funds from one account to another (e.g. exchange to margin).",
    )

    return_margin_account_summary = Endpoint(
        "returnMarginAccountSummary",
        doc="Returns a summary of your entire margin account.",
    )

    margin_buy = Endpoint(
        "marginBuy",
        _currency_pair(),
        Param("rate", "rate"),
        Param("amount", "amount"),
        Param("lending_rate", "lendingRate", default=2),
        doc="Places a margin buy order with a maximum lending rate (defaults to 2).",
    )

    margin_sell = Endpoint(
        "marginSell",
        _currency_pair(),
        Param("rate", "rate"),
        Param("amount", "amount"),
        Param("lending_rate", "lendingRate", default=2),
        doc="Places a margin sell order. Parameters are the same as for margin_buy.",
    )

    get_margin_position = Endpoint(
        "getMarginPosition",
        _currency_pair("all"),
        doc="Returns your margin position in a given market, or 'all'.",
    )

    close_margin_position = Endpoint(
        "closeMarginPosition",
        _currency_pair(),
        doc="Closes your margin position in a given market using a market order.",
    )

    create_loan_offer = Endpoint(
        "createLoanOffer",
        Param("currency", "currency", upper=True),
        Param("amount", "amount"),
        Param("lending_rate", "lendingRate"),
        Param("auto_renew", "autoRenew", default=0),
        Param("duration", "duration", default=2),
        doc="Creates a loan offer for a given currency.",
    )

    cancel_loan_offer = Endpoint(
        "cancelLoanOffer",
        Param("order_number", "orderNumber"),
        doc="Cancels a loan offer.",
    )

    return_open_loan_offers = Endpoint(
        "returnOpenLoanOffers",
        doc="Returns your open loan offers for each currency.",
    )

    return_active_loans = Endpoint(
        "returnActiveLoans",
        doc="Returns your active loans for each currency.",
    )

    return_lending_history = Endpoint(
        "returnLendingHistory",
        Param("start", "start", default_factory=_month_ago),
        Param("end", "end", default_factory=_now),
        Param("limit", "limit", default=None),
        doc="Returns your lending history (defaults to the last month).",
    )

    toggle_auto_renew = Endpoint(
        "toggleAutoRenew",
        Param("order_number", "orderNumber"),
        doc="Toggles the autoRenew setting on an active loan.",
    )
