"""Test the Poloniex client dispatcher against a mocked HTTP session."""

import hashlib
import hmac
import json
from decimal import Decimal
from unittest.mock import MagicMock
from urllib.parse import parse_qs, urlparse

import polars as pl
import pytest
import requests

from poloniex_api.clients.Poloniex import PoloniexClient, PRIVATE_API_BASE, PUBLIC_API_BASE, RETRY_DELAYS
from poloniex_api.config import Settings
from poloniex_api.exceptions import ConfigurationError, ProtocolError, RequestError, RetryExhausted
from poloniex_api.log import setup_logging
from poloniex_api.nonce import Nonce

setup_logging("DEBUG")

KEY = "test-key"
SECRET = "test-secret"


def make_response(body):
    """Fake requests.Response carrying `body` (JSON-encoded unless already text)."""
    response = MagicMock()
    response.text = body if isinstance(body, str) else json.dumps(body)
    return response


def make_client(authenticated: bool = True, **kwargs):
    """Client with a mocked session and a recorded sleep."""
    sleeps = []
    session = MagicMock()
    client = PoloniexClient(
        api_key=KEY if authenticated else None,
        secret_key=SECRET if authenticated else None,
        session=session,
        sleep=sleeps.append,
        **kwargs,
    )
    return client, session, sleeps


def posted_params(session, index: int = -1):
    """Decode the form body of a recorded POST."""
    body = session.post.call_args_list[index].kwargs["data"]
    return {key: values[0] for key, values in parse_qs(body).items()}


def requested_params(session, index: int = -1):
    """Decode the query string of a recorded GET."""
    url = session.get.call_args_list[index].args[0]
    return {key: values[0] for key, values in parse_qs(urlparse(url).query).items()}


class TestDispatch:
    def test_public_call_is_get_with_query(self):
        client, session, _ = make_client(authenticated=False)
        session.get.return_value = make_response({"BTC_ETH": {"last": "0.05"}})

        result = client.call("returnOrderBook", {"currencyPair": "BTC_ETH", "depth": 5})

        assert result == {"BTC_ETH": {"last": "0.05"}}
        url = session.get.call_args.args[0]
        assert url.startswith(PUBLIC_API_BASE + "?")
        assert requested_params(session) == {
            "command": "returnOrderBook",
            "currencyPair": "BTC_ETH",
            "depth": "5",
        }
        assert session.get.call_args.kwargs["timeout"] == client.timeout
        session.post.assert_not_called()

    def test_private_call_is_signed_post(self):
        client, session, _ = make_client()
        session.post.return_value = make_response({"BTC": "1.0"})

        assert client.call("returnBalances") == {"BTC": "1.0"}

        call = session.post.call_args
        assert call.args[0] == PRIVATE_API_BASE
        body = call.kwargs["data"]
        headers = call.kwargs["headers"]
        expected = hmac.new(SECRET.encode(), body.encode(), hashlib.sha512).hexdigest()
        assert headers["Sign"] == expected
        assert headers["Key"] == KEY
        assert headers["Content-Type"] == "application/x-www-form-urlencoded"

        params = posted_params(session)
        assert params["command"] == "returnBalances"
        assert int(params["nonce"]) > 0
        session.get.assert_not_called()

    @pytest.mark.parametrize("command", ["notACommand", "returnticker", ""])
    def test_unknown_command_never_touches_network(self, command):
        client, session, sleeps = make_client()

        with pytest.raises(ConfigurationError):
            client.call(command)

        session.get.assert_not_called()
        session.post.assert_not_called()
        assert sleeps == []

    @pytest.mark.parametrize("command", ["returnBalances", "buy", "withdraw", "closeMarginPosition"])
    def test_private_command_without_credentials(self, command):
        client, session, _ = make_client(authenticated=False)

        with pytest.raises(ConfigurationError):
            client.call(command, {"currencyPair": "BTC_ETH"})

        session.post.assert_not_called()
        session.get.assert_not_called()

    def test_key_without_secret_is_not_enough(self):
        client = PoloniexClient(api_key=KEY, session=MagicMock())

        with pytest.raises(ConfigurationError):
            client.call("returnBalances")

    def test_consecutive_private_calls_increase_nonce(self):
        client, session, _ = make_client()
        session.post.return_value = make_response({})

        client.call("returnBalances")
        client.call("returnOpenOrders", {"currencyPair": "all"})

        first = int(posted_params(session, 0)["nonce"])
        second = int(posted_params(session, 1)["nonce"])
        assert second > first

    def test_market_trade_hist_goes_to_public_endpoint(self):
        client, session, _ = make_client(authenticated=False)
        session.get.return_value = make_response([])

        assert client.market_trade_hist("btc_eth") == []

        assert requested_params(session) == {"command": "returnTradeHistory", "currencyPair": "BTC_ETH"}


class TestRetry:
    @pytest.mark.parametrize("failures", [0, 1, 2, 3])
    def test_recovers_after_timeouts(self, failures):
        client, session, sleeps = make_client(authenticated=False)
        session.get.side_effect = [requests.Timeout()] * failures + [make_response({"ok": 1})]

        assert client.call("returnTicker") == {"ok": 1}

        assert session.get.call_count == failures + 1
        assert sum(sleeps) == sum(RETRY_DELAYS[:failures])
        assert sleeps == list(RETRY_DELAYS[:failures])

    def test_always_timing_out_exhausts_after_four_attempts(self):
        client, session, sleeps = make_client(authenticated=False)
        session.get.side_effect = requests.Timeout()

        with pytest.raises(RetryExhausted) as exc_info:
            client.call("returnTicker")

        assert session.get.call_count == 4
        assert sleeps == [0, 2, 5]
        assert len(exc_info.value.errors) == 4
        assert isinstance(exc_info.value.last_error, RequestError)
        assert isinstance(exc_info.value.__cause__, RequestError)

    def test_every_attempt_gets_the_timeout(self):
        client, session, _ = make_client(authenticated=False, timeout=1.5)
        session.get.side_effect = [requests.Timeout(), requests.Timeout(), make_response({})]

        client.call("returnTicker")

        assert [c.kwargs["timeout"] for c in session.get.call_args_list] == [1.5, 1.5, 1.5]

    def test_connection_error_is_transient(self):
        client, session, sleeps = make_client()
        session.post.side_effect = [requests.ConnectionError("reset"), make_response({"BTC": "2"})]

        assert client.call("returnBalances") == {"BTC": "2"}
        assert sleeps == [0]

    def test_nonce_behind_resyncs_and_retries(self):
        client, session, sleeps = make_client(nonce=Nonce(start=1000))
        session.post.side_effect = [
            make_response({"error": "Nonce must be greater than 5000. You provided 1042."}),
            make_response({"BTC": "1"}),
        ]

        assert client.call("returnBalances") == {"BTC": "1"}

        assert session.post.call_count == 2
        assert int(posted_params(session, 0)["nonce"]) == 1042
        assert int(posted_params(session, 1)["nonce"]) > 5000
        assert sleeps == [0]

    def test_nonce_behind_without_value_bumps(self):
        client, session, _ = make_client(nonce=Nonce(start=1000))
        session.post.side_effect = [
            make_response({"error": "Nonce must be greater than your last one."}),
            make_response({}),
        ]

        client.call("returnBalances")

        first = int(posted_params(session, 0)["nonce"])
        second = int(posted_params(session, 1)["nonce"])
        assert second > first + Nonce.STEP

    def test_please_try_again_is_retried(self):
        client, session, sleeps = make_client(authenticated=False)
        session.get.side_effect = [
            make_response({"error": "Internal error. Please try again."}),
            make_response({"ok": True}),
        ]

        assert client.call("returnCurrencies") == {"ok": True}
        assert sleeps == [0]

    def test_unexpected_error_is_not_retried(self):
        client, session, sleeps = make_client()
        session.post.return_value = make_response({"error": "Totally unexpected failure"})

        with pytest.raises(ProtocolError) as exc_info:
            client.call("returnBalances")

        assert exc_info.value.message == "Totally unexpected failure"
        assert session.post.call_count == 1
        assert sleeps == []

    def test_invalid_json_is_not_retried(self):
        client, session, sleeps = make_client(authenticated=False)
        session.get.return_value = make_response("<html>502 Bad Gateway</html>")

        with pytest.raises(ProtocolError):
            client.call("returnTicker")

        assert session.get.call_count == 1
        assert sleeps == []


class TestDecoding:
    def test_native_floats_by_default(self):
        client, _, _ = make_client()
        assert client.handle_returned('{"rate": 0.1}') == {"rate": 0.1}

    def test_json_nums_decodes_decimal(self):
        client, _, _ = make_client(json_nums=True)
        out = client.handle_returned('{"BTC": 0.12345678901234567890, "count": 3}')

        assert out["BTC"] == Decimal("0.12345678901234567890")
        assert out["count"] == 3

    def test_json_nums_callable(self):
        client, _, _ = make_client(json_nums=str)
        assert client.handle_returned('{"a": 1.50, "b": 7}') == {"a": "1.50", "b": "7"}

    def test_array_response_passes_through(self):
        client, _, _ = make_client()
        assert client.handle_returned('[{"error": "not a top-level error"}]') == [{"error": "not a top-level error"}]


class TestHelpers:
    def test_buy_post_only(self):
        client, session, _ = make_client()
        session.post.return_value = make_response({"orderNumber": "31226040"})

        result = client.buy("btc_eth", "0.0243", "1.5", order_type="postOnly")

        assert result == {"orderNumber": "31226040"}
        params = posted_params(session)
        assert params["command"] == "buy"
        assert params["currencyPair"] == "BTC_ETH"
        assert params["postOnly"] == "1"
        assert "fillOrKill" not in params
        assert "immediateOrCancel" not in params

    def test_move_order_rejects_fill_or_kill(self):
        client, session, _ = make_client()

        with pytest.raises(ConfigurationError):
            client.move_order(12345, 0.01, order_type="fillOrKill")

        session.post.assert_not_called()

    @pytest.mark.parametrize("period", [60, None])
    def test_invalid_chart_period(self, period):
        client, session, _ = make_client()

        with pytest.raises(ConfigurationError):
            client.return_chart_data("BTC_ETH", period)

        with pytest.raises(ConfigurationError):
            client.get_candles("BTC_ETH", period=period)

        session.get.assert_not_called()

    def test_required_argument_passed_as_none(self):
        client, session, _ = make_client()

        with pytest.raises(ConfigurationError):
            client.withdraw("XMR", None, "addr")

        session.post.assert_not_called()

    def test_buy_with_false_order_type(self):
        client, session, _ = make_client()
        session.post.return_value = make_response({"orderNumber": "1"})

        client.buy("BTC_ETH", "0.02", "1", order_type=False)

        params = posted_params(session)
        assert not {"fillOrKill", "immediateOrCancel", "postOnly"} & params.keys()

    def test_missing_argument_is_type_error(self):
        client, session, _ = make_client()

        with pytest.raises(TypeError):
            client.buy("BTC_ETH", 0.1)

        session.post.assert_not_called()

    def test_close_margin_position_command(self):
        client, session, _ = make_client()
        session.post.return_value = make_response({"success": 1})

        client.close_margin_position("btc_xmr")

        params = posted_params(session)
        assert params["command"] == "closeMarginPosition"
        assert params["currencyPair"] == "BTC_XMR"

    def test_helper_metadata(self):
        client, _, _ = make_client()

        assert client.return_order_book.__name__ == "return_order_book"
        assert "currency_pair" in str(client.return_order_book.__signature__)
        assert "order book" in client.return_order_book.__doc__


class TestCandles:
    ROWS = [
        {"date": 1700000300, "open": 2, "high": 3, "low": 1.5, "close": 2.5,
         "volume": 10, "quoteVolume": 4, "weightedAverage": 2.4},
        {"date": 1700000000, "open": 1, "high": 2, "low": 0.5, "close": 2,
         "volume": 5, "quoteVolume": 3, "weightedAverage": 1.6},
    ]

    def test_get_candles(self):
        client, session, _ = make_client(authenticated=False)
        session.get.return_value = make_response(self.ROWS)

        candles = client.get_candles("btc_eth", 300, start=1700000000, end=1700000600)

        assert len(candles) == 2
        assert candles[0].close == 2.5
        assert requested_params(session) == {
            "command": "returnChartData",
            "currencyPair": "BTC_ETH",
            "period": "300",
            "start": "1700000000",
            "end": "1700000600",
        }

    def test_get_candles_frame_sorted(self):
        client, session, _ = make_client(authenticated=False)
        session.get.return_value = make_response(self.ROWS)

        df = client.get_candles_frame("BTC_ETH", 300)

        assert isinstance(df, pl.DataFrame)
        assert df.height == 2
        assert df["close"].to_list() == [2.0, 2.5]
        assert "weighted_average" in df.columns

    def test_get_candles_frame_empty(self):
        client, session, _ = make_client(authenticated=False)
        session.get.return_value = make_response([])

        assert client.get_candles_frame("BTC_ETH", 300).is_empty()

    @pytest.mark.parametrize("row", [
        {"date": 1700000000, "open": 1, "high": 1, "low": 2, "close": 1,
         "volume": 1, "quoteVolume": 1, "weightedAverage": 1},
        {"date": 1700000000, "open": 1},
        {"date": 1700000000, "open": "n/a", "high": 1, "low": 1, "close": 1,
         "volume": 1, "quoteVolume": 1, "weightedAverage": 1},
    ])
    def test_malformed_row_is_protocol_error(self, row):
        client, session, _ = make_client(authenticated=False)
        session.get.return_value = make_response([row])

        with pytest.raises(ProtocolError, match="Malformed chart data row"):
            client.get_candles("BTC_ETH", 300)


class TestConstruction:
    def test_from_settings(self):
        settings = Settings(api_key=KEY, api_secret=SECRET, timeout=7, json_nums=True)
        client = PoloniexClient.from_settings(settings, session=MagicMock())

        assert client.has_credentials
        assert client.timeout == 7
        assert client.json_nums is True

    def test_context_manager_closes_session(self):
        session = MagicMock()
        with PoloniexClient(session=session) as client:
            assert client.session is session

        session.close.assert_called_once()

    def test_without_credentials(self):
        client = PoloniexClient(api_key=KEY, session=MagicMock())

        assert not client.has_credentials
