"""Test the declarative command helpers."""

import time

import pytest

from poloniex_api.clients.Poloniex import PoloniexClient
from poloniex_api.clients.Poloniex.endpoints import Endpoint, Param
from poloniex_api.commands import PRIVATE_COMMANDS, PUBLIC_COMMANDS
from poloniex_api.exceptions import ConfigurationError
from poloniex_api.models import DAY, MONTH


def helpers():
    """All Endpoint helpers declared on the client."""
    return {
        name: value
        for name, value in vars(PoloniexClient).items()
        if isinstance(value, Endpoint)
    }


def test_every_command_has_a_helper():
    commands = {endpoint.command for endpoint in helpers().values()}
    assert commands == PUBLIC_COMMANDS | PRIVATE_COMMANDS


def test_helper_names_follow_attribute():
    for name, endpoint in helpers().items():
        assert endpoint.name == name


def test_order_book_defaults():
    assert PoloniexClient.return_order_book.build() == {"currencyPair": "ALL", "depth": "20"}
    assert PoloniexClient.return_order_book.build("btc_eth", depth=5) == {"currencyPair": "BTC_ETH", "depth": "5"}


@pytest.mark.parametrize("order_type", ["fillOrKill", "immediateOrCancel", "postOnly"])
def test_buy_and_sell_modifiers(order_type):
    for endpoint in (PoloniexClient.buy, PoloniexClient.sell):
        params = endpoint.build("BTC_ETH", "0.02", "3", order_type)

        assert params[order_type] == "1"
        others = {"fillOrKill", "immediateOrCancel", "postOnly"} - {order_type}
        assert not others & params.keys()


def test_buy_without_modifier():
    assert PoloniexClient.buy.build("btc_eth", 0.02, 3) == {
        "currencyPair": "BTC_ETH",
        "rate": "0.02",
        "amount": "3",
    }


def test_invalid_modifier():
    with pytest.raises(ConfigurationError):
        PoloniexClient.sell.build("BTC_ETH", 1, 1, "allOrNothing")


@pytest.mark.parametrize("order_type", ["immediateOrCancel", "postOnly"])
def test_move_order_modifiers(order_type):
    params = PoloniexClient.move_order.build(42, "0.5", order_type=order_type)

    assert params == {"orderNumber": "42", "rate": "0.5", order_type: "1"}


def test_move_order_rejects_fill_or_kill():
    with pytest.raises(ConfigurationError):
        PoloniexClient.move_order.build(42, "0.5", "1", "fillOrKill")


def test_chart_data_default_range():
    before = int(time.time())
    params = PoloniexClient.return_chart_data.build("btc_eth", 300)
    after = int(time.time())

    assert params["period"] == "300"
    assert before - DAY <= int(params["start"]) <= after - DAY
    assert before <= int(params["end"]) <= after


def test_chart_data_accepts_string_period():
    params = PoloniexClient.return_chart_data.build("BTC_ETH", "900", 1, 2)
    assert params == {"currencyPair": "BTC_ETH", "period": "900", "start": "1", "end": "2"}


def test_lending_history_range_and_limit():
    params = PoloniexClient.return_lending_history.build(limit=10)

    assert params["limit"] == "10"
    assert MONTH <= int(params["end"]) - int(params["start"]) <= MONTH + 1


def test_optional_params_are_omitted():
    assert PoloniexClient.return_trade_history.build() == {"currencyPair": "ALL"}
    assert PoloniexClient.return_available_account_balances.build() == {}
    assert PoloniexClient.withdraw.build("xmr", 1, "addr") == {
        "currency": "XMR",
        "amount": "1",
        "address": "addr",
    }
    assert PoloniexClient.withdraw.build("xmr", 1, "addr", "pid")["paymentId"] == "pid"


def test_transfer_balance_confirmed_flag():
    params = PoloniexClient.transfer_balance.build("btc", 1, "exchange", "margin")
    assert "confirmed" not in params

    params = PoloniexClient.transfer_balance.build("btc", 1, "exchange", "margin", confirmed=True)
    assert params["confirmed"] == "1"
    assert params["fromAccount"] == "exchange"
    assert params["toAccount"] == "margin"


def test_loan_offer_defaults():
    assert PoloniexClient.create_loan_offer.build("btc", 1, 0.02) == {
        "currency": "BTC",
        "amount": "1",
        "lendingRate": "0.02",
        "autoRenew": "0",
        "duration": "2",
    }


def test_unexpected_argument():
    with pytest.raises(TypeError):
        PoloniexClient.return_ticker.build("BTC_ETH")

    with pytest.raises(TypeError):
        PoloniexClient.cancel_order.build(order_id=1)


def test_param_choices_message():
    param = Param("period", "period", choices=(300,))

    with pytest.raises(ConfigurationError, match="60 invalid period"):
        param.encode(60)


@pytest.mark.parametrize("order_type", [None, False, ""])
def test_falsy_order_type_means_no_modifier(order_type):
    assert PoloniexClient.sell.build("btc_eth", 1, 2, order_type) == {
        "currencyPair": "BTC_ETH",
        "rate": "1",
        "amount": "2",
    }


def test_required_param_rejects_none():
    with pytest.raises(ConfigurationError, match="currencyPair is required"):
        PoloniexClient.close_margin_position.build(None)

    with pytest.raises(ConfigurationError, match="period is required"):
        PoloniexClient.return_chart_data.build("BTC_ETH", None)
