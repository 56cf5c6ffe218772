"""Playground for trying the Poloniex client against the live API."""

from loguru import logger

from poloniex_api import PoloniexClient, PoloniexError, Settings
from poloniex_api.log import setup_logging


def main():
    """Fetch public market data, and balances when keys are configured."""

    setup_logging("INFO")

    settings = Settings.from_env()

    with PoloniexClient.from_settings(settings) as client:
        logger.info("=" * 50)
        logger.info("POLONIEX PLAYGROUND")
        logger.info("=" * 50)

        try:
            ticker = client.return_ticker()
            btc_eth = ticker.get("BTC_ETH", {})
            logger.success(f"BTC_ETH last: {btc_eth.get('last')} | bid: {btc_eth.get('highestBid')} | ask: {btc_eth.get('lowestAsk')}")

            book = client.return_order_book("BTC_ETH", depth=5)
            for price, size in book.get("asks", [])[:3]:
                logger.debug(f"  ask {price} - size {size}")

            df = client.get_candles_frame("BTC_ETH", period=1800)
            logger.info(f"Fetched {df.height} half-hour candles")
            if not df.is_empty():
                logger.info(f"Last close: {df['close'][-1]}")

        except PoloniexError as e:
            logger.error(f"Public API failed: {e}")

        if not settings.has_credentials:
            logger.warning("No API keys configured, skipping private commands")
            return

        try:
            balances = client.return_balances()
            non_zero = {asset: amount for asset, amount in balances.items() if float(amount) > 0}
            logger.success(f"Non-zero balances: {non_zero}")
        except PoloniexError as e:
            logger.error(f"Private API failed: {e}")


if __name__ == "__main__":
    main()
