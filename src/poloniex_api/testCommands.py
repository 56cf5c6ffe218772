"""Test the command catalog, error classification, nonce and settings."""

import threading

import pytest

from poloniex_api.commands import (
    CommandType,
    MOVE_ORDER_TYPES,
    ORDER_TYPES,
    PRIVATE_COMMANDS,
    PUBLIC_COMMANDS,
    classify,
    wire_name,
)
from poloniex_api.config import Settings
from poloniex_api.exceptions import ConfigurationError, ErrorKind, classify_error, parse_nonce_floor
from poloniex_api.nonce import Nonce


class TestCatalog:
    def test_sets_are_disjoint(self):
        assert not PUBLIC_COMMANDS & PRIVATE_COMMANDS

    def test_catalog_sizes(self):
        assert len(PUBLIC_COMMANDS) == 7
        assert len(PRIVATE_COMMANDS) == 28

    @pytest.mark.parametrize("command", sorted(PUBLIC_COMMANDS))
    def test_public(self, command):
        assert classify(command) == CommandType.PUBLIC

    @pytest.mark.parametrize("command", sorted(PRIVATE_COMMANDS))
    def test_private(self, command):
        assert classify(command) == CommandType.PRIVATE

    @pytest.mark.parametrize("command", ["", "ReturnTicker", "returnTicker ", "currencyPair", "cancelAllOrders"])
    def test_unknown(self, command):
        with pytest.raises(ConfigurationError):
            classify(command)

    def test_move_order_types_are_a_subset(self):
        assert set(MOVE_ORDER_TYPES) < set(ORDER_TYPES)
        assert "fillOrKill" not in MOVE_ORDER_TYPES

    def test_wire_names(self):
        assert wire_name("marketTradeHist") == "returnTradeHistory"
        assert wire_name("returnTradeHistory") == "returnTradeHistory"
        assert wire_name("buy") == "buy"


class TestErrorClassification:
    @pytest.mark.parametrize("message, kind", [
        ("Nonce must be greater than 1508855551543540. You provided 1508855551543497.", ErrorKind.NONCE_BEHIND),
        ("Please try again.", ErrorKind.RETRY),
        ("Internal error. PLEASE TRY AGAIN LATER", ErrorKind.RETRY),
        ("Totally unexpected failure", ErrorKind.FATAL),
        ("Invalid API key/secret pair.", ErrorKind.FATAL),
        ("nonce must be greater than 5", ErrorKind.FATAL),
    ])
    def test_classify_error(self, message, kind):
        assert classify_error(message) == kind

    def test_parse_nonce_floor(self):
        message = "Nonce must be greater than 1508855551543540. You provided 1508855551543497."
        assert parse_nonce_floor(message) == 1508855551543540
        assert parse_nonce_floor("Nonce must be greater than yours.") is None


class TestNonce:
    def test_starts_from_time(self):
        assert Nonce().value > 10 ** 15

    def test_strictly_increasing(self):
        nonce = Nonce(start=0)
        values = [nonce.next() for _ in range(5)]

        assert values == [42, 84, 126, 168, 210]

    def test_resync_forward_only(self):
        nonce = Nonce(start=1000)

        assert nonce.resync(500) == 1000
        assert nonce.resync(5000) == 5000
        assert nonce.next() > 5000

    def test_unique_across_threads(self):
        nonce = Nonce(start=0)
        seen = []
        lock = threading.Lock()

        def worker():
            values = [nonce.next() for _ in range(200)]
            with lock:
                seen.extend(values)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(seen) == len(set(seen)) == 1600
        assert max(seen) == 1600 * Nonce.STEP


class TestSettings:
    ENV_VARS = ("POLONIEX_API_KEY", "POLONIEX_API_SECRET", "POLONIEX_TIMEOUT", "POLONIEX_JSON_NUMS")

    def clear_env(self, monkeypatch):
        for name in self.ENV_VARS:
            monkeypatch.delenv(name, raising=False)

    def test_from_env(self, monkeypatch, tmp_path):
        self.clear_env(monkeypatch)
        monkeypatch.setenv("POLONIEX_API_KEY", "key")
        monkeypatch.setenv("POLONIEX_API_SECRET", "secret")
        monkeypatch.setenv("POLONIEX_TIMEOUT", "5.5")
        monkeypatch.setenv("POLONIEX_JSON_NUMS", "true")

        settings = Settings.from_env(str(tmp_path / "missing.env"))

        assert settings == Settings(api_key="key", api_secret="secret", timeout=5.5, json_nums=True)
        assert settings.has_credentials

    def test_from_env_file(self, monkeypatch, tmp_path):
        self.clear_env(monkeypatch)
        env_file = tmp_path / ".env"
        env_file.write_text("POLONIEX_API_KEY=file-key\nPOLONIEX_API_SECRET=file-secret\n")

        settings = Settings.from_env(str(env_file))

        assert settings.api_key == "file-key"
        assert settings.api_secret == "file-secret"
        assert settings.timeout == 3
        assert settings.json_nums is False

    def test_environment_wins_over_file(self, monkeypatch, tmp_path):
        self.clear_env(monkeypatch)
        monkeypatch.setenv("POLONIEX_API_KEY", "env-key")
        env_file = tmp_path / ".env"
        env_file.write_text("POLONIEX_API_KEY=file-key\n")

        assert Settings.from_env(str(env_file)).api_key == "env-key"

    def test_invalid_timeout(self):
        with pytest.raises(ValueError):
            Settings(timeout=0)
