import pytest

from cart_matcher.config import Config
from cart_matcher.errors import ConfigError

ENV = {
    "CART_MATCHER_SEARCH_URL": "https://catalog.example.com/api/",
    "CART_MATCHER_API_TOKEN": "secret",
}


def test_load_from_env_defaults():
    cfg = Config.load_from_env(dict(ENV))
    assert cfg.search_url == "https://catalog.example.com/api"
    assert cfg.api_token == "secret"
    assert cfg.pricing_url is None
    assert cfg.zip_code == "95670"
    assert cfg.timeout_s == 30.0


def test_load_from_env_optional_keys():
    env = dict(ENV, CART_MATCHER_PRICING_URL="https://prices.example.com/",
               CART_MATCHER_ZIP_CODE="10001", CART_MATCHER_TIMEOUT_S="5")
    cfg = Config.load_from_env(env)
    assert cfg.pricing_url == "https://prices.example.com"
    assert cfg.zip_code == "10001"
    assert cfg.timeout_s == 5.0


def test_missing_key():
    with pytest.raises(ConfigError, match="CART_MATCHER_API_TOKEN"):
        Config.load_from_env({"CART_MATCHER_SEARCH_URL": "https://x"})


@pytest.mark.parametrize("token", ["", "PLACEHOLDER", " MASKED "])
def test_placeholder_rejected(token):
    with pytest.raises(ConfigError, match="placeholder"):
        Config.load_from_env(dict(ENV, CART_MATCHER_API_TOKEN=token))


def test_bad_timeout():
    with pytest.raises(ConfigError):
        Config.load_from_env(dict(ENV, CART_MATCHER_TIMEOUT_S="soon"))


def test_config_error_is_runtime_error():
    # callers that only know RuntimeError still catch it
    with pytest.raises(RuntimeError):
        Config.load_from_env({})
