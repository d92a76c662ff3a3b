import pytest

from toxiclient.model.errors import ProxyConfigurationError, ToxicConfigurationError
from toxiclient.model.validation import (
    is_valid_address,
    require_address,
    require_less_than,
    require_non_empty,
    require_non_negative,
    require_toxicity,
)


@pytest.mark.parametrize("address", [
    "127.0.0.1:11111",
    "0.0.0.0:1",
    "10.0.0.1:65535",
    "localhost:8474",
    "example.org:80",
    "a-b.example.com:443",
    "redis_1:6379",
])
def test_valid_addresses(address):
    assert is_valid_address(address)


@pytest.mark.parametrize("address", [
    "127.0.0.1",          # missing port
    "localhost:",
    ":80",                # missing host
    "localhost:0",
    "localhost:65536",
    "10.11.12:80",        # not a four-octet address
    "256.1.1.1:80",
    "localhost:http",
    "a:b:80",
    "-bad.example:80",
    "",
])
def test_invalid_addresses(address):
    assert not is_valid_address(address)


def test_require_address_names_the_field():
    with pytest.raises(ProxyConfigurationError) as exc:
        require_address("upstream", "10.11.12:80", ProxyConfigurationError)
    assert exc.value.field == "Upstream"
    assert "10.11.12:80" in str(exc.value)


def test_require_address_rejects_empty_as_empty():
    with pytest.raises(ProxyConfigurationError) as exc:
        require_address("listen", "", ProxyConfigurationError)
    assert exc.value.field == "Listen"
    assert "must not be empty" in str(exc.value)


@pytest.mark.parametrize("value", ["", "   ", None])
def test_require_non_empty(value):
    with pytest.raises(ProxyConfigurationError) as exc:
        require_non_empty("name", value, ProxyConfigurationError)
    assert exc.value.field == "Name"


@pytest.mark.parametrize("value", [0.0, 0.5, 1.0])
def test_toxicity_in_range(value):
    require_toxicity(value)


@pytest.mark.parametrize("value", [-0.01, 1.01, 5.0])
def test_toxicity_out_of_range(value):
    with pytest.raises(ToxicConfigurationError) as exc:
        require_toxicity(value)
    assert exc.value.field == "Toxicity"


def test_require_non_negative():
    require_non_negative("rate", 0, ToxicConfigurationError)
    with pytest.raises(ToxicConfigurationError) as exc:
        require_non_negative("rate", -1, ToxicConfigurationError)
    assert exc.value.field == "Rate"
    assert "Rate must be a non-negative value" in str(exc.value)


def test_require_less_than():
    require_less_than("size_variation", 42, "average_size", 1042, ToxicConfigurationError)
    with pytest.raises(ToxicConfigurationError, match="Size variation must be smaller than average size"):
        require_less_than("size_variation", 42, "average_size", 42, ToxicConfigurationError)


def test_configuration_errors_are_value_errors():
    with pytest.raises(ValueError):
        require_toxicity(2.0)


def test_error_carries_property_and_wire_names():
    with pytest.raises(ToxicConfigurationError) as exc:
        require_less_than("size_variation", 42, "average_size", 42, ToxicConfigurationError)
    assert exc.value.field == "SizeVariation"
    assert exc.value.wire_field == "size_variation"
    assert "parameter 'SizeVariation'" in str(exc.value)
