"""
Tests for wallet address canonicalization.
"""

import pytest
from eth_account import Account

from walletchat.auth.address import normalize_address, try_normalize_address
from walletchat.exceptions import InvalidAddressError


def test_checksummed_address_is_lowercased():
    account = Account.create()

    assert normalize_address(account.address) == account.address.lower()


def test_lowercase_address_is_unchanged():
    address = "0x" + "ef01" * 10

    assert normalize_address(address) == address


def test_surrounding_whitespace_is_ignored():
    address = "0x" + "ab" * 20

    assert normalize_address(f"  {address} ") == address


@pytest.mark.parametrize(
    "value",
    [
        "",
        "0x1234",
        "0x" + "zz" * 20,
        "0x" + "ab" * 21,
        None,
        42,
    ],
)
def test_malformed_addresses(value):
    with pytest.raises(InvalidAddressError) as exc_info:
        normalize_address(value)

    assert exc_info.value.details["reason"] == "invalid_address"
    assert try_normalize_address(value) is None


def test_bad_checksum_is_rejected():
    valid = "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed"
    tampered = "0x5aaeb6053F3E94C9b9A09f33669435E7Ef1BeAed"

    assert normalize_address(valid) == valid.lower()
    assert try_normalize_address(tampered) is None


def test_try_normalize_address_valid():
    account = Account.create()

    assert try_normalize_address(account.address) == account.address.lower()
