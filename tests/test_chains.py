"""
Tests for the chain registry.
"""
import pytest
from web3 import Web3

from p2pago_sdk.chains import NATIVE_TOKEN_ADDRESS, SUPPORTED_CHAINS, get_supported_chains
from p2pago_sdk.constants import BASE_CHAIN_ID, USDC_ADDRESS, VERIFIERS
from tests.conftest import TEST_VERIFIER


def test_registry_chains():
    assert set(get_supported_chains()) == {1, 8453, 137, 42161, 10}


@pytest.mark.parametrize("chain_id", sorted(SUPPORTED_CHAINS))
def test_chain_entries(chain_id):
    chain = SUPPORTED_CHAINS[chain_id]
    assert chain.chain_id == chain_id
    assert chain.rpc_url.startswith("https://")
    assert chain.token("eth").address == NATIVE_TOKEN_ADDRESS
    for symbol in ("USDC", "USDT"):
        token = chain.token(symbol)
        assert token.decimals == 6
        assert Web3.is_checksum_address(token.address)


def test_base_usdc_matches_quote_default():
    assert SUPPORTED_CHAINS[BASE_CHAIN_ID].token("usdc").address == USDC_ADDRESS


def test_unknown_token():
    assert SUPPORTED_CHAINS[1].token("DAI") is None


def test_verifier_addresses():
    assert VERIFIERS["venmo"] == TEST_VERIFIER
    assert all(Web3.is_address(address.lower()) for address in VERIFIERS.values())
