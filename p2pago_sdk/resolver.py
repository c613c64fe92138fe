"""
Recipient address resolution.

Canonical 0x addresses pass straight through. Anything else is treated as a
name (ENS, including FluidKey ``*.fkey.id`` names) and resolved through a
name provider. FluidKey hands out a fresh stealth address on every lookup,
so results are never cached.
"""
import logging
import re
import threading
from typing import Any, Callable, Optional, Protocol

from web3 import Web3

from .constants import DEFAULT_MAINNET_RPC_URL
from .exceptions import NameNotFound, ResolutionUnavailable

ADDRESS_PATTERN = re.compile(r"^0x[a-fA-F0-9]{40}$")


def is_address(value: Any) -> bool:
    """Return True if value is a 0x-prefixed, 40 hex character address."""
    return isinstance(value, str) and ADDRESS_PATTERN.match(value) is not None


class NameProvider(Protocol):
    """Protocol for name providers. Implement either method."""

    def resolve_name(self, name: str) -> Optional[str]:
        ...


class Web3NameProvider:
    """Name provider backed by web3's ENS module"""

    def __init__(self, w3: Web3):
        self.w3 = w3

    def resolve_name(self, name: str) -> Optional[str]:
        address = self.w3.ens.address(name)
        return str(address) if address else None


def default_provider_factory(rpc_url: str = DEFAULT_MAINNET_RPC_URL) -> NameProvider:
    """Build a mainnet name provider on a public endpoint."""
    return Web3NameProvider(Web3(Web3.HTTPProvider(rpc_url)))


def _lookup(provider: Any, name: str) -> Optional[str]:
    if hasattr(provider, "resolve_name"):
        return provider.resolve_name(name)
    if hasattr(provider, "get_resolver"):
        resolver = provider.get_resolver(name)
        if resolver is not None and hasattr(resolver, "resolve"):
            return resolver.resolve(name)
        return None
    raise ResolutionUnavailable(
        f"Name provider {type(provider).__name__} exposes neither resolve_name nor get_resolver"
    )


class AddressResolver:
    """
    Resolves recipient identifiers to canonical addresses.

    The fallback provider is owned by the resolver instance: it is built on
    first use from ``provider_factory`` and then reused. Building it is
    guarded by a lock so concurrent first calls create it once.
    """

    def __init__(
        self,
        provider: Optional[Any] = None,
        provider_factory: Optional[Callable[[], Optional[Any]]] = default_provider_factory,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize the resolver

        Args:
            provider: Name provider used when a call does not pass one
            provider_factory: Builds a fallback provider when none is configured;
                None disables the fallback
            logger: Optional logger instance
        """
        self.provider = provider
        self.provider_factory = provider_factory
        self.logger = logger or logging.getLogger(__name__)
        self._default_provider = None
        self._lock = threading.Lock()

    def _get_default_provider(self) -> Optional[Any]:
        if self._default_provider is not None:
            return self._default_provider
        if self.provider_factory is None:
            return None
        with self._lock:
            if self._default_provider is None:
                self.logger.debug("Creating default name provider")
                self._default_provider = self.provider_factory()
            return self._default_provider

    def resolve(self, identifier: str, provider: Optional[Any] = None) -> str:
        """
        Resolve a recipient to an address

        Args:
            identifier: 0x address or name (e.g. "myapp.fkey.id")
            provider: Name provider for this call only

        Returns:
            The address; canonical input is returned unchanged

        Raises:
            ResolutionUnavailable: If a name needs resolving and no provider is available
            NameNotFound: If the provider returns nothing for the name
        """
        if is_address(identifier):
            return identifier

        active = provider or self.provider or self._get_default_provider()
        if active is None:
            raise ResolutionUnavailable(
                "Name resolution requires a provider. Pass one when the recipient "
                f"is a name rather than an address (got: {identifier})"
            )

        resolved = _lookup(active, identifier)
        if not resolved:
            raise NameNotFound(identifier)

        self.logger.debug(f"Resolved {identifier} to {resolved}")
        return resolved
