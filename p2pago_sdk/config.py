"""
SDK settings, from keyword arguments or P2PAGO_* environment variables.
"""
import os
from typing import Optional

from pydantic import BaseModel, SecretStr

from .constants import DEFAULT_MAINNET_RPC_URL, ESCROW_ADDRESS, ZKP2P_API_BASE_URL


class Settings(BaseModel):
    api_base_url: str = ZKP2P_API_BASE_URL
    # Only set this on a trusted backend
    api_key: Optional[SecretStr] = None
    mainnet_rpc_url: str = DEFAULT_MAINNET_RPC_URL
    escrow_address: str = ESCROW_ADDRESS
    timeout: Optional[float] = None

    @classmethod
    def from_env(cls, **overrides) -> "Settings":
        """Read settings from the environment; keyword overrides win."""
        env = {
            "api_base_url": os.environ.get("P2PAGO_API_BASE_URL"),
            "api_key": os.environ.get("P2PAGO_API_KEY"),
            "mainnet_rpc_url": os.environ.get("P2PAGO_MAINNET_RPC_URL"),
            "escrow_address": os.environ.get("P2PAGO_ESCROW_ADDRESS"),
            "timeout": os.environ.get("P2PAGO_TIMEOUT"),
        }
        values = {k: v for k, v in env.items() if v}
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
