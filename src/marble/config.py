"""
Network configuration for the Marble invoker.

Configuration is read once at startup from (lowest to highest priority):
the network preset, ``~/.marble/.env``, the process environment, and
explicit overrides passed by the CLI.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Optional
from urllib.parse import urlparse

from dotenv import load_dotenv

from .errors import ConfigError


MARBLE_DIR = Path.home() / ".marble"
MARBLE_ENV = MARBLE_DIR / ".env"

DEFAULT_NETWORK = "testnet"
DEFAULT_APP_NAME = "Marble"

NETWORK_PRESETS: dict[str, dict[str, str]] = {
    "testnet": {
        "node_url": "https://rpc.testnet.near.org",
        "wallet_url": "https://wallet.testnet.near.org",
        "explorer_url": "https://explorer.testnet.near.org",
    },
    "mainnet": {
        "node_url": "https://rpc.mainnet.near.org",
        "wallet_url": "https://wallet.near.org",
        "explorer_url": "https://explorer.near.org",
    },
}

# Environment variable for each NetworkConfig field
ENV_VARS = {
    "network_id": "NEAR_NETWORK",
    "node_url": "NEAR_NODE_URL",
    "wallet_url": "NEAR_WALLET_URL",
    "explorer_url": "NEAR_EXPLORER_URL",
    "app_name": "MARBLE_APP_NAME",
    "contract_id": "MARBLE_CONTRACT_ID",
    "account_id": "NEAR_ACCOUNT_ID",
}

_ACCOUNT_ID_RE = re.compile(r"^(([a-z\d]+[-_])*[a-z\d]+\.)*([a-z\d]+[-_])*[a-z\d]+$")


def is_valid_account_id(account_id: str) -> bool:
    """Check a NEAR account id (2-64 chars, lowercase, ``.``/``-``/``_`` separators)."""
    return 2 <= len(account_id) <= 64 and bool(_ACCOUNT_ID_RE.match(account_id))


@dataclass(frozen=True)
class NetworkConfig:
    """
    Connection settings for one network and one target contract.

    Attributes:
        network_id: Network name used as the key store namespace
        node_url: JSON-RPC endpoint
        wallet_url: Wallet endpoint (informational)
        app_name: Application name (informational)
        contract_id: Account the contract is deployed to
        account_id: Signer account
        explorer_url: Explorer base URL for transaction links
    """
    network_id: str
    node_url: str
    wallet_url: str
    app_name: str
    contract_id: str
    account_id: str = ""
    explorer_url: str = ""

    def validate(
        self, require_account: bool = True, require_contract: bool = True
    ) -> "NetworkConfig":
        problems: list[str] = []
        if not self.network_id:
            problems.append("network_id is required")
        for name in ("node_url", "wallet_url"):
            value = getattr(self, name)
            if not value:
                problems.append(f"{name} is required")
            elif not _is_http_url(value):
                problems.append(f"{name} must be an http(s) URL: {value!r}")
        if self.explorer_url and not _is_http_url(self.explorer_url):
            problems.append(f"explorer_url must be an http(s) URL: {self.explorer_url!r}")
        if not self.contract_id:
            if require_contract:
                problems.append(f"contract_id is required (set {ENV_VARS['contract_id']})")
        elif not is_valid_account_id(self.contract_id):
            problems.append(f"contract_id is not a valid account id: {self.contract_id!r}")
        if self.account_id:
            if not is_valid_account_id(self.account_id):
                problems.append(f"account_id is not a valid account id: {self.account_id!r}")
        elif require_account:
            problems.append(f"account_id is required (set {ENV_VARS['account_id']})")

        if problems:
            raise ConfigError("Invalid configuration: " + "; ".join(problems))
        return self

    def tx_url(self, tx_hash: str) -> Optional[str]:
        if not self.explorer_url:
            return None
        return f"{self.explorer_url.rstrip('/')}/transactions/{tx_hash}"


def _is_http_url(value: str) -> bool:
    parsed = urlparse(value)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def load_config(
    network: Optional[str] = None,
    env_path: Optional[Path] = None,
    require_account: bool = True,
    require_contract: bool = True,
    **overrides: Any,
) -> NetworkConfig:
    """
    Build and validate a NetworkConfig.

    Args:
        network: Network preset name (default: $NEAR_NETWORK or testnet)
        env_path: .env file to load (default: ~/.marble/.env)
        require_account: Whether account_id must be present
        require_contract: Whether contract_id must be present
        **overrides: Field values that take priority over the environment.
                     ``None`` values are ignored.

    Returns:
        Validated NetworkConfig

    Raises:
        ConfigError: On unknown fields, unknown network without node_url,
                     or invalid/missing values
    """
    env_path = env_path or MARBLE_ENV
    if env_path.exists():
        load_dotenv(env_path, override=False)

    known = {f.name for f in fields(NetworkConfig)}
    unknown = set(overrides) - known
    if unknown:
        raise ConfigError(f"Unknown configuration fields: {', '.join(sorted(unknown))}")

    network_id = network or overrides.pop("network_id", None) or os.environ.get(
        ENV_VARS["network_id"], DEFAULT_NETWORK
    )
    preset = NETWORK_PRESETS.get(network_id, {})

    values: dict[str, str] = {
        "network_id": network_id,
        "node_url": preset.get("node_url", ""),
        "wallet_url": preset.get("wallet_url", ""),
        "explorer_url": preset.get("explorer_url", ""),
        "app_name": DEFAULT_APP_NAME,
        "contract_id": "",
        "account_id": "",
    }
    for name, var in ENV_VARS.items():
        if name == "network_id":
            continue
        env_value = os.environ.get(var)
        if env_value:
            values[name] = env_value
    for name, value in overrides.items():
        if value is not None:
            values[name] = value

    if not values["node_url"]:
        raise ConfigError(
            f"Unknown network {network_id!r}: set {ENV_VARS['node_url']} "
            f"or use one of {', '.join(NETWORK_PRESETS)}"
        )
    if not values["wallet_url"]:
        values["wallet_url"] = values["node_url"]

    return NetworkConfig(**values).validate(
        require_account=require_account, require_contract=require_contract
    )


