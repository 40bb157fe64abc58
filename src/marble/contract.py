"""
Contract Invoker.

Binds a typed proxy to a deployed contract and invokes its methods on
behalf of a signer account:

    connection = configure(config)
    register_key(connection.key_store, config.network_id, config.account_id, key)
    account = resolve_account(connection, config.account_id)
    contract = bind_contract(account, config.contract_id)
    contract.nft_tokens_for_owner({"account_id": "alice.testnet"})

Only methods declared as change (mutating) or view (read-only) methods are
reachable through the proxy.  Nothing is retried: every failure is raised to
the caller.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Union

import httpx

from .chain.rpc import JsonRpcProvider
from .chain.tx import FunctionCallOutcome, decode_return_bytes, send_function_call
from .config import NetworkConfig
from .errors import (
    AccountResolutionError,
    ConfigError,
    InvalidCallError,
    JsonRpcError,
    QueryError,
    UndeclaredMethodError,
)
from .sigil.keys import InMemoryKeyStore, InMemorySigner, KeyPair, coerce_key_pair
from .utils import DEFAULT_FUNCTION_CALL_GAS, MAX_GAS, MAX_U128, parse_deposit, parse_gas

logger = logging.getLogger(__name__)

DEFAULT_CHANGE_METHODS: tuple[str, ...] = (
    "nft_create_series",
    "nft_mint",
    "nft_set_series_price",
    "nft_buy",
    "nft_change_metadata",
)
DEFAULT_VIEW_METHODS: tuple[str, ...] = (
    "nft_get_series",
    "nft_token",
    "nft_tokens_by_series",
    "nft_tokens_for_owner",
)

EXTENDED_CHANGE_METHODS: tuple[str, ...] = DEFAULT_CHANGE_METHODS + (
    "nft_burn",
    "nft_transfer",
    "nft_decrease_series_copies",
    "nft_set_series_non_mintable",
)
EXTENDED_VIEW_METHODS: tuple[str, ...] = DEFAULT_VIEW_METHODS + (
    "nft_get_series_single",
    "nft_get_series_price",
    "nft_supply_for_series",
    "nft_total_supply",
    "nft_tokens",
    "nft_supply_for_owner",
)


# ============ Connection ============


@dataclass(frozen=True)
class Connection:
    config: NetworkConfig
    provider: JsonRpcProvider
    signer: InMemorySigner

    @property
    def network_id(self) -> str:
        return self.config.network_id

    @property
    def key_store(self) -> InMemoryKeyStore:
        return self.signer.key_store


def configure(
    config: NetworkConfig,
    key_store: Optional[InMemoryKeyStore] = None,
    transport: Optional[httpx.BaseTransport] = None,
) -> Connection:
    """
    Set up a connection descriptor.  No network I/O happens here.

    Args:
        config: Network configuration
        key_store: Key store to sign from (default: a new empty one)
        transport: Optional httpx transport for the RPC provider

    Raises:
        ConfigError: If the configuration is malformed
    """
    config.validate(require_account=False, require_contract=False)
    if key_store is None:
        key_store = InMemoryKeyStore()
    return Connection(
        config=config,
        provider=JsonRpcProvider(config.node_url, transport=transport),
        signer=InMemorySigner(key_store),
    )


def register_key(
    key_store: InMemoryKeyStore,
    network_id: str,
    account_id: str,
    signing_key: Union[str, KeyPair],
) -> None:
    """Store ``signing_key`` for (network_id, account_id), replacing any previous key."""
    key_store.set_key(network_id, account_id, coerce_key_pair(signing_key))


# ============ Account ============


class Account:
    """A resolved on-chain account."""

    def __init__(self, connection: Connection, account_id: str, state: dict[str, Any]) -> None:
        self.connection = connection
        self.account_id = account_id
        self.state = state

    @property
    def amount(self) -> int:
        return int(self.state.get("amount", 0))

    @property
    def locked(self) -> int:
        return int(self.state.get("locked", 0))

    @property
    def storage_usage(self) -> int:
        return int(self.state.get("storage_usage", 0))

    @property
    def code_hash(self) -> str:
        return self.state.get("code_hash", "")

    def function_call(
        self,
        contract_id: str,
        method_name: str,
        args: dict[str, Any],
        gas: int = DEFAULT_FUNCTION_CALL_GAS,
        deposit: int = 0,
        wait: bool = True,
    ) -> FunctionCallOutcome:
        return send_function_call(
            self.connection.provider,
            self.connection.signer,
            self.connection.network_id,
            signer_id=self.account_id,
            receiver_id=contract_id,
            method_name=method_name,
            args=args,
            gas=gas,
            deposit=deposit,
            wait=wait,
        )

    def view_function(self, contract_id: str, method_name: str, args: dict[str, Any]) -> Any:
        try:
            result = self.connection.provider.call_function(contract_id, method_name, args)
        except JsonRpcError as exc:
            raise QueryError(
                f"View call {contract_id}.{method_name} failed: {exc}",
                kind=exc.kind,
                logs=exc.error.get("logs", []),
            ) from exc

        for line in result.get("logs", []):
            logger.info("log: %s", line)
        return decode_return_bytes(bytes(result.get("result", [])))

    def __repr__(self) -> str:
        return f"Account({self.account_id!r})"


def resolve_account(connection: Connection, account_id: str) -> Account:
    """
    Look up ``account_id`` on the network.

    Raises:
        AccountResolutionError: If the network cannot locate the account
    """
    try:
        state = connection.provider.view_account(account_id)
    except JsonRpcError as exc:
        raise AccountResolutionError(
            account_id,
            f"Cannot resolve account {account_id} on {connection.network_id}: {exc}",
            kind=exc.kind,
        ) from exc
    logger.debug("Resolved %s (storage %s bytes)", account_id, state.get("storage_usage"))
    return Account(connection, account_id, state)


# ============ Contract ============


class ContractProxy:
    """
    Callable surface of a deployed contract.

    Each declared change method is exposed as
    ``method(args=None, gas=DEFAULT_FUNCTION_CALL_GAS, deposit=0)`` and each
    view method as ``method(args=None)``.  Both return the decoded result.
    """

    def __init__(
        self,
        account: Account,
        contract_id: str,
        change_methods: Iterable[str],
        view_methods: Iterable[str],
    ) -> None:
        self.account = account
        self.contract_id = contract_id
        self.change_methods = frozenset(change_methods)
        self.view_methods = frozenset(view_methods)

        overlap = self.change_methods & self.view_methods
        if overlap:
            raise ConfigError(
                f"Methods declared as both change and view: {', '.join(sorted(overlap))}"
            )

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_") or "change_methods" not in self.__dict__:
            raise AttributeError(name)
        if name in self.change_methods:
            def change(
                args: Optional[Mapping[str, Any]] = None,
                gas: Union[int, str] = DEFAULT_FUNCTION_CALL_GAS,
                deposit: Union[int, str] = 0,
            ) -> Any:
                return self.call_raw(name, args, gas, deposit).value

            change.__name__ = name
            return change
        if name in self.view_methods:
            def view(args: Optional[Mapping[str, Any]] = None) -> Any:
                return self.view(name, args)

            view.__name__ = name
            return view
        raise UndeclaredMethodError(
            f"{name!r} is not a declared method of {self.contract_id}"
        )

    def __dir__(self) -> list[str]:
        return sorted(set(super().__dir__()) | self.change_methods | self.view_methods)

    def call_raw(
        self,
        method_name: str,
        args: Optional[Mapping[str, Any]] = None,
        gas: Union[int, str] = DEFAULT_FUNCTION_CALL_GAS,
        deposit: Union[int, str] = 0,
        wait: bool = True,
    ) -> FunctionCallOutcome:
        """Run a change method and return the full outcome."""
        if method_name not in self.change_methods:
            raise UndeclaredMethodError(
                f"{method_name!r} is not a declared change method of {self.contract_id}"
            )
        call_args = _check_args(args)
        gas_units = _check_gas(gas)
        deposit_yocto = _check_deposit(deposit)
        return self.account.function_call(
            self.contract_id, method_name, call_args, gas_units, deposit_yocto, wait=wait
        )

    def view(self, method_name: str, args: Optional[Mapping[str, Any]] = None) -> Any:
        if method_name not in self.view_methods:
            raise UndeclaredMethodError(
                f"{method_name!r} is not a declared view method of {self.contract_id}"
            )
        return self.account.view_function(self.contract_id, method_name, _check_args(args))

    def is_change_method(self, method_name: str) -> bool:
        return method_name in self.change_methods

    def is_view_method(self, method_name: str) -> bool:
        return method_name in self.view_methods

    def __repr__(self) -> str:
        return f"ContractProxy({self.contract_id!r}, signer={self.account.account_id!r})"


def bind_contract(
    account: Account,
    contract_id: str,
    change_methods: Iterable[str] = DEFAULT_CHANGE_METHODS,
    view_methods: Iterable[str] = DEFAULT_VIEW_METHODS,
) -> ContractProxy:
    return ContractProxy(account, contract_id, change_methods, view_methods)


def invoke_mutating(
    proxy: ContractProxy,
    method_name: str,
    args: Optional[Mapping[str, Any]] = None,
    gas: Union[int, str] = DEFAULT_FUNCTION_CALL_GAS,
    deposit: Union[int, str] = 0,
) -> Any:
    """
    Send a change call and wait for its final outcome.

    Returns:
        The decoded return value of the method

    Raises:
        UndeclaredMethodError: If ``method_name`` is not a declared change method
        InvalidCallError: On malformed args, gas, or deposit
        MissingKeyError: If the signer has no key
        TransactionError: If the transaction is rejected or fails
    """
    return proxy.call_raw(method_name, args, gas, deposit).value


def invoke_readonly(
    proxy: ContractProxy,
    method_name: str,
    args: Optional[Mapping[str, Any]] = None,
) -> Any:
    """
    Run a view call.

    Raises:
        UndeclaredMethodError: If ``method_name`` is not a declared view method
        QueryError: On network or contract-side failure
    """
    return proxy.view(method_name, args)


# ============ Argument checks ============


def _check_args(args: Optional[Mapping[str, Any]]) -> dict[str, Any]:
    if args is None:
        return {}
    if not isinstance(args, Mapping):
        raise InvalidCallError(
            "Contract method calls expect named arguments wrapped in an object, "
            f"got {type(args).__name__}"
        )
    return dict(args)


def _check_gas(gas: Union[int, str]) -> int:
    try:
        value = parse_gas(gas)
    except ValueError as exc:
        raise InvalidCallError(str(exc)) from exc
    if isinstance(value, bool) or not 0 < value <= MAX_GAS:
        raise InvalidCallError(f"Gas must be between 1 and {MAX_GAS}, got {gas!r}")
    return value


def _check_deposit(deposit: Union[int, str]) -> int:
    try:
        value = parse_deposit(deposit)
    except ValueError as exc:
        raise InvalidCallError(str(exc)) from exc
    if not 0 <= value <= MAX_U128:
        raise InvalidCallError(f"Deposit out of range: {deposit!r}")
    return value
