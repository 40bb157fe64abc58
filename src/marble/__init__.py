__version__ = "0.1.0"

__all__ = [
    # Configuration
    "NetworkConfig",
    "load_config",
    # Contract invoker
    "Connection",
    "Account",
    "ContractProxy",
    "configure",
    "register_key",
    "resolve_account",
    "bind_contract",
    "invoke_mutating",
    "invoke_readonly",
    "DEFAULT_CHANGE_METHODS",
    "DEFAULT_VIEW_METHODS",
    # Keys
    "KeyPair",
    "PublicKey",
    "InMemoryKeyStore",
    "InMemorySigner",
    "generate_keypair",
    "load_private_key",
    # Call files
    "CallSpec",
    "CallBook",
    "load_call",
    # Errors
    "MarbleError",
    "ConfigError",
    "KeyFormatError",
    "InvalidCallError",
    "CallFileError",
    "MissingKeyError",
    "UndeclaredMethodError",
    "JsonRpcError",
    "AccountResolutionError",
    "TransactionError",
    "QueryError",
]

from .config import NetworkConfig, load_config
from .contract import (
    DEFAULT_CHANGE_METHODS,
    DEFAULT_VIEW_METHODS,
    Account,
    Connection,
    ContractProxy,
    bind_contract,
    configure,
    invoke_mutating,
    invoke_readonly,
    register_key,
    resolve_account,
)
from .errors import (
    AccountResolutionError,
    CallFileError,
    ConfigError,
    InvalidCallError,
    JsonRpcError,
    KeyFormatError,
    MarbleError,
    MissingKeyError,
    QueryError,
    TransactionError,
    UndeclaredMethodError,
)
from .sigil.keys import (
    InMemoryKeyStore,
    InMemorySigner,
    KeyPair,
    PublicKey,
    generate_keypair,
    load_private_key,
)
from .calls.book import CallBook, CallSpec, load_call
