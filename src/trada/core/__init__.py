"""trada.core: Foundation types, config, and exceptions."""

from trada.core.config import (
    CryptowatchConfig,
    IEXConfig,
    IndexResource,
    LoggingConfig,
    TradaConfig,
    WikiConfig,
    load_config,
)
from trada.core.exceptions import (
    ConfigError,
    FetchError,
    ParseError,
    PersistError,
    RunCancelled,
    TradaError,
    WikiAPIError,
    WorksetError,
)
from trada.core.models import (
    DataRange,
    InstrumentSpec,
    SecurityClass,
    Symbol,
    decimal_places,
    range_start,
)

__all__ = [
    # Type aliases
    "Symbol",
    # Enums
    "SecurityClass",
    "DataRange",
    # Models
    "InstrumentSpec",
    "decimal_places",
    "range_start",
    # Config
    "TradaConfig",
    "LoggingConfig",
    "CryptowatchConfig",
    "IEXConfig",
    "WikiConfig",
    "IndexResource",
    "load_config",
    # Exceptions
    "TradaError",
    "ConfigError",
    "WorksetError",
    "FetchError",
    "WikiAPIError",
    "ParseError",
    "PersistError",
    "RunCancelled",
]
