"""Shared building blocks: error taxonomy, symbol table and configuration."""

from qrggif.common.alphabet import (
    APPROVED_ALPHABET,
    MAX_SEQUENCE_LENGTH,
    MIN_SEQUENCE_LENGTH,
    SYMBOL_RINGS,
    SYMBOL_TABLE,
    SymbolSpec,
    get_spec,
    is_approved,
    ring_of,
    successors,
)
from qrggif.common.config_loader import (
    AnimationConfig,
    CacheConfig,
    Config,
    EngineConfig,
    PreprocessingConfig,
    RecognitionConfig,
    VerificationConfig,
    get_default_config,
    load_config,
)
from qrggif.common.errors import (
    DecodeError,
    EngineUnavailable,
    InsufficientSymbols,
    InvalidFrameCount,
    QRGGIFError,
    RecognitionFailure,
    ValidationFailure,
    VerificationError,
)

__all__ = [
    # Alphabet
    "APPROVED_ALPHABET",
    "MIN_SEQUENCE_LENGTH",
    "MAX_SEQUENCE_LENGTH",
    "SYMBOL_RINGS",
    "SYMBOL_TABLE",
    "SymbolSpec",
    "get_spec",
    "is_approved",
    "ring_of",
    "successors",
    # Configuration
    "Config",
    "AnimationConfig",
    "PreprocessingConfig",
    "EngineConfig",
    "RecognitionConfig",
    "CacheConfig",
    "VerificationConfig",
    "load_config",
    "get_default_config",
    # Errors
    "QRGGIFError",
    "DecodeError",
    "InvalidFrameCount",
    "RecognitionFailure",
    "InsufficientSymbols",
    "ValidationFailure",
    "EngineUnavailable",
    "VerificationError",
]
