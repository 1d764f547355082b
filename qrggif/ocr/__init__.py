"""Symbol recognition.

This module recognizes one QRGGIF symbol per preprocessed frame with
Tesseract restricted to the approved alphabet.

Core Components:
    - types: OCREngineResult, RecognitionResult and rejection constants
    - engine_tesseract: Lazily initialized Tesseract handle + shared instance
    - history: Bounded per-slot symbol history
    - shape_rules: Aspect-ratio, stroke and symmetry heuristics
    - recognizer: Acceptance rules on top of the engine

Example:
    >>> from qrggif.ocr import SymbolRecognizer, TesseractSymbolEngine
    >>> with TesseractSymbolEngine() as engine:
    ...     recognizer = SymbolRecognizer(engine)
    ...     result = recognizer.recognize(preprocessed)
"""

from .engine_tesseract import (
    TesseractSymbolEngine,
    get_shared_engine,
    release_shared_engine,
)
from .history import DEFAULT_SLOT, SymbolHistory
from .recognizer import SymbolRecognizer, accept_symbol, rejection_reason
from .shape_rules import (
    ShapeRules,
    ink_aspect_ratio,
    ink_bounding_box,
    max_stroke_transitions,
    symmetry_score,
)
from .types import (
    LOW_CONFIDENCE,
    NO_TEXT,
    NOT_IN_ALPHABET,
    NOT_SINGLE_CODE_POINT,
    SHAPE_MISMATCH,
    OCREngineResult,
    RecognitionResult,
)

__all__ = [
    # Types
    "OCREngineResult",
    "RecognitionResult",
    "NO_TEXT",
    "LOW_CONFIDENCE",
    "NOT_SINGLE_CODE_POINT",
    "NOT_IN_ALPHABET",
    "SHAPE_MISMATCH",
    # Engine
    "TesseractSymbolEngine",
    "get_shared_engine",
    "release_shared_engine",
    # Recognition
    "SymbolRecognizer",
    "SymbolHistory",
    "DEFAULT_SLOT",
    "accept_symbol",
    "rejection_reason",
    # Shape rules
    "ShapeRules",
    "ink_aspect_ratio",
    "ink_bounding_box",
    "max_stroke_transitions",
    "symmetry_score",
]
