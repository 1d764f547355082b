"""QRGGIF animated-symbol credential recognition.

Decodes an animated GIF into composited frames, recognizes one symbol per
frame with Tesseract, validates the symbol sequence against the canonical
ring table and derives the SHA-256 fingerprint used for server-side lookup.
"""

__version__ = "0.1.0"
