"""
Pytest Configuration and Shared Fixtures

This file contains pytest configuration and fixtures that are available
to all test modules, including a byte-exact GIF writer so decoder and
compositor tests control offsets, disposal and transparency directly.
"""

import struct
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np
import pytest

from qrggif.ocr.types import OCREngineResult

# Index 0 black, 1 white, 2 red, 3 blue
DEFAULT_PALETTE = [(0, 0, 0), (255, 255, 255), (255, 0, 0), (0, 0, 255)]


@dataclass
class GifFrameSpec:
    """One image block to write."""

    indices: np.ndarray
    left: int = 0
    top: int = 0
    disposal: int = 0
    delay_cs: int = 0
    transparent_index: Optional[int] = None
    local_palette: Optional[Sequence[Tuple[int, int, int]]] = None


def _palette_bits(size: int) -> int:
    bits = 2
    while (1 << bits) < size:
        bits += 1
    return bits


def _palette_bytes(palette: Sequence[Tuple[int, int, int]], bits: int) -> bytes:
    entries = list(palette) + [(0, 0, 0)] * ((1 << bits) - len(palette))
    return bytes(channel for rgb in entries for channel in rgb)


def lzw_encode(indices: Sequence[int], min_code_size: int) -> bytes:
    """Encode indices as literal codes, clearing before the code width grows."""
    clear_code = 1 << min_code_size
    end_code = clear_code + 1
    code_width = min_code_size + 1
    run = (1 << min_code_size) - 2

    codes: List[int] = []
    flat = [int(i) for i in indices]
    for start in range(0, len(flat), run):
        codes.append(clear_code)
        codes.extend(flat[start : start + run])
    codes.append(end_code)

    out = bytearray()
    accumulator = 0
    bit_count = 0
    for code in codes:
        accumulator |= code << bit_count
        bit_count += code_width
        while bit_count >= 8:
            out.append(accumulator & 0xFF)
            accumulator >>= 8
            bit_count -= 8
    if bit_count:
        out.append(accumulator & 0xFF)
    return bytes(out)


def _sub_blocks(data: bytes) -> bytes:
    out = bytearray()
    for start in range(0, len(data), 255):
        chunk = data[start : start + 255]
        out.append(len(chunk))
        out += chunk
    out.append(0)
    return bytes(out)


def build_gif(
    width: int,
    height: int,
    frames: Sequence[dict],
    palette: Sequence[Tuple[int, int, int]] = DEFAULT_PALETTE,
    loop: Optional[int] = 0,
    trailer: bool = True,
) -> bytes:
    """Write a GIF89a stream.

    Args:
        width: Logical screen width
        height: Logical screen height
        frames: Keyword dicts for GifFrameSpec (``indices`` is an (h, w) array)
        palette: Global colour table
        loop: NETSCAPE loop count, None to omit the extension
        trailer: Whether to terminate the stream with the trailer byte

    Returns:
        GIF bytes
    """
    bits = _palette_bits(len(palette))
    out = bytearray(b"GIF89a")
    out += struct.pack("<HHBBB", width, height, 0x80 | ((bits - 1) << 4) | (bits - 1), 0, 0)
    out += _palette_bytes(palette, bits)

    if loop is not None:
        out += b"\x21\xff\x0bNETSCAPE2.0\x03\x01" + struct.pack("<H", loop) + b"\x00"

    for frame_kwargs in frames:
        spec = GifFrameSpec(**frame_kwargs)
        indices = np.asarray(spec.indices, dtype=np.uint8)
        frame_height, frame_width = indices.shape

        flags = (spec.disposal & 0x07) << 2
        if spec.transparent_index is not None:
            flags |= 0x01
        out += b"\x21\xf9\x04" + struct.pack(
            "<BHB", flags, spec.delay_cs, spec.transparent_index or 0
        ) + b"\x00"

        image_flags = 0
        frame_bits = bits
        if spec.local_palette is not None:
            frame_bits = _palette_bits(len(spec.local_palette))
            image_flags = 0x80 | (frame_bits - 1)
        out += b"\x2c" + struct.pack(
            "<HHHHB", spec.left, spec.top, frame_width, frame_height, image_flags
        )
        if spec.local_palette is not None:
            out += _palette_bytes(spec.local_palette, frame_bits)

        out.append(frame_bits)
        out += _sub_blocks(lzw_encode(indices.ravel(), frame_bits))

    if trailer:
        out.append(0x3B)
    return bytes(out)


@pytest.fixture
def gif_builder():
    """Fixture providing the GIF writer function."""
    return build_gif


@pytest.fixture
def five_frame_gif():
    """Fixture providing a 5-frame animation with one distinct glyph per frame.

    Each frame paints a different black block on a white 16x16 canvas and
    replaces the whole canvas.
    """
    frames = []
    for i in range(5):
        indices = np.ones((16, 16), dtype=np.uint8)
        indices[3:13, 2 + i : 6 + i] = 0
        frames.append({"indices": indices, "delay_cs": 10})
    return build_gif(16, 16, frames)


class FakeEngine:
    """Engine double returning scripted readings in call order."""

    def __init__(self, readings: Sequence[Tuple[str, float]]):
        self.readings = list(readings)
        self.calls = 0
        self.terminated = 0

    def extract_symbol(self, image):
        text, confidence = self.readings[self.calls % len(self.readings)]
        self.calls += 1
        return OCREngineResult(text=text, confidence=confidence, success=bool(text))

    def terminate(self):
        self.terminated += 1


@pytest.fixture
def fake_engine_factory():
    """Fixture providing a factory for scripted OCR engines."""
    return FakeEngine


class SimulatedClock:
    """Manually advanced millisecond clock."""

    def __init__(self, start_ms: int = 1_700_000_000_000):
        self.now_ms = start_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, ms: int) -> None:
        self.now_ms += ms


@pytest.fixture
def clock():
    """Fixture providing a simulated clock."""
    return SimulatedClock()
