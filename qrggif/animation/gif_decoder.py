"""GIF container decoder producing raw frame patches.

Image libraries hand back frames that are already composited, which hides the
per-frame patch rectangle and disposal instruction the compositor needs. This
module walks the GIF89a block structure directly:

- Header and logical screen descriptor (canvas size, global colour table)
- Graphic control extensions (disposal method, delay, transparency)
- Application extensions (NETSCAPE loop count)
- Image descriptors with LZW-compressed, optionally interlaced pixel data

Example:
    >>> from qrggif.animation.gif_decoder import decode_gif
    >>> decoded = decode_gif(Path("qrggif-1.gif").read_bytes())
    >>> print(decoded.width, decoded.height, len(decoded.frames))
    400 400 5
"""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from qrggif.common.errors import DecodeError

from .types import DecodedAnimation, DisposalMethod, Frame

logger = logging.getLogger(__name__)

GIF_SIGNATURES = (b"GIF87a", b"GIF89a")

_EXTENSION_INTRODUCER = 0x21
_IMAGE_SEPARATOR = 0x2C
_TRAILER = 0x3B
_GRAPHIC_CONTROL_LABEL = 0xF9
_APPLICATION_LABEL = 0xFF

_MAX_LZW_BITS = 12
_MAX_LZW_TABLE = 1 << _MAX_LZW_BITS

# (start row, row step) for the four interlace passes
_INTERLACE_PASSES = ((0, 8), (4, 8), (2, 4), (1, 2))


@dataclass
class _GraphicControl:
    disposal_code: int
    delay_ms: int
    transparent_index: Optional[int]


class _ByteReader:
    """Cursor over the container bytes that fails with DecodeError on truncation."""

    def __init__(self, data: bytes):
        self._data = data
        self.pos = 0

    @property
    def at_end(self) -> bool:
        return self.pos >= len(self._data)

    def read(self, size: int) -> bytes:
        end = self.pos + size
        if end > len(self._data):
            raise DecodeError(
                f"Truncated data: needed {size} bytes at offset {self.pos}, "
                f"only {len(self._data) - self.pos} available"
            )
        chunk = self._data[self.pos : end]
        self.pos = end
        return chunk

    def u8(self) -> int:
        return self.read(1)[0]

    def u16(self) -> int:
        low, high = self.read(2)
        return low | (high << 8)

    def read_sub_blocks(self) -> bytes:
        chunks = []
        while True:
            size = self.u8()
            if size == 0:
                break
            chunks.append(self.read(size))
        return b"".join(chunks)


def lzw_decode(data: bytes, min_code_size: int, pixel_count: int) -> np.ndarray:
    """Decompress a GIF LZW stream into colour indices.

    Decoding stops at the end-of-information code, once ``pixel_count``
    indices have been produced, or when the stream runs out of bits.

    Args:
        data: Concatenated image data sub-blocks
        min_code_size: LZW minimum code size from the image block
        pixel_count: Number of indices the frame needs

    Returns:
        1-D uint8 array of at most ``pixel_count`` colour indices

    Raises:
        DecodeError: If the code size is out of range or a code is invalid
    """
    if not 1 <= min_code_size < _MAX_LZW_BITS:
        raise DecodeError(f"Invalid LZW minimum code size: {min_code_size}")

    clear_code = 1 << min_code_size
    end_code = clear_code + 1

    def fresh_table() -> list:
        return [bytes([i]) for i in range(clear_code)] + [b"", b""]

    table = fresh_table()
    code_size = min_code_size + 1
    output = bytearray()
    previous: Optional[bytes] = None

    accumulator = 0
    bit_count = 0
    pos = 0
    length = len(data)

    while len(output) < pixel_count:
        while bit_count < code_size and pos < length:
            accumulator |= data[pos] << bit_count
            bit_count += 8
            pos += 1
        if bit_count < code_size:
            break

        code = accumulator & ((1 << code_size) - 1)
        accumulator >>= code_size
        bit_count -= code_size

        if code == clear_code:
            table = fresh_table()
            code_size = min_code_size + 1
            previous = None
            continue
        if code == end_code:
            break

        if previous is None:
            if code >= clear_code:
                raise DecodeError(f"Invalid first LZW code {code} after clear")
            entry = table[code]
            output += entry
            previous = entry
            continue

        if code < len(table):
            entry = table[code]
            addition = previous + entry[:1]
        elif code == len(table):
            entry = previous + previous[:1]
            addition = entry
        else:
            raise DecodeError(f"Invalid LZW code {code} (table size {len(table)})")

        output += entry
        if len(table) < _MAX_LZW_TABLE:
            table.append(addition)
            if len(table) == (1 << code_size) and code_size < _MAX_LZW_BITS:
                code_size += 1
        previous = entry

    return np.frombuffer(bytes(output[:pixel_count]), dtype=np.uint8)


def _read_palette(reader: _ByteReader, packed: int) -> np.ndarray:
    """Read a colour table into a (256, 4) RGBA lookup array."""
    size = 2 << (packed & 0x07)
    raw = reader.read(3 * size)
    palette = np.zeros((256, 4), dtype=np.uint8)
    palette[:size, :3] = np.frombuffer(raw, dtype=np.uint8).reshape(size, 3)
    palette[:, 3] = 255
    return palette


def _read_graphic_control(reader: _ByteReader) -> _GraphicControl:
    size = reader.u8()
    if size < 4:
        raise DecodeError(f"Graphic control extension too short: {size} bytes")
    body = reader.read(size)
    reader.read_sub_blocks()

    packed = body[0]
    has_transparency = bool(packed & 0x01)
    return _GraphicControl(
        disposal_code=(packed >> 2) & 0x07,
        delay_ms=(body[1] | (body[2] << 8)) * 10,
        transparent_index=body[3] if has_transparency else None,
    )


def _read_application(reader: _ByteReader) -> Optional[int]:
    """Read an application extension, returning the loop count if it has one."""
    size = reader.u8()
    identifier = reader.read(size)
    payload = reader.read_sub_blocks()
    if identifier[:8] in (b"NETSCAPE", b"ANIMEXTS") and len(payload) >= 3:
        if payload[0] == 1:
            return payload[1] | (payload[2] << 8)
    return None


def _deinterlace(rows: np.ndarray) -> np.ndarray:
    height = rows.shape[0]
    order = [
        row for start, step in _INTERLACE_PASSES for row in range(start, height, step)
    ]
    result = np.empty_like(rows)
    result[order] = rows
    return result


def _read_image(
    reader: _ByteReader,
    index: int,
    global_palette: Optional[np.ndarray],
    control: Optional[_GraphicControl],
) -> Frame:
    left = reader.u16()
    top = reader.u16()
    width = reader.u16()
    height = reader.u16()
    packed = reader.u8()

    palette = _read_palette(reader, packed) if packed & 0x80 else global_palette
    if palette is None:
        raise DecodeError(f"Frame {index} has neither a local nor a global colour table")

    min_code_size = reader.u8()
    data = reader.read_sub_blocks()

    pixel_count = width * height
    indices = lzw_decode(data, min_code_size, pixel_count)

    valid = np.ones(pixel_count, dtype=bool)
    if indices.size < pixel_count:
        logger.warning(
            f"Frame {index}: LZW stream ended after {indices.size} of "
            f"{pixel_count} pixels, padding with transparency"
        )
        valid[indices.size :] = False
        indices = np.concatenate(
            [indices, np.zeros(pixel_count - indices.size, dtype=np.uint8)]
        )

    indices = indices.reshape(height, width)
    valid = valid.reshape(height, width)
    if packed & 0x40:
        indices = _deinterlace(indices)
        valid = _deinterlace(valid)

    pixels = palette[indices]
    if control is not None and control.transparent_index is not None:
        pixels[indices == control.transparent_index, 3] = 0
    pixels[~valid, 3] = 0

    disposal_code = control.disposal_code if control else 0
    if disposal_code > 3:
        logger.debug(f"Frame {index}: reserved disposal code {disposal_code}, using NONE")

    return Frame(
        index=index,
        width=width,
        height=height,
        left_offset=left,
        top_offset=top,
        disposal_method=DisposalMethod.from_code(disposal_code),
        delay_ms=control.delay_ms if control else 0,
        pixels=pixels,
    )


def decode_gif(data: bytes) -> DecodedAnimation:
    """Decode a GIF byte stream into raw frame patches.

    Args:
        data: Complete GIF87a / GIF89a byte stream

    Returns:
        DecodedAnimation with logical screen size and frames in display order

    Raises:
        DecodeError: If the header is malformed, data is truncated mid-block,
            an unknown block is encountered, or no frames are present
    """
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise DecodeError(f"Expected bytes, got {type(data).__name__}")

    reader = _ByteReader(bytes(data))
    try:
        signature = reader.read(6)
    except DecodeError as e:
        raise DecodeError("Malformed header: stream shorter than signature") from e
    if signature not in GIF_SIGNATURES:
        raise DecodeError(f"Malformed header: unknown signature {signature!r}")

    width = reader.u16()
    height = reader.u16()
    packed = reader.u8()
    background_index = reader.u8()
    reader.u8()  # pixel aspect ratio

    if width == 0 or height == 0:
        raise DecodeError(f"Malformed header: logical screen is {width}x{height}")

    global_palette = _read_palette(reader, packed) if packed & 0x80 else None

    decoded = DecodedAnimation(
        width=width, height=height, background_index=background_index
    )
    control: Optional[_GraphicControl] = None

    while True:
        if reader.at_end:
            if decoded.frames:
                logger.warning("GIF stream has no trailer, using frames read so far")
            break

        introducer = reader.u8()
        if introducer == _TRAILER:
            break
        if introducer == _EXTENSION_INTRODUCER:
            label = reader.u8()
            if label == _GRAPHIC_CONTROL_LABEL:
                control = _read_graphic_control(reader)
            elif label == _APPLICATION_LABEL:
                loop_count = _read_application(reader)
                if loop_count is not None:
                    decoded.loop_count = loop_count
            else:
                reader.read_sub_blocks()
        elif introducer == _IMAGE_SEPARATOR:
            decoded.frames.append(
                _read_image(reader, len(decoded.frames), global_palette, control)
            )
            control = None
        else:
            raise DecodeError(
                f"Unexpected block introducer 0x{introducer:02x} at offset {reader.pos - 1}"
            )

    if not decoded.frames:
        raise DecodeError("Animation declares zero frames")

    logger.debug(
        f"Decoded GIF: {width}x{height}, {len(decoded.frames)} frames, "
        f"loop={decoded.loop_count}"
    )
    return decoded
