"""Animation decoding and compositing.

Core Components:
    - types: RawAnimation, Frame, ComposedFrame, DisposalMethod
    - gif_decoder: GIF block parser and LZW decompressor
    - compositor: Full-canvas compositing with disposal handlers
    - generator: Pillow-based test animation writer
"""

from .compositor import DISPOSAL_HANDLERS, FrameCompositor, apply_patch, new_canvas
from .gif_decoder import decode_gif, lzw_decode
from .types import ComposedFrame, DecodedAnimation, DisposalMethod, Frame, RawAnimation

__all__ = [
    "ComposedFrame",
    "DecodedAnimation",
    "DisposalMethod",
    "Frame",
    "RawAnimation",
    "FrameCompositor",
    "DISPOSAL_HANDLERS",
    "apply_patch",
    "new_canvas",
    "decode_gif",
    "lzw_decode",
]
