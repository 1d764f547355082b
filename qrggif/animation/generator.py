"""Test animation generator.

Renders each symbol of a sequence centred in black on a white square canvas
and saves the frames as a looping animated GIF. ``generate_all`` writes one
animation per canonical symbol ring together with a ``qrg-db.json`` index
that a verification stub can serve from.

Example:
    >>> animation = generate_animation(["ℍ", "ℎ", "∑", "⑂", "⑃"])
    >>> animation.fingerprint[:8]
    '...'
"""

import argparse
import io
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from PIL import Image, ImageDraw, ImageFont

from qrggif.common.alphabet import SYMBOL_RINGS
from qrggif.sequence.fingerprint import fingerprint

logger = logging.getLogger(__name__)

FRAME_DELAY_MS = 100
CANVAS_SIZE = 400
BACKGROUND_COLOR = (255, 255, 255)
FOREGROUND_COLOR = (0, 0, 0)
TEST_NICKNAME_PREFIX = "Test QRGGIF"
ENTRY_LIFETIME = timedelta(hours=24)

# Fonts with coverage for the arrow, math and enclosed-numeral blocks
FONT_CANDIDATES = ("DejaVuSans.ttf", "Arial Unicode.ttf", "arial.ttf")

DEFAULT_SEQUENCES: List[List[str]] = [list(members) for members in SYMBOL_RINGS.values()]


@dataclass
class GeneratedAnimation:
    """An encoded test animation.

    Attributes:
        sequence: Symbols in frame order
        data: GIF bytes
        fingerprint: SHA-256 fingerprint of the sequence
    """

    sequence: List[str]
    data: bytes
    fingerprint: str


def load_font(size: int) -> ImageFont.ImageFont:
    """Load the first available symbol-capable font, else Pillow's default."""
    for name in FONT_CANDIDATES:
        try:
            return ImageFont.truetype(name, size)
        except OSError:
            continue
    logger.warning(
        f"None of {FONT_CANDIDATES} found, falling back to Pillow's default font"
    )
    return ImageFont.load_default()


def render_symbol(
    symbol: str,
    canvas_size: int = CANVAS_SIZE,
    font: Optional[ImageFont.ImageFont] = None,
) -> Image.Image:
    """Render one symbol centred on a white square canvas.

    Args:
        symbol: Code point to draw
        canvas_size: Canvas edge length in pixels
        font: Font to draw with (defaults to a font at half the canvas size)

    Returns:
        RGB Pillow image
    """
    if font is None:
        font = load_font(canvas_size // 2)

    image = Image.new("RGB", (canvas_size, canvas_size), BACKGROUND_COLOR)
    draw = ImageDraw.Draw(image)
    left, top, right, bottom = draw.textbbox((0, 0), symbol, font=font)
    x = (canvas_size - (right - left)) / 2 - left
    y = (canvas_size - (bottom - top)) / 2 - top
    draw.text((x, y), symbol, fill=FOREGROUND_COLOR, font=font)
    return image


def generate_animation(
    sequence: Sequence[str],
    canvas_size: int = CANVAS_SIZE,
    frame_delay_ms: int = FRAME_DELAY_MS,
    output_path: Optional[Path] = None,
) -> GeneratedAnimation:
    """Encode a symbol sequence as a looping animated GIF.

    Args:
        sequence: Symbols to render, one per frame
        canvas_size: Canvas edge length in pixels
        frame_delay_ms: Display duration per frame
        output_path: Optional file to write the GIF to

    Returns:
        GeneratedAnimation with the GIF bytes and sequence fingerprint

    Raises:
        ValueError: If the sequence is empty
    """
    if not sequence:
        raise ValueError("Cannot generate an animation from an empty sequence")

    font = load_font(canvas_size // 2)
    frames = [render_symbol(symbol, canvas_size, font) for symbol in sequence]

    buffer = io.BytesIO()
    frames[0].save(
        buffer,
        format="GIF",
        save_all=True,
        append_images=frames[1:],
        duration=frame_delay_ms,
        loop=0,
        disposal=1,
    )
    data = buffer.getvalue()

    if output_path is not None:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_bytes(data)
        logger.info(f"Wrote {len(sequence)}-frame animation to {output_path}")

    return GeneratedAnimation(
        sequence=list(sequence), data=data, fingerprint=fingerprint(sequence)
    )


def generate_all(
    output_dir: Path,
    sequences: Sequence[Sequence[str]] = DEFAULT_SEQUENCES,
    canvas_size: int = CANVAS_SIZE,
    frame_delay_ms: int = FRAME_DELAY_MS,
    now: Optional[datetime] = None,
) -> List[Dict[str, Any]]:
    """Generate one animation per sequence and refresh the qrg-db.json index.

    Previous test entries (nickname starting with "Test QRGGIF") are replaced;
    other entries in the index are kept.

    Args:
        output_dir: Directory for the GIF files and qrg-db.json
        sequences: Symbol sequences to encode
        canvas_size: Canvas edge length in pixels
        frame_delay_ms: Display duration per frame
        now: Creation timestamp (defaults to current UTC time)

    Returns:
        Index records for the generated animations
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    now = now or datetime.now(timezone.utc)

    records: List[Dict[str, Any]] = []
    for i, sequence in enumerate(sequences, start=1):
        path = output_dir / f"qrggif-{i}.gif"
        animation = generate_animation(sequence, canvas_size, frame_delay_ms, path)
        records.append(
            {
                "sequence": list(sequence),
                "file": str(path),
                "animation_hash": animation.fingerprint,
                "nickname": f"{TEST_NICKNAME_PREFIX} {i}",
                "created_at": now.isoformat(),
                "expires_at": (now + ENTRY_LIFETIME).isoformat(),
                "active": True,
            }
        )

    db_path = output_dir / "qrg-db.json"
    db: Dict[str, Any] = {"items": []}
    if db_path.exists():
        with open(db_path, "r", encoding="utf-8") as f:
            db = json.load(f)
    db["items"] = [
        item
        for item in db.get("items", [])
        if not str(item.get("nickname", "")).startswith(TEST_NICKNAME_PREFIX)
    ]
    db["items"].extend(records)
    with open(db_path, "w", encoding="utf-8") as f:
        json.dump(db, f, ensure_ascii=False, indent=2)

    logger.info(f"Updated {db_path} with {len(records)} test animations")
    return records


def main():
    parser = argparse.ArgumentParser(description="Generate QRGGIF test animations")
    parser.add_argument(
        "--output-dir", type=str, default="test-qrggifs", help="Output directory"
    )
    parser.add_argument(
        "--canvas-size", type=int, default=CANVAS_SIZE, help="Canvas edge length in px"
    )
    parser.add_argument(
        "--delay", type=int, default=FRAME_DELAY_MS, help="Frame delay in milliseconds"
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    records = generate_all(
        Path(args.output_dir), canvas_size=args.canvas_size, frame_delay_ms=args.delay
    )
    for record in records:
        print(f"{record['file']}: {record['animation_hash']}")


if __name__ == "__main__":
    main()
