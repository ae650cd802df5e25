"""
Rust RIFF Decoder — Pixel-Dump Container to Image
==================================================

Decodes a Rust RIFF container back into a raster image.

Stages (any failure aborts the whole decode):
  1. Header     : width/height from the first 8 bytes       -> HeaderError
  2. Rows       : every '\\n' is removed from the payload
  3. Encoding   : payload must be UTF-8                      -> EncodingError
  4. Tiling     : exactly width*height 6-character tokens    -> TokenLengthError
  5. Colors     : each token parsed as CSS '#RRGGBB'         -> ColorParseError
  6. Paint      : 1x1 rectangle per pixel on a raster surface
  7. Serialize  : surface encoded to PNG (or another format) in memory

The decoded image is returned as a value; writing it to disk is optional.
"""

import io
from pathlib import Path
from typing import List, Optional, Tuple, Union

from PIL import Image, ImageColor, ImageDraw

from rriff_types import (
    DEFAULT_BYTE_ORDER, HEADER_SIZE, LEGACY_PAINT_ALPHA, ROW_SEPARATOR, TOKEN_LENGTH,
    ContainerHeader,
    ContainerReadError, HeaderError, EncodingError, TokenLengthError, ColorParseError,
    is_valid_token, logger,
)
from rriff_encoder import write_file


# ═══════════════════════════════════════════════════════════════
# DECODER
# ═══════════════════════════════════════════════════════════════

class RiffDecoder:
    """
    Rust RIFF Decoder.

    Usage:
        decoder = RiffDecoder()
        result = decoder.decode("cat.rust-riff")
        width, height = result['width'], result['height']
        png = result['image_bytes']     # serialized image
        img = result['image']           # PIL image

    opaque=False reproduces the original tool, which painted every pixel
    at a constant near-zero opacity over a black surface.
    """

    def __init__(self,
                 byte_order: str = DEFAULT_BYTE_ORDER,
                 opaque: bool = True,
                 image_format: str = "PNG"):
        self.byte_order = byte_order
        self.opaque = opaque
        self.image_format = image_format

    # ─── Main Entry Points ────────────────────────────────────

    def decode(self, filepath: Union[str, Path],
               output_path: Optional[Union[str, Path]] = None) -> dict:
        """
        Decode a container file.

        Args:
            filepath: Path to a .rust-riff file.
            output_path: Also write the serialized image here (optional).

        Returns:
            dict with 'width', 'height', 'image', 'image_bytes', etc.
        """
        path = Path(filepath)
        try:
            raw = path.read_bytes()
        except OSError as exc:
            raise ContainerReadError(f"Couldn't read container {path}: {exc}") from exc

        result = self.decode_bytes(raw)

        if output_path is not None:
            write_file(output_path, result['image_bytes'])
            result['paths']['image'] = str(output_path)
            logger.info("Wrote decoded %dx%d image to %s",
                        result['width'], result['height'], output_path)
        return result

    def decode_bytes(self, data: bytes) -> dict:
        """Decode from in-memory container bytes."""
        # ── Step 1: Header ──
        header = ContainerHeader.unpack(data, self.byte_order)
        width, height = header.width, header.height
        if width == 0 or height == 0:
            raise HeaderError(f"Empty image dimensions {width}x{height}")
        logger.debug("Header: %dx%d (%s byte order)", width, height, self.byte_order)

        # ── Step 2: Strip row delimiters ──
        payload = data[HEADER_SIZE:]
        stream = payload.replace(ROW_SEPARATOR, b"")

        # ── Step 3: UTF-8 check ──
        try:
            stream.decode('utf-8')
        except UnicodeDecodeError as exc:
            offset = HEADER_SIZE + _payload_offset(payload, exc.start)
            raise EncodingError(
                f"Invalid UTF-8 in token payload at file offset {offset}"
            ) from exc

        # ── Step 4: Token tiling ──
        if len(stream) % TOKEN_LENGTH:
            raise TokenLengthError(
                f"Payload length {len(stream)} is not a multiple of {TOKEN_LENGTH} "
                f"(trailing partial token of {len(stream) % TOKEN_LENGTH} bytes)"
            )
        token_count = len(stream) // TOKEN_LENGTH
        if token_count != width * height:
            raise TokenLengthError(
                f"Expected {width * height} tokens for {width}x{height}, got {token_count}"
            )

        # ── Step 5: Parse every token before painting ──
        colors = self._parse_tokens(stream)

        # ── Step 6: Paint ──
        surface = self._paint(width, height, colors)

        # ── Step 7: Serialize ──
        buf = io.BytesIO()
        surface.save(buf, format=self.image_format)
        image_bytes = buf.getvalue()
        logger.debug("Serialized %dx%d surface to %s (%d bytes)",
                     width, height, self.image_format, len(image_bytes))

        return {
            'width': width,
            'height': height,
            'token_count': token_count,
            'image': surface,
            'image_bytes': image_bytes,
            'format': self.image_format,
            'paths': {},
        }

    # ─── Token Parsing ────────────────────────────────────────

    def _parse_tokens(self, stream: bytes) -> List[Tuple[int, int, int]]:
        return [
            parse_token(stream[pos:pos + TOKEN_LENGTH], pos // TOKEN_LENGTH)
            for pos in range(0, len(stream), TOKEN_LENGTH)
        ]

    # ─── Raster Surface ───────────────────────────────────────

    def _paint(self, width: int, height: int,
               colors: List[Tuple[int, int, int]]) -> Image.Image:
        """Paint one unit rectangle per pixel, row-major, onto a black RGB surface."""
        surface = Image.new("RGB", (width, height), (0, 0, 0))
        if self.opaque:
            draw = ImageDraw.Draw(surface)
            alpha = None
        else:
            # RGBA draw mode blends the fill onto the RGB surface
            draw = ImageDraw.Draw(surface, "RGBA")
            alpha = round(LEGACY_PAINT_ALPHA * 255)

        for i, rgb in enumerate(colors):
            x = i % width
            y = i // width
            draw.point((x, y), fill=rgb if alpha is None else rgb + (alpha,))
        return surface


# ═══════════════════════════════════════════════════════════════
# TOKEN HELPERS
# ═══════════════════════════════════════════════════════════════

def _payload_offset(payload: bytes, stream_pos: int) -> int:
    """Map a position in the newline-stripped stream back to `payload`."""
    seen = 0
    for offset, byte in enumerate(payload):
        if byte == ROW_SEPARATOR[0]:
            continue
        if seen == stream_pos:
            return offset
        seen += 1
    return len(payload)


def parse_token(chunk: bytes, index: int = 0) -> Tuple[int, int, int]:
    """
    Parse one 6-byte token into (r, g, b).

    b'ff0080' -> (255, 0, 128). Case-insensitive.
    """
    try:
        token = chunk.decode('ascii')
    except UnicodeDecodeError:
        raise ColorParseError(f"Token {index}: non-ASCII bytes {chunk!r}") from None
    if not is_valid_token(token):
        raise ColorParseError(f"Token {index}: {token!r} is not a 6-digit hex color")
    try:
        r, g, b = ImageColor.getrgb('#' + token)
    except ValueError:
        raise ColorParseError(f"Token {index}: {token!r} is not a hex color") from None
    return r, g, b


# ═══════════════════════════════════════════════════════════════
# CONVENIENCE FUNCTIONS
# ═══════════════════════════════════════════════════════════════

def decode_file(filepath, output_path=None, **options) -> dict:
    """Convenience: decode a container file in one call."""
    return RiffDecoder(**options).decode(filepath, output_path)
