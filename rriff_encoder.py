"""
Rust RIFF Encoder — Image to Pixel-Dump Container
==================================================

Encodes a raster image into a Rust RIFF container:
  [width uint32][height uint32][hex token rows]

Each pixel becomes a 6-hex-digit RGB token ('ff0080'). Tokens of one row
are concatenated without separators; rows are joined with '\\n'. Alpha is
read from the source but never written.

The container is built fully in memory and flushed in one write. By default
the write goes to a temp file beside the destination, which is fsynced and
then renamed over it, so a failed encode never leaves a truncated container
behind.
"""

import os
import stat
import tempfile
from pathlib import Path
from typing import Optional, Union

from PIL import Image, UnidentifiedImageError

from rriff_types import (
    CONTAINER_EXTENSION, DEFAULT_BYTE_ORDER, ROW_SEPARATOR,
    ContainerHeader,
    ImageReadError, ContainerWriteError, HeaderError,
    content_address_hex, rgb_to_token, logger,
)


# ═══════════════════════════════════════════════════════════════
# FILE OUTPUT
# ═══════════════════════════════════════════════════════════════

def write_file(path: Union[str, Path], data: bytes, atomic: bool = True) -> None:
    """
    Write `data` to `path` in one write and flush it to disk.

    atomic=True writes a sibling temp file and renames it over `path`.
    atomic=False truncates `path` in place (a crash mid-write can leave a
    partial file).

    Raises ContainerWriteError on any OS failure. The parent directory is
    never created.
    """
    path = Path(path)
    if not atomic:
        try:
            with open(path, 'wb') as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
        except OSError as exc:
            raise ContainerWriteError(f"Couldn't write {path}: {exc}") from exc
        return

    tmp_name = None
    try:
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp",
                                        dir=str(path.parent))
        # mkstemp creates 0600; match what an in-place write would leave
        os.chmod(tmp_name, _target_mode(path))
        with os.fdopen(fd, 'wb') as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
        tmp_name = None
    except OSError as exc:
        raise ContainerWriteError(f"Couldn't write {path}: {exc}") from exc
    finally:
        if tmp_name is not None:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass


def _target_mode(path: Path) -> int:
    """Permission bits for `path`: kept if it exists, else 0666 minus umask."""
    try:
        return stat.S_IMODE(os.stat(path).st_mode)
    except FileNotFoundError:
        umask = os.umask(0)
        os.umask(umask)
        return 0o666 & ~umask


def container_path_for(source: Union[str, Path]) -> Path:
    """'photos/cat.png' -> 'photos/cat.rust-riff'"""
    return Path(source).with_suffix(CONTAINER_EXTENSION)


# ═══════════════════════════════════════════════════════════════
# ENCODER
# ═══════════════════════════════════════════════════════════════

class RiffEncoder:
    """
    Rust RIFF Encoder.

    Usage:
        encoder = RiffEncoder()
        result = encoder.encode("cat.png")          # writes cat.rust-riff
        data = encoder.encode_image(pil_image)      # container bytes only
    """

    def __init__(self,
                 byte_order: str = DEFAULT_BYTE_ORDER,
                 uppercase: bool = False,
                 atomic: bool = True):
        self.byte_order = byte_order
        self.uppercase = uppercase
        self.atomic = atomic

    # ─── Main Entry Points ────────────────────────────────────

    def encode(self,
               source: Union[str, Path, Image.Image],
               output_path: Optional[Union[str, Path]] = None) -> dict:
        """
        Encode an image into a container file.

        Args:
            source: Image file path, or an already opened PIL image.
            output_path: Destination. None = source path with its extension
                replaced by .rust-riff (required when `source` is an image).

        Returns:
            dict with dimensions, sizes, checksum and the written path.
        """
        if isinstance(source, Image.Image):
            image = source
            if output_path is None:
                raise ContainerWriteError(
                    "No destination: an output path is required when encoding an in-memory image"
                )
        else:
            image = self._read_image(source)
            if output_path is None:
                output_path = container_path_for(source)

        # ── 1. Build the container in memory ──
        container = self.encode_image(image)
        width, height = image.size

        # ── 2. Flush in one write ──
        write_file(output_path, container, atomic=self.atomic)
        logger.info("Encoded %dx%d image to %s (%d bytes)",
                    width, height, output_path, len(container))

        return {
            'width': width,
            'height': height,
            'token_count': width * height,
            'size_payload': len(container) - ContainerHeader.PACKED_SIZE,
            'size_container': len(container),
            'byte_order': self.byte_order,
            'checksum': content_address_hex(container),
            'paths': {'container': str(output_path)},
        }

    def encode_image(self, image: Image.Image) -> bytes:
        """
        Build container bytes for a PIL image. Nothing is written.

        Raises HeaderError for a zero width or height, which no decoder
        could turn back into an image.
        """
        width, height = image.size
        if width == 0 or height == 0:
            raise HeaderError(f"Empty image dimensions {width}x{height}")
        header = ContainerHeader(width, height).pack(self.byte_order)

        # RGB conversion drops alpha; 3 bytes per pixel, row-major
        raw = image.convert("RGB").tobytes()
        stride = width * 3
        rows = []
        for y in range(height):
            start = y * stride
            rows.append(''.join(
                rgb_to_token(*raw[pos:pos + 3], uppercase=self.uppercase)
                for pos in range(start, start + stride, 3)
            ))

        payload = ROW_SEPARATOR.join(row.encode('utf-8') for row in rows)
        logger.debug("Built %d rows of %d tokens (%d payload bytes)",
                     height, width, len(payload))
        return header + payload

    # ─── Image Input ──────────────────────────────────────────

    def _read_image(self, path: Union[str, Path]) -> Image.Image:
        """Open and fully load an image file, detached from the file handle."""
        path = Path(path)
        try:
            with Image.open(path) as img:
                img.load()
                return img.convert("RGBA")
        except UnidentifiedImageError as exc:
            raise ImageReadError(f"Not a readable image: {path}") from exc
        except Image.DecompressionBombError as exc:
            raise ImageReadError(f"Image too large to load {path}: {exc}") from exc
        except OSError as exc:
            raise ImageReadError(f"Couldn't read image {path}: {exc}") from exc


# ═══════════════════════════════════════════════════════════════
# CONVENIENCE FUNCTIONS
# ═══════════════════════════════════════════════════════════════

def encode_file(source, output_path=None, **options) -> dict:
    """Convenience: encode an image file in one call."""
    return RiffEncoder(**options).encode(source, output_path)
