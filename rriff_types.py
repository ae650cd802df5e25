"""
Rust RIFF Types & Constants — Pixel-Dump Container Format
==========================================================

Foundational definitions for the Rust RIFF container:
  - 8-byte header codec (width, height as uint32)
  - Color token helpers (6 hex digits per pixel, no '#')
  - Error taxonomy
  - Package logger

Container layout:
    offset 0  : width   uint32
    offset 4  : height  uint32
    offset 8+ : UTF-8 text, one line per row, `width` tokens per line,
                rows separated by a single '\\n' (no trailing newline)

The header is little-endian by default. Files written by the original tool
used the byte order of the machine that produced them; read those with
byte_order="native".
"""

import struct
import hashlib
import logging
from dataclasses import dataclass
from typing import Tuple

# Package logger, silent unless the application configures logging
logger = logging.getLogger("rustriff")
logger.addHandler(logging.NullHandler())


# ═══════════════════════════════════════════════════════════════
# CONSTANTS
# ═══════════════════════════════════════════════════════════════

CONTAINER_EXTENSION = ".rust-riff"

HEADER_SIZE = 8
TOKEN_LENGTH = 6
ROW_SEPARATOR = b"\n"

UINT32_MAX = 0xFFFFFFFF

# struct prefixes per supported header byte order
BYTE_ORDERS = {
    'little': '<',
    'big':    '>',
    'native': '=',
}
DEFAULT_BYTE_ORDER = 'little'

# Paint opacity the original decoder applied to every pixel
LEGACY_PAINT_ALPHA = 0.004

HEX_DIGITS = frozenset("0123456789abcdefABCDEF")


# ═══════════════════════════════════════════════════════════════
# ERROR CLASSES
# ═══════════════════════════════════════════════════════════════

class RiffError(Exception):
    """Base error for all Rust RIFF operations."""
    pass

class ImageReadError(RiffError):
    """Source image missing, unreadable or not an image."""
    pass

class ContainerWriteError(RiffError):
    """Destination file could not be written."""
    pass

class ContainerReadError(RiffError):
    """Container file missing or unreadable."""
    pass

class RiffFormatError(RiffError):
    """Container contents are structurally invalid."""
    pass

class HeaderError(RiffFormatError):
    """Header truncated or dimensions out of range."""
    pass

class EncodingError(RiffFormatError):
    """Token payload is not valid UTF-8."""
    pass

class TokenLengthError(RiffFormatError):
    """Payload does not tile into exactly width*height tokens."""
    pass

class ColorParseError(RiffFormatError):
    """A token is not a valid 6-digit hex color."""
    pass


# ═══════════════════════════════════════════════════════════════
# HEADER CODEC
# ═══════════════════════════════════════════════════════════════

def _struct_format(byte_order: str) -> str:
    try:
        return BYTE_ORDERS[byte_order] + 'II'
    except KeyError:
        raise ValueError(
            f"Unknown byte order {byte_order!r}, expected one of {sorted(BYTE_ORDERS)}"
        ) from None


@dataclass
class ContainerHeader:
    """
    Container header: image dimensions.

    Wire format (8 bytes):
        width  : uint32 (4 bytes)
        height : uint32 (4 bytes)
    """
    width: int
    height: int

    PACKED_SIZE = HEADER_SIZE

    def pack(self, byte_order: str = DEFAULT_BYTE_ORDER) -> bytes:
        """Serialize to wire format."""
        fmt = _struct_format(byte_order)
        for name, value in (('width', self.width), ('height', self.height)):
            if not 0 <= value <= UINT32_MAX:
                raise HeaderError(f"{name} {value} does not fit in uint32")
        return struct.pack(fmt, self.width, self.height)

    @classmethod
    def unpack(cls, data: bytes, byte_order: str = DEFAULT_BYTE_ORDER) -> 'ContainerHeader':
        """Deserialize from the first 8 bytes of `data`."""
        fmt = _struct_format(byte_order)
        if len(data) < cls.PACKED_SIZE:
            raise HeaderError(f"Header needs {cls.PACKED_SIZE} bytes, got {len(data)}")
        width, height = struct.unpack(fmt, data[:cls.PACKED_SIZE])
        return cls(width=width, height=height)


def encode_header(width: int, height: int, byte_order: str = DEFAULT_BYTE_ORDER) -> bytes:
    """Pack width then height as two uint32 values."""
    return ContainerHeader(width, height).pack(byte_order)

def decode_header(data: bytes, byte_order: str = DEFAULT_BYTE_ORDER) -> Tuple[int, int]:
    """Inverse of encode_header. Returns (width, height)."""
    header = ContainerHeader.unpack(data, byte_order)
    return header.width, header.height


# ═══════════════════════════════════════════════════════════════
# UTILITY FUNCTIONS
# ═══════════════════════════════════════════════════════════════

def rgb_to_token(r: int, g: int, b: int, uppercase: bool = False) -> str:
    """(255, 0, 128) -> 'ff0080'"""
    token = f"{r:02x}{g:02x}{b:02x}"
    return token.upper() if uppercase else token

def is_valid_token(token: str) -> bool:
    return len(token) == TOKEN_LENGTH and all(c in HEX_DIGITS for c in token)

def content_address_hex(data: bytes) -> str:
    """SHA-256 digest as hex string."""
    return hashlib.sha256(data).hexdigest()
