"""Statement decoding and column resolution."""

from .columns import ColumnResolver, is_blank
from .decoders import FileFormat, decode, decode_path, detect_format

__all__ = [
    "ColumnResolver",
    "FileFormat",
    "decode",
    "decode_path",
    "detect_format",
    "is_blank",
]
