"""
Utility functions for Concord.
"""

from .helpers import (
    setup_logging,
    encode_bytes,
    decode_bytes,
    int_to_hex,
    hex_to_int,
    ResultsSaver,
    format_time
)

__all__ = [
    'setup_logging',
    'encode_bytes',
    'decode_bytes',
    'int_to_hex',
    'hex_to_int',
    'ResultsSaver',
    'format_time'
]
