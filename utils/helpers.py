"""
Utility functions for Concord.

Provides helper functions for:
- Logging configuration
- Byte and integer encodings used in vector files
- Result saving
"""

import os
import json
import base64
import binascii
import logging
from datetime import datetime
from typing import Any, Dict, Optional, Sequence, Union

from crypto.errors import MalformedVector


def setup_logging(
    log_dir: Optional[str] = None,
    log_level: Union[int, str] = logging.INFO,
    experiment_name: Optional[str] = None
) -> logging.Logger:
    """
    Setup logging configuration.

    Args:
        log_dir: Directory for log files (console only when None)
        log_level: Logging level or its name
        experiment_name: Prefix for the log file name

    Returns:
        Configured logger
    """
    if isinstance(log_level, str):
        log_level = logging.getLevelName(log_level.upper())

    logger = logging.getLogger('concord')
    logger.setLevel(log_level)
    logger.handlers = []

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
        name = experiment_name if experiment_name else 'concord'
        file_handler = logging.FileHandler(os.path.join(log_dir, f'{name}_{timestamp}.log'))
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def encode_bytes(data: bytes, encoding: str = 'hex') -> str:
    """Encode bytes for a vector file ('hex' or 'base64')."""
    if encoding == 'hex':
        return bytes(data).hex()
    if encoding == 'base64':
        return base64.b64encode(bytes(data)).decode('ascii')
    raise ValueError(f"Unknown byte encoding: {encoding}")


def decode_bytes(value: Union[str, Sequence[int]], encoding: str = 'hex') -> bytes:
    """
    Decode a byte field from a vector file.

    Lists of integers (as written by some producers) are accepted
    regardless of the declared encoding.

    Raises:
        MalformedVector: If the value cannot be decoded
    """
    if isinstance(value, list):
        try:
            return bytes(value)
        except (TypeError, ValueError):
            raise MalformedVector("Byte list contains values outside 0..255") from None
    if not isinstance(value, str):
        raise MalformedVector(f"Expected an encoded byte string, got {type(value).__name__}")

    try:
        if encoding == 'hex':
            return bytes.fromhex(value)
        if encoding == 'base64':
            return base64.b64decode(value, validate=True)
    except (ValueError, binascii.Error):
        raise MalformedVector(f"Invalid {encoding} value: {value[:32]!r}") from None
    raise MalformedVector(f"Unknown byte encoding: {encoding}")


def int_to_hex(value: int) -> str:
    """Big integer as lower-case hex without prefix."""
    return format(value, 'x')


def hex_to_int(value: Union[str, int]) -> int:
    """Parse a big integer written as hex (an optional 0x prefix is allowed)."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    try:
        return int(value, 16)
    except (TypeError, ValueError):
        raise MalformedVector(f"Invalid hex integer: {value!r}") from None


class ResultsSaver:
    """Saves JSON results under an output directory."""

    def __init__(self, output_dir: str = './outputs'):
        self.output_dir = output_dir
        os.makedirs(output_dir, exist_ok=True)

    def path_for(self, name: str) -> str:
        return os.path.join(self.output_dir, f'{name}.json')

    def save_json(self, data: Dict[str, Any], name: str) -> str:
        """Save a dictionary with sorted keys, returning the file path."""
        path = self.path_for(name)
        with open(path, 'w') as f:
            json.dump(data, f, indent=2, sort_keys=True, default=str)
        return path


def format_time(seconds: float) -> str:
    """Format seconds to human-readable string."""
    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = seconds % 60

    if hours > 0:
        return f'{hours}h {minutes}m {int(secs)}s'
    elif minutes > 0:
        return f'{minutes}m {int(secs)}s'
    else:
        return f'{secs:.2f}s'
