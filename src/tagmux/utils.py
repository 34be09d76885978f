"""
Utility functions and configuration for tagmux.
"""

import os
import sys
import logging
import hashlib
from pathlib import Path
from typing import Optional, Union
from logging.handlers import RotatingFileHandler

# ---------- Configuration ----------
class Config:
    """Configuration management with validation."""
    DEFAULT_ENCODING = 'utf-8'
    CHUNK_SIZE = 64 * 1024  # 64KB for file operations

    # Bytes read from the head of a file for signature sniffing
    SNIFF_SIZE = 64 * 1024
    # How far past the ID3v2 tag to look for an MPEG frame sync
    SYNC_SCAN_LIMIT = 64 * 1024

    # Freeform MP4 atoms are written under this mean/namespace
    DEFAULT_NAMESPACE = 'com.apple.iTunes'

    # None keeps the ID3v2 version found in the file (new tags get v2.4)
    ID3V2_VERSION: Optional[int] = None
    ID3V23_SEPARATOR = '/'

    # POPM frames are matched by this email; '' is what most players write
    POPM_EMAIL = ''

    FSYNC = True
    TEMP_SUFFIX = '.tagmux-tmp'
    VERIFY_STAGING = True

    @classmethod
    def validate(cls) -> None:
        """Validate configuration values."""
        if cls.CHUNK_SIZE <= 0:
            raise ValueError("CHUNK_SIZE must be positive")
        if cls.SNIFF_SIZE < 64:
            raise ValueError("SNIFF_SIZE must be at least 64 bytes")
        if cls.SYNC_SCAN_LIMIT <= 0:
            raise ValueError("SYNC_SCAN_LIMIT must be positive")
        if not cls.DEFAULT_NAMESPACE:
            raise ValueError("DEFAULT_NAMESPACE cannot be empty")
        if cls.ID3V2_VERSION not in (None, 3, 4):
            raise ValueError(f"Invalid ID3V2_VERSION: {cls.ID3V2_VERSION}")
        if not cls.ID3V23_SEPARATOR:
            raise ValueError("ID3V23_SEPARATOR cannot be empty")
        if not cls.TEMP_SUFFIX:
            raise ValueError("TEMP_SUFFIX cannot be empty")

    @classmethod
    def load_from_env(cls) -> None:
        """Load configuration from environment variables, updating class attributes."""
        if os.getenv('TAGMUX_CHUNK_SIZE'):
            cls.CHUNK_SIZE = int(os.getenv('TAGMUX_CHUNK_SIZE'))
        if os.getenv('TAGMUX_SYNC_SCAN_LIMIT'):
            cls.SYNC_SCAN_LIMIT = int(os.getenv('TAGMUX_SYNC_SCAN_LIMIT'))
        if os.getenv('TAGMUX_NAMESPACE'):
            cls.DEFAULT_NAMESPACE = os.getenv('TAGMUX_NAMESPACE')
        if os.getenv('TAGMUX_ID3V2_VERSION'):
            value = os.getenv('TAGMUX_ID3V2_VERSION').strip().lower()
            cls.ID3V2_VERSION = None if value in ('keep', 'auto') else int(value)
        if os.getenv('TAGMUX_POPM_EMAIL') is not None:
            cls.POPM_EMAIL = os.getenv('TAGMUX_POPM_EMAIL')
        if os.getenv('TAGMUX_FSYNC'):
            cls.FSYNC = os.getenv('TAGMUX_FSYNC', '').lower() in ('1', 'true', 'yes')
        cls.validate()

# ---------- Logging Setup ----------
def setup_logging(verbose: bool = False, log_dir: Union[str, Path] = 'logs') -> None:
    """Configure logging with rotation and proper formatting."""
    log_level = logging.DEBUG if verbose else logging.INFO

    log_dir = Path(log_dir)
    log_dir.mkdir(exist_ok=True)

    file_handler = RotatingFileHandler(
        log_dir / 'tagmux.log',
        maxBytes=10*1024*1024,  # 10MB
        backupCount=5,
        encoding='utf-8'
    )

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stdout),
            file_handler
        ]
    )

# ---------- Small Helpers ----------
def get_file_hash(file_path: Path) -> str:
    """Calculate file hash for verification."""
    hasher = hashlib.sha256()
    with open(file_path, 'rb') as f:
        for chunk in iter(lambda: f.read(Config.CHUNK_SIZE), b""):
            hasher.update(chunk)
    return hasher.hexdigest()

def truncate_text(s: object, max_len: int = 50) -> str:
    """Truncate string for display."""
    s = str(s) if s is not None else ""
    return s if len(s) <= max_len else s[:max_len - 3] + "..."

def safe_unicode_path(path: Union[str, bytes, Path]) -> str:
    """Convert path to unicode, handling encoding issues."""
    if isinstance(path, bytes):
        try:
            return path.decode(Config.DEFAULT_ENCODING)
        except UnicodeDecodeError:
            return path.decode('latin-1')
    return str(path)
