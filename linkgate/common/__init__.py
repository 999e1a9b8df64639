"""Common utilities for the link gate service."""

from .validators import is_valid_url, is_valid_short_code, is_valid_ip_rule, normalize_block_list
from .headers import extract_forwarded_headers, build_base_url, resolve_client_ip
from .url_builder import build_short_url, build_local_path
from .logging_config import setup_logging
from .ttl_cache import TTLCache

__all__ = [
    "is_valid_url",
    "is_valid_short_code",
    "is_valid_ip_rule",
    "normalize_block_list",
    "extract_forwarded_headers",
    "build_base_url",
    "resolve_client_ip",
    "build_short_url",
    "build_local_path",
    "setup_logging",
    "TTLCache",
]
