"""Text naming helpers.

This package contains the deterministic label sanitizer used for download and
export member names.
"""

from .naming import download_file_name, sanitize, timestamp_fallback_name

__all__ = ["sanitize", "download_file_name", "timestamp_fallback_name"]
