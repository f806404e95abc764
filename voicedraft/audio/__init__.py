"""Audio codec and export archive components.

This package contains the PCM/WAV codec used after synthesis and the zip
archiver used by export.
"""

from .archive import Archiver, ZipArchiver
from .codec import AudioCodec, PcmWavCodec, build_artifact

__all__ = ["AudioCodec", "PcmWavCodec", "build_artifact", "Archiver", "ZipArchiver"]
