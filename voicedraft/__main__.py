"""Module entrypoint for running Voicedraft as ``python -m voicedraft``."""

from __future__ import annotations

from voicedraft.cli import main


if __name__ == "__main__":
    main()
