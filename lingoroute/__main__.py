"""Module entrypoint for running lingoroute as ``python -m lingoroute``."""

from __future__ import annotations

from lingoroute.cli import main


if __name__ == "__main__":
    main()
