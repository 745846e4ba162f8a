"""Allow ``python -m latmon``."""

from __future__ import annotations

from latmon.cli.main import main

if __name__ == "__main__":
    main()
