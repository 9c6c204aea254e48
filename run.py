"""Project root entry point for launching the web interface."""

from __future__ import annotations

import sys
from pathlib import Path


def _bootstrap_path() -> None:
    """Ensure the project root is importable so the src package resolves."""
    project_root = Path(__file__).resolve().parent
    if str(project_root) not in sys.path:
        sys.path.insert(0, str(project_root))


def main():
    _bootstrap_path()
    from src.config import get_log_mode
    from src.web import create_app

    app = create_app()
    app.run(host="0.0.0.0", port=5500, debug=get_log_mode() == "debug")


if __name__ == "__main__":
    main()
