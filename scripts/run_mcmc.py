from __future__ import annotations

from metropolis.cli import app

if __name__ == "__main__":
    app()
