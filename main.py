"""
solarb - Entrypoint
===================
    python main.py scan
    python main.py execute [--from-cache] [--amount 0.1] [--yes]
    python main.py cache
"""

from solarb.interface.cli import app


if __name__ == "__main__":
    app()
