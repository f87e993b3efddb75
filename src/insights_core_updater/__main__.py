"""Entry point for ``python -m insights_core_updater``."""

from insights_core_updater.cli import run

if __name__ == "__main__":
    run()
