"""
Package entry point.

Allows running the application via:

    python -m smartcal

This simply forwards execution to smartcal.cli.main().
"""

from smartcal.cli import main

if __name__ == "__main__":
    main()
