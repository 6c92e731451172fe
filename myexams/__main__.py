"""
Package entry point.

Allows running the application via:

    python -m myexams

This simply forwards execution to myexams.cli.main().
"""

from myexams.cli import main

if __name__ == "__main__":
    main()
