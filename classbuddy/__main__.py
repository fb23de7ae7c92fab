"""
Package entry point.

Allows running the application via:

    python -m classbuddy

This simply forwards execution to classbuddy.cli.main().
"""

from classbuddy.cli import main

if __name__ == "__main__":
    main()
