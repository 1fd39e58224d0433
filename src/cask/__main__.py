"""Main entry point for the Cask CLI.

Usage:
    python -m cask --help
    cask --help  # If installed via pip/uv
"""

from cask.cli import main

if __name__ == "__main__":
    main()
