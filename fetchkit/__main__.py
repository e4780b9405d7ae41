"""Main entry point when executing fetchkit as a package.

This allows running the package using python -m fetchkit.
"""

from fetchkit.main import cli_entry_point

if __name__ == "__main__":
    cli_entry_point()
