"""
Entry point for running tap as a module.

Usage: python -m tapkit [command] [options]
"""

from tapkit.cli.parser import main

if __name__ == "__main__":
    main()
