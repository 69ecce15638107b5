"""
Entry point for running the tap CLI as a module.

Usage: python -m tapkit.cli [command] [options]
"""

from .parser import main

if __name__ == "__main__":
    main()
