"""
superarchive: build a single archive of a git superproject and its nested repositories.
"""

__version__ = "0.2.0"
PROGRAM = "superarchive"
