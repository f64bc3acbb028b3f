"""
Command-line interface for superarchive.
"""
