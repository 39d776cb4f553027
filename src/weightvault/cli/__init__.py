"""
Command line interface for weightvault.
"""
