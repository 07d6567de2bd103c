"""
Shared helpers: page address parsing, file naming and formatting.
"""
