"""
File sorter: rule-based organization of files into folders.
"""

__version__ = "1.0.0"
