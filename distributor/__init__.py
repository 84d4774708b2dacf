"""
Bulk SPL token distribution through Jito bundles.
"""

__version__ = "1.0.0"
