"""
Job Watcher - Automated page change monitoring pipeline.

This package provides functionality to:
- Fetch a fixed list of career pages
- Normalize their markup so unchanged pages compare equal
- Diff each page against its last stored snapshot
- Filter numeric and markup-free noise out of the additions
- Notify a Discord webhook with a digest of what was added
"""

__version__ = "1.0.0"
