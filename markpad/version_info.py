"""
Version information for Markpad.
Build scripts overwrite the build fields; source checkouts report a dev build.
"""

__version__ = "1.2.0"
__build_timestamp__ = "source"
__build_type__ = "dev"
__description__ = "Markdown document engine: sanitized rendering, selection-aware editing and undo history"
