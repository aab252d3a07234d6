"""inkpress — build a static blog from Markdown posts with front matter."""

__version__ = "0.1.0"
