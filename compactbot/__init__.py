"""compactbot - agentic conversation compaction."""

__version__ = "0.1.0"
__logo__ = "🗜"
