"""feedsync: incremental harvesting of account content into a content store."""

__version__ = "0.1.0"
