"""Sink uploaders: committed ``.metrics`` files -> HTTP backend."""

from .uploader import SinkUploader, committed_files

__all__ = ["SinkUploader", "committed_files"]
