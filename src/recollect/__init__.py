"""Recollect: memory lifecycle for an AI coding assistant.

Surfaces stored preferences into sessions (deduplicated, once per tool),
prunes stale or over-quota memories, and turns session feedback into
promotion signals. Storage itself belongs to an external memory service.
"""

__version__ = "0.1.0"
