# File: site_corpus/parser/__init__.py
"""site_corpus.parser: извлечение контента из HTML."""

from .html_parser import extract

__all__ = ["extract"]
