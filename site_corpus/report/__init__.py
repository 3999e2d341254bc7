# File: site_corpus/report/__init__.py
"""site_corpus.report: выгрузка результатов обхода для CLI и тестов."""

from .json_report import render_json

__all__ = ["render_json"]
