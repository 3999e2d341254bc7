# File: site_corpus/crawler/__init__.py
"""site_corpus.crawler: обход сайта, загрузка страниц и политика вежливости."""
