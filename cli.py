# cli.py

"""
Точка входа для запуска SiteCorpus без установки пакета.

Пример запуска:
    python cli.py --config configs/default.yaml --limit 20 scrape --output corpus.txt
"""
from site_corpus.cli import cli

if __name__ == "__main__":
    cli()
