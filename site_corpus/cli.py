# === FILE: site_corpus/cli.py ===
#!/usr/bin/env python3
"""
Точка входа для запуска SiteCorpus через командную строку.

Команды:
  scrape       Обойти сайт и вывести/сохранить корпус
  cached       Вывести корпус из свежего кэша (без сети)
  status       Показать состояние кэша
  clear-cache  Очистить кэш
  config       Показать текущую конфигурацию

Общие опции:
  --config PATH       Путь к YAML/JSON-конфигу (default: configs/default.yaml)
  --base-url URL      Переопределить base_url
  --limit INT         Макс. число страниц (override max_pages)
  --log-level LEVEL   Уровень логирования (DEBUG, INFO, ...)
  --log-file PATH     Файл для логов (stdout, если не указан)
  --log-format FORMAT Формат логирования

Дополнительно:
  --version, -v       Показать версию SiteCorpus

Пример:
  site-corpus --config configs/default.yaml --limit 20 scrape --output corpus.txt
"""
import asyncio
import json
import sys
from pathlib import Path

import click

from site_corpus import __version__
from site_corpus.config import load_config
from site_corpus.engine import Engine, start_scan
from site_corpus.logger import init_logging
from site_corpus.report.json_report import render_json

CONTEXT_SETTINGS = dict(help_option_names=["--help"])


def print_error(message: str):
    click.secho(message, fg='red', err=True)
    sys.exit(1)


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, '--version', '-v', message='SiteCorpus, version %(version)s')
@click.option(
    '--config', '-c', 'config_path',
    default=None,
    type=click.Path(dir_okay=False, path_type=Path),
    help='Путь к файлу конфигурации YAML/JSON (default: configs/default.yaml).'
)
@click.option('--base-url', 'base_url', default=None, help='Переопределить base_url из конфига')
@click.option(
    '--limit', '-l', 'limit',
    type=int,
    default=None,
    help='Макс. число страниц (override max_pages)'
)
@click.option(
    '--log-level', 'log_level',
    default='INFO', show_default=True,
    type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']),
    help='Уровень логирования'
)
@click.option(
    '--log-file', 'log_file',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Путь к файлу логов (stdout, если не указан)'
)
@click.option(
    '--log-format', 'log_format',
    default='%(asctime)s %(levelname)s %(name)s %(message)s',
    show_default=True,
    help='Строка формата для логов'
)
@click.pass_context
def cli(ctx, config_path, base_url, limit, log_level, log_file, log_format):
    """Группа команд SiteCorpus CLI."""
    init_logging(
        level=log_level,
        log_file=str(log_file) if log_file else None,
        log_format=log_format
    )
    try:
        cfg = load_config(config_path)
        overrides = {}
        if base_url is not None:
            overrides['base_url'] = base_url
        if limit is not None:
            overrides['max_pages'] = limit
        if overrides:
            cfg = cfg.updated(**overrides)
    except Exception as e:
        print_error(f'Ошибка загрузки конфигурации: {e}')
    ctx.ensure_object(dict)
    ctx.obj['config'] = cfg


@cli.command('scrape', context_settings=CONTEXT_SETTINGS)
@click.option(
    '--output', '-o', 'output',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Сохранить корпус в файл'
)
@click.option(
    '--json', '-j', 'json_output',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Сохранить записи страниц в JSON'
)
@click.option(
    '--fallback', 'fallback',
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help='Запасной корпус, если обход не дал контента'
)
@click.option(
    '--scan-timeout', 'scan_timeout',
    type=float,
    default=None,
    help='Таймаут всего обхода (секунд)'
)
@click.pass_context
def scrape(ctx, output, json_output, fallback, scan_timeout):
    """Обойти сайт и вывести корпус."""
    cfg = ctx.obj['config']
    click.echo(f'Starting crawl of {cfg.base_url}', err=True)
    try:
        if scan_timeout:
            report = asyncio.run(
                asyncio.wait_for(start_scan(cfg), timeout=scan_timeout)
            )
        else:
            report = asyncio.run(start_scan(cfg))
    except asyncio.TimeoutError:
        print_error(f'Обход не завершён за {scan_timeout} секунд')
    except Exception as e:
        print_error(f'Ошибка при обходе: {e}')

    if json_output:
        try:
            saved_json = render_json(report, json_output)
            click.echo(f'JSON report: {saved_json}', err=True)
        except Exception as e:
            print_error(f'Ошибка при сохранении JSON: {e}')

    corpus = report.corpus
    if not corpus:
        if fallback is None:
            print_error('Обход не дал контента')
        click.echo('Crawl produced no content, using fallback corpus', err=True)
        corpus = fallback.read_text(encoding='utf-8')

    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(corpus, encoding='utf-8')
        click.echo(f'Corpus: {output} ({len(corpus)} chars)', err=True)
    else:
        click.echo(corpus)


@cli.command('cached', context_settings=CONTEXT_SETTINGS)
@click.pass_context
def cached(ctx):
    """Вывести корпус из свежих записей кэша."""
    corpus = Engine(ctx.obj['config']).load_all_cached_content()
    if corpus is None:
        print_error('Нет свежих записей в кэше')
    click.echo(corpus)


@cli.command('status', context_settings=CONTEXT_SETTINGS)
@click.option('--verbose', is_flag=True, help='Подробный отчёт о хранилище')
@click.pass_context
def status(ctx, verbose):
    """Показать состояние кэша в JSON."""
    engine = Engine(ctx.obj['config'])
    data = engine.storage_report() if verbose else engine.get_cache_status()
    click.echo(json.dumps(data, ensure_ascii=False, indent=2))


@cli.command('clear-cache', context_settings=CONTEXT_SETTINGS)
@click.pass_context
def clear_cache(ctx):
    """Очистить кэш."""
    result = Engine(ctx.obj['config']).clear_cache()
    click.echo(json.dumps(result))


@cli.command('config', context_settings=CONTEXT_SETTINGS)
@click.pass_context
def show_config(ctx):
    """Показать текущую конфигурацию в JSON."""
    cfg = ctx.obj['config']
    click.echo(cfg.model_dump_json(indent=2))


if __name__ == "__main__":
    cli()
