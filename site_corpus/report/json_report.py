# site_corpus/report/json_report.py

"""
Генерация JSON-отчёта для проекта SiteCorpus.

Сериализация CrawlReport (или списка PageRecord) в файл.
"""
import json
from pathlib import Path
from typing import Iterable, Union

from site_corpus.aggregator import CrawlReport
from site_corpus.crawler.models import PageRecord


def render_json(report: Union[CrawlReport, Iterable[PageRecord]], output_path: Path | str) -> Path:
    """
    Сохраняет записи страниц в формате JSON по указанному пути.

    :param report: CrawlReport или последовательность PageRecord
    :param output_path: путь к JSON-файлу
    :return: Path сохранённого файла

    Пример:
    ```python
    from site_corpus.report.json_report import render_json
    report_path = render_json(report, 'reports/pages.json')
    print(f"JSON report saved to: {report_path}")
    ```
    """
    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)

    if isinstance(report, CrawlReport):
        data = json.loads(report.json())
    else:
        data = {"pages": [record.to_dict() for record in report]}

    with output.open('w', encoding='utf-8') as f:
        json.dump(data, f, ensure_ascii=False, indent=2)

    return output
