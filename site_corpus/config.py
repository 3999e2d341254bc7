# === FILE: site_corpus/config.py ===
"""
Модуль для загрузки и валидации конфигурации SiteCorpus.
Используется Pydantic для описания схемы и проверки данных.
"""
from __future__ import annotations

import errno
import json
import os
import re
import tempfile
from pathlib import Path
from typing import Any, List, Literal, Union
from urllib.parse import urlsplit

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    HttpUrl,
    ValidationError,
    field_validator,
    model_validator,
)

DEFAULT_USER_AGENTS: List[str] = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/123.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.0 Safari/605.1.15",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/123.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:124.0) Gecko/20100101 Firefox/124.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10.15; rv:124.0) Gecko/20100101 Firefox/124.0",
]

DEFAULT_IGNORE_PATTERNS: List[str] = [
    r"\.(?:jpe?g|png|gif|svg|webp|ico|bmp|tiff?|pdf|zip|gz|rar|7z|css|js|json|xml|txt"
    r"|mp3|mp4|avi|mov|webm|woff2?|ttf|eot|docx?|xlsx?|pptx?)$",
    r"/(?:wp-)?admin(?:/|$)",
    r"/(?:wp-)?login(?:\.php)?(?:/|$)",
    r"/(?:signin|sign-in|log-in)(?:/|$)",
]

DEFAULT_CACHE_DIR = Path(tempfile.gettempdir()) / "site-corpus-cache"


class CrawlerConfig(BaseModel):
    """Конфигурация краулера и кэша для одного сайта."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    base_url: HttpUrl = Field(..., description="Корневой URL сайта (origin для обхода).")
    max_pages: int = Field(50, ge=1, description="Жесткий лимит по числу посещённых страниц.")
    cache_ttl_hours: float = Field(24.0, gt=0, description="Время жизни записи кэша (часов).")
    cache_backend: Literal["memory", "file", "both"] = Field(
        "both", description="Хранилище кэша: память, файлы или оба."
    )
    cache_dir: Path = Field(DEFAULT_CACHE_DIR, description="Каталог файлового кэша.")
    timeout: float = Field(30.0, gt=0, description="Таймаут на один запрос (секунд).")
    max_retries: int = Field(3, ge=0, description="Число повторных попыток после первой.")
    backoff_base: float = Field(2.0, ge=0, description="Первая пауза перед повтором (секунд).")
    backoff_jitter: float = Field(1.0, ge=0, description="Случайная добавка к паузе (секунд).")
    request_delay_min: float = Field(1.0, ge=0)
    request_delay_max: float = Field(5.0, ge=0)
    batch_size: int = Field(2, ge=1, description="Число страниц, загружаемых параллельно.")
    batch_delay_min: float = Field(5.0, ge=0)
    batch_delay_max: float = Field(10.0, ge=0)
    user_agents: List[str] = Field(
        default_factory=lambda: list(DEFAULT_USER_AGENTS),
        min_length=1,
        description="Пул User-Agent для ротации.",
    )
    respect_robots: bool = Field(True, description="Учитывать robots.txt.")
    robots_agent: str = Field("*", min_length=1, description="Группа User-agent в robots.txt.")
    ignore_patterns: List[str] = Field(
        default_factory=lambda: list(DEFAULT_IGNORE_PATTERNS),
        description="Регулярные выражения для URL, которые не загружаются.",
    )

    @field_validator("base_url", mode="before")
    def _strip_trailing_slash(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.rstrip("/")
        return v

    @field_validator("ignore_patterns")
    def _compile_patterns(cls, v: List[str]) -> List[str]:
        for pattern in v:
            try:
                re.compile(pattern)
            except re.error as exc:
                raise ValueError(f"invalid ignore pattern {pattern!r}: {exc}") from exc
        return v

    @model_validator(mode="after")
    def _check_ranges(self) -> CrawlerConfig:
        if self.request_delay_min > self.request_delay_max:
            raise ValueError("request_delay_min must be <= request_delay_max")
        if self.batch_delay_min > self.batch_delay_max:
            raise ValueError("batch_delay_min must be <= batch_delay_max")
        return self

    @property
    def origin(self) -> str:
        """scheme://host[:port] базового URL, без пути."""
        parts = urlsplit(str(self.base_url))
        return f"{parts.scheme}://{parts.netloc}"

    @property
    def cache_ttl_seconds(self) -> float:
        return self.cache_ttl_hours * 3600.0

    def updated(self, **partial: Any) -> CrawlerConfig:
        """Возвращает новую проверенную конфигурацию с переопределёнными полями."""
        data = self.model_dump(mode="json")
        data.update(partial)
        return CrawlerConfig(**data)


_DEFAULT_CFG = Path("configs/default.yaml")


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Неправильный YAML в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Верхний уровень YAML должен быть mapping, получено {type(data).__name__}")
    return data


def _read_json(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8")) or {}
    except json.JSONDecodeError as exc:
        raise ValueError(f"Неправильный JSON в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Верхний уровень JSON должен быть mapping, получено {type(data).__name__}")
    return data


def load_config(path: Union[str, Path, None]) -> CrawlerConfig:
    """
    Читает YAML или JSON и возвращает проверенный объект CrawlerConfig.
    При отсутствии файла конфига бросает FileNotFoundError.
    """
    if path is None:
        if not _DEFAULT_CFG.exists():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(_DEFAULT_CFG))
        path_obj = _DEFAULT_CFG
    else:
        path_obj = Path(path).expanduser().resolve()
        if not path_obj.is_file():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(path_obj))

    suffix = path_obj.suffix.lower()
    if suffix in (".yaml", ".yml"):
        data = _read_yaml(path_obj)
    elif suffix == ".json":
        data = _read_json(path_obj)
    else:
        raise ValueError(f"Неподдерживаемый формат конфига: {suffix}")

    try:
        return CrawlerConfig(**data)
    except ValidationError:
        raise


__all__ = ["CrawlerConfig", "load_config", "DEFAULT_USER_AGENTS", "DEFAULT_IGNORE_PATTERNS"]
