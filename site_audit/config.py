# === FILE: site_audit/config.py ===
"""
Модуль для загрузки и валидации конфигурации аудитора SiteAudit.
Используется Pydantic для описания схемы и проверки данных.
"""
from __future__ import annotations

import errno
import json
import os
from pathlib import Path
from typing import Any, List, Optional, Union

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)

DEFAULT_EXCLUDED_EXTENSIONS: tuple[str, ...] = ("pdf", "jpg", "jpeg", "png", "gif", "svg", "webp", "zip")
DEFAULT_BLOCKED_RESOURCE_TYPES: tuple[str, ...] = (
    "image",
    "stylesheet",
    "font",
    "media",
    "texttrack",
    "manifest",
    "eventsource",
    "websocket",
    "other",
)
DEFAULT_IGNORED_CONSOLE_PATTERNS: tuple[str, ...] = ("favicon", "net::ERR_FAILED", "net::ERR_BLOCKED_BY_CLIENT")
DEFAULT_CATEGORIES: tuple[str, ...] = ("performance", "accessibility", "best-practices", "seo")


class AuditConfig(BaseModel):
    """Конфигурация сканера: обход, браузер, Lighthouse и HTTP-сервер."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    max_pages: int = Field(100, ge=1, description="Жесткий лимит по числу обнаруженных страниц.")
    discovery_timeout: float = Field(15.0, gt=0, description="Таймаут навигации при обходе (секунд).")
    audit_timeout: float = Field(30.0, gt=0, description="Таймаут загрузки страницы при аудите (секунд).")
    lighthouse_timeout: float = Field(120.0, gt=0, description="Таймаут одного запуска Lighthouse (секунд).")
    fetch_timeout: float = Field(15.0, gt=0, description="Таймаут загрузки JS/CSS-файлов для минификации (секунд).")
    excluded_extensions: List[str] = Field(
        default_factory=lambda: list(DEFAULT_EXCLUDED_EXTENSIONS),
        description="Расширения файлов, которые не считаются страницами.",
    )
    blocked_resource_types: List[str] = Field(
        default_factory=lambda: list(DEFAULT_BLOCKED_RESOURCE_TYPES),
        description="Типы ресурсов, блокируемые браузером во время обхода.",
    )
    ignored_console_patterns: List[str] = Field(
        default_factory=lambda: list(DEFAULT_IGNORED_CONSOLE_PATTERNS),
        description="Подстроки сообщений консоли, которые не попадают в лог.",
    )
    headless: bool = Field(True, description="Запускать Chromium без окна.")
    user_agent: Optional[str] = Field(None, min_length=1, description="Заголовок User-Agent (по умолчанию браузерный).")
    chrome_flags: List[str] = Field(
        default_factory=lambda: ["--no-sandbox", "--disable-dev-shm-usage", "--disable-gpu"],
        description="Дополнительные флаги запуска Chromium.",
    )
    lighthouse_path: str = Field("lighthouse", min_length=1, description="Путь к исполняемому файлу Lighthouse.")
    lighthouse_categories: List[str] = Field(
        default_factory=lambda: list(DEFAULT_CATEGORIES),
        description="Категории Lighthouse для аудита.",
    )
    scan_timeout: Optional[float] = Field(None, gt=0, description="Таймаут всего сканирования (секунд).")
    cancel_on_disconnect: bool = Field(False, description="Отменять сканирование при отключении клиента.")
    host: str = Field("127.0.0.1", description="Адрес HTTP-сервера.")
    port: int = Field(3001, ge=1, le=65535, description="Порт HTTP-сервера.")
    cors_origins: List[str] = Field(default_factory=lambda: ["*"], description="Разрешённые CORS-источники.")

    @field_validator("excluded_extensions", mode="before")
    def _strip_dots(cls, v: Any) -> Any:
        if isinstance(v, (list, tuple)):
            return [str(ext).lower().lstrip(".") for ext in v]
        return v


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


def load_config(path: Union[str, Path, None]) -> AuditConfig:
    """
    Читает YAML или JSON и возвращает проверенный объект AuditConfig.
    Без явного пути использует configs/default.yaml, а если его нет,
    значения по умолчанию. Явно указанный отсутствующий файл: FileNotFoundError.
    """
    if path is None:
        if not _DEFAULT_CFG.exists():
            return AuditConfig()
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

    return AuditConfig(**data)


__all__ = ["AuditConfig", "load_config"]
