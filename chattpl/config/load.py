"""
Загрузчик входных данных рендеринга.

Читает файл сообщений/переменных (YAML или JSON) и tokenizer_config.json.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from .model import RenderInput, TokenizerConfig
from ..context import ContextError

_yaml = YAML(typ="safe")


def _read_yaml(path: Path) -> Any:
    """Читает YAML (или JSON, как его подмножество)."""
    if not path.is_file():
        raise ContextError(f"Input file not found: {path}")
    try:
        return _yaml.load(path.read_text(encoding="utf-8"))
    except YAMLError as e:
        raise ContextError(f"Failed to parse {path}: {e}") from e


def load_render_input(path: Path) -> RenderInput:
    """
    Загружает сообщения, переменные и флаги из файла.

    Args:
        path: Путь к YAML/JSON файлу

    Returns:
        Разобранные входные данные

    Raises:
        ContextError: Если файл отсутствует или имеет неверную структуру
    """
    raw = _read_yaml(path)
    if raw is None:
        return RenderInput()
    try:
        return RenderInput.from_dict(raw)
    except ContextError as e:
        raise ContextError(f"{path}: {e}") from e


def load_tokenizer_config(path: Path) -> TokenizerConfig:
    """
    Загружает tokenizer_config.json.

    Raises:
        ContextError: Если файл отсутствует или не является JSON-объектом
    """
    if not path.is_file():
        raise ContextError(f"Tokenizer config not found: {path}")
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ContextError(f"Failed to parse {path}: {e}") from e
    if not isinstance(raw, dict):
        raise ContextError(f"Tokenizer config must be a JSON object: {path}")
    return TokenizerConfig.from_dict(raw)


__all__ = ["load_render_input", "load_tokenizer_config"]
