"""
Схемы JSON-ответов CLI (report, tokens).
"""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _Schema(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TokenEntry(_Schema):
    type: str
    value: str
    line: int
    column: int


class TokenList(_Schema):
    tokens: List[TokenEntry]


class RenderReport(_Schema):
    """Сводка по отрендеренному промпту."""
    version: str
    encoder: str
    messages: int
    variables: List[str]
    rendered_chars: int
    rendered_tokens: int


__all__ = ["TokenEntry", "TokenList", "RenderReport"]
