"""
Точки входа рендеринга chat_template.

Связывают сборку контекста с движком шаблонов и подставляют
значения по умолчанию.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Mapping, Union

from .context import (
    ChatMessage,
    RenderContext,
    build_base_scope,
    build_scope_from_mapping,
)
from .report_schema import RenderReport
from .template import TemplateProcessor
from .tokens import DEFAULT_ENCODER, TokenService
from .version import tool_version

logger = logging.getLogger(__name__)

MessageLike = Union[ChatMessage, Mapping[str, Any]]


def _coerce_messages(messages: Iterable[MessageLike]) -> List[ChatMessage]:
    result: List[ChatMessage] = []
    for i, message in enumerate(messages):
        if isinstance(message, ChatMessage):
            result.append(message)
        else:
            result.append(ChatMessage.from_dict(message, f"messages[{i}]"))
    return result


def render_template(template: str, context: Mapping[str, Any]) -> str:
    """
    Рендерит шаблон с произвольным контекстом из значений Python.

    Raises:
        ContextError: Если значение контекста не представимо в шаблоне
        TemplateError: Ошибка лексера, парсера или вычислителя
    """
    scope = build_scope_from_mapping(context)
    return TemplateProcessor().process_template_text(template, scope)


def render_chat_template_with_context(
    template: str,
    messages: Iterable[MessageLike],
    ctx: RenderContext,
) -> str:
    """
    Рендерит chat_template ровно с указанными переменными и флагами.

    Отсутствующие флаги не подставляются: несвязанная переменная ложна.
    """
    scope = build_base_scope(_coerce_messages(messages), ctx)
    return TemplateProcessor().process_template_text(template, scope)


def render_chat_template(template: str, messages: Iterable[MessageLike]) -> str:
    """
    Рендерит chat_template с контекстом по умолчанию
    (eos_token="</s>", add_generation_prompt=true).
    """
    return render_chat_template_with_context(template, messages, RenderContext.default())


@dataclass(frozen=True)
class RunOptions:
    template_text: str
    messages: List[ChatMessage] = field(default_factory=list)
    context: RenderContext = field(default_factory=RenderContext)
    encoder: str = DEFAULT_ENCODER


def run_render(options: RunOptions) -> str:
    """Entry point for rendering."""
    return render_chat_template_with_context(options.template_text, options.messages, options.context)


def run_report(options: RunOptions) -> RenderReport:
    """Entry point for report generation."""
    rendered = run_render(options)
    tokens = TokenService(options.encoder)
    logger.debug(f"Counting rendered tokens with encoder '{options.encoder}'")
    return RenderReport(
        version=tool_version(),
        encoder=options.encoder,
        messages=len(options.messages),
        variables=options.context.names(),
        rendered_chars=len(rendered),
        rendered_tokens=tokens.count_text(rendered),
    )


__all__ = [
    "render_template",
    "render_chat_template",
    "render_chat_template_with_context",
    "RunOptions",
    "run_render",
    "run_report",
]
