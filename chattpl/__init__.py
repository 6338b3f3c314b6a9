"""
chattpl: рендеринг chat_template (HF-стиль) на проверяемом подмножестве Jinja.
"""

from .context import ChatMessage, ContextError, RenderContext
from .engine import render_chat_template, render_chat_template_with_context, render_template
from .errors import ChatTplUserError, TemplateError
from .template import EvaluationError, LexerError, ParserError, TemplateProcessor

__all__ = [
    "render_chat_template",
    "render_chat_template_with_context",
    "render_template",
    "ChatMessage",
    "RenderContext",
    "ContextError",
    "ChatTplUserError",
    "TemplateError",
    "LexerError",
    "ParserError",
    "EvaluationError",
    "TemplateProcessor",
]
