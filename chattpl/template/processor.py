"""
Процессор шаблонов chat_template.

Публичный API движка: объединяет лексер, парсер и вычислитель
в конвейер «текст → токены → AST → результат».
"""

from __future__ import annotations

import logging
from typing import Dict, Mapping

from .evaluator import TemplateEvaluator
from .lexer import TemplateLexer
from .nodes import TemplateAST
from .parser import TemplateParser
from .scope import ScopeStack
from .values import Value, to_value

logger = logging.getLogger(__name__)


class TemplateProcessor:
    """
    Основной процессор шаблонов.

    Кэширует разобранные AST по тексту шаблона в пределах экземпляра;
    стек областей создаётся заново на каждый вызов рендеринга.
    """

    def __init__(self, *, trim_blocks: bool = True):
        self.trim_blocks = trim_blocks

        # Кэш для повторного рендеринга одного шаблона
        self._template_cache: Dict[str, TemplateAST] = {}

    def parse_template(self, template_text: str) -> TemplateAST:
        """
        Парсит шаблон в AST (с кэшированием).

        Raises:
            LexerError: При ошибке лексического анализа
            ParserError: При ошибке синтаксического анализа
        """
        cached = self._template_cache.get(template_text)
        if cached is not None:
            logger.debug("Template AST cache hit")
            return cached

        lexer = TemplateLexer(template_text, trim_blocks=self.trim_blocks)
        ast = TemplateParser(lexer).parse()
        self._template_cache[template_text] = ast
        return ast

    def render_ast(self, ast: TemplateAST, context: Mapping[str, Value]) -> str:
        """
        Рендерит готовый AST с указанным базовым контекстом.

        Raises:
            ValueConversionError: Если значение контекста непредставимо в шаблоне
            EvaluationError: При ошибке вычисления
        """
        # Контекст проверяется целиком до начала вычисления
        base = to_value(context)
        evaluator = TemplateEvaluator(ScopeStack(base))
        return evaluator.render(ast)

    def process_template_text(self, template_text: str, context: Mapping[str, Value]) -> str:
        """
        Обрабатывает шаблон из текста.

        Args:
            template_text: Текст шаблона
            context: Базовая область видимости (значения шаблона)

        Returns:
            Отрендеренный текст

        Raises:
            TemplateError: Ошибка лексера, парсера или вычислителя (см. атрибут stage)
        """
        ast = self.parse_template(template_text)
        result = self.render_ast(ast, context)
        logger.debug(f"Rendered template: {len(template_text)} chars in, {len(result)} chars out")
        return result


def process_template_text(template_text: str, context: Mapping[str, Value]) -> str:
    """Удобная функция: разобрать и отрендерить шаблон за один вызов."""
    return TemplateProcessor().process_template_text(template_text, context)


__all__ = ["TemplateProcessor", "process_template_text"]
