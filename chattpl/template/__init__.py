"""
Движок шаблонов chat_template.

Конвейер: TemplateLexer → TemplateParser → AST → TemplateEvaluator.
"""

from .evaluator import EvaluationError, TemplateEvaluator
from .lexer import TemplateLexer, tokenize_template
from .nodes import TemplateAST, format_ast_tree
from .parser import ParserError, TemplateParser, parse_template
from .processor import TemplateProcessor, process_template_text
from .tokens import LexerError, LexMode, Token, TokenType

__all__ = [
    # Основная функция для использования
    "process_template_text",
    "TemplateProcessor",

    # Исключения
    "LexerError",
    "ParserError",
    "EvaluationError",

    # Низкоуровневые компоненты (для тестирования и отладки)
    "TemplateLexer",
    "TemplateParser",
    "TemplateEvaluator",
    "tokenize_template",
    "parse_template",
    "format_ast_tree",
    "TemplateAST",
    "Token",
    "TokenType",
    "LexMode",
]
