"""
AST-узлы шаблонов chat_template.

Определяет неизменяемую иерархию узлов выражений и инструкций.
Узлы не содержат поведения: вычисление выполняет TemplateEvaluator.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import List, Optional


class BinaryOperator(enum.Enum):
    """Бинарные операторы выражений."""
    EQUALS = "=="
    ADD = "+"
    AND = "and"
    OR = "or"


# ---------------- Выражения ---------------- #

@dataclass(frozen=True)
class Expr:
    """Базовый класс для всех узлов выражений."""
    pass


@dataclass(frozen=True)
class StringLiteral(Expr):
    """Строковый литерал: 'text' или "text"."""
    value: str


@dataclass(frozen=True)
class BoolLiteral(Expr):
    """Литерал true / false."""
    value: bool


@dataclass(frozen=True)
class VariableRef(Expr):
    """Ссылка на переменную по имени."""
    name: str


@dataclass(frozen=True)
class AttributeAccess(Expr):
    """Доступ к атрибуту: base.name"""
    base: Expr
    name: str


@dataclass(frozen=True)
class IndexAccess(Expr):
    """Доступ по индексу: base[index]"""
    base: Expr
    index: Expr


@dataclass(frozen=True)
class BinaryOp(Expr):
    """
    Бинарная операция: left op right

    Для and/or оба операнда вычисляются всегда (без короткого замыкания).
    """
    left: Expr
    operator: BinaryOperator
    right: Expr


# ---------------- Инструкции ---------------- #

@dataclass(frozen=True)
class TemplateNode:
    """Базовый класс для всех узлов инструкций шаблона."""
    pass


@dataclass(frozen=True)
class TextNode(TemplateNode):
    """
    Литеральный текст шаблона.

    Выводится в результат как есть, без экранирования.
    """
    text: str


@dataclass(frozen=True)
class OutputNode(TemplateNode):
    """Интерполяция {{ expr }}."""
    expr: Expr


@dataclass(frozen=True)
class ForNode(TemplateNode):
    """
    Цикл {% for target in iterable %}...{% endfor %}.

    ``iterable`` задаётся только именем переменной, не произвольным выражением.
    """
    target: str
    iterable: str
    body: List[TemplateNode]


@dataclass(frozen=True)
class ConditionalCase:
    """Ветка if/elif: условие и тело."""
    condition: Expr
    body: List[TemplateNode]


@dataclass(frozen=True)
class IfNode(TemplateNode):
    """
    Условный блок {% if %}...{% elif %}...{% else %}...{% endif %}.

    ``cases`` содержит ветку if и все ветки elif в порядке следования.
    """
    cases: List[ConditionalCase]
    else_body: Optional[List[TemplateNode]] = None


# Алиас для списка узлов (AST)
TemplateAST = List[TemplateNode]


def format_expr(expr: Expr) -> str:
    """Восстанавливает текстовую форму выражения (для отладки и сообщений)."""
    if isinstance(expr, StringLiteral):
        return repr(expr.value)
    if isinstance(expr, BoolLiteral):
        return "true" if expr.value else "false"
    if isinstance(expr, VariableRef):
        return expr.name
    if isinstance(expr, AttributeAccess):
        return f"{format_expr(expr.base)}.{expr.name}"
    if isinstance(expr, IndexAccess):
        return f"{format_expr(expr.base)}[{format_expr(expr.index)}]"
    if isinstance(expr, BinaryOp):
        return f"({format_expr(expr.left)} {expr.operator.value} {format_expr(expr.right)})"
    return type(expr).__name__


def format_ast_tree(ast: TemplateAST, indent: int = 0) -> str:
    """Форматирует AST как дерево для отладки."""
    lines = []
    prefix = "  " * indent

    for node in ast:
        if isinstance(node, TextNode):
            # Показываем только начало текста для читабельности
            text_preview = repr(node.text[:50] + "..." if len(node.text) > 50 else node.text)
            lines.append(f"{prefix}TextNode({text_preview})")
        elif isinstance(node, OutputNode):
            lines.append(f"{prefix}OutputNode({format_expr(node.expr)})")
        elif isinstance(node, ForNode):
            lines.append(f"{prefix}ForNode(target='{node.target}', iterable='{node.iterable}')")
            if node.body:
                lines.append(f"{prefix}  body:")
                lines.append(format_ast_tree(node.body, indent + 2))
        elif isinstance(node, IfNode):
            lines.append(f"{prefix}IfNode")
            for i, case in enumerate(node.cases):
                label = "if" if i == 0 else f"elif[{i - 1}]"
                lines.append(f"{prefix}  {label}: {format_expr(case.condition)}")
                if case.body:
                    lines.append(format_ast_tree(case.body, indent + 2))
            if node.else_body is not None:
                lines.append(f"{prefix}  else:")
                if node.else_body:
                    lines.append(format_ast_tree(node.else_body, indent + 2))
        else:
            lines.append(f"{prefix}{type(node).__name__}")

    return "\n".join(lines)


__all__ = [
    "BinaryOperator",
    "Expr",
    "StringLiteral",
    "BoolLiteral",
    "VariableRef",
    "AttributeAccess",
    "IndexAccess",
    "BinaryOp",
    "TemplateNode",
    "TextNode",
    "OutputNode",
    "ForNode",
    "ConditionalCase",
    "IfNode",
    "TemplateAST",
    "format_expr",
    "format_ast_tree",
]
