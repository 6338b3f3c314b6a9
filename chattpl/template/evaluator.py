"""
Вычислитель шаблонов chat_template.

Проходит по AST в контексте стека областей видимости и собирает
итоговый текст. Все несовместимые по типам операции считаются жёсткими ошибками;
несвязанная переменная даёт null, а не ошибку.
"""

from __future__ import annotations

import logging
from typing import Dict, List

from .nodes import (
    AttributeAccess,
    BinaryOp,
    BinaryOperator,
    BoolLiteral,
    Expr,
    ForNode,
    IfNode,
    IndexAccess,
    OutputNode,
    StringLiteral,
    TemplateAST,
    TemplateNode,
    TextNode,
    VariableRef,
    format_expr,
)
from .scope import ScopeStack
from .values import (
    Value,
    ValueKind,
    describe_value,
    is_truthy,
    kind_of,
    render_value,
    values_equal,
)
from ..errors import TemplateError

logger = logging.getLogger(__name__)


class EvaluationError(TemplateError):
    """Ошибка при вычислении шаблона."""

    stage = "evaluate"


class AttributeAccessError(EvaluationError):
    """Доступ к атрибуту значения, не являющегося словарём."""
    pass


class MissingKeyError(EvaluationError):
    """Отсутствующий ключ словаря (через .name или ['name'])."""
    pass


class IndexOutOfRangeError(EvaluationError):
    """Индекс списка за пределами его длины."""
    pass


class ListIndexError(EvaluationError):
    """Строковый индекс списка не является неотрицательным целым."""
    pass


class IndexTypeError(EvaluationError):
    """Неподдерживаемое сочетание базы и индекса в base[index]."""
    pass


class OperandTypeError(EvaluationError):
    """Неподдерживаемые типы операндов оператора +."""
    pass


class RenderValueError(EvaluationError):
    """Попытка напрямую вывести список или словарь."""
    pass


class IterableTypeError(EvaluationError):
    """Цикл for по значению, не являющемуся списком или null."""
    pass


class TemplateEvaluator:
    """
    Вычислитель AST шаблона.

    Один экземпляр обслуживает один вызов рендеринга и владеет его стеком областей.
    """

    def __init__(self, scopes: ScopeStack):
        """
        Args:
            scopes: Стек областей, засеянный базовым контекстом
        """
        self.scopes = scopes

    def render(self, ast: TemplateAST) -> str:
        """
        Рендерит последовательность узлов.

        Raises:
            EvaluationError: При ошибке вычисления
        """
        parts: List[str] = []
        try:
            for node in ast:
                parts.append(self._render_node(node))
        except RecursionError:
            raise EvaluationError("Expression is too deeply nested to evaluate") from None
        return "".join(parts)

    def _render_node(self, node: TemplateNode) -> str:
        if isinstance(node, TextNode):
            return node.text
        elif isinstance(node, OutputNode):
            return self._render_output(node)
        elif isinstance(node, ForNode):
            return self._render_for(node)
        elif isinstance(node, IfNode):
            return self._render_if(node)
        else:
            raise EvaluationError(f"Unknown node type: {type(node).__name__}")

    def _render_output(self, node: OutputNode) -> str:
        value = self.evaluate(node.expr)
        text = render_value(value)
        if text is None:
            raise RenderValueError(
                f"Cannot render {describe_value(value)} from '{format_expr(node.expr)}'; "
                f"access one of its items instead"
            )
        return text

    def _render_for(self, node: ForNode) -> str:
        """
        Рендерит цикл по списку.

        Отсутствующая коллекция (null) даёт пустой вывод. На каждой итерации
        в стек добавляется область с переменной цикла и словарём ``loop``.
        """
        items = self.scopes.lookup(node.iterable)
        kind = kind_of(items)

        if kind == ValueKind.NULL:
            logger.debug(f"Loop iterable '{node.iterable}' is unbound; skipping loop")
            return ""
        if kind != ValueKind.LIST:
            raise IterableTypeError(
                f"Cannot iterate over {describe_value(items)} bound to '{node.iterable}'; expected a list"
            )

        length = len(items)  # type: ignore[arg-type]
        parts: List[str] = []
        for position, item in enumerate(items):  # type: ignore[arg-type]
            bindings: Dict[str, Value] = {
                node.target: item,
                "loop": _loop_metadata(position, length),
            }
            with self.scopes.scope(bindings):
                parts.append(self.render(node.body))

        logger.debug(f"Rendered loop over '{node.iterable}' with {length} iteration(s)")
        return "".join(parts)

    def _render_if(self, node: IfNode) -> str:
        """Рендерит тело первой истинной ветки, иначе else (если есть)."""
        for case in node.cases:
            if is_truthy(self.evaluate(case.condition)):
                return self.render(case.body)

        if node.else_body is not None:
            return self.render(node.else_body)
        return ""

    # ---------------- Выражения ---------------- #

    def evaluate(self, expr: Expr) -> Value:
        """
        Вычисляет выражение.

        Raises:
            EvaluationError: При несовместимых типах, отсутствующих ключах и т.п.
        """
        if isinstance(expr, StringLiteral):
            return expr.value
        elif isinstance(expr, BoolLiteral):
            return expr.value
        elif isinstance(expr, VariableRef):
            return self.scopes.lookup(expr.name)
        elif isinstance(expr, AttributeAccess):
            return self._evaluate_attribute(expr)
        elif isinstance(expr, IndexAccess):
            return self._evaluate_index(expr)
        elif isinstance(expr, BinaryOp):
            return self._evaluate_binary(expr)
        else:
            raise EvaluationError(f"Unknown expression type: {type(expr).__name__}")

    def _evaluate_attribute(self, expr: AttributeAccess) -> Value:
        base = self.evaluate(expr.base)
        if kind_of(base) != ValueKind.MAPPING:
            raise AttributeAccessError(
                f"Cannot get attribute '{expr.name}' of {describe_value(base)} "
                f"('{format_expr(expr.base)}')"
            )
        if expr.name not in base:  # type: ignore[operator]
            raise MissingKeyError(f"Attribute '{expr.name}' not found in '{format_expr(expr.base)}'")
        return base[expr.name]  # type: ignore[index]

    def _evaluate_index(self, expr: IndexAccess) -> Value:
        base = self.evaluate(expr.base)
        index = self.evaluate(expr.index)
        base_kind = kind_of(base)
        index_kind = kind_of(index)

        if base_kind == ValueKind.MAPPING and index_kind == ValueKind.STRING:
            if index not in base:  # type: ignore[operator]
                raise MissingKeyError(f"Key {index!r} not found in '{format_expr(expr.base)}'")
            return base[index]  # type: ignore[index]

        if base_kind == ValueKind.LIST and index_kind == ValueKind.STRING:
            position = _parse_list_index(index)  # type: ignore[arg-type]
            if position is None:
                raise ListIndexError(f"List index must be a non-negative integer, got {index!r}")
            if position >= len(base):  # type: ignore[arg-type]
                raise IndexOutOfRangeError(
                    f"Index {position} out of range for '{format_expr(expr.base)}' "
                    f"({describe_value(base)})"
                )
            return base[position]  # type: ignore[index]

        raise IndexTypeError(f"Cannot index {describe_value(base)} with {describe_value(index)}")

    def _evaluate_binary(self, expr: BinaryOp) -> Value:
        # Цепочки вида ((a + b) + c) + d разворачиваются по левому краю без рекурсии
        chain: List[BinaryOp] = []
        node: Expr = expr
        while isinstance(node, BinaryOp):
            chain.append(node)
            node = node.left

        # Оба операнда вычисляются всегда, в том числе для and/or
        result = self.evaluate(node)
        for op in reversed(chain):
            right = self.evaluate(op.right)
            result = self._apply_operator(op.operator, result, right)
        return result

    def _apply_operator(self, operator: BinaryOperator, left: Value, right: Value) -> Value:
        if operator == BinaryOperator.EQUALS:
            return values_equal(left, right)
        elif operator == BinaryOperator.ADD:
            if kind_of(left) != ValueKind.STRING or kind_of(right) != ValueKind.STRING:
                raise OperandTypeError(
                    f"Operator '+' supports only strings, got {describe_value(left)} "
                    f"and {describe_value(right)}"
                )
            return left + right  # type: ignore[operator]
        elif operator == BinaryOperator.AND:
            return is_truthy(left) and is_truthy(right)
        elif operator == BinaryOperator.OR:
            return is_truthy(left) or is_truthy(right)
        else:
            raise EvaluationError(f"Unknown operator: {operator}")


def _loop_metadata(position: int, length: int) -> Dict[str, Value]:
    """Словарь ``loop`` для итерации; числа хранятся строками."""
    return {
        "first": position == 0,
        "last": position == length - 1,
        "index0": str(position),
        "index": str(position + 1),
        "length": str(length),
    }


def _parse_list_index(text: str) -> int | None:
    """Разбирает строковый индекс списка: необязательный '+' и десятичные цифры."""
    digits = text[1:] if text.startswith("+") else text
    if not digits or not all("0" <= ch <= "9" for ch in digits):
        return None
    return int(digits)


__all__ = [
    "EvaluationError",
    "AttributeAccessError",
    "MissingKeyError",
    "IndexOutOfRangeError",
    "ListIndexError",
    "IndexTypeError",
    "OperandTypeError",
    "RenderValueError",
    "IterableTypeError",
    "TemplateEvaluator",
]
