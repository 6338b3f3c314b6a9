"""
Значения времени выполнения для вычислителя шаблонов.

Значение шаблона относится к одному из пяти видов: строка, булево, список значений,
словарь со строковыми ключами или null. Представляются нативными объектами
Python (str, bool, list, dict, None); вид определяется функцией kind_of,
и все операции разбирают виды исчерпывающе.
"""

from __future__ import annotations

import enum
from collections.abc import Mapping
from typing import Any, Dict, List, Optional, Union

from ..errors import ChatTplUserError

Value = Union[str, bool, List[Any], Dict[str, Any], None]


class ValueKind(enum.Enum):
    """Виды значений шаблона."""
    STRING = "string"
    BOOLEAN = "boolean"
    LIST = "list"
    MAPPING = "mapping"
    NULL = "null"


class ValueConversionError(ChatTplUserError, TypeError):
    """Объект Python не может быть представлен значением шаблона."""

    def __init__(self, message: str, path: str = ""):
        self.path = path
        prefix = f"{path}: " if path else ""
        super().__init__(prefix + message)


def kind_of(value: Value) -> ValueKind:
    """
    Определяет вид значения.

    Raises:
        ValueConversionError: Если объект не является значением шаблона
    """
    # bool проверяется раньше остальных: это не строка и не число
    if isinstance(value, bool):
        return ValueKind.BOOLEAN
    if isinstance(value, str):
        return ValueKind.STRING
    if value is None:
        return ValueKind.NULL
    if isinstance(value, list):
        return ValueKind.LIST
    if isinstance(value, dict):
        return ValueKind.MAPPING
    raise ValueConversionError(f"unsupported value type {type(value).__name__}")


def is_truthy(value: Value) -> bool:
    """
    Правило истинности.

    - boolean: само значение
    - string, list, mapping: истинно, если не пусто
    - null: всегда ложно
    """
    kind = kind_of(value)
    if kind == ValueKind.BOOLEAN:
        return bool(value)
    if kind in (ValueKind.STRING, ValueKind.LIST, ValueKind.MAPPING):
        return len(value) > 0  # type: ignore[arg-type]
    if kind == ValueKind.NULL:
        return False
    raise AssertionError(f"Unhandled value kind: {kind}")


def values_equal(left: Value, right: Value) -> bool:
    """Структурное равенство: совпадать должны и вид, и содержимое."""
    left_kind = kind_of(left)
    if left_kind != kind_of(right):
        return False
    if left_kind == ValueKind.LIST:
        return len(left) == len(right) and all(  # type: ignore[arg-type]
            values_equal(a, b) for a, b in zip(left, right)  # type: ignore[arg-type]
        )
    if left_kind == ValueKind.MAPPING:
        return left.keys() == right.keys() and all(  # type: ignore[union-attr]
            values_equal(left[key], right[key]) for key in left  # type: ignore[index]
        )
    return left == right


def render_value(value: Value) -> Optional[str]:
    """
    Текстовая форма значения для вывода.

    Returns:
        Строку для string/boolean ("true"/"false"), пустую строку для null,
        None для list/mapping (не выводятся напрямую)
    """
    kind = kind_of(value)
    if kind == ValueKind.STRING:
        return value  # type: ignore[return-value]
    if kind == ValueKind.BOOLEAN:
        return "true" if value else "false"
    if kind == ValueKind.NULL:
        return ""
    if kind in (ValueKind.LIST, ValueKind.MAPPING):
        return None
    raise AssertionError(f"Unhandled value kind: {kind}")


def describe_value(value: Value) -> str:
    """Краткое описание значения для сообщений об ошибках."""
    kind = kind_of(value)
    if kind == ValueKind.STRING:
        preview = value if len(value) <= 30 else value[:30] + "..."  # type: ignore[index,arg-type]
        return f"string {preview!r}"
    if kind == ValueKind.BOOLEAN:
        return f"boolean {render_value(value)}"
    if kind == ValueKind.LIST:
        return f"list of {len(value)} item(s)"  # type: ignore[arg-type]
    if kind == ValueKind.MAPPING:
        return f"mapping with keys {sorted(value)!r}"  # type: ignore[arg-type]
    return "null"


def to_value(obj: Any, path: str = "") -> Value:
    """
    Приводит объект Python к значению шаблона (рекурсивно).

    Кортежи и последовательности-списки становятся списками, Mapping становятся словарями
    со строковыми ключами. Числа и прочие объекты не поддерживаются.

    Raises:
        ValueConversionError: С указанием пути к неподдерживаемому элементу
    """
    if obj is None or isinstance(obj, (bool, str)):
        return obj
    if isinstance(obj, (list, tuple)):
        return [to_value(item, f"{path}[{i}]") for i, item in enumerate(obj)]
    if isinstance(obj, Mapping):
        result: Dict[str, Any] = {}
        for key, item in obj.items():
            if not isinstance(key, str):
                raise ValueConversionError(f"mapping keys must be strings, got {type(key).__name__}", path)
            result[key] = to_value(item, f"{path}.{key}" if path else key)
        return result
    raise ValueConversionError(f"unsupported value type {type(obj).__name__}", path)


__all__ = [
    "Value",
    "ValueKind",
    "ValueConversionError",
    "kind_of",
    "is_truthy",
    "values_equal",
    "render_value",
    "describe_value",
    "to_value",
]
