"""
Стек областей видимости для вычислителя шаблонов.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Dict, Iterator, List, Mapping

from .values import Value


class ScopeStack:
    """
    Упорядоченный стек областей видимости; внутренняя область последняя.

    Создаётся на один вызов рендеринга с единственной базовой областью,
    содержащей весь контекст. Каждая итерация цикла добавляет свою область
    и снимает её по завершении итерации; условные блоки областей не создают.
    """

    def __init__(self, base: Mapping[str, Value]):
        self._scopes: List[Dict[str, Value]] = [dict(base)]

    @property
    def depth(self) -> int:
        """Количество областей в стеке (базовая включена)."""
        return len(self._scopes)

    def lookup(self, name: str) -> Value:
        """
        Ищет переменную от внутренней области к внешней.

        Returns:
            Первое найденное значение или None, если имя нигде не связано
        """
        for scope in reversed(self._scopes):
            if name in scope:
                return scope[name]
        return None

    def push(self, bindings: Mapping[str, Value]) -> None:
        self._scopes.append(dict(bindings))

    def pop(self) -> None:
        if len(self._scopes) == 1:
            raise RuntimeError("Cannot pop the base scope")
        self._scopes.pop()

    @contextmanager
    def scope(self, bindings: Mapping[str, Value]) -> Iterator[None]:
        """Область видимости на время блока with; снимается и при исключении."""
        self.push(bindings)
        try:
            yield
        finally:
            self.pop()


__all__ = ["ScopeStack"]
