"""
Сборка контекста рендеринга.

Превращает список сообщений и именованные переменные/флаги
в базовую область видимости для вычислителя шаблонов.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping

from .errors import ChatTplUserError
from .template.tokens import KEYWORDS
from .template.values import Value, ValueConversionError, to_value

# Имя, под которым в шаблон попадает список сообщений
MESSAGES_VAR = "messages"


class ContextError(ChatTplUserError, ValueError):
    """Некорректные входные данные для контекста рендеринга."""
    pass


@dataclass(frozen=True)
class ChatMessage:
    """Одно сообщение диалога."""
    role: str
    content: str

    def to_value(self) -> Dict[str, Value]:
        return {"role": self.role, "content": self.content}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], path: str = "message") -> ChatMessage:
        """Создание экземпляра из словаря (из YAML/JSON)."""
        if not isinstance(data, Mapping):
            raise ContextError(f"{path}: expected a mapping with 'role' and 'content', got {type(data).__name__}")
        role = data.get("role")
        content = data.get("content", "")
        if not isinstance(role, str):
            raise ContextError(f"{path}.role: expected a string, got {type(role).__name__}")
        if not isinstance(content, str):
            raise ContextError(f"{path}.content: expected a string, got {type(content).__name__}")
        return cls(role=role, content=content)


@dataclass
class RenderContext:
    """
    Именованные переменные шаблона помимо сообщений.

    ``variables``: строковые значения (например, eos_token),
    ``flags``: булевы переключатели (например, add_generation_prompt).
    """
    variables: Dict[str, str] = field(default_factory=dict)
    flags: Dict[str, bool] = field(default_factory=dict)

    @classmethod
    def default(cls) -> RenderContext:
        """Контекст по умолчанию для render_chat_template."""
        return cls(
            variables={"eos_token": "</s>"},
            flags={"add_generation_prompt": True},
        )

    def set_var(self, name: str, value: str) -> None:
        _check_name(name)
        if not isinstance(value, str):
            raise ContextError(f"variable '{name}': expected a string, got {type(value).__name__}")
        self.flags.pop(name, None)
        self.variables[name] = value

    def set_flag(self, name: str, value: bool) -> None:
        _check_name(name)
        if not isinstance(value, bool):
            raise ContextError(f"flag '{name}': expected a boolean, got {type(value).__name__}")
        self.variables.pop(name, None)
        self.flags[name] = value

    def update(self, other: RenderContext) -> None:
        """Переносит значения из other поверх текущих (other приоритетнее)."""
        for name, value in other.variables.items():
            self.set_var(name, value)
        for name, flag in other.flags.items():
            self.set_flag(name, flag)

    def names(self) -> list[str]:
        return sorted({*self.variables, *self.flags})


def _check_name(name: str) -> None:
    if name == MESSAGES_VAR:
        raise ContextError(f"'{MESSAGES_VAR}' is reserved for the message list")
    if not name or not (name[0].isalpha() or name[0] == "_") or not all(
        ch.isalnum() or ch == "_" for ch in name
    ):
        raise ContextError(f"invalid variable name {name!r}")
    if name in KEYWORDS:
        raise ContextError(f"'{name}' is a template keyword and cannot be used as a variable name")


def build_base_scope(messages: Iterable[ChatMessage], ctx: RenderContext) -> Dict[str, Value]:
    """
    Собирает базовую область видимости.

    Args:
        messages: Сообщения диалога (в порядке следования)
        ctx: Именованные переменные и флаги

    Returns:
        Словарь: ``messages`` + каждая переменная/флаг на верхнем уровне
    """
    scope: Dict[str, Value] = {}
    scope.update(ctx.variables)
    scope.update(ctx.flags)
    scope[MESSAGES_VAR] = [message.to_value() for message in messages]
    return scope


def build_scope_from_mapping(context: Mapping[str, Any]) -> Dict[str, Value]:
    """
    Приводит произвольный словарь Python к базовой области видимости.

    Raises:
        ContextError: Если значение не представимо в шаблоне (числа, объекты)
    """
    scope: Dict[str, Value] = {}
    for name, obj in context.items():
        if not isinstance(name, str):
            raise ContextError(f"context keys must be strings, got {type(name).__name__}")
        try:
            scope[name] = to_value(obj, name)
        except ValueConversionError as e:
            raise ContextError(str(e)) from e
    return scope


__all__ = [
    "MESSAGES_VAR",
    "ContextError",
    "ChatMessage",
    "RenderContext",
    "build_base_scope",
    "build_scope_from_mapping",
]
