"""
Модели входных данных рендеринга.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..context import ChatMessage, ContextError, RenderContext

# Специальные токены tokenizer_config.json, передаваемые в шаблон как переменные
SPECIAL_TOKEN_KEYS = ("bos_token", "eos_token", "pad_token", "unk_token")


@dataclass
class RenderInput:
    """
    Содержимое файла входных данных (--input).

    Формат (YAML или JSON):
        messages: [{role: ..., content: ...}, ...]
        variables: {eos_token: "</s>"}
        flags: {add_generation_prompt: true}

    Голый список на верхнем уровне трактуется как список сообщений.
    """
    messages: List[ChatMessage] = field(default_factory=list)
    context: RenderContext = field(default_factory=RenderContext)

    @classmethod
    def from_dict(cls, data: Any) -> RenderInput:
        """Создание экземпляра из распарсенного YAML/JSON."""
        if isinstance(data, list):
            data = {"messages": data}
        if not isinstance(data, dict):
            raise ContextError(f"input must be a mapping or a list of messages, got {type(data).__name__}")

        extras = set(data.keys()) - {"messages", "variables", "flags"}
        if extras:
            raise ContextError(f"unexpected keys in input: {sorted(extras)!r}")

        raw_messages = data.get("messages") or []
        if not isinstance(raw_messages, list):
            raise ContextError(f"messages: expected a list, got {type(raw_messages).__name__}")
        messages = [
            ChatMessage.from_dict(item, f"messages[{i}]")
            for i, item in enumerate(raw_messages)
        ]

        context = RenderContext()
        for name, value in _mapping(data, "variables").items():
            if not isinstance(value, str):
                raise ContextError(f"variables.{name}: expected a string, got {type(value).__name__}")
            context.set_var(str(name), value)
        for name, value in _mapping(data, "flags").items():
            if not isinstance(value, bool):
                raise ContextError(f"flags.{name}: expected a boolean, got {type(value).__name__}")
            context.set_flag(str(name), value)

        return cls(messages=messages, context=context)


@dataclass
class TokenizerConfig:
    """
    Нужные для рендеринга поля tokenizer_config.json (формат Hugging Face).
    """
    chat_template: Optional[str] = None
    special_tokens: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> TokenizerConfig:
        """Создание экземпляра из словаря (из JSON)."""
        special_tokens: Dict[str, str] = {}
        for key in SPECIAL_TOKEN_KEYS:
            token = _token_content(data.get(key))
            if token is not None:
                special_tokens[key] = token

        return cls(
            chat_template=_select_chat_template(data.get("chat_template")),
            special_tokens=special_tokens,
        )

    def to_context(self) -> RenderContext:
        context = RenderContext()
        for name, value in self.special_tokens.items():
            context.set_var(name, value)
        return context


def _mapping(data: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = data.get(key) or {}
    if not isinstance(value, dict):
        raise ContextError(f"{key}: expected a mapping, got {type(value).__name__}")
    return value


def _token_content(raw: Any) -> Optional[str]:
    """Специальный токен: строка или AddedToken-словарь с полем content."""
    if isinstance(raw, str):
        return raw
    if isinstance(raw, dict) and isinstance(raw.get("content"), str):
        return raw["content"]
    return None


def _select_chat_template(raw: Any) -> Optional[str]:
    """
    chat_template: строка или список {name, template}.

    Из списка берётся шаблон с именем "default", иначе первый.
    """
    if raw is None or isinstance(raw, str):
        return raw
    if isinstance(raw, list):
        named = [item for item in raw if isinstance(item, dict) and isinstance(item.get("template"), str)]
        for item in named:
            if item.get("name") == "default":
                return item["template"]
        if named:
            return named[0]["template"]
        return None
    raise ContextError(f"chat_template: expected a string or a list, got {type(raw).__name__}")


__all__ = ["RenderInput", "TokenizerConfig", "SPECIAL_TOKEN_KEYS"]
