"""
Сервис подсчёта токенов для отрендеренного промпта.

Создаётся один раз на вызов отчёта на основе выбранного энкодера.
"""

from __future__ import annotations

from dataclasses import dataclass

import tiktoken

DEFAULT_ENCODER = "cl100k_base"


@dataclass(frozen=True)
class TokenService:
    """
    Обёртка над tiktoken с единым энкодером.

    ``encoder_name``: имя кодировки tiktoken (cl100k_base, o200k_base)
    или имя модели (gpt-4o).
    """

    encoder_name: str = DEFAULT_ENCODER

    def __post_init__(self):
        # Ленивая инициализация энкодера при первом обращении
        object.__setattr__(self, "_enc", None)

    def _get_encoder(self):
        enc = getattr(self, "_enc", None)
        if enc is None:
            try:
                enc = tiktoken.get_encoding(self.encoder_name)
            except ValueError:
                try:
                    enc = tiktoken.encoding_for_model(self.encoder_name)
                except KeyError:
                    enc = tiktoken.get_encoding(DEFAULT_ENCODER)
            object.__setattr__(self, "_enc", enc)
        return enc

    def count_text(self, text: str) -> int:
        """Подсчитать токены в тексте."""
        if not text:
            return 0
        enc = self._get_encoder()
        # Спецтокены шаблона (<|user|>, </s>) считаются как обычный текст
        return len(enc.encode(text, disallowed_special=()))


__all__ = ["TokenService", "DEFAULT_ENCODER"]
