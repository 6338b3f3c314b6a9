"""
Лексические типы для движка шаблонов chat_template.

Определяет типы токенов, режимы сканирования и ошибку лексического анализа.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

from ..errors import TemplateError


class TokenType(enum.Enum):
    """Типы токенов в шаблоне."""

    # Текстовый контент
    TEXT = "TEXT"

    # Разделители тегов
    BLOCK_START = "BLOCK_START"      # {%
    BLOCK_END = "BLOCK_END"          # %}
    VAR_START = "VAR_START"          # {{
    VAR_END = "VAR_END"              # }}

    # Ключевые слова
    IF = "IF"
    ELIF = "ELIF"
    ELSE = "ELSE"
    ENDIF = "ENDIF"
    FOR = "FOR"
    IN = "IN"
    ENDFOR = "ENDFOR"
    AND = "AND"
    OR = "OR"
    TRUE = "TRUE"
    FALSE = "FALSE"

    # Символы
    EQ = "EQ"                        # ==
    PLUS = "PLUS"                    # +
    DOT = "DOT"                      # .
    LBRACKET = "LBRACKET"            # [
    RBRACKET = "RBRACKET"            # ]
    LPAREN = "LPAREN"                # (
    RPAREN = "RPAREN"                # )

    # Данные
    IDENTIFIER = "IDENTIFIER"
    STRING = "STRING"

    # Конец входа
    EOF = "EOF"


class LexMode(enum.Enum):
    """Режим сканирования лексера."""
    TEXT = "text"   # вне тегов: литеральный текст до ближайшего {% или {{
    TAG = "tag"     # внутри {% ... %} или {{ ... }}


KEYWORDS = {
    "if": TokenType.IF,
    "elif": TokenType.ELIF,
    "else": TokenType.ELSE,
    "endif": TokenType.ENDIF,
    "for": TokenType.FOR,
    "in": TokenType.IN,
    "endfor": TokenType.ENDFOR,
    "and": TokenType.AND,
    "or": TokenType.OR,
    "true": TokenType.TRUE,
    "false": TokenType.FALSE,
}

# Ключевые слова, закрывающие объемлющую конструкцию
BLOCK_TERMINATORS = frozenset({
    TokenType.ELIF,
    TokenType.ELSE,
    TokenType.ENDFOR,
    TokenType.ENDIF,
})


@dataclass(frozen=True)
class Token:
    """
    Токен с позиционной информацией для точной диагностики ошибок.

    Для TEXT ``value`` содержит литеральный текст, для STRING уже
    раскодированное содержимое строкового литерала (без кавычек).
    """
    type: TokenType
    value: str
    position: int        # Позиция в исходном тексте
    line: int            # Номер строки (начиная с 1)
    column: int          # Номер колонки (начиная с 1)

    def describe(self) -> str:
        """Короткое описание токена для сообщений об ошибках."""
        if self.type == TokenType.EOF:
            return "end of input"
        if self.type == TokenType.TEXT:
            preview = self.value if len(self.value) <= 20 else self.value[:20] + "..."
            return f"text {preview!r}"
        if self.type == TokenType.STRING:
            return f"string {self.value!r}"
        if self.type == TokenType.IDENTIFIER:
            return f"identifier '{self.value}'"
        return f"'{self.value}'"

    def __repr__(self) -> str:
        return f"Token({self.type.name}, {self.value!r}, {self.line}:{self.column})"


class LexerError(TemplateError):
    """Ошибка лексического анализа."""

    stage = "lex"

    def __init__(self, message: str, line: int, column: int, position: int):
        super().__init__(f"{message} at {line}:{column}")
        self.line = line
        self.column = column
        self.position = position


__all__ = [
    "TokenType",
    "LexMode",
    "KEYWORDS",
    "BLOCK_TERMINATORS",
    "Token",
    "LexerError",
]
