"""
Лексический анализатор для шаблонов chat_template.

Лениво выдаёт токены по одному, переключаясь между двумя режимами:
литеральный текст и содержимое тега ({% ... %} / {{ ... }}).
Состояние лексера целиком описывается тройкой (текст, позиция, режим),
поэтому сканирование можно начать заново с любой сохранённой точки.
"""

from __future__ import annotations

import logging
from typing import Iterator, List

from .tokens import KEYWORDS, LexMode, LexerError, Token, TokenType

logger = logging.getLogger(__name__)


# Двухсимвольные разделители, закрывающие тег
_TAG_CLOSERS = {
    "%}": TokenType.BLOCK_END,
    "}}": TokenType.VAR_END,
}

# Односимвольные символы внутри тега
_SYMBOLS = {
    "+": TokenType.PLUS,
    ".": TokenType.DOT,
    "[": TokenType.LBRACKET,
    "]": TokenType.RBRACKET,
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
}

# Escape-последовательности в строковых литералах; прочие \x дают x
_ESCAPES = {
    "n": "\n",
    "t": "\t",
}


class TemplateLexer:
    """
    Лексический анализатор шаблонов.

    Режим TEXT: всё до ближайшего ``{%`` или ``{{`` выдаётся одним TEXT-токеном.
    Режим TAG: пробелы пропускаются, далее распознаются закрывающие
    разделители, ``==``, односимвольные символы, строковые литералы
    и идентификаторы/ключевые слова. Неизвестные символы молча пропускаются.

    После ``%}`` поглощается один следующий за ним перевод строки
    (``\\n`` или ``\\r\\n``), если ``trim_blocks`` включён.
    """

    def __init__(
        self,
        text: str,
        position: int = 0,
        mode: LexMode = LexMode.TEXT,
        *,
        trim_blocks: bool = True,
    ):
        self.text = text
        self.length = len(text)
        self.position = position
        self.mode = mode
        self.trim_blocks = trim_blocks

        # Позиционная информация для диагностики
        self.line = text.count("\n", 0, position) + 1
        self.column = position - (text.rfind("\n", 0, position) + 1) + 1

    def fork(self) -> TemplateLexer:
        """Создаёт независимый лексер в том же состоянии (для повторного сканирования)."""
        return TemplateLexer(self.text, self.position, self.mode, trim_blocks=self.trim_blocks)

    def tokenize(self) -> List[Token]:
        """
        Токенизирует весь оставшийся текст.

        Returns:
            Список токенов, включая EOF в конце

        Raises:
            LexerError: При незакрытом строковом литерале
        """
        tokens = list(self)
        tokens.append(self._eof())
        logger.debug(f"Tokenized template into {len(tokens)} tokens")
        return tokens

    def __iter__(self) -> Iterator[Token]:
        while True:
            token = self.next_token()
            if token.type == TokenType.EOF:
                return
            yield token

    def next_token(self) -> Token:
        """
        Извлекает следующий токен из входного потока.

        По исчерпании входа возвращает EOF (в том числе при повторных вызовах).
        """
        if self.position >= self.length:
            return self._eof()

        if self.mode == LexMode.TEXT:
            return self._next_text_token()
        return self._next_tag_token()

    # ---------------- Режим TEXT ---------------- #

    def _next_text_token(self) -> Token:
        start_pos, start_line, start_column = self.position, self.line, self.column

        tag_start = self._find_next_tag_opener()

        if tag_start == self.position:
            value = self.text[self.position:self.position + 2]
            token_type = TokenType.BLOCK_START if value == "{%" else TokenType.VAR_START
            self._advance(2)
            self.mode = LexMode.TAG
            return Token(token_type, value, start_pos, start_line, start_column)

        # Текст до открывающего разделителя или до конца входа
        end = tag_start if tag_start != -1 else self.length
        value = self.text[self.position:end]
        self._advance(len(value))
        return Token(TokenType.TEXT, value, start_pos, start_line, start_column)

    def _find_next_tag_opener(self) -> int:
        """Находит позицию ближайшего ``{%`` или ``{{``; -1 если их нет."""
        candidates = [
            idx for idx in (
                self.text.find("{%", self.position),
                self.text.find("{{", self.position),
            )
            if idx != -1
        ]
        return min(candidates) if candidates else -1

    # ---------------- Режим TAG ---------------- #

    def _next_tag_token(self) -> Token:
        while True:
            self._skip_whitespace()
            if self.position >= self.length:
                return self._eof()

            start_pos, start_line, start_column = self.position, self.line, self.column
            two = self.text[self.position:self.position + 2]
            char = self.text[self.position]

            # Закрывающие разделители
            closer = _TAG_CLOSERS.get(two)
            if closer is not None:
                self._advance(2)
                self.mode = LexMode.TEXT
                if closer == TokenType.BLOCK_END and self.trim_blocks:
                    self._trim_line_terminator()
                return Token(closer, two, start_pos, start_line, start_column)

            if two == "==":
                self._advance(2)
                return Token(TokenType.EQ, two, start_pos, start_line, start_column)

            symbol = _SYMBOLS.get(char)
            if symbol is not None:
                self._advance(1)
                return Token(symbol, char, start_pos, start_line, start_column)

            if char in ("'", '"'):
                return self._scan_string(start_pos, start_line, start_column)

            if char.isalpha() or char == "_":
                return self._scan_identifier(start_pos, start_line, start_column)

            # Неизвестный символ внутри тега: пропускаем и продолжаем
            logger.debug(f"Skipping unrecognized character {char!r} at {start_line}:{start_column}")
            self._advance(1)

    def _skip_whitespace(self) -> None:
        pos = self.position
        while pos < self.length and self.text[pos].isspace():
            pos += 1
        self._advance(pos - self.position)

    def _trim_line_terminator(self) -> None:
        """Поглощает ровно один перевод строки сразу после ``%}``."""
        if self.text.startswith("\n", self.position):
            self._advance(1)
        elif self.text.startswith("\r\n", self.position):
            self._advance(2)

    def _scan_string(self, start_pos: int, start_line: int, start_column: int) -> Token:
        """Сканирует строковый литерал в одинарных или двойных кавычках."""
        quote = self.text[self.position]
        pos = self.position + 1
        chars: List[str] = []

        while pos < self.length:
            char = self.text[pos]
            if char == quote:
                self._advance(pos + 1 - self.position)
                return Token(TokenType.STRING, "".join(chars), start_pos, start_line, start_column)
            if char == "\\":
                if pos + 1 >= self.length:
                    break
                escaped = self.text[pos + 1]
                chars.append(_ESCAPES.get(escaped, escaped))
                pos += 2
                continue
            chars.append(char)
            pos += 1

        raise LexerError("Unterminated string literal", start_line, start_column, start_pos)

    def _scan_identifier(self, start_pos: int, start_line: int, start_column: int) -> Token:
        """Сканирует идентификатор или ключевое слово."""
        pos = self.position + 1
        while pos < self.length and (self.text[pos].isalnum() or self.text[pos] == "_"):
            pos += 1

        value = self.text[self.position:pos]
        self._advance(len(value))

        token_type = KEYWORDS.get(value, TokenType.IDENTIFIER)
        return Token(token_type, value, start_pos, start_line, start_column)

    # ---------------- Служебное ---------------- #

    def _eof(self) -> Token:
        return Token(TokenType.EOF, "", self.position, self.line, self.column)

    def _advance(self, count: int) -> None:
        """
        Перемещает позицию на указанное количество символов,
        обновляя номера строк и колонок.
        """
        for _ in range(count):
            if self.position < self.length:
                if self.text[self.position] == "\n":
                    self.line += 1
                    self.column = 1
                else:
                    self.column += 1
                self.position += 1


def tokenize_template(text: str) -> List[Token]:
    """
    Удобная функция для токенизации шаблона.

    Args:
        text: Исходный текст шаблона

    Returns:
        Список токенов (с EOF в конце)

    Raises:
        LexerError: При ошибке лексического анализа
    """
    return TemplateLexer(text).tokenize()


__all__ = ["TemplateLexer", "tokenize_template"]
