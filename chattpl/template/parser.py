"""
Парсер шаблонов chat_template с рекурсивным спуском.

Потребляет ленивый поток токенов лексера (с предпросмотром на два токена)
и строит последовательность узлов-инструкций.

Грамматика выражений (от слабого связывания к сильному):
expression → or_expr
or_expr    → and_expr ("or" and_expr)*
and_expr   → eq_expr ("and" eq_expr)*
eq_expr    → add_expr ("==" add_expr)*
add_expr   → primary ("+" primary)*
primary    → atom ( "." IDENTIFIER | "[" expression "]" )*
atom       → STRING | "true" | "false" | IDENTIFIER | "(" expression ")"
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Deque, List, Optional

from .lexer import TemplateLexer
from .nodes import (
    AttributeAccess,
    BinaryOp,
    BinaryOperator,
    BoolLiteral,
    ConditionalCase,
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
)
from .tokens import BLOCK_TERMINATORS, Token, TokenType
from ..errors import TemplateError

logger = logging.getLogger(__name__)


class ParserError(TemplateError):
    """Ошибка синтаксического анализа."""

    stage = "parse"

    def __init__(self, expected: str, token: Token):
        found = token.describe()
        super().__init__(f"Expected {expected}, got {found} at {token.line}:{token.column}")
        self.expected = expected
        self.found = found
        self.token = token
        self.line = token.line
        self.column = token.column


class TemplateParser:
    """
    Рекурсивный парсер для шаблонов.

    Токены запрашиваются у лексера по мере необходимости и буферизуются
    ровно настолько, насколько нужно для предпросмотра.
    """

    def __init__(self, lexer: TemplateLexer):
        self.lexer = lexer
        self._buffer: Deque[Token] = deque()

    def parse(self) -> TemplateAST:
        """
        Парсит весь шаблон в AST.

        Returns:
            Список корневых узлов AST

        Raises:
            ParserError: При ошибке синтаксического анализа
            LexerError: При ошибке лексического анализа
        """
        try:
            ast = self._parse_statements()
        except RecursionError:
            raise ParserError("less deeply nested template", self._peek()) from None

        # Терминатор блока на верхнем уровне закрывать нечего
        current = self._peek()
        if current.type != TokenType.EOF:
            raise ParserError("a statement (no open block to close)", self._peek(1))

        logger.debug(f"Parsed template into {len(ast)} top-level nodes")
        return ast

    # ---------------- Инструкции ---------------- #

    def _parse_statements(self) -> List[TemplateNode]:
        """
        Парсит последовательность инструкций.

        Останавливается (не потребляя токены) перед {% elif/else/endfor/endif %},
        которые закрывают объемлющую конструкцию, и в конце входа.
        """
        nodes: List[TemplateNode] = []

        while True:
            current = self._peek()

            if current.type == TokenType.EOF:
                break
            if current.type == TokenType.BLOCK_START and self._peek(1).type in BLOCK_TERMINATORS:
                break

            if current.type == TokenType.TEXT:
                self._advance()
                nodes.append(TextNode(text=current.value))
            elif current.type == TokenType.VAR_START:
                nodes.append(self._parse_output())
            elif current.type == TokenType.BLOCK_START:
                nodes.append(self._parse_block())
            else:
                raise ParserError("text, '{{' or '{%'", current)

        return nodes

    def _parse_output(self) -> OutputNode:
        """Парсит интерполяцию {{ expr }}."""
        self._consume(TokenType.VAR_START, "'{{'")
        expr = self._parse_expression()
        self._consume(TokenType.VAR_END, "'}}'")
        return OutputNode(expr=expr)

    def _parse_block(self) -> TemplateNode:
        """Парсит блочную директиву {% for %} или {% if %}."""
        self._consume(TokenType.BLOCK_START, "'{%'")

        keyword = self._peek()
        if keyword.type == TokenType.FOR:
            return self._parse_for()
        if keyword.type == TokenType.IF:
            return self._parse_if()

        raise ParserError("'for' or 'if' after '{%'", keyword)

    def _parse_for(self) -> ForNode:
        """Парсит цикл {% for target in iterable %}...{% endfor %}"""
        self._consume(TokenType.FOR, "'for'")
        target = self._consume(TokenType.IDENTIFIER, "loop target identifier")
        self._consume(TokenType.IN, "'in'")
        iterable = self._consume(TokenType.IDENTIFIER, "loop iterable identifier")
        self._consume(TokenType.BLOCK_END, "'%}'")

        body = self._parse_statements()

        self._consume(TokenType.BLOCK_START, "'{% endfor %}'")
        self._consume(TokenType.ENDFOR, "'endfor'")
        self._consume(TokenType.BLOCK_END, "'%}'")

        return ForNode(target=target.value, iterable=iterable.value, body=body)

    def _parse_if(self) -> IfNode:
        """Парсит условный блок if/elif/else/endif."""
        self._consume(TokenType.IF, "'if'")
        condition = self._parse_expression()
        self._consume(TokenType.BLOCK_END, "'%}'")

        cases = [ConditionalCase(condition=condition, body=self._parse_statements())]
        else_body: Optional[List[TemplateNode]] = None

        while True:
            current = self._peek()
            keyword = self._peek(1)

            if current.type != TokenType.BLOCK_START:
                raise ParserError("'{% elif %}', '{% else %}' or '{% endif %}'", current)

            if keyword.type == TokenType.ELIF:
                self._advance()
                self._advance()
                elif_condition = self._parse_expression()
                self._consume(TokenType.BLOCK_END, "'%}'")
                cases.append(ConditionalCase(condition=elif_condition, body=self._parse_statements()))
            elif keyword.type == TokenType.ELSE:
                self._advance()
                self._advance()
                self._consume(TokenType.BLOCK_END, "'%}'")
                else_body = self._parse_statements()
                self._consume(TokenType.BLOCK_START, "'{% endif %}'")
                self._consume(TokenType.ENDIF, "'endif'")
                self._consume(TokenType.BLOCK_END, "'%}'")
                break
            elif keyword.type == TokenType.ENDIF:
                self._advance()
                self._advance()
                self._consume(TokenType.BLOCK_END, "'%}'")
                break
            else:
                raise ParserError("'elif', 'else' or 'endif'", keyword)

        return IfNode(cases=cases, else_body=else_body)

    # ---------------- Выражения ---------------- #

    def _parse_expression(self) -> Expr:
        """Парсит полное выражение (начальный символ грамматики)."""
        return self._parse_or()

    def _parse_or(self) -> Expr:
        """Парсит выражение с оператором or (низший приоритет)."""
        left = self._parse_and()
        while self._match(TokenType.OR):
            right = self._parse_and()
            left = BinaryOp(left=left, operator=BinaryOperator.OR, right=right)
        return left

    def _parse_and(self) -> Expr:
        left = self._parse_equality()
        while self._match(TokenType.AND):
            right = self._parse_equality()
            left = BinaryOp(left=left, operator=BinaryOperator.AND, right=right)
        return left

    def _parse_equality(self) -> Expr:
        left = self._parse_concat()
        while self._match(TokenType.EQ):
            right = self._parse_concat()
            left = BinaryOp(left=left, operator=BinaryOperator.EQUALS, right=right)
        return left

    def _parse_concat(self) -> Expr:
        """Парсит конкатенацию через + (левоассоциативно)."""
        left = self._parse_primary()
        while self._match(TokenType.PLUS):
            right = self._parse_primary()
            left = BinaryOp(left=left, operator=BinaryOperator.ADD, right=right)
        return left

    def _parse_primary(self) -> Expr:
        """Парсит атом и цепочку суффиксов .name / [expr]."""
        expr = self._parse_atom()

        while True:
            if self._match(TokenType.DOT):
                name = self._consume(TokenType.IDENTIFIER, "identifier after '.'")
                expr = AttributeAccess(base=expr, name=name.value)
            elif self._match(TokenType.LBRACKET):
                index = self._parse_expression()
                self._consume(TokenType.RBRACKET, "']'")
                expr = IndexAccess(base=expr, index=index)
            else:
                return expr

    def _parse_atom(self) -> Expr:
        token = self._peek()

        if token.type == TokenType.STRING:
            self._advance()
            return StringLiteral(value=token.value)
        if token.type == TokenType.TRUE:
            self._advance()
            return BoolLiteral(value=True)
        if token.type == TokenType.FALSE:
            self._advance()
            return BoolLiteral(value=False)
        if token.type == TokenType.IDENTIFIER:
            self._advance()
            return VariableRef(name=token.value)
        if token.type == TokenType.LPAREN:
            self._advance()
            expr = self._parse_expression()
            self._consume(TokenType.RPAREN, "')' after grouped expression")
            return expr

        raise ParserError("expression", token)

    # ---------------- Работа с токенами ---------------- #

    def _peek(self, offset: int = 0) -> Token:
        """Возвращает токен на указанном смещении без потребления."""
        while len(self._buffer) <= offset:
            self._buffer.append(self.lexer.next_token())
        return self._buffer[offset]

    def _advance(self) -> Token:
        """Потребляет текущий токен и возвращает его."""
        token = self._peek()
        if token.type != TokenType.EOF:
            self._buffer.popleft()
        return token

    def _match(self, token_type: TokenType) -> bool:
        """Проверяет и потребляет токен указанного типа."""
        if self._peek().type == token_type:
            self._advance()
            return True
        return False

    def _consume(self, token_type: TokenType, expected: str) -> Token:
        """
        Потребляет токен ожидаемого типа.

        Raises:
            ParserError: Если токен не соответствует ожидаемому типу
        """
        token = self._peek()
        if token.type != token_type:
            raise ParserError(expected, token)
        return self._advance()


def parse_template(text: str) -> TemplateAST:
    """
    Удобная функция: токенизирует и парсит текст шаблона.

    Raises:
        LexerError: При ошибке лексического анализа
        ParserError: При ошибке синтаксического анализа
    """
    return TemplateParser(TemplateLexer(text)).parse()


__all__ = ["ParserError", "TemplateParser", "parse_template"]
