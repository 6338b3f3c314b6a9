"""
Base exceptions for user-facing errors.

All expected errors that should be displayed to the user
as clean messages (without stack traces) must inherit from ChatTplUserError.

Programming errors and bugs should NOT inherit from ChatTplUserError;
they will propagate with full tracebacks.
"""

from __future__ import annotations


class ChatTplUserError(Exception):
    """
    Base class for all user-facing errors in chattpl.

    These errors indicate problems that the user can fix:
    a malformed template, a context value of the wrong type,
    an unreadable input file, etc.
    """
    pass


class TemplateError(ChatTplUserError):
    """
    Ошибка одного из этапов конвейера шаблонизации.

    Атрибут ``stage`` указывает этап, на котором произошёл сбой:
    "lex", "parse" или "evaluate".
    """
    stage: str = "template"


__all__ = ["ChatTplUserError", "TemplateError"]
