from __future__ import annotations

import json
from typing import Any


def dumps(obj: Any) -> str:
    """
    JSON-дампер для ответов CLI.
    ensure_ascii=False, чтобы спецтокены и не-ASCII текст шли как есть;
    завершающий перевод строки добавляет CLI.
    """
    return json.dumps(obj, ensure_ascii=False)
