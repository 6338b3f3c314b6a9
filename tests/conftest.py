from pathlib import Path

import pytest

from chattpl.context import ChatMessage

# Импорт из унифицированной инфраструктуры
from tests.infrastructure.file_utils import write, write_yaml


TINYLLAMA_TEMPLATE = """
{% for message in messages %}
{% if message['role'] == 'user' %}
{{ '<|user|>\\n' + message['content'] + eos_token }}
{% elif message['role'] == 'system' %}
{{ '<|system|>\\n' + message['content'] + eos_token }}
{% elif message['role'] == 'assistant' %}
{{ '<|assistant|>\\n'  + message['content'] + eos_token }}
{% endif %}
{% if loop.last and add_generation_prompt %}
{{ '<|assistant|>' }}
{% endif %}
{% endfor %}
""".strip()


@pytest.fixture
def tinyllama_template() -> str:
    """Шаблон TinyLlama-Chat в том виде, в каком он лежит в tokenizer_config.json."""
    return TINYLLAMA_TEMPLATE


@pytest.fixture
def chat_messages():
    return [
        ChatMessage(role="system", content="You are a friendly AI."),
        ChatMessage(role="user", content="Hello!"),
    ]


@pytest.fixture
def tmpproj(tmp_path: Path):
    """Каталог с шаблоном и файлом сообщений для прогонов CLI."""
    root = tmp_path
    write(root / "chat.jinja", TINYLLAMA_TEMPLATE)
    write_yaml(
        root / "chat.yaml",
        """
        messages:
          - role: system
            content: You are a friendly AI.
          - role: user
            content: Hello!
        """,
    )
    return root
