"""
Сквозные тесты рендеринга chat_template: публичные точки входа
и сборка контекста.
"""

import pytest

from chattpl import (
    ChatMessage,
    ContextError,
    EvaluationError,
    ParserError,
    RenderContext,
    render_chat_template,
    render_chat_template_with_context,
    render_template,
)
from chattpl.engine import RunOptions, run_render, run_report
from tests.infrastructure import stub_tokenizer


def _messages(*roles: str):
    return [ChatMessage(role=role, content="") for role in roles]


class TestRenderChatTemplate:
    """Примеры шаблонов, взятые из реальных tokenizer_config.json."""

    def test_simple_for_loop_over_messages(self):
        template = "{% for message in messages %}{{ message.role }}: {{ message.content }}\n{% endfor %}"
        messages = [
            ChatMessage(role="system", content="You are a helpful assistant."),
            ChatMessage(role="user", content="Hello"),
        ]

        assert render_chat_template(template, messages) == "system: You are a helpful assistant.\nuser: Hello\n"

    def test_no_newlines_invented(self):
        template = "{% for message in messages %}{{ message.role }}: {{ message.content }}{% endfor %}"
        messages = [
            ChatMessage(role="system", content="You are a helpful assistant."),
            ChatMessage(role="user", content="Hello"),
        ]

        assert render_chat_template(template, messages) == "system: You are a helpful assistant.user: Hello"

    def test_multiple_sequential_loops_and_literals(self):
        template = (
            "prefix-\n"
            "{% for message in messages %}A: {{ message.role }}\n{% endfor %}"
            "middle-\n"
            "{% for message in messages %}B: {{ message.content }}\n{% endfor %}suffix"
        )
        messages = [
            ChatMessage(role="system", content="You are a helpful assistant."),
            ChatMessage(role="user", content="Hello"),
        ]

        assert render_chat_template(template, messages) == (
            "prefix-\n"
            "A: system\n"
            "A: user\n"
            "middle-\n"
            "B: You are a helpful assistant.\n"
            "B: Hello\n"
            "suffix"
        )

    def test_tinyllama_default_context(self, tinyllama_template, chat_messages):
        """Контекст по умолчанию: eos_token=</s>, add_generation_prompt=true."""
        rendered = render_chat_template(tinyllama_template, chat_messages)

        assert rendered.strip() == "<|system|>\nYou are a friendly AI.</s>\n<|user|>\nHello!</s>\n<|assistant|>"

    def test_tinyllama_explicit_context(self, tinyllama_template, chat_messages):
        ctx = RenderContext()
        ctx.set_var("eos_token", "</s>")
        ctx.set_flag("add_generation_prompt", True)

        rendered = render_chat_template_with_context(tinyllama_template, chat_messages, ctx)

        assert rendered == "<|system|>\nYou are a friendly AI.</s>\n<|user|>\nHello!</s>\n<|assistant|>\n"

    def test_add_generation_prompt_false(self, tinyllama_template):
        ctx = RenderContext(variables={"eos_token": "</s>"}, flags={"add_generation_prompt": False})

        rendered = render_chat_template_with_context(
            tinyllama_template, [ChatMessage(role="user", content="Hi")], ctx
        )

        assert "<|user|>\nHi</s>" in rendered
        assert "<|assistant|>" not in rendered

    def test_custom_eos_token(self):
        template = "{% for message in messages %}\n{{ message['content'] + eos_token }}\n{% endfor %}"
        ctx = RenderContext(variables={"eos_token": "<|endoftext|>"})

        rendered = render_chat_template_with_context(template, [ChatMessage(role="user", content="Hello")], ctx)

        assert rendered == "Hello<|endoftext|>\n"

    def test_multi_turn_conversation(self, tinyllama_template):
        messages = [
            ChatMessage(role="system", content="You help."),
            ChatMessage(role="user", content="What is 2+2?"),
            ChatMessage(role="assistant", content="4"),
            ChatMessage(role="user", content="Thanks!"),
        ]

        rendered = render_chat_template(tinyllama_template, messages)

        assert "<|system|>\nYou help.</s>" in rendered
        assert "<|user|>\nWhat is 2+2?</s>" in rendered
        assert "<|assistant|>\n4</s>" in rendered
        assert "<|user|>\nThanks!</s>" in rendered
        assert rendered.strip().endswith("<|assistant|>")
        assert rendered.count("<|assistant|>") == 2


class TestEdgeCases:

    def setup_method(self):
        self.ctx = RenderContext()

    def test_empty_messages_produce_empty_output(self):
        template = "{% for message in messages %}{{ message.content }}{% endfor %}"
        assert render_chat_template_with_context(template, [], self.ctx) == ""

    def test_plain_text_template(self):
        assert render_chat_template_with_context("Hello, world!", [], self.ctx) == "Hello, world!"

    def test_context_vars_outside_loop(self):
        self.ctx.set_var("bos_token", "<s>")
        self.ctx.set_var("eos_token", "</s>")

        rendered = render_chat_template_with_context("{{ bos_token }}PROMPT{{ eos_token }}", [], self.ctx)

        assert rendered == "<s>PROMPT</s>"

    def test_loop_first_and_last_single_message(self):
        template = "{% for message in messages %}{% if loop.first %}F{% endif %}{% if loop.last %}L{% endif %}{% endfor %}"
        assert render_chat_template_with_context(template, _messages("user"), self.ctx) == "FL"

    def test_or_operator_in_condition(self):
        template = (
            "{% for message in messages %}"
            "{% if message.role == 'user' or message.role == 'assistant' %}Y{% else %}N{% endif %}"
            "{% endfor %}"
        )
        rendered = render_chat_template_with_context(template, _messages("system", "user", "assistant"), self.ctx)
        assert rendered == "NYY"

    def test_string_concat_multiple_parts(self):
        template = "{% for message in messages %}{{ 'A' + 'B' + 'C' + message.role + 'D' }}{% endfor %}"
        assert render_chat_template_with_context(template, _messages("x"), self.ctx) == "ABCxD"

    def test_special_characters_not_escaped(self):
        template = "{% for message in messages %}{{ message.content }}{% endfor %}"
        messages = [ChatMessage(role="user", content='Hello <world> & "friends"')]

        assert render_chat_template_with_context(template, messages, self.ctx) == 'Hello <world> & "friends"'

    def test_unicode_content(self):
        template = "{% for message in messages %}{{ message.content }}{% endfor %}"
        messages = [ChatMessage(role="user", content="こんにちは 🌍")]

        assert render_chat_template_with_context(template, messages, self.ctx) == "こんにちは 🌍"

    def test_missing_flag_is_falsy(self):
        template = "{% for message in messages %}{{ message.role }}{% if loop.last and add_generation_prompt %}PROMPT{% endif %}{% endfor %}"
        assert render_chat_template_with_context(template, _messages("user"), self.ctx) == "user"

    def test_missing_endfor_is_parse_error(self):
        with pytest.raises(ParserError):
            render_chat_template("before {% for message in messages %}broken", _messages("system"))

    def test_missing_block_end_is_parse_error(self):
        with pytest.raises(ParserError):
            render_chat_template("oops {% for message in messages broken {% endfor %} tail", _messages("user"))

    def test_messages_accept_plain_mappings(self):
        template = "{% for m in messages %}{{ m.role }}{% endfor %}"
        assert render_chat_template(template, [{"role": "user", "content": "x"}]) == "user"

    def test_bad_message_mapping(self):
        with pytest.raises(ContextError, match=r"messages\[0\]\.role: expected a string"):
            render_chat_template("", [{"role": 1}])

    def test_crlf_template_preserved(self):
        template = "{% for m in messages %}\r\n{{ m.role }}\r\n{% endfor %}"
        assert render_chat_template(template, _messages("a", "b")) == "a\r\nb\r\n"


class TestRenderContext:
    """Именованные переменные и флаги."""

    def test_defaults(self):
        ctx = RenderContext.default()

        assert ctx.variables == {"eos_token": "</s>"}
        assert ctx.flags == {"add_generation_prompt": True}

    def test_var_replaces_flag_of_same_name(self):
        ctx = RenderContext.default()
        ctx.set_var("add_generation_prompt", "yes")

        assert "add_generation_prompt" not in ctx.flags
        assert ctx.variables["add_generation_prompt"] == "yes"

    def test_update_overrides(self):
        ctx = RenderContext.default()
        ctx.update(RenderContext(variables={"eos_token": "<|end|>"}, flags={"x": False}))

        assert ctx.variables == {"eos_token": "<|end|>"}
        assert ctx.flags == {"add_generation_prompt": True, "x": False}
        assert ctx.names() == ["add_generation_prompt", "eos_token", "x"]

    def test_messages_name_reserved(self):
        with pytest.raises(ContextError, match="reserved"):
            RenderContext().set_var("messages", "x")

    @pytest.mark.parametrize("name", ["", "1abc", "a-b", "a.b"])
    def test_invalid_names(self, name):
        with pytest.raises(ContextError, match="invalid variable name"):
            RenderContext().set_flag(name, True)

    @pytest.mark.parametrize("name", ["true", "if", "and", "endfor"])
    def test_keyword_names_rejected(self, name):
        with pytest.raises(ContextError, match="template keyword"):
            RenderContext().set_var(name, "x")

    def test_type_checks(self):
        ctx = RenderContext()
        with pytest.raises(ContextError):
            ctx.set_var("eos_token", True)
        with pytest.raises(ContextError):
            ctx.set_flag("add_generation_prompt", "true")

    def test_variable_string_true_is_not_boolean(self):
        ctx = RenderContext(variables={"flag": "false"})
        rendered = render_chat_template_with_context("{% if flag %}on{% endif %}", [], ctx)

        assert rendered == "on"


class TestRenderTemplate:
    """Рендеринг с произвольным контекстом из значений Python."""

    def test_nested_python_values(self):
        context = {
            "messages": ({"role": "user", "content": "hi"},),
            "tools": [{"name": "search"}],
            "add_generation_prompt": False,
        }
        template = "{{ tools['0'].name }}:{% for m in messages %}{{ m.content }}{% endfor %}{{ add_generation_prompt }}"

        assert render_template(template, context) == "search:hifalse"

    def test_unsupported_value_names_path(self):
        with pytest.raises(ContextError, match=r"messages\[0\]\.content"):
            render_template("", {"messages": [{"role": "user", "content": 3}]})

    def test_evaluation_error_propagates(self):
        with pytest.raises(EvaluationError):
            render_template("{{ a + b }}", {"a": "x", "b": True})


class TestRunEntryPoints:

    def test_run_render(self):
        options = RunOptions(
            template_text="{{ bos_token }}{% for m in messages %}{{ m.content }}{% endfor %}",
            messages=[ChatMessage(role="user", content="hi")],
            context=RenderContext(variables={"bos_token": "<s>"}),
        )

        assert run_render(options) == "<s>hi"

    def test_run_report(self, monkeypatch):
        stub_tokenizer(monkeypatch)
        options = RunOptions(
            template_text="{% for m in messages %}{{ m.role }}: {{ m.content }}\n{% endfor %}",
            messages=[ChatMessage(role="user", content="hello there")],
            context=RenderContext.default(),
            encoder="o200k_base",
        )

        report = run_report(options)

        assert report.encoder == "o200k_base"
        assert report.messages == 1
        assert report.variables == ["add_generation_prompt", "eos_token"]
        assert report.rendered_chars == len("user: hello there\n")
        assert report.rendered_tokens == 3

        data = report.model_dump(mode="json", by_alias=True)
        assert data["renderedChars"] == report.rendered_chars
        assert data["renderedTokens"] == 3
