from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from .config import load_render_input, load_tokenizer_config
from .context import RenderContext
from .engine import RunOptions, run_render, run_report
from .errors import ChatTplUserError, TemplateError
from .jsonic import dumps as jdumps
from .report_schema import TokenEntry, TokenList
from .template import TemplateLexer, format_ast_tree, parse_template
from .tokens import DEFAULT_ENCODER
from .version import tool_version

_TRUE_WORDS = {"1", "true", "yes", "on"}
_FALSE_WORDS = {"0", "false", "no", "off"}


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="chattpl",
        description="Render HF-style chat_template strings with an auditable Jinja subset",
        add_help=True,
    )
    p.add_argument("-v", "--version", action="version", version=f"%(prog)s {tool_version()}")
    p.add_argument(
        "--debug",
        action="store_true",
        help="подробный журнал в stderr (также включается переменной CHATTPL_DEBUG)",
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    def add_template(sp: argparse.ArgumentParser) -> None:
        sp.add_argument(
            "template",
            nargs="?",
            metavar="TEXT|@FILE|-",
            help=(
                "шаблон: прямая строка, @file для чтения из файла или - для чтения из stdin; "
                "можно опустить при --tokenizer-config"
            ),
        )
        sp.add_argument(
            "--tokenizer-config",
            metavar="FILE",
            help="tokenizer_config.json: chat_template и спецтокены (bos/eos/pad/unk)",
        )

    # Общие аргументы для render/report
    def add_inputs(sp: argparse.ArgumentParser) -> None:
        add_template(sp)
        sp.add_argument(
            "--input",
            metavar="FILE",
            help="YAML/JSON с ключами messages, variables, flags (или просто список сообщений)",
        )
        sp.add_argument(
            "--var",
            action="append",
            metavar="NAME=VALUE",
            help="строковая переменная шаблона (можно указать несколько)",
        )
        sp.add_argument(
            "--flag",
            action="append",
            metavar="NAME[=true|false]",
            help="булев флаг шаблона (можно указать несколько)",
        )
        sp.add_argument(
            "--no-defaults",
            action="store_true",
            help="не подставлять eos_token=</s> и add_generation_prompt=true",
        )

    sp_render = sub.add_parser("render", help="Только финальный текст (не JSON)")
    add_inputs(sp_render)

    sp_report = sub.add_parser("report", help="JSON-отчёт: размер промпта в символах и токенах")
    add_inputs(sp_report)
    sp_report.add_argument(
        "--encoder",
        default=DEFAULT_ENCODER,
        help="кодировка или модель tiktoken для подсчёта токенов",
    )

    sp_tokens = sub.add_parser("tokens", help="Поток токенов лексера (JSON)")
    add_template(sp_tokens)

    sp_ast = sub.add_parser("ast", help="Дерево разбора шаблона (текст)")
    add_template(sp_ast)

    return p


def _setup_logging(debug: bool) -> None:
    level = logging.DEBUG if debug or os.environ.get("CHATTPL_DEBUG") else logging.WARNING
    h = logging.StreamHandler(sys.stderr)
    h.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
    root = logging.getLogger("chattpl")
    root.setLevel(level)
    root.handlers[:] = [h]


def _read_text_file(path: Path) -> str:
    # newline="" сохраняет \r\n: шаблон выводится байт в байт
    with path.open("r", encoding="utf-8", newline="") as f:
        return f.read()


def _parse_template_arg(template_arg: Optional[str]) -> Optional[str]:
    """
    Парсит аргумент шаблона.

    Поддерживает три формата:
    - Прямая строка: "{{ bos_token }}..."
    - Из файла: @path/to/template.jinja
    - Из stdin: -

    Шаблон не обрезается: пробелы значимы.
    """
    if template_arg is None:
        return None

    # Чтение из stdin
    if template_arg == "-":
        return sys.stdin.read()

    # Чтение из файла
    if template_arg.startswith("@"):
        file_path = Path(template_arg[1:])
        if not file_path.is_file():
            raise ValueError(f"Template file not found: {file_path}")
        try:
            return _read_text_file(file_path)
        except OSError as e:
            raise ValueError(f"Failed to read template file {file_path}: {e}")

    # Прямая строка
    return template_arg


def _parse_var(item: str) -> Tuple[str, str]:
    """Парсит 'NAME=VALUE' для --var."""
    if "=" not in item:
        raise ValueError(f"Invalid variable format '{item}'. Expected 'NAME=VALUE'")
    name, value = item.split("=", 1)
    return name.strip(), value


def _parse_flag(item: str) -> Tuple[str, bool]:
    """Парсит 'NAME' или 'NAME=true|false' для --flag."""
    if "=" not in item:
        return item.strip(), True
    name, raw = item.split("=", 1)
    word = raw.strip().lower()
    if word in _TRUE_WORDS:
        return name.strip(), True
    if word in _FALSE_WORDS:
        return name.strip(), False
    raise ValueError(f"Invalid flag value '{raw}' for '{name}'. Expected true or false")


def _resolve_template(ns: argparse.Namespace) -> Tuple[str, RenderContext]:
    """Определяет текст шаблона и спецтокены из tokenizer_config.json."""
    template_text = _parse_template_arg(ns.template)
    tokens_ctx = RenderContext()

    if ns.tokenizer_config:
        tok_cfg = load_tokenizer_config(Path(ns.tokenizer_config))
        tokens_ctx = tok_cfg.to_context()
        if template_text is None:
            template_text = tok_cfg.chat_template
            if template_text is None:
                raise ValueError(f"No chat_template in {ns.tokenizer_config}")

    if template_text is None:
        raise ValueError("No template given: pass TEXT|@FILE|- or --tokenizer-config")
    return template_text, tokens_ctx


def _opts(ns: argparse.Namespace) -> RunOptions:
    template_text, tokens_ctx = _resolve_template(ns)

    # Приоритет: умолчания < tokenizer_config < --input < --var/--flag
    context = RenderContext() if ns.no_defaults else RenderContext.default()
    context.update(tokens_ctx)

    messages = []
    if ns.input:
        render_input = load_render_input(Path(ns.input))
        messages = render_input.messages
        context.update(render_input.context)

    for item in ns.var or []:
        context.set_var(*_parse_var(item))
    for item in ns.flag or []:
        context.set_flag(*_parse_flag(item))

    return RunOptions(
        template_text=template_text,
        messages=messages,
        context=context,
        encoder=getattr(ns, "encoder", DEFAULT_ENCODER),
    )


def _token_list(template_text: str) -> TokenList:
    entries: List[TokenEntry] = []
    for token in TemplateLexer(template_text):
        entries.append(TokenEntry(type=token.type.value, value=token.value, line=token.line, column=token.column))
    return TokenList(tokens=entries)


def main(argv: list[str] | None = None) -> int:
    ns = _build_parser().parse_args(argv)
    _setup_logging(bool(ns.debug))

    try:
        if ns.cmd == "render":
            sys.stdout.write(run_render(_opts(ns)))
            return 0

        if ns.cmd == "report":
            result = run_report(_opts(ns))
            sys.stdout.write(jdumps(result.model_dump(mode="json", by_alias=True)) + "\n")
            return 0

        if ns.cmd == "tokens":
            template_text, _ = _resolve_template(ns)
            data = _token_list(template_text)
            sys.stdout.write(jdumps(data.model_dump(mode="json", by_alias=True)) + "\n")
            return 0

        if ns.cmd == "ast":
            template_text, _ = _resolve_template(ns)
            sys.stdout.write(format_ast_tree(parse_template(template_text)) + "\n")
            return 0

    except TemplateError as e:
        sys.stderr.write(f"{e.stage} error: {str(e).rstrip()}\n")
        return 2
    except ChatTplUserError as e:
        sys.stderr.write(str(e).rstrip() + "\n")
        return 2
    except ValueError as e:
        sys.stderr.write(str(e).rstrip() + "\n")
        return 2

    return 2


if __name__ == "__main__":
    raise SystemExit(main())
