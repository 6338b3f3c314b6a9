from .load import load_render_input, load_tokenizer_config
from .model import RenderInput, TokenizerConfig

__all__ = [
    "load_render_input",
    "load_tokenizer_config",
    "RenderInput",
    "TokenizerConfig",
]
