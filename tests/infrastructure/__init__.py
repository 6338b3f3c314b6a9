"""
Unified test infrastructure for chattpl.

Modules:
- file_utils: Utilities for creating template and input files
- cli_utils: Running the CLI in a subprocess and parsing its JSON output
- testing_utils: Offline stubs (token counting)
"""

from .file_utils import write, write_yaml, write_json
from .cli_utils import run_cli, jload
from .testing_utils import TokenServiceStub, stub_tokenizer

__all__ = [
    # File utilities
    "write", "write_yaml", "write_json",

    # CLI utilities
    "run_cli", "jload",

    # Testing utilities
    "TokenServiceStub", "stub_tokenizer",
]
