"""
File parsers module.
"""

from parsers.csv_tokenizer import (
    tokenize,
    serialize,
    decode_upload,
    ensure_csv_file,
    read_table,
    analyze,
    UTF8_BOM,
)

__all__ = [
    "tokenize",
    "serialize",
    "decode_upload",
    "ensure_csv_file",
    "read_table",
    "analyze",
    "UTF8_BOM",
]
