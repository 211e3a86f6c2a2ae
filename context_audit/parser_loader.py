"""Loads the tree-sitter grammar used by the C frontend."""

import tree_sitter_c
from loguru import logger
from tree_sitter import Language, Parser


def load_c_parser() -> Parser:
    """Create a tree-sitter parser for C sources."""
    language = Language(tree_sitter_c.language())
    logger.debug("Loaded tree-sitter C grammar")
    return Parser(language)
