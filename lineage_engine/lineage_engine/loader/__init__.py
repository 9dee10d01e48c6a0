"""Configuration loading and structural validation."""

from lineage_engine.loader.config_loader import (
    config_content_hash,
    load_config,
    parse_config,
    read_config_document,
    validate_config,
)

__all__ = [
    "config_content_hash",
    "load_config",
    "parse_config",
    "read_config_document",
    "validate_config",
]
