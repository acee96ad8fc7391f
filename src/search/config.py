"""
Configuration utilities for ProviderSearch.

Loads, validates and merges the search configuration. Missing or
unreadable files fall back to the defaults below.
"""

import logging
import yaml
from typing import Dict, Any
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config/provider_search.yaml"


def load_search_config(config_path: str = DEFAULT_CONFIG_PATH) -> Dict[str, Any]:
    """
    Load search configuration from YAML file.

    Values present in the file override the defaults; anything missing
    keeps its default.

    Args:
        config_path: Path to configuration file

    Returns:
        Configuration dictionary
    """
    defaults = get_default_search_config()
    try:
        config_file = Path(config_path)
        if not config_file.exists():
            logger.warning(f"Configuration file {config_path} not found, using defaults")
            return defaults

        with open(config_file, 'r') as f:
            config = yaml.safe_load(f) or {}

        merged = merge_configs(defaults, config)
        logger.info(f"Loaded search configuration from {config_path}")
        return merged

    except Exception as e:
        logger.error(f"Failed to load configuration from {config_path}: {e}")
        return defaults


def get_default_search_config() -> Dict[str, Any]:
    """
    Get default search configuration.

    Returns:
        Default configuration dictionary
    """
    return {
        "search": {
            "max_distance_km": 25,
            "default_page_size": 20,
            "max_page_size": 100,
            "geo_text_overfetch_factor": 5,
            "partial_results": False,
            "reject_text_with_geography": False,
            "max_workers": 5
        },
        "typeahead": {
            "max_suggestions": 15,
            "per_kind_limit": 10,
            "default_category_limit": 10
        },
        "kinds": {
            "pharmacies": {"use_text_index": True},
            "ambulance": {"use_text_index": True}
        },
        "logging": {
            "level": "INFO",
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        }
    }


def validate_search_config(config: Dict[str, Any]) -> bool:
    """
    Validate search configuration.

    Args:
        config: Configuration dictionary

    Returns:
        True if configuration is valid, False otherwise
    """
    required_sections = ["search", "typeahead"]

    for section in required_sections:
        if section not in config:
            logger.error(f"Missing required configuration section: {section}")
            return False

    search_config = config.get("search", {})
    for key in ["default_page_size", "max_page_size", "geo_text_overfetch_factor", "max_workers"]:
        value = search_config.get(key, 1)
        if not isinstance(value, int) or isinstance(value, bool) or value < 1:
            logger.error(f"search.{key} must be a positive integer")
            return False

    if search_config.get("default_page_size", 20) > search_config.get("max_page_size", 100):
        logger.error("search.default_page_size must not exceed search.max_page_size")
        return False

    max_distance = search_config.get("max_distance_km", 25)
    if not isinstance(max_distance, (int, float)) or max_distance <= 0:
        logger.error("search.max_distance_km must be a positive number")
        return False

    for key in ["partial_results", "reject_text_with_geography"]:
        if not isinstance(search_config.get(key, False), bool):
            logger.error(f"search.{key} must be a boolean")
            return False

    typeahead_config = config.get("typeahead", {})
    for key in ["max_suggestions", "per_kind_limit", "default_category_limit"]:
        value = typeahead_config.get(key, 1)
        if not isinstance(value, int) or isinstance(value, bool) or value < 1:
            logger.error(f"typeahead.{key} must be a positive integer")
            return False

    kinds_config = config.get("kinds", {}) or {}
    if not isinstance(kinds_config, dict):
        logger.error("kinds must be a mapping of kind selector to options")
        return False

    logger.info("Configuration validation passed")
    return True


def merge_configs(base_config: Dict[str, Any], override_config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Merge two configuration dictionaries.

    Args:
        base_config: Base configuration
        override_config: Override configuration

    Returns:
        Merged configuration
    """
    merged = base_config.copy()

    for key, value in override_config.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = merge_configs(merged[key], value)
        else:
            merged[key] = value

    return merged
