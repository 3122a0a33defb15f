import logging
import logging.config

# Centralized logging configuration for the entire project
LOGGING_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "rich": {
            "format": "%(message)s",
            "datefmt": "%Y-%m-%d %H:%M:%S",
        }
    },
    "handlers": {
        "console": {
            "class": "rich.logging.RichHandler",
            "level": "INFO",
            "formatter": "rich",
            "show_time": True,
            "show_level": True,
            "show_path": False,
            "markup": False,
        }
    },
    "loggers": {
        # Address resolution pipeline
        "address_normalizer": {"level": "DEBUG"},
        "coordinate_cache": {"level": "DEBUG"},
        "rule_based_resolver": {"level": "DEBUG"},
        "batch_ai_resolver": {"level": "DEBUG"},
        "resolution_orchestrator": {"level": "DEBUG"},
        # Record source and presentation helpers
        "record_source": {"level": "DEBUG"},
        "client_insights": {"level": "DEBUG"},
        "client_map_app": {"level": "DEBUG"},
        # Shared utilities
        "common_llm_utils": {"level": "DEBUG"},
        "common_metrics": {"level": "INFO"},
        # External libraries
        "ollama": {"level": "INFO"},
        "httpx": {"level": "WARNING"},
    },
    "root": {"level": "INFO", "handlers": ["console"]},
}

# Track if logging has been configured to avoid duplicate configuration
_logging_configured = False


def get_logger(logger_name: str) -> logging.Logger:
    """
    Get a logger instance with the centralized configuration.

    Args:
        logger_name: Name of the logger (e.g., 'resolution_orchestrator')

    Returns:
        Configured logger instance
    """
    global _logging_configured
    if not _logging_configured:
        logging.config.dictConfig(LOGGING_CONFIG)
        _logging_configured = True
    return logging.getLogger(logger_name)
