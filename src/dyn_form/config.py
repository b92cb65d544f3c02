"""
Configuration module for the dyn-form engine.

Handles environment variables and default settings.
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


@dataclass
class FormEngineConfig:
    """Configuration settings for dyn-form."""

    # Value bag settings
    branch_history_key: str = "branchHistory"
    identity_key: str = "Id"

    # Table widget settings
    rows_per_page: int = 5
    rows_per_page_options: tuple[int, ...] = (5, 10, 25, 50)
    table_starts_with_blank_row: bool = False

    # Field settings
    default_validation_message: str = "Invalid input"

    # Session API server settings
    server_host: str = "0.0.0.0"
    server_port: int = 9110

    # Persistence collaborator settings
    persistence_url: str = "http://localhost:9120"
    persistence_timeout: float = 30.0

    # Output settings
    log_level: str = "INFO"
    verbose_output: bool = False

    @classmethod
    def from_env(cls) -> "FormEngineConfig":
        """
        Create configuration from environment variables.

        If an environment variable is not set, uses the class field default value.
        """
        _defaults = cls()

        return cls(
            branch_history_key=os.getenv("DYN_FORM_BRANCH_HISTORY_KEY", _defaults.branch_history_key),
            identity_key=os.getenv("DYN_FORM_IDENTITY_KEY", _defaults.identity_key),
            rows_per_page=int(os.getenv("DYN_FORM_ROWS_PER_PAGE", str(_defaults.rows_per_page))),
            table_starts_with_blank_row=os.getenv("DYN_FORM_TABLE_BLANK_ROW", str(_defaults.table_starts_with_blank_row).lower()).lower() == "true",
            server_host=os.getenv("DYN_FORM_SERVER_HOST", _defaults.server_host),
            server_port=int(os.getenv("DYN_FORM_SERVER_PORT", str(_defaults.server_port))),
            persistence_url=os.getenv("DYN_FORM_PERSISTENCE_URL", _defaults.persistence_url),
            persistence_timeout=float(os.getenv("DYN_FORM_PERSISTENCE_TIMEOUT", str(_defaults.persistence_timeout))),
            log_level=os.getenv("DYN_FORM_LOG_LEVEL", _defaults.log_level).upper(),
            verbose_output=os.getenv("DYN_FORM_VERBOSE_OUTPUT", str(_defaults.verbose_output).lower()).lower() == "true",
        )


config = FormEngineConfig.from_env()


def get_config() -> FormEngineConfig:
    """Get the current configuration."""
    return config


def update_config(**kwargs) -> FormEngineConfig:
    """Update configuration settings."""
    global config
    for key, value in kwargs.items():
        if hasattr(config, key):
            setattr(config, key, value)
    return config
