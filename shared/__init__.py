"""
Shared module for configuration and error types used by the OSC gateway.

STRUCTURE:
- shared.config: Configuration
  - settings.py: Environment config (pydantic-settings)
  - logging.py: Structured logging

- shared.utils: Utilities
  - exceptions.py: Relay exception hierarchy

IMPORT EXAMPLES:
    from shared.config.settings import Settings, get_settings
    from shared.config.logging import get_logger, setup_logging
    from shared.utils.exceptions import RelayStartupError
"""
