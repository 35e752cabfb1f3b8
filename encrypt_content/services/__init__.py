"""
Services for encrypt_content.
"""

from encrypt_content.services.validation import ConfigurationValidator

__all__ = [
    "ConfigurationValidator",
]
