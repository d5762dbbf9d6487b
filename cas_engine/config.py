"""
Engine configuration using Pydantic settings.

Defaults match the extraction settings that work on depository and
registrar statements. Values can be overridden through CAS_ENGINE_*
environment variables (or a .env file), which is how the upload service
tunes the engine without code changes.
"""

import logging
from typing import Mapping, Optional

from pydantic import ValidationError, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

PARSER_VERSION = "2.0.0"

ENV_PREFIX = "CAS_ENGINE_"


class EngineConfig(BaseSettings):
    """
    Settings for a CASParser.

    Attributes:
        parser_version: Version string stamped into every statement's metadata
        x_tolerance: Horizontal tolerance for simple text extraction
        y_tolerance: Vertical tolerance for simple text extraction
        layout_x_tolerance: Horizontal tolerance for layout-aware extraction
        layout_y_tolerance: Vertical tolerance for layout-aware extraction
        layout_fallback_min_chars: Pages with less simple-mode text than this
            are re-extracted in layout mode

    Numeric settings that are malformed or negative fall back to their
    default with a logged warning instead of failing the service.
    """

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    parser_version: str = PARSER_VERSION
    x_tolerance: float = 2
    y_tolerance: float = 2
    layout_x_tolerance: float = 3
    layout_y_tolerance: float = 3
    layout_fallback_min_chars: int = 100

    @field_validator(
        "x_tolerance",
        "y_tolerance",
        "layout_x_tolerance",
        "layout_y_tolerance",
        "layout_fallback_min_chars",
        mode="wrap",
    )
    @classmethod
    def non_negative_or_default(cls, value, handler, info: ValidationInfo):
        default = cls.model_fields[info.field_name].default
        name = f"{ENV_PREFIX}{info.field_name.upper()}"
        try:
            number = handler(value)
        except ValidationError:
            logger.warning(f"Ignoring invalid {name}={value!r}, using {default}")
            return default
        if number < 0:
            logger.warning(f"Ignoring negative {name}={value!r}, using {default}")
            return default
        return number

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "EngineConfig":
        """
        Build a config from environment variables.

        Args:
            environ: Mapping to read CAS_ENGINE_* values from instead of the
                process environment and .env file.

        Returns:
            EngineConfig with any valid overrides applied.
        """
        if environ is None:
            return cls()
        values = {
            key[len(ENV_PREFIX):].lower(): value
            for key, value in environ.items()
            if key.upper().startswith(ENV_PREFIX)
        }
        return cls.model_validate(values)
