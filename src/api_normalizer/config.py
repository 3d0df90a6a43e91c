"""Runtime settings for the normalizers.

Defaults are safe for interactive use; every field can be overridden from
the environment with an ``API_NORMALIZER_`` prefixed variable, e.g.
``API_NORMALIZER_MAX_SCHEMA_DEPTH=16``.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

PLACEHOLDER_BASE_URL = "https://api.example.com"


class NormalizerSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="API_NORMALIZER_", extra="ignore", frozen=True)

    placeholder_base_url: str = PLACEHOLDER_BASE_URL
    # Schemas nested deeper than this degrade to a terminal "value" field.
    max_schema_depth: int = Field(default=32, ge=1)
    # Free text beyond this many characters is ignored by the text normalizer.
    max_text_chars: int = Field(default=500_000, ge=1)
    context_radius: int = Field(default=500, ge=0)
    description_chars: int = Field(default=200, ge=0)
