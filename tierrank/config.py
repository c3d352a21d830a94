from pydantic_settings import BaseSettings, SettingsConfigDict

# =============================================================================
# PAIR SELECTION DEFAULTS
# =============================================================================

# Two items are candidates for an ad-hoc comparison when they sit within
# this many positions of each other in their peer group's rank order
DEFAULT_PAIR_WINDOW = 2

# A pair is settled once both items have taken part in this many comparisons
DEFAULT_SETTLED_THRESHOLD = 8


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(env_file=".env")

    app_name: str = "TierRank"
    debug: bool = False

    database_url: str = "postgresql+asyncpg://localhost:5432/tierrank"

    pair_window: int = DEFAULT_PAIR_WINDOW
    settled_threshold: int = DEFAULT_SETTLED_THRESHOLD


settings = Settings()
