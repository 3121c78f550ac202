from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Synthetic generator
    default_bar_count: int = 80
    start_price: float = 100.0
    drift: float = 0.001
    volatility: float = 0.02
    substeps: int = 4
    default_seed: int = 1
    price_decimals: int = 2

    # Timeframes
    base_timeframe: str = "M1"

    # Editing
    history_limit: int = 100  # snapshots kept per undo/redo stack

    # Viewport
    min_view_count: int = 5
    default_view_count: int = 80
    zoom_step: float = 0.1
    zoom_factor_min: float = 0.5
    zoom_factor_max: float = 2.0

    # Indicators
    max_period: int = 999

    # Logging
    log_level: str = "INFO"

    model_config = {"env_prefix": "CANDLELAB_", "env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
