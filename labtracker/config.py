from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_env: str = "dev"
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    allowed_origins: str = "http://localhost:3001"
    log_level: str = "INFO"

    default_unit_system: str = "eu"
    narrative_language: str = "en"
    marker_fuzzy_threshold: int = 90

    protocol_window_days: int = 45
    protocol_window_min_days: int = 21
    protocol_window_max_days: int = 90

    # Product policy: the default scenario evaluates a lower weekly dose.
    suggested_dose_offset_mg: float = -20.0
    suggested_dose_floor_mg: float = 40.0
    suggested_dose_margin_mg: float = 20.0
    scenario_margin_below_mg: float = 20.0
    scenario_margin_above_mg: float = 30.0

    predictive_horizon_days: int = 730


settings = Settings()
