from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    mongo_uri: str = "mongodb://localhost:27017"
    mongo_db: str = "mypet"
    use_mongo: bool = False

    # scan job
    scan_enabled: bool = True
    scan_interval_seconds: float = 3600
    scan_run_at_start: bool = False
    scan_budget_seconds: Optional[float] = 300

    # match policy
    breed_exact_weight: int = 4
    breed_partial_weight: int = 2
    fur_color_weight: int = 3
    eye_color_weight: int = 2
    age_weight: int = 2
    location_weight: int = 6
    age_tolerance_years: float = 1.0
    score_radius_km: float = 3.0
    max_search_radius_km: float = 10.0
    match_threshold: int = 7
    query_min_score: int = 8

    # push notifications (FCM HTTP v1)
    fcm_project_id: str = ""
    fcm_access_token: str = ""
    fcm_endpoint: str = "https://fcm.googleapis.com"
    notify_max_attempts: int = 3
    notify_timeout_seconds: float = 10.0

    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = Settings()
