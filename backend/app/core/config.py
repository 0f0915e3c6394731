from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # App
    app_name: str = "Work Order Intake"
    debug: bool = False
    api_prefix: str = "/api/v1"

    # Company resolution
    intake_catch_all_company_id: str = "SONOTA"
    intake_detection_confidence_threshold: float = 0.85  # trust OCR detector at or above this
    intake_text_sample_max_chars: int = 4000  # ~first 2 pages of header text
    intake_detection_rules_path: str = ""  # JSON rules file; empty = built-in rules

    # CORS
    cors_origins: list[str] = ["http://localhost:5173"]

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
