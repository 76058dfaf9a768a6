from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings
from pathlib import Path
from typing import List
import yaml


class Settings(BaseSettings):
    # The React apps read these as REACT_APP_*; both spellings are accepted
    API_BASE_URL: str = Field(
        "http://localhost:5000",
        validation_alias=AliasChoices("API_BASE_URL", "REACT_APP_API_BASE_URL"),
    )
    SOCKET_URL: str = Field(
        "http://localhost:5000",
        validation_alias=AliasChoices("SOCKET_URL", "REACT_APP_SOCKET_URL"),
    )
    WEBSOCKET_URL: str = Field(
        "ws://localhost:5000",
        validation_alias=AliasChoices("WEBSOCKET_URL", "REACT_APP_WEBSOCKET_URL"),
    )
    REDIS_URL: str = "redis://localhost:6379/0"
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
    ]

    SESSION_TTL_SEC: int = 86400
    ADMIN_EMAIL: str = "admin@ridelink.dev"
    ADMIN_PASSWORD: str = "Admin@1234"
    ADMIN_NAME: str = "Platform Admin"

    LOCATION_TTL_SEC: int = 300
    LOCATION_SWEEP_INTERVAL_SEC: int = 60

    REQUEST_TIMEOUT_SEC: float = 30.0
    SOCKET_RECONNECT_ATTEMPTS: int = 5
    SOCKET_RECONNECT_DELAY_SEC: float = 1.0
    USE_MOCK_FALLBACK: bool = True
    STORAGE_PATH: str = str(Path.home() / ".ridelink" / "storage.json")

    BASE_FARE: float = 2.0
    MIN_FARE: float = 5.0
    COMMISSION_RATE: float = 0.15
    CURRENCY: str = "USD"

    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "ridelink.log"

    # Load .env located next to this file (ridelink/.env) so defaults are overridden
    model_config = {"env_file": str(Path(__file__).resolve().parent / ".env"), "extra": "ignore"}

    @classmethod
    def settings_customise_sources(cls, settings_cls, init_settings, env_settings, dotenv_settings, file_secret_settings):
        # env beats the yaml values passed in by load_settings()
        return env_settings, dotenv_settings, init_settings, file_secret_settings


def load_settings() -> Settings:
    """Load settings from application.yaml and merge with environment variables."""
    config_path = Path(__file__).resolve().parent / "application.yaml"

    config_dict = {}

    if config_path.exists():
        with open(config_path, "r") as f:
            yaml_config = yaml.safe_load(f)
            if yaml_config:
                if "api" in yaml_config:
                    api = yaml_config["api"]
                    config_dict["API_BASE_URL"] = api.get("base_url")
                    config_dict["SOCKET_URL"] = api.get("socket_url")
                    config_dict["WEBSOCKET_URL"] = api.get("websocket_url")
                    config_dict["REQUEST_TIMEOUT_SEC"] = api.get("timeout_sec")
                    config_dict["CORS_ORIGINS"] = api.get("cors_origins")

                if "redis" in yaml_config:
                    config_dict["REDIS_URL"] = yaml_config["redis"].get("url")

                if "auth" in yaml_config:
                    auth = yaml_config["auth"]
                    config_dict["SESSION_TTL_SEC"] = auth.get("session_ttl_sec")
                    config_dict["ADMIN_EMAIL"] = auth.get("admin_email")
                    config_dict["ADMIN_NAME"] = auth.get("admin_name")

                if "tracking" in yaml_config:
                    tracking = yaml_config["tracking"]
                    config_dict["LOCATION_TTL_SEC"] = tracking.get("location_ttl_sec")
                    config_dict["LOCATION_SWEEP_INTERVAL_SEC"] = tracking.get("sweep_interval_sec")

                if "socket" in yaml_config:
                    socket = yaml_config["socket"]
                    config_dict["SOCKET_RECONNECT_ATTEMPTS"] = socket.get("reconnect_attempts")
                    config_dict["SOCKET_RECONNECT_DELAY_SEC"] = socket.get("reconnect_delay_sec")

                if "client" in yaml_config:
                    client = yaml_config["client"]
                    config_dict["USE_MOCK_FALLBACK"] = client.get("use_mock_fallback")
                    config_dict["STORAGE_PATH"] = client.get("storage_path")

                if "logging" in yaml_config:
                    config_dict["LOG_LEVEL"] = yaml_config["logging"].get("level")
                    config_dict["LOG_FILE"] = yaml_config["logging"].get("file")

                if "pricing" in yaml_config:
                    pricing = yaml_config["pricing"]
                    config_dict["BASE_FARE"] = pricing.get("base_fare")
                    config_dict["MIN_FARE"] = pricing.get("min_fare")
                    config_dict["COMMISSION_RATE"] = pricing.get("commission_rate")
                    config_dict["CURRENCY"] = pricing.get("currency")

    # Create Settings with YAML values, but allow env vars to override
    return Settings(**{k: v for k, v in config_dict.items() if v is not None})


settings = load_settings()
