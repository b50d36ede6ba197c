"""Runtime settings."""

from __future__ import annotations

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="RELAY_",
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    app_name: str = "LearnMate Relay"
    env: str = "dev"
    log_level: str = "info"
    # empty disables the rotating file handler
    log_file_path: str = "logs/chatrelay.log"
    # DEBUG only: print upstream payloads/responses untruncated
    log_full_payloads: bool = False
    host: str = "0.0.0.0"
    port: int = Field(default=3000, validation_alias=AliasChoices("RELAY_PORT", "PORT"))

    ibm_api_key: str = Field(default="", validation_alias=AliasChoices("RELAY_IBM_API_KEY", "IBM_API_KEY"))
    project_id: str = Field(default="", validation_alias=AliasChoices("RELAY_PROJECT_ID", "PROJECT_ID"))

    iam_url: str = "https://iam.cloud.ibm.com/identity/token"
    iam_grant_type: str = "urn:ibm:params:oauth:grant-type:apikey"
    iam_timeout_seconds: float = 15.0

    profile: str = "granite-3-8b"
    model_id: str = ""  # overrides the profile's model when set
    inference_url: str = ""  # overrides the profile's endpoint when set
    deployment_url: str = ""  # endpoint of the deployment-chat profile; empty keeps the built-in one
    upstream_timeout_seconds: float = 0.0  # <=0 keeps the profile's own bound
    upstream_max_connections: int = 100
    upstream_max_keepalive_connections: int = 20

    token_cache_enabled: bool = False
    token_refresh_margin_seconds: int = 60

    enable_alternate_routes: bool = True
    enable_test_connection: bool = True
    enable_static_frontend: bool = True
    static_dir: str = ""  # empty serves the bundled chatrelay/public page
    cors_allow_origins: str = "*"
    serverless_profile: str = "deployment-chat"


settings = Settings()
