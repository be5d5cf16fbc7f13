from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    supabase_url: str
    supabase_service_role_key: str
    user_settings_table: str = "user_settings"

    token_encryption_key: str | None = None

    slack_signing_secret: str | None = None
    # Raw secret-manager payload, e.g. {"signing-secret": "..."}.
    slack_secrets_json: str | None = None
    slack_bot_token: str | None = None
    slack_client_id: str | None = None
    slack_client_secret: str | None = None
    slack_redirect_uri: str | None = None
    slack_state_secret: str | None = None
    slack_install_url: str = ""
    slack_api_base_url: str = "https://slack.com/api"

    graph_api_base_url: str = "https://graph.microsoft.com/v1.0"
    calendar_lookahead_sec: int = 90

    class Config:
        env_file = ".env"
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    return Settings()
