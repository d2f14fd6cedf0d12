from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Worker settings loaded from environment."""

    # Service
    service_name: str = "autopost-worker"
    log_level: str = "INFO"

    # Database
    db_host: str = "localhost"
    db_port: int = 5432
    db_name: str = "autopost"
    db_user: str = "autopost"
    db_password: str = ""

    # AWS
    kinesis_stream_name: str = "publish-events"
    aws_region: str = "us-east-1"
    aws_endpoint_url: str | None = None  # For LocalStack

    # Publishing policy
    dry_run: bool = False  # Default when an organization has no autopost settings
    http_timeout_seconds: float = 30.0
    simulate_post_metrics: bool = False

    # Retry policy applied by the job processor
    publish_max_attempts: int = 5
    retry_base_delay_seconds: float = 2.0
    retry_max_delay_seconds: float = 60.0

    # Provider endpoints
    meta_graph_api_url: str = "https://graph.facebook.com/v18.0"
    linkedin_api_url: str = "https://api.linkedin.com/v2"
    youtube_api_url: str = "https://www.googleapis.com/youtube/v3"
    google_business_api_url: str = "https://mybusiness.googleapis.com/v4"

    # Static tokens for requests without an organization
    # (Facebook + Instagram share the Meta user token)
    meta_access_token: str = ""
    linkedin_access_token: str = ""
    google_access_token: str = ""

    # Per-organization tokens (tokens table, written by the API service)
    token_encryption_key: str = "dev-secret"
    token_refresh_window_seconds: int = 900
    linkedin_client_id: str = ""
    linkedin_client_secret: str = ""
    google_client_id: str = ""
    google_client_secret: str = ""

    # Prometheus metrics endpoint; 0 disables it
    metrics_port: int = 9102

    # Google Business Profile
    gbp_account_id: str = ""
    gbp_location_id: str = ""
    gbp_fallback_url: str = "https://example.com"

    @property
    def database_url(self) -> str:
        return f"postgresql+asyncpg://{self.db_user}:{self.db_password}@{self.db_host}:{self.db_port}/{self.db_name}"

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
