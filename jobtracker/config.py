from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Required from environment (.env / deployment secrets)
    database_url: str
    secret_key: str
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24 * 7  # 7 days
    app_env: str = "development"  # development, staging, production

    # Bedrock LLM for resume generation, cover letters, job fit and interview prep
    ai_enabled: bool = True
    bedrock_llm_model_id: str = "mistral.ministral-3-8b-instruct"
    aws_region: str = "us-west-2"
    ai_request_timeout_seconds: int = 60

    # SMTP delivery for notifications
    email_enabled: bool = False
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    smtp_use_tls: bool = True
    email_from: str = "noreply@jobtracker.local"
    email_from_name: str = "Job Tracker"
    frontend_url: str = "http://localhost:4200"

    # OAuth identity providers
    google_client_id: str = ""
    google_client_secret: str = ""
    linkedin_client_id: str = ""
    linkedin_client_secret: str = ""
    oauth_redirect_uri: str = "http://localhost:8000/auth/oauth/{provider}/callback"

    # CORS origins as comma-separated values
    # Example: "https://app.example.com,https://admin.example.com"
    cors_allow_origins: str = "http://localhost:4200"

    # For production, keep this false so temp passwords are never returned in API responses.
    expose_temp_password_in_response: bool = False

    log_level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR

    # Tracker policy
    analytics_stale_hours: int = 24
    follow_up_offsets_days: str = "7,14"
    default_follow_up_days: int = 7
    default_snooze_minutes: int = 60
    top_companies_limit: int = 10
    default_page_size: int = 10
    max_page_size: int = 100

    # Request guards
    rate_limit_auth_per_min: int = 20
    rate_limit_ai_per_min: int = 10
    rate_limit_pdf_render_per_min: int = 30

    @property
    def follow_up_offsets(self) -> list[int]:
        return [int(d) for d in self.follow_up_offsets_days.split(",") if d.strip()]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
