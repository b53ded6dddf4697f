"""FitFlex OTP service — configuration loaded from environment."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application-wide settings, loaded from .env or environment variables."""

    # ── OTP lifecycle ─────────────────────────────────────
    otp_ttl_ms: int = 5 * 60 * 1000
    otp_sweep_interval_seconds: int = 0  # 0 disables the background sweep

    # ── Twilio SMS (optional) ─────────────────────────────
    use_twilio: bool = False
    twilio_account_sid: str = ""
    twilio_auth_token: str = ""
    twilio_phone_number: str = ""
    twilio_api_base_url: str = "https://api.twilio.com"

    # ── App ───────────────────────────────────────────────
    app_name: str = "FitFlex"
    debug: bool = True
    host: str = "0.0.0.0"
    port: int = 3000

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @property
    def otp_ttl_seconds(self) -> float:
        return self.otp_ttl_ms / 1000


# Singleton settings instance
settings = Settings()
