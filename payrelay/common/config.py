"""Environment-driven settings for the payment relay.

Settings are loaded once at startup and handed to `create_app`; nothing reads
the environment after that. See `.env.example` for the variable names.
"""

from enum import Enum

from pydantic_settings import BaseSettings, SettingsConfigDict


class RedirectScheme(str, Enum):
    """How the vendor hands the transaction id back to `/status`."""

    # `/status?id=<transaction id>`, no server-to-server callback.
    QUERY = "query"
    # Fixed `/status` path for both redirect and callback; id arrives in the body.
    CALLBACK = "callback"


class RelaySettings(BaseSettings):
    """Typed view of runtime configuration from environment variables."""

    service_name: str = "payment-relay"
    log_level: str = "INFO"
    environment: str = "development"
    frontend_url: str = "http://localhost:5173"
    phonepe_merchant_id: str
    phonepe_salt_key: str
    phonepe_key_index: int = 1
    phonepe_production_url: str = "https://api.phonepe.com/apis/hermes"
    phonepe_sandbox_url: str = "https://api-preprod.phonepe.com/apis/pg-sandbox"
    phonepe_redirect_mode: str = "POST"
    base_url: str = "http://localhost:8000"
    frontend_success_url: str = "http://localhost:5173/success"
    frontend_failure_url: str = "http://localhost:5173/failure"
    redirect_scheme: RedirectScheme = RedirectScheme.CALLBACK
    expose_error_details: bool | None = None
    gateway_timeout_seconds: float = 10.0
    host: str = "0.0.0.0"
    port: int = 8000
    otel_exporter_otlp_endpoint: str | None = None
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def gateway_base_url(self) -> str:
        """Vendor API root for the current environment."""

        return self.phonepe_production_url if self.is_production else self.phonepe_sandbox_url

    @property
    def show_error_details(self) -> bool:
        """Whether vendor error bodies may be returned to API clients."""

        if self.expose_error_details is None:
            return not self.is_production
        return self.expose_error_details
