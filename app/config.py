from functools import lru_cache
from pydantic import BaseModel, ConfigDict
from dotenv import load_dotenv
import os

from .errors import ConfigurationError

load_dotenv()


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    esewa_secret_key: str
    esewa_product_code: str = "EPAYTEST"
    frontend_url: str = "http://localhost:3000"
    esewa_gateway_url: str = "https://rc-epay.esewa.com.np"
    esewa_status_timeout: float = 10

    secret_key: str
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60

    log_level: str = "INFO"

    @property
    def success_url(self) -> str:
        return f"{self.frontend_url.rstrip('/')}/payment/esewa/success"

    @property
    def failure_url(self) -> str:
        return f"{self.frontend_url.rstrip('/')}/payment/esewa/failure"

    @property
    def status_url(self) -> str:
        return f"{self.esewa_gateway_url.rstrip('/')}/api/epay/transaction/status/"


def load_settings(environ=None) -> Settings:
    env = os.environ if environ is None else environ

    # no fallback for either signing secret
    values = {}
    for env_name, field in (("ESEWA_SECRET_KEY", "esewa_secret_key"), ("SECRET_KEY", "secret_key")):
        secret = (env.get(env_name) or "").strip()
        if not secret:
            raise ConfigurationError(f"{env_name} is not set")
        values[field] = secret

    product_code = env.get("ESEWA_PRODUCT_CODE") or env.get("ESEWA_MERCHANT_ID")
    if product_code:
        values["esewa_product_code"] = product_code.strip()

    optional = {
        "FRONTEND_URL": "frontend_url",
        "ESEWA_GATEWAY_URL": "esewa_gateway_url",
        "ESEWA_STATUS_TIMEOUT": "esewa_status_timeout",
        "ALGORITHM": "algorithm",
        "ACCESS_TOKEN_EXPIRE_MINUTES": "access_token_expire_minutes",
        "LOG_LEVEL": "log_level",
    }
    for env_name, field in optional.items():
        if env.get(env_name):
            values[field] = env[env_name]

    try:
        return Settings(**values)
    except ValueError as e:            # pydantic.ValidationError is a ValueError
        raise ConfigurationError(str(e)) from e


@lru_cache
def get_settings() -> Settings:
    return load_settings()
