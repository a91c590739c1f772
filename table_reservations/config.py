"""
Application settings (Pydantic Settings) and logging setup.
"""
import logging
from typing import Literal, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # DynamoDB table names, same env names as the deployment template
    tables_table: str = "Tables000"
    reservations_table: str = "Reservations000"
    reservation_locks_table: str = "ReservationLocks000"

    # Cognito: pool looked up by name unless the ids are given
    booking_userpool: str = "simple-booking-userpool000"
    user_pool_id: Optional[str] = None
    user_pool_client_id: Optional[str] = None

    aws_region: Optional[str] = None
    store_backend: Literal["dynamodb", "yaml"] = "dynamodb"
    data_dir: str = "data"
    log_level: str = "INFO"
    reservation_write_attempts: int = 3

    @field_validator("log_level", mode="after")
    @classmethod
    def upper_log_level(cls, v: str) -> str:
        return (v or "INFO").strip().upper()

    @field_validator("reservation_write_attempts", mode="after")
    @classmethod
    def at_least_one_attempt(cls, v: int) -> int:
        if v < 1:
            raise ValueError("reservation_write_attempts must be at least 1")
        return v


def configure_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    # Lambda installs its own handler; only add one when running elsewhere.
    if not root.handlers:
        logging.basicConfig(format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    root.setLevel(level)
