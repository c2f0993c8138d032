from urllib.parse import quote

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)

    broker_host: str = Field(..., validation_alias="BROKER_HOST")
    broker_port: int = Field(5672, validation_alias="BROKER_PORT")
    broker_user: str = Field(..., validation_alias="BROKER_USER")
    broker_password: str = Field(..., validation_alias="BROKER_PASSWORD")
    broker_vhost: str = Field("/", validation_alias="BROKER_VHOST")

    queue_name: str = Field(..., min_length=1, validation_alias="QUEUE_NAME")
    queue_durable: bool = Field(True, validation_alias="QUEUE_DURABLE")
    # 0 leaves the queue unbounded; otherwise declared as x-max-length.
    queue_max_length: int = Field(0, ge=0, validation_alias="QUEUE_MAX_LENGTH")
    prefetch_count: int = Field(1, ge=1, validation_alias="PREFETCH_COUNT")

    consumer_backend: str = Field("rabbitmq", validation_alias="CONSUMER_BACKEND")
    requeue_on_failure: bool = Field(False, validation_alias="REQUEUE_ON_FAILURE")
    shutdown_timeout_seconds: float = Field(10.0, validation_alias="SHUTDOWN_TIMEOUT_SECONDS")

    initial_backoff_seconds: float = Field(1.0, validation_alias="INITIAL_BACKOFF_SECONDS")
    max_backoff_seconds: float = Field(30.0, validation_alias="MAX_BACKOFF_SECONDS")
    max_connection_attempts: int = Field(10, ge=1, validation_alias="MAX_CONNECTION_ATTEMPTS")
    backoff_multiplier: float = Field(2.0, validation_alias="BACKOFF_MULTIPLIER")
    # Fixed delay between robust reconnect attempts once the first connect succeeded.
    reconnect_interval_seconds: float = Field(5.0, gt=0, validation_alias="RECONNECT_INTERVAL_SECONDS")

    log_level: str = Field("INFO", validation_alias="LOG_LEVEL")
    log_serialize: bool = Field(False, validation_alias="LOG_SERIALIZE")

    @property
    def amqp_url(self) -> str:
        vhost = quote(self.broker_vhost, safe="")
        return (
            f"amqp://{quote(self.broker_user, safe='')}:{quote(self.broker_password, safe='')}"
            f"@{self.broker_host}:{self.broker_port}/{vhost}"
        )
