import os
from dataclasses import dataclass

from errors import ConfigurationError

DATA_SOURCES = ("remote", "memory")


@dataclass(frozen=True)
class Settings:
    api_url: str = "http://localhost:5000/api"
    data_source: str = "remote"
    session_file: str = ".storefront-session.json"
    timeout: float = 10.0
    mock_latency: float = 0.0
    log_level: str = "INFO"

    @property
    def is_remote(self) -> bool:
        return self.data_source == "remote"


def load_settings() -> Settings:
    data_source = os.getenv("STOREFRONT_DATA_SOURCE", "remote").lower()
    if data_source not in DATA_SOURCES:
        raise ConfigurationError(
            f"STOREFRONT_DATA_SOURCE must be one of {', '.join(DATA_SOURCES)}, got {data_source!r}"
        )
    try:
        timeout = float(os.getenv("STOREFRONT_TIMEOUT", "10"))
        mock_latency = float(os.getenv("STOREFRONT_MOCK_LATENCY", "0"))
    except ValueError as e:
        raise ConfigurationError(f"Invalid numeric setting: {e}") from e
    return Settings(
        api_url=os.getenv("STOREFRONT_API_URL", "http://localhost:5000/api"),
        data_source=data_source,
        session_file=os.getenv("STOREFRONT_SESSION_FILE", ".storefront-session.json"),
        timeout=timeout,
        mock_latency=mock_latency,
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
