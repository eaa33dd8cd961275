import logging
import os

from pydantic import BaseModel


class Settings(BaseModel):
    app_name: str = "Produce Market Quotation"
    data_dir: str = os.getenv("DATA_DIR", "./data")
    provider_name: str = os.getenv("PROVIDER_NAME", "moa")
    upstream_url: str = os.getenv(
        "UPSTREAM_URL", "https://data.moa.gov.tw/Service/OpenData/FromM/FarmTransData.aspx"
    )
    market_name: str = os.getenv("MARKET_NAME", "台北一")
    upstream_date_style: str = os.getenv("UPSTREAM_DATE_STYLE", "roc")
    upstream_timeout_seconds: float = float(os.getenv("UPSTREAM_TIMEOUT_SECONDS", "30"))
    market_timezone: str = os.getenv("MARKET_TIMEZONE", "Asia/Taipei")
    closed_weekday: int = int(os.getenv("CLOSED_WEEKDAY", "0"))
    zero_sample_size: int = int(os.getenv("ZERO_SAMPLE_SIZE", "5"))
    zero_threshold: str = os.getenv("ZERO_THRESHOLD", "0")
    refresh_enabled: bool = os.getenv("REFRESH_ENABLED", "true").lower() in ("1", "true", "yes")
    refresh_interval_hours: int = int(os.getenv("REFRESH_INTERVAL_HOURS", "6"))
    log_level: str = os.getenv("LOG_LEVEL", "INFO")


settings = Settings()


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
