from __future__ import annotations

from typing import Dict, List

from pydantic import BaseModel, Field, AliasChoices
from pydantic_settings import BaseSettings, SettingsConfigDict


class CacheSettings(BaseModel):
    ttl_seconds: float = 300.0
    max_size: int = 1000


class QueueSettings(BaseModel):
    max_concurrency: int = 5
    request_delay_seconds: float = 0.15
    poll_interval_seconds: float = 0.05


class BatchSettings(BaseModel):
    max_symbols: int = 50


class FundamentalsSettings(BaseModel):
    max_symbols: int = 10
    # Alpha Vantage free tier: 5 calls per minute.
    request_delay_seconds: float = 12.0


class SymbolSettings(BaseModel):
    default_suffix: str = ".NS"
    known_suffixes: List[str] = Field(default_factory=lambda: [".NS", ".BO"])
    aliases: Dict[str, str] = Field(
        default_factory=lambda: {
            "RELIANCE": "RELIANCE.NS",
            "TCS": "TCS.NS",
            "HDFCBANK": "HDFCBANK.NS",
            "INFY": "INFY.NS",
            "ICICIBANK": "ICICIBANK.NS",
            "ASIANPAINT": "ASIANPAINT.NS",
            "BHARTIARTL": "BHARTIARTL.NS",
            "WIPRO": "WIPRO.NS",
            "LTIM": "LTIM.NS",
            "AFFLE": "AFFLE.NS",
            "SBIN": "SBIN.NS",
            "ITC": "ITC.NS",
            "HCLTECH": "HCLTECH.NS",
            "AXISBANK": "AXISBANK.NS",
            "KOTAKBANK": "KOTAKBANK.NS",
            "MARUTI": "MARUTI.NS",
            "TITAN": "TITAN.NS",
            "NESTLEIND": "NESTLEIND.NS",
            "HINDUNILVR": "HINDUNILVR.NS",
            "BAJFINANCE": "BAJFINANCE.NS",
        }
    )


class ProviderSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="PORTFOLIODESK_",
        env_file=("../.env", ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )
    yahoo_summary_base_url: str = "https://query2.finance.yahoo.com"
    yahoo_quote_base_url: str = "https://query1.finance.yahoo.com"
    yahoo_cookie_url: str = "https://fc.yahoo.com"
    yahoo_use_crumb: bool = True
    user_agent: str = (
        "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
    )
    timeout_seconds: float = 8.0
    alpha_vantage_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "ALPHA_VANTAGE_API_KEY", "PORTFOLIODESK_ALPHA_VANTAGE_API_KEY"
        ),
    )
    alpha_vantage_base_url: str = "https://www.alphavantage.co/query"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="PORTFOLIODESK_",
        env_file=("../.env", ".env"),
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    log_level: str = Field(
        default="INFO",
        validation_alias=AliasChoices("LOG_LEVEL", "PORTFOLIODESK_LOG_LEVEL"),
    )

    cache: CacheSettings = Field(default_factory=CacheSettings)
    queue: QueueSettings = Field(default_factory=QueueSettings)
    batch: BatchSettings = Field(default_factory=BatchSettings)
    fundamentals: FundamentalsSettings = Field(default_factory=FundamentalsSettings)
    symbols: SymbolSettings = Field(default_factory=SymbolSettings)
    providers: ProviderSettings = Field(default_factory=ProviderSettings)


settings = Settings()
