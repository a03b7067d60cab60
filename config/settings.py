from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # Odin.fun market-data API
    odin_api_url: str = "https://api.odin.fun/v1"
    odin_max_rps: float = 5.0
    odin_timeout_sec: float = 10.0
    odin_max_retries: int = 3
    odin_retry_base_delay_sec: float = 1.0  # linear: 1s, 2s, ...

    # Cache store
    redis_url: str = "redis://localhost:6379/0"
    cache_backend: str = "redis"  # redis | memory | file
    cache_file_path: str = "data/cache.json"
    cache_stale_retention_sec: int = 86400  # expired entries kept for stale fallback

    # TTL classes (seconds)
    cache_ttl_default_sec: int = 20 * 60
    cache_ttl_recent_sec: int = 30  # /api/tokens?sort=created_time, /api/recent-tokens
    cache_ttl_newest_sec: int = 20
    cache_ttl_older_sec: int = 120
    cache_ttl_trades_sec: int = 30
    cache_ttl_holders_sec: int = 60
    cache_ttl_btc_price_sec: int = 60

    # Recent tokens sync
    sync_enabled: bool = True
    sync_newest_interval_sec: float = 10.0
    sync_older_interval_sec: float = 45.0
    sync_older_limit: int = 20
    sync_highlight_sec: float = 3.0
    sync_max_concurrent_aggregations: int = 5
    creator_cache_max_size: int = 500
    creator_tokens_limit: int = 50

    # Token activity
    activity_min_price_sats: float = 0.15
    activity_max_idle_days: int = 8

    # Confidence score weights (must sum to 1.0)
    score_weight_success: float = 0.70
    score_weight_volume: float = 0.20
    score_weight_holders: float = 0.08
    score_weight_trades: float = 0.02

    # BTC reference price
    btc_price_url: str = "https://api.coingecko.com/api/v3/simple/price"
    btc_usd_fallback: float = 60000.0

    # API server
    api_host: str = "0.0.0.0"
    api_port: int = 4000
    api_debug: bool = False
    cors_origins: str = "http://localhost:5173"  # comma-separated
    invalidate_rate_limit: str = "10/minute"

    # Logging
    log_level: str = "INFO"
    log_json: bool = False
    log_dir: str = "logs"
    log_rotation: str = "50 MB"
    log_retention: str = "3 days"


settings = Settings()
