"""Application configuration."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from relay_core.models import AssetType, DestinationType
from relay_core.strategy import RiskLevelConfig, StrategyParams
from relay_core.tradingview import TradingViewDefaults


def parse_csv(value: str | None) -> list[str]:
    """Split a comma-separated setting, dropping blanks."""
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database
    database_url: str = "postgresql://localhost/signal_relay"

    # Redis
    redis_url: str = "redis://localhost:6379/0"

    # Job queue
    queue_signals_name: str = "signals"          # outbound deliveries
    queue_ingest_name: str = "tradingview"       # inbound TradingView alerts
    signals_telegram_job_attempts: int = 5
    signals_telegram_job_backoff_delay_ms: int = 3000

    # Telegram fallback destinations
    telegram_chat_id: str = ""
    telegram_chat_type: DestinationType = DestinationType.GROUP
    telegram_signal_channel_id: str = ""
    telegram_signal_channel_title: str = ""
    telegram_signal_group_id: str = ""
    telegram_signal_group_title: str = ""

    # Monitoring plan (comma-separated)
    assets_enabled: str = "GOLD,CRYPTO"
    gold_instruments: str = "XAUTUSDT"
    crypto_instruments: str = "BTCUSDT,ETHUSDT"
    default_timeframes: str = "15m"
    monitoring_enabled: bool = True

    # Candle feed provider per asset type
    price_provider_gold: str = "BINANCE_SPOT"
    price_provider_crypto: str = "BINANCE_SPOT"

    # Binance
    binance_base_url: str = "https://data-api.binance.vision"
    binance_interval: str = "15m"
    binance_klines_limit: int = 200
    binance_request_timeout_ms: int = 10000

    # OKX
    okx_base_url: str = "https://www.okx.com"
    okx_request_timeout_ms: int = 10000

    # Strategies
    signal_engine_enabled: bool = True
    signal_engine_interval_seconds: int = 60
    strategies_enabled: str = "ema_rsi,rsi_threshold,breakout,macd"
    ema_fast_period: int = 12
    ema_slow_period: int = 26
    rsi_period: int = 14
    rsi_buy_threshold: float = 30
    rsi_sell_threshold: float = 70
    breakout_lookback: int = 20
    macd_fast_period: int = 12
    macd_slow_period: int = 26
    macd_signal_period: int = 9

    # Risk levels
    enable_risk_levels: bool = True
    atr_period: int = 14
    sl_atr_multiplier: float = 1.5
    tp1_atr_multiplier: float = 2.0
    tp2_atr_multiplier: float = 3.0

    # Dedupe
    signal_dedupe_ttl_seconds: int = 7200
    signal_cooldown_seconds: int = 300

    # Market data cache
    market_data_providers: str = "binance,okx"
    ticker_cache_ttl_seconds: int = 120
    price_last_ttl_seconds: int = 120
    ticker_warmup_enabled: bool = True
    ticker_warmup_interval_seconds: int = 60
    ticker_warmup_timeout_ms: int = 5000

    # Cross-provider spread monitor
    spread_monitor_enabled: bool = True
    spread_monitor_interval_seconds: int = 60
    spread_alert_min_pct: float = 0.5
    spread_stale_ms: int = 90000             # older tickers are left out of the spread
    spread_alert_cooldown_seconds: int = 900
    spread_alert_chat_ids: str = ""          # defaults to the signal group

    # Alerts
    alerts_enabled: bool = True
    alerts_interval_seconds: int = 60

    # Digest
    digest_time_utc: str = "20:00"
    digest_enabled: bool = True
    digest_post_to_group: bool = True
    digest_post_to_channel: bool = False

    # TradingView
    tradingview_default_asset_type: AssetType = AssetType.GOLD
    tradingview_default_instrument: str = "XAUTUSDT"
    tradingview_default_interval: str = "15m"
    tradingview_default_strategy: str = "tradingview"
    tradingview_price_fallback_timeout_ms: int = 2000
    tradingview_bypass_dedupe: bool = False

    # Instrument catalog
    instruments_file: str = "instruments.yaml"

    # Logging
    log_level: str = "INFO"

    @property
    def enabled_asset_types(self) -> list[AssetType]:
        result = []
        for item in parse_csv(self.assets_enabled):
            try:
                result.append(AssetType(item.upper()))
            except ValueError:
                continue
        return result

    @property
    def gold_instrument_list(self) -> list[str]:
        return [s.upper() for s in parse_csv(self.gold_instruments)]

    @property
    def crypto_instrument_list(self) -> list[str]:
        return [s.upper() for s in parse_csv(self.crypto_instruments)]

    @property
    def timeframe_list(self) -> list[str]:
        return parse_csv(self.default_timeframes)

    @property
    def strategy_list(self) -> list[str]:
        return parse_csv(self.strategies_enabled)

    @property
    def tracked_symbols(self) -> list[str]:
        """Instruments of every enabled asset type, first occurrence kept."""
        symbols = []
        for asset_type in self.enabled_asset_types:
            for symbol in self.instruments_for(asset_type):
                if symbol not in symbols:
                    symbols.append(symbol)
        return symbols

    @property
    def provider_list(self) -> list[str]:
        return [p.lower() for p in parse_csv(self.market_data_providers)]

    @property
    def spread_alert_chat_id_list(self) -> list[str]:
        chat_ids = parse_csv(self.spread_alert_chat_ids)
        if not chat_ids and self.telegram_signal_group_id.strip():
            chat_ids = [self.telegram_signal_group_id.strip()]
        return chat_ids

    def instruments_for(self, asset_type: AssetType) -> list[str]:
        if asset_type == AssetType.GOLD:
            return self.gold_instrument_list
        return self.crypto_instrument_list

    def strategy_params(self) -> StrategyParams:
        return StrategyParams(
            rsi_period=self.rsi_period,
            rsi_buy_threshold=self.rsi_buy_threshold,
            rsi_sell_threshold=self.rsi_sell_threshold,
            ema_fast_period=self.ema_fast_period,
            ema_slow_period=self.ema_slow_period,
            breakout_lookback=self.breakout_lookback,
            macd_fast_period=self.macd_fast_period,
            macd_slow_period=self.macd_slow_period,
            macd_signal_period=self.macd_signal_period,
        )

    def risk_level_config(self) -> RiskLevelConfig:
        return RiskLevelConfig(
            atr_period=self.atr_period,
            sl_atr_mult=self.sl_atr_multiplier,
            tp1_atr_mult=self.tp1_atr_multiplier,
            tp2_atr_mult=self.tp2_atr_multiplier,
        )

    def tradingview_defaults(self) -> TradingViewDefaults:
        return TradingViewDefaults(
            asset_type=self.tradingview_default_asset_type,
            instrument=self.tradingview_default_instrument,
            interval=self.tradingview_default_interval,
            strategy=self.tradingview_default_strategy,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
