"""Strategy plugin system.

Public API:
- Strategy: Protocol that all strategies must implement
- StrategyContext: candle window handed to ``evaluate``
- register_strategy / create_strategy / list_strategies / get_strategy_class
- build_strategies: instantiate enabled strategies from StrategyParams

Importing this package auto-registers all built-in strategies.
"""

from relay_core.strategy.config import StrategyParams
from relay_core.strategy.protocol import Strategy, StrategyContext
from relay_core.strategy.registry import (
    build_strategies,
    create_strategy,
    get_strategy_class,
    list_strategies,
    register_strategy,
)
from relay_core.strategy.risk_levels import RiskLevelConfig, attach_risk_levels

# Import built-in strategies to trigger auto-registration
from relay_core.strategy.ema_rsi import EmaRsiConfig, EmaRsiStrategy
from relay_core.strategy.rsi_threshold import RsiThresholdConfig, RsiThresholdStrategy
from relay_core.strategy.breakout import BreakoutConfig, BreakoutStrategy
from relay_core.strategy.macd import MacdConfig, MacdStrategy

__all__ = [
    "Strategy",
    "StrategyContext",
    "StrategyParams",
    "register_strategy",
    "create_strategy",
    "list_strategies",
    "get_strategy_class",
    "build_strategies",
    "RiskLevelConfig",
    "attach_risk_levels",
    "EmaRsiConfig",
    "EmaRsiStrategy",
    "RsiThresholdConfig",
    "RsiThresholdStrategy",
    "BreakoutConfig",
    "BreakoutStrategy",
    "MacdConfig",
    "MacdStrategy",
]
