"""
配置模块

导出配置类和函数
"""

from .config import (
    DEFAULT_BUILD_TIMEOUT_SECONDS,
    DEFAULT_FETCHER_URI,
    ENV_PREFIX,
    Config,
    ConfigManager,
    SourceConfig,
    LauncherConfig,
    FetcherConfig,
    PayloadConfig,
    StagingConfig,
    BuildConfig,
    LoggingConfig,
    format_value,
    get_config,
    get_config_manager,
    reload_config,
)

__all__ = [
    "DEFAULT_BUILD_TIMEOUT_SECONDS",
    "DEFAULT_FETCHER_URI",
    "ENV_PREFIX",
    "Config",
    "ConfigManager",
    "SourceConfig",
    "LauncherConfig",
    "FetcherConfig",
    "PayloadConfig",
    "StagingConfig",
    "BuildConfig",
    "LoggingConfig",
    "format_value",
    "get_config",
    "get_config_manager",
    "reload_config",
]
