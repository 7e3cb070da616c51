"""
配置管理系统

从 YAML 文件、环境变量（含 .env 文件）加载配置。
生成的 Config 对象是传给启动器和构建流水线各组件的唯一上下文
"""

import os
import yaml
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, field_validator
from dotenv import load_dotenv

# 加载 .env 文件
load_dotenv()

ENV_PREFIX = "BUILDSTRAP_"

DEFAULT_BUILD_TIMEOUT_SECONDS = 600
DEFAULT_FETCHER_URI = "https://dist.nuget.org/win-x86-commandline/latest/nuget.exe"


class SourceConfig(BaseModel):
    """源码树配置"""

    root: Optional[str] = Field(default=None, description="源码根目录（未设置时自动发现）")
    branch_name: Optional[str] = Field(default=None, description="构建分支名")


class LauncherConfig(BaseModel):
    """启动器配置"""

    build_timeout_seconds: int = Field(
        default=DEFAULT_BUILD_TIMEOUT_SECONDS,
        ge=1,
        description="负载进程超时时间（秒）"
    )
    exit_delay_milliseconds: int = Field(default=0, ge=0, description="启动器返回前的延迟（毫秒）")
    kill_spawned_processes: bool = Field(
        default=True,
        description="负载超时时是否结束所有子孙进程"
    )
    directory_clone_enabled: bool = Field(
        default=True,
        description="是否允许将源码树克隆到本地临时目录"
    )


class FetcherConfig(BaseModel):
    """获取器可执行文件配置"""

    executable_name: str = Field(default="nuget.exe", description="获取器可执行文件名")
    custom_path: Optional[str] = Field(default=None, description="用户指定的获取器路径")
    download_uri: Optional[str] = Field(default=None, description="获取器下载地址")
    update_enabled: bool = Field(default=False, description="每次运行是否自更新已有的获取器")


class PayloadConfig(BaseModel):
    """负载包配置"""

    package_name: str = Field(default="Buildstrap.Payload", description="负载包名称")
    version: Optional[str] = Field(default=None, description="固定的负载版本（未设置时取最新）")
    source: Optional[str] = Field(default=None, description="自定义包源地址")
    no_cache: bool = Field(default=False, description="是否跳过获取器的包缓存")
    allow_prerelease: Optional[bool] = Field(default=None, description="是否允许预发布版本")
    reinstall_enabled: bool = Field(default=True, description="每次运行是否重新安装负载")

    @field_validator("package_name")
    @classmethod
    def validate_package_name(cls, v: str) -> str:
        """包名会成为目录名"""
        v = v.strip()
        if not v or "/" in v or "\\" in v:
            raise ValueError(f"Invalid payload package name: {v!r}")
        return v


class StagingConfig(BaseModel):
    """暂存位置配置"""

    temp_root: Optional[str] = Field(default=None, description="临时克隆的根目录（未设置时使用系统临时目录）")
    git_executable: Optional[str] = Field(default=None, description="git 路径（未设置时从 PATH 查找）")
    hosted_environment_markers: List[str] = Field(
        default_factory=lambda: ["DEPLOYMENT_TARGET", "WEBSITE_SITE_NAME"],
        description="表示存储受限托管环境的环境变量"
    )


class BuildConfig(BaseModel):
    """构建流水线配置"""

    artifacts_dir: Optional[str] = Field(default=None, description="产物目录（未设置时为 <源码根目录>/Artifacts）")
    cleanup_artifacts_before_build: bool = Field(default=False, description="构建前是否清空产物目录")
    required_variables: List[str] = Field(
        default_factory=lambda: ["source.root", "artifacts.path"],
        description="环境校验步骤要求的变量"
    )


class LoggingConfig(BaseModel):
    """日志配置"""

    level: str = Field(default="INFO", description="日志级别")
    file: Optional[str] = Field(default=None, description="日志文件路径（未设置时仅输出到控制台）")
    max_bytes: int = Field(default=10485760, description="日志文件最大大小（10MB）")
    backup_count: int = Field(default=5, description="日志文件备份数量")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """验证日志级别"""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v.upper()


class Config(BaseModel):
    """buildstrap 配置"""

    source: SourceConfig = Field(default_factory=SourceConfig)
    launcher: LauncherConfig = Field(default_factory=LauncherConfig)
    fetcher: FetcherConfig = Field(default_factory=FetcherConfig)
    payload: PayloadConfig = Field(default_factory=PayloadConfig)
    staging: StagingConfig = Field(default_factory=StagingConfig)
    build: BuildConfig = Field(default_factory=BuildConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    def with_updates(self, section: str, **values: Any) -> "Config":
        """
        返回替换了某一节部分字段的副本

        原对象保持不变

        Args:
            section: 节名称（如 "source"）
            **values: 要替换的字段值

        Returns:
            新的配置对象
        """
        current = getattr(self, section)
        updated = current.model_copy(update=values)
        return self.model_copy(update={section: updated})

    def to_environment(self) -> Dict[str, str]:
        """
        将已设置的值导出为环境变量

        命名方式与 ConfigManager 读取时一致，例如：
        BUILDSTRAP_SOURCE__ROOT=/src

        Returns:
            环境变量名 -> 值
        """
        environment: Dict[str, str] = {}
        for section, values in self.model_dump(exclude_none=True).items():
            for key, value in values.items():
                name = f"{ENV_PREFIX}{section.upper()}__{key.upper()}"
                environment[name] = format_value(value)
        return environment


def format_value(value: Any) -> str:
    """将配置值转换为字符串"""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ",".join(format_value(item) for item in value)
    return str(value)


class ConfigManager:
    """
    配置管理器

    从 YAML 文件加载配置，支持环境变量覆盖
    """

    def __init__(self, config_path: Optional[str] = None):
        """
        初始化配置管理器

        Args:
            config_path: YAML 配置文件路径，默认为 config/buildstrap.yaml
        """
        self.config_path = config_path or self._find_config_file()
        self._config: Optional[Config] = None

    @staticmethod
    def _find_config_file() -> str:
        """
        查找配置文件

        按以下顺序查找：
        1. ./config/buildstrap.yaml
        2. ./buildstrap.yaml
        3. ~/.config/buildstrap/settings.yaml
        """
        possible_paths = [
            "./config/buildstrap.yaml",
            "./buildstrap.yaml",
            os.path.expanduser("~/.config/buildstrap/settings.yaml"),
        ]

        for path in possible_paths:
            if os.path.exists(path):
                return path

        return "./config/buildstrap.yaml"

    def load_yaml(self) -> Dict[str, Any]:
        """
        从 YAML 文件加载配置

        Returns:
            配置字典
        """
        if not os.path.exists(self.config_path):
            return {}

        with open(self.config_path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}

    def _override_from_env(self, config_dict: Dict[str, Any]) -> Dict[str, Any]:
        """
        从环境变量覆盖配置

        嵌套键使用 __ 分隔，例如：
        BUILDSTRAP_SOURCE__ROOT=/src
        BUILDSTRAP_LAUNCHER__BUILD_TIMEOUT_SECONDS=120

        没有节名的变量会被忽略

        Args:
            config_dict: 原始配置字典

        Returns:
            覆盖后的配置字典
        """
        result = {key: dict(value) if isinstance(value, dict) else value for key, value in config_dict.items()}

        for env_key, env_value in os.environ.items():
            if not env_key.upper().startswith(ENV_PREFIX):
                continue

            key = env_key[len(ENV_PREFIX):].lower()
            parts = key.split("__")
            if len(parts) < 2 or not all(parts):
                continue

            current = result
            for part in parts[:-1]:
                if not isinstance(current.get(part), dict):
                    current[part] = {}
                current = current[part]

            if self._is_list_field(parts):
                current[parts[-1]] = [item.strip() for item in env_value.split(",") if item.strip()]
            else:
                current[parts[-1]] = self._parse_env_value(env_value)

        return result

    @staticmethod
    def _is_list_field(parts: List[str]) -> bool:
        """section.field 是否声明为列表"""
        if len(parts) != 2 or parts[0] not in Config.model_fields:
            return False
        section_type = Config.model_fields[parts[0]].annotation
        field = getattr(section_type, "model_fields", {}).get(parts[1])
        return field is not None and getattr(field.annotation, "__origin__", None) is list

    @staticmethod
    def _parse_env_value(value: str) -> Any:
        """
        解析环境变量值

        数字保留为字符串，由 pydantic 转换

        Args:
            value: 环境变量值

        Returns:
            解析后的值
        """
        if value.lower() in ("true", "yes"):
            return True
        if value.lower() in ("false", "no"):
            return False
        return value

    def load(self) -> Config:
        """
        加载配置

        加载 YAML 文件并应用环境变量覆盖

        Returns:
            配置对象
        """
        if self._config is not None:
            return self._config

        yaml_config = self.load_yaml()
        merged_config = self._override_from_env(yaml_config)

        self._config = Config(**merged_config)
        return self._config

    def reload(self) -> Config:
        """
        重新加载配置

        Returns:
            配置对象
        """
        self._config = None
        return self.load()

    def save(self, path: Optional[str] = None) -> None:
        """
        保存当前配置到 YAML 文件

        Args:
            path: 保存路径，默认为加载的配置文件
        """
        save_path = path or self.config_path

        directory = os.path.dirname(save_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        config_dict = self.load().model_dump(exclude_none=True)

        with open(save_path, "w", encoding="utf-8") as f:
            yaml.safe_dump(config_dict, f, allow_unicode=True, default_flow_style=False)


# 全局配置管理器
_config_manager: Optional[ConfigManager] = None


def get_config(config_path: Optional[str] = None) -> Config:
    """
    获取全局配置

    Args:
        config_path: 可选的配置文件路径

    Returns:
        配置对象
    """
    global _config_manager

    if _config_manager is None:
        _config_manager = ConfigManager(config_path)

    return _config_manager.load()


def get_config_manager() -> ConfigManager:
    """
    获取全局配置管理器

    Returns:
        配置管理器
    """
    global _config_manager

    if _config_manager is None:
        _config_manager = ConfigManager()

    return _config_manager


def reload_config() -> Config:
    """
    重新加载全局配置

    Returns:
        配置对象
    """
    global _config_manager

    if _config_manager is not None:
        return _config_manager.reload()

    return get_config()
