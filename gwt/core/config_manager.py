"""配置管理器

提供用户级 config.yaml 的加载、验证与默认值合并。
查找顺序：显式路径 > $GWT_CONFIG > $XDG_CONFIG_HOME/gwt/config.yaml。
"""

import copy
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from gwt.core.exceptions import ConfigIOError, ConfigParseError, ConfigValidationError
from gwt.core.logger import get_logger

logger = get_logger("config_manager")


VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


class ConfigManager:
    """配置管理器

    负责加载、验证并提供配置值，缺失的配置文件等同于全部使用默认值。
    """

    DEFAULT_CONFIG = {
        "layout": {
            "bare_dir": ".bare",
            "default_main_branch": "main",
        },
        "convert": {
            "staging_dir": None,
        },
        "clone": {
            "fallback_branch": "main",
        },
        "logging": {
            "level": "INFO",
            "log_dir": None,
            "json": False,
        },
        "display": {
            "colors": True,
        },
    }

    CONFIG_ENV_VAR = "GWT_CONFIG"
    CONFIG_FILENAME = "config.yaml"

    def __init__(self, config_path: Optional[Path] = None):
        """初始化配置管理器

        Args:
            config_path: 配置文件路径，默认按环境变量和 XDG 目录查找
        """
        self.config_path = Path(config_path) if config_path else self.default_config_path()
        self._config: Optional[Dict[str, Any]] = None

    @classmethod
    def default_config_path(cls) -> Path:
        """获取默认配置文件路径"""
        env_path = os.environ.get(cls.CONFIG_ENV_VAR)
        if env_path:
            return Path(env_path).expanduser()

        xdg_home = os.environ.get("XDG_CONFIG_HOME")
        base = Path(xdg_home).expanduser() if xdg_home else Path.home() / ".config"
        return base / "gwt" / cls.CONFIG_FILENAME

    def get_default_config(self) -> Dict[str, Any]:
        """获取默认配置的深拷贝"""
        return copy.deepcopy(self.DEFAULT_CONFIG)

    def load_config(self) -> Dict[str, Any]:
        """加载配置文件

        Returns:
            与默认值合并后的配置字典

        Raises:
            ConfigIOError: 文件读取失败时抛出
            ConfigParseError: YAML 解析失败时抛出
            ConfigValidationError: 配置值不合法时抛出
        """
        path = self.config_path

        if not path.exists():
            logger.debug("Configuration file not found, using defaults", path=str(path))
            self._config = self.get_default_config()
            return self._config

        try:
            with open(path, "r", encoding="utf-8") as f:
                config_data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            logger.error("Failed to parse YAML configuration", path=str(path), error=str(e))
            raise ConfigParseError(f"Failed to parse configuration file {path}", details=str(e))
        except OSError as e:
            logger.error("Failed to read configuration file", path=str(path), error=str(e))
            raise ConfigIOError(f"Failed to read configuration file {path}", details=str(e))

        if config_data is None:
            config_data = {}
        if not isinstance(config_data, dict):
            raise ConfigValidationError(
                f"Configuration file {path} must contain a mapping at the top level"
            )

        merged = self.merge_configs(self.get_default_config(), config_data)
        self.validate_config(merged)

        self._config = merged
        logger.info("Configuration loaded", path=str(path))
        return self._config

    def validate_config(self, config: Optional[Dict[str, Any]] = None) -> bool:
        """验证配置结构和值

        Raises:
            ConfigValidationError: 配置验证失败时抛出
        """
        cfg = config if config is not None else self._config
        if cfg is None:
            raise ConfigValidationError("No configuration loaded or provided")

        errors = []

        for section in ("layout", "convert", "clone", "logging", "display"):
            if not isinstance(cfg.get(section), dict):
                errors.append(f"{section} must be a dictionary")

        if not errors:
            bare_dir = cfg["layout"].get("bare_dir")
            if not isinstance(bare_dir, str) or not bare_dir or "/" in bare_dir:
                errors.append("layout.bare_dir must be a plain directory name")

            for key_path in ("layout.default_main_branch", "clone.fallback_branch"):
                section, key = key_path.split(".")
                value = cfg[section].get(key)
                if not isinstance(value, str) or not value.strip():
                    errors.append(f"{key_path} must be a non-empty string")

            staging_dir = cfg["convert"].get("staging_dir")
            if staging_dir is not None and not isinstance(staging_dir, str):
                errors.append("convert.staging_dir must be a path or null")

            level = cfg["logging"].get("level")
            if not isinstance(level, str) or level.upper() not in VALID_LOG_LEVELS:
                errors.append(f"logging.level must be one of {list(VALID_LOG_LEVELS)}")
            log_dir = cfg["logging"].get("log_dir")
            if log_dir is not None and not isinstance(log_dir, str):
                errors.append("logging.log_dir must be a path or null")
            if not isinstance(cfg["logging"].get("json"), bool):
                errors.append("logging.json must be a boolean")

            if not isinstance(cfg["display"].get("colors"), bool):
                errors.append("display.colors must be a boolean")

        if errors:
            error_msg = "; ".join(errors)
            logger.error("Configuration validation failed", errors=errors)
            raise ConfigValidationError(f"Configuration validation failed: {error_msg}")

        return True

    def merge_configs(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """深度合并配置，override 中的值优先"""
        result = copy.deepcopy(base)

        for key, value in override.items():
            base_value = result.get(key)
            # 如果两个值都是字典，递归合并
            if isinstance(base_value, dict) and isinstance(value, dict):
                result[key] = self.merge_configs(base_value, value)
            else:
                result[key] = copy.deepcopy(value)

        return result

    def get(self, key_path: str, default: Any = None) -> Any:
        """获取配置值，支持点号分隔的路径

        例如: get("layout.bare_dir") 返回 .bare
        """
        if self._config is None:
            self.load_config()

        value = self._config
        for key in key_path.split("."):
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

