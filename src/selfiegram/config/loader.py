import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from selfiegram.config.models import AppConfig
from selfiegram.models.errors import ConfigurationError

CONFIG_PATH_ENV = "SELFIEGRAM_CONFIG"


def expand_env_vars(value: str) -> str:
    """展开环境变量

    支持 ${VAR_NAME} 和 ${VAR_NAME:-default} 语法
    """
    pattern = r'\$\{([^}:]+)(?::-([^}]*))?\}'

    def replacer(match: re.Match[str]) -> str:
        var_name = match.group(1)
        default = match.group(2)
        env_value = os.environ.get(var_name)
        if env_value is not None:
            return env_value
        if default is not None:
            return default
        return match.group(0)  # 保持原样

    return re.sub(pattern, replacer, value)


def process_config_dict(config: dict[str, Any]) -> dict[str, Any]:
    """递归处理配置字典，展开所有环境变量"""
    result: dict[str, Any] = {}
    for key, value in config.items():
        if isinstance(value, str):
            result[key] = expand_env_vars(value)
        elif isinstance(value, dict):
            result[key] = process_config_dict(value)
        elif isinstance(value, list):
            result[key] = [
                process_config_dict(item) if isinstance(item, dict)
                else expand_env_vars(item) if isinstance(item, str)
                else item
                for item in value
            ]
        else:
            result[key] = value
    return result


def read_config_file(config_path: str | Path) -> dict[str, Any]:
    """读取 YAML 配置文件并展开环境变量

    Raises:
        FileNotFoundError: 配置文件不存在
        ConfigurationError: 配置文件格式错误
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(path, encoding="utf-8") as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {path}: {e}", {"path": str(path)}) from e

    if raw_config is None:
        return {}
    if not isinstance(raw_config, dict):
        raise ConfigurationError(
            f"Invalid config file format: expected dict, got {type(raw_config).__name__}",
            {"path": str(path)},
        )

    return process_config_dict(raw_config)


def load_config_from_dict(config: dict[str, Any]) -> AppConfig:
    """从字典构建配置

    Raises:
        ConfigurationError: 配置校验失败
    """
    try:
        return AppConfig(**config)
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid configuration: {e.error_count()} error(s)",
            {"errors": [
                {"loc": ".".join(str(p) for p in err["loc"]), "msg": err["msg"]}
                for err in e.errors()
            ]},
        ) from e


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """加载配置

    配置来源优先级（从高到低）：
    1. 配置文件（参数或 SELFIEGRAM_CONFIG 指定）
    2. 环境变量 SELFIEGRAM_*
    3. 默认值

    Args:
        config_path: 配置文件路径，如果为 None 则从环境变量 SELFIEGRAM_CONFIG 读取

    Returns:
        AppConfig: 应用配置

    Raises:
        FileNotFoundError: 配置文件不存在
        ConfigurationError: 配置文件格式错误或校验失败
    """
    if config_path is None:
        config_path = os.environ.get(CONFIG_PATH_ENV)

    if config_path:
        return load_config_from_dict(read_config_file(config_path))

    return load_config_from_dict({})
