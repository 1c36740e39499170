"""
TOML 配置加载

按 CONFIG_ENV 选择 configs/ 下的配置文件（dev、prod、degraded，默认 dev）。
单个配置项的优先级：环境变量 > 配置文件 > 代码中的默认值。
degraded 环境禁用远程缓存，只使用进程内缓存。
"""

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

import toml

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parents[2]

CONFIG_FILES = {
    "dev": "configs/config.dev.toml",
    "prod": "configs/config.prod.toml",
    "degraded": "configs/config.degraded.toml",
}

TRUTHY = ("true", "1", "yes", "on")

_MISSING = object()


def _load_toml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        logger.warning(f"配置文件不存在，全部使用默认值: {path}")
        return {}

    try:
        return toml.load(path)
    except (OSError, toml.TomlDecodeError) as e:
        logger.warning(f"配置文件解析失败，全部使用默认值 ({path}): {e}")
        return {}


class ConfigManager:
    """按点号路径读取 TOML 配置，可用同名环境变量覆盖"""

    def __init__(self, config_file: Optional[str] = None):
        """
        Args:
            config_file: 配置文件路径（相对路径基于项目根目录）；为 None 时按 CONFIG_ENV 选择
        """
        if config_file is None:
            self.config_env = os.environ.get("CONFIG_ENV", "dev").lower()
            config_file = CONFIG_FILES.get(self.config_env, CONFIG_FILES["dev"])
        else:
            self.config_env = "custom"

        path = Path(config_file)
        self.config_path = path if path.is_absolute() else PROJECT_ROOT / path
        self._config = _load_toml(self.config_path)

    def _lookup(self, key_path: str) -> Any:
        node: Any = self._config
        for part in key_path.split("."):
            if not isinstance(node, dict) or part not in node:
                return _MISSING
            node = node[part]
        return node

    def get(self, key_path: str, default: Any = None, env_var: Optional[str] = None) -> Any:
        """读取配置项，环境变量的值以字符串返回"""
        if env_var and env_var in os.environ:
            return os.environ[env_var]

        value = self._lookup(key_path)
        return default if value is _MISSING else value

    def get_int(self, key_path: str, default: int = 0, env_var: Optional[str] = None) -> int:
        value = self.get(key_path, default, env_var)
        return default if value is None else int(value)

    def get_bool(self, key_path: str, default: bool = False, env_var: Optional[str] = None) -> bool:
        value = self.get(key_path, default, env_var)
        if isinstance(value, str):
            return value.strip().lower() in TRUTHY
        return default if value is None else bool(value)

    def get_section(self, section: str) -> Dict[str, Any]:
        """读取整个配置节（如 "cache.routes"），不存在时返回空字典"""
        value = self._lookup(section)
        return value if isinstance(value, dict) else {}

    def get_current_env(self) -> str:
        return self.config_env


@lru_cache(maxsize=1)
def get_config_manager() -> ConfigManager:
    return ConfigManager()


config_manager = get_config_manager()
