"""配置管理器

提供 ~/.bbq/config.toml 的加载、验证和保存功能。
加载结果是不可变的 BbqConfig，一次调用内只读使用。
"""

import copy
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import tomli_w

from bbq.core.exceptions import ConfigException, ConfigIOError, ConfigParseError, ConfigValidationError
from bbq.core.logger import get_logger
from bbq.core.paths import config_root

logger = get_logger("config_manager")

_TRUE_VALUES = ("true", "yes", "on", "1")
_FALSE_VALUES = ("false", "no", "off", "0")


@dataclass(frozen=True)
class BbqConfig:
    """用户配置"""
    root_dir: Optional[str] = None
    theme: Optional[str] = None
    editor: Optional[str] = None
    terminal: Optional[str] = None
    github_user_prefix: bool = True
    default_worktree_name: Optional[str] = None
    check_updates: bool = True
    known_latest_version: Optional[str] = None


class ConfigManager:
    """配置管理器

    负责加载、验证和保存用户配置文件。也是后台更新检查写回
    known_latest_version 时使用的配置存储。
    """

    DEFAULT_CONFIG: Dict[str, Any] = {
        "root_dir": None,
        "theme": None,
        "editor": None,
        "terminal": None,
        "github_user_prefix": True,
        "default_worktree_name": None,
        "check_updates": True,
        "known_latest_version": None,
    }

    STRING_KEYS = ("root_dir", "theme", "editor", "terminal", "default_worktree_name", "known_latest_version")
    BOOL_KEYS = ("github_user_prefix", "check_updates")

    CONFIG_FILENAME = "config.toml"

    def __init__(self, config_path: Optional[Path] = None):
        """初始化配置管理器

        Args:
            config_path: 配置文件路径，默认为 ~/.bbq/config.toml
        """
        self._config_path = Path(config_path) if config_path else None
        self._config: Optional[Dict[str, Any]] = None

    @property
    def config_path(self) -> Path:
        """获取配置文件路径"""
        return self._config_path or config_root() / self.CONFIG_FILENAME

    def get_default_config(self) -> Dict[str, Any]:
        """获取默认配置的深拷贝"""
        return copy.deepcopy(self.DEFAULT_CONFIG)

    def _read_document(self) -> Dict[str, Any]:
        """读取原始配置文档（不合并默认值）"""
        path = self.config_path
        if not path.exists():
            return {}

        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            logger.error("Failed to parse TOML configuration", path=str(path), error=str(e))
            raise ConfigParseError(f"配置文件解析失败：{path}", details=str(e)) from e
        except OSError as e:
            logger.error("Failed to read configuration file", path=str(path), error=str(e))
            raise ConfigIOError(f"配置文件读取失败：{path}", details=str(e)) from e

        return data

    def load_config(self) -> Dict[str, Any]:
        """加载配置文件并与默认配置合并

        Returns:
            配置字典

        Raises:
            ConfigIOError: 文件读取失败时抛出
            ConfigParseError: TOML 解析失败时抛出
            ConfigValidationError: 配置值类型错误时抛出
        """
        logger.debug("Loading configuration", path=str(self.config_path))

        config_data = self.get_default_config()
        config_data.update(self._read_document())

        self._config = self.normalize_config(config_data)
        return self._config

    def normalize_config(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """校验并规整配置值

        Raises:
            ConfigValidationError: 配置验证失败时抛出
        """
        errors = []
        result = dict(config)

        for key in self.STRING_KEYS:
            value = result.get(key)
            if value is None:
                continue
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                value = str(value)
            if not isinstance(value, str):
                errors.append(f"{key} must be a string")
                continue
            value = value.strip()
            result[key] = value or None

        for key in self.BOOL_KEYS:
            value = result.get(key)
            if value is None:
                result[key] = self.DEFAULT_CONFIG[key]
                continue
            if isinstance(value, bool):
                continue
            parsed = parse_bool(value)
            if parsed is None:
                errors.append(f"{key} must be a boolean")
            else:
                result[key] = parsed

        if errors:
            logger.error("Configuration validation failed", errors=errors)
            raise ConfigValidationError(f"配置验证失败：{'; '.join(errors)}")

        return result

    def load(self) -> BbqConfig:
        """加载配置并构建 BbqConfig"""
        config = self.load_config()
        return BbqConfig(**{key: config.get(key) for key in self.DEFAULT_CONFIG})

    def get(self, key: str, default: Any = None) -> Any:
        """获取配置值"""
        if self._config is None:
            self.load_config()
        value = self._config.get(key)
        return default if value is None else value

    def set_value(self, key: str, value: Any) -> None:
        """修改单个配置项并立即保存，保留文档中的其它键

        value 为 None 时删除该项。

        Raises:
            ConfigException: 未知配置项
            ConfigIOError: 文件写入失败
        """
        if key not in self.DEFAULT_CONFIG:
            raise ConfigException(f"未知的配置项：{key}")

        document = self._read_document()
        if value is None:
            document.pop(key, None)
        else:
            document[key] = value
        self.normalize_config(document)
        self.save_config(document)
        self._config = None
        logger.info("Configuration value saved", key=key)

    def save_config(self, config: Dict[str, Any]) -> None:
        """保存配置到文件

        Raises:
            ConfigIOError: 文件写入失败时抛出
        """
        path = self.config_path
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "wb") as f:
                tomli_w.dump(config, f)
        except OSError as e:
            logger.error("Failed to write configuration file", path=str(path), error=str(e))
            raise ConfigIOError(f"配置文件写入失败：{path}", details=str(e)) from e


def parse_bool(value: Any) -> Optional[bool]:
    """解析布尔值字符串，无法识别时返回 None"""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
    return None
