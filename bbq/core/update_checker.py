"""新版本检查

后台查询 PyPI 上发布的最新版本，结果写回配置项 known_latest_version。
前台只读取这个持久化的值，不访问网络。
"""

import re
from typing import Any, Callable, Optional, Tuple

import httpx

from bbq.core.logger import get_logger

logger = get_logger("update_checker")

PYPI_URL = "https://pypi.org/pypi/bbq/json"
REQUEST_TIMEOUT = 5.0
VERSION_KEY = "known_latest_version"


def parse_version(value: str) -> Tuple[int, ...]:
    """把 1.2.3 解析为 (1, 2, 3)，非数字部分之后的内容忽略"""
    parts = []
    for piece in value.strip().lstrip("v").split("."):
        match = re.match(r"\d+", piece)
        if not match:
            break
        parts.append(int(match.group()))
    return tuple(parts)


def is_newer(latest: str, current: str) -> bool:
    """latest 是否比 current 新"""
    latest_parts = parse_version(latest)
    return bool(latest_parts) and latest_parts > parse_version(current)


def fetch_latest_from_pypi(url: str = PYPI_URL, timeout: float = REQUEST_TIMEOUT) -> Optional[str]:
    """从 PyPI 读取最新版本号"""
    with httpx.Client(timeout=timeout) as client:
        response = client.get(url)
        response.raise_for_status()
        data = response.json()
    version = (data.get("info") or {}).get("version")
    return version.strip() if isinstance(version, str) and version.strip() else None


class UpdateChecker:
    """新版本检查器

    store 需要提供 get(key) 与 set_value(key, value)，通常是 ConfigManager。
    """

    def __init__(
        self,
        store: Any,
        current_version: str,
        fetch_latest: Optional[Callable[[], Optional[str]]] = None,
    ):
        self.store = store
        self.current_version = current_version
        self._fetch_latest = fetch_latest or fetch_latest_from_pypi

    def check(self) -> Optional[str]:
        """访问网络检查新版本并记录

        Returns:
            有新版本时返回提示文字，否则返回 None
        """
        try:
            latest = self._fetch_latest()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Update check failed", error=str(e))
            return None

        if not latest:
            return None

        if self.store.get(VERSION_KEY) != latest:
            self.store.set_value(VERSION_KEY, latest)
            logger.info("Latest version recorded", version=latest)

        return self._notice(latest)

    def pending_notice(self) -> Optional[str]:
        """根据已记录的版本返回提示，不访问网络"""
        latest = self.store.get(VERSION_KEY)
        if not latest:
            return None
        return self._notice(str(latest))

    def _notice(self, latest: str) -> Optional[str]:
        if not is_newer(latest, self.current_version):
            return None
        return f"bbq {latest} 已发布（当前 {self.current_version}），可运行 pip install -U bbq 升级"
