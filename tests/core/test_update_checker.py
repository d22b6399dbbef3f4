"""新版本检查单元测试"""

import httpx
import pytest

from bbq.core.update_checker import (
    VERSION_KEY,
    UpdateChecker,
    fetch_latest_from_pypi,
    is_newer,
    parse_version,
)


class FakeStore:
    """内存中的配置存储"""

    def __init__(self, **values):
        self.values = dict(values)
        self.writes = []

    def get(self, key, default=None):
        return self.values.get(key, default)

    def set_value(self, key, value):
        self.values[key] = value
        self.writes.append((key, value))


@pytest.mark.parametrize("value,expected", [
    ("1.2.3", (1, 2, 3)),
    ("v0.10.0", (0, 10, 0)),
    ("2.0.0rc1", (2, 0, 0)),
    ("1.x.3", (1,)),
    ("garbage", ()),
])
def test_parse_version(value, expected):
    assert parse_version(value) == expected


@pytest.mark.parametrize("latest,current,expected", [
    ("0.2.0", "0.1.0", True),
    ("0.10.0", "0.9.9", True),
    ("0.1.0", "0.1.0", False),
    ("0.0.9", "0.1.0", False),
    ("nonsense", "0.1.0", False),
])
def test_is_newer(latest, current, expected):
    assert is_newer(latest, current) is expected


class TestCheck:
    """测试联网检查"""

    def test_records_newer_version(self):
        store = FakeStore()
        checker = UpdateChecker(store, "0.1.0", fetch_latest=lambda: "0.2.0")

        notice = checker.check()

        assert "0.2.0" in notice
        assert "0.1.0" in notice
        assert store.values[VERSION_KEY] == "0.2.0"

    def test_same_version_no_notice(self):
        store = FakeStore()
        checker = UpdateChecker(store, "0.1.0", fetch_latest=lambda: "0.1.0")
        assert checker.check() is None
        assert store.values[VERSION_KEY] == "0.1.0"

    def test_unchanged_value_not_rewritten(self):
        store = FakeStore(**{VERSION_KEY: "0.2.0"})
        UpdateChecker(store, "0.1.0", fetch_latest=lambda: "0.2.0").check()
        assert store.writes == []

    def test_network_error(self):
        """网络失败时静默返回 None，不写配置"""
        def failing():
            raise httpx.ConnectError("offline")

        store = FakeStore()
        assert UpdateChecker(store, "0.1.0", fetch_latest=failing).check() is None
        assert store.writes == []

    def test_no_version(self):
        store = FakeStore()
        assert UpdateChecker(store, "0.1.0", fetch_latest=lambda: None).check() is None
        assert store.writes == []


class TestPendingNotice:
    """测试离线提示"""

    def test_nothing_recorded(self):
        assert UpdateChecker(FakeStore(), "0.1.0").pending_notice() is None

    def test_recorded_newer(self):
        store = FakeStore(**{VERSION_KEY: "1.0.0"})
        assert "1.0.0" in UpdateChecker(store, "0.1.0").pending_notice()

    def test_recorded_older(self):
        store = FakeStore(**{VERSION_KEY: "0.0.1"})
        assert UpdateChecker(store, "0.1.0").pending_notice() is None


class TestFetchFromPypi:
    """使用 httpx.MockTransport 替换网络"""

    def _patch_client(self, monkeypatch, handler):
        real_client = httpx.Client

        def factory(*args, **kwargs):
            kwargs["transport"] = httpx.MockTransport(handler)
            return real_client(*args, **kwargs)

        monkeypatch.setattr("bbq.core.update_checker.httpx.Client", factory)

    def test_reads_info_version(self, monkeypatch):
        self._patch_client(monkeypatch, lambda request: httpx.Response(200, json={"info": {"version": "0.3.1"}}))
        assert fetch_latest_from_pypi() == "0.3.1"

    def test_missing_version(self, monkeypatch):
        self._patch_client(monkeypatch, lambda request: httpx.Response(200, json={"info": {}}))
        assert fetch_latest_from_pypi() is None

    def test_http_error(self, monkeypatch):
        self._patch_client(monkeypatch, lambda request: httpx.Response(404, json={}))
        with pytest.raises(httpx.HTTPStatusError):
            fetch_latest_from_pypi()
