"""
测试辅助函数模块
"""

from tests.helpers.fake_redis import FakeClock, FakeRedis

__all__ = ["FakeClock", "FakeRedis"]
