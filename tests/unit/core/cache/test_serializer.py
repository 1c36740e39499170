"""
缓存序列化单元测试
"""

import uuid
from datetime import date, datetime
from decimal import Decimal

import pytest
from pydantic import BaseModel

from savings_backend.core.cache.exceptions import CacheSerializationError
from savings_backend.core.cache.serializer import deserialize, serialize


class Account(BaseModel):
    account_no: str
    balance: Decimal
    opened_at: datetime


class TestSerialize:
    """测试序列化"""

    def test_plain_payload_round_trip(self):
        payload = {"success": True, "data": [{"id": 1, "name": "张三"}], "total": 1}
        raw = serialize(payload)

        assert isinstance(raw, str)
        assert "张三" in raw  # ensure_ascii=False
        assert deserialize(raw) == payload

    def test_special_types(self):
        account_id = uuid.uuid4()
        raw = serialize(
            {
                "id": account_id,
                "balance": Decimal("1024.50"),
                "opened": date(2024, 1, 31),
                "at": datetime(2024, 1, 31, 8, 30),
                "tags": {"vip"},
            }
        )
        value = deserialize(raw)

        assert value["id"] == str(account_id)
        assert value["balance"] == "1024.50"
        assert value["opened"] == "2024-01-31"
        assert value["at"] == "2024-01-31T08:30:00"
        assert value["tags"] == ["vip"]

    def test_pydantic_model(self):
        account = Account(account_no="SA-001", balance=Decimal("10.00"), opened_at=datetime(2024, 5, 1))
        value = deserialize(serialize(account))

        assert value["account_no"] == "SA-001"
        assert value["opened_at"].startswith("2024-05-01")

    def test_nested_model_inside_dict(self):
        account = Account(account_no="SA-002", balance=Decimal("1"), opened_at=datetime(2024, 5, 1))
        value = deserialize(serialize({"success": True, "data": [account]}))

        assert value["data"][0]["account_no"] == "SA-002"

    def test_unserializable_value_raises(self):
        with pytest.raises(CacheSerializationError) as exc_info:
            serialize({"handle": object()}, key="cache:/api/x")

        assert exc_info.value.key == "cache:/api/x"


class TestDeserialize:
    """测试反序列化"""

    def test_bytes_input(self):
        assert deserialize(b'{"a": 1}') == {"a": 1}

    @pytest.mark.parametrize("raw", ["{not json", "", b"\xff\xfe"])
    def test_corrupted_data_raises(self, raw):
        with pytest.raises(CacheSerializationError):
            deserialize(raw, key="cache:/broken")


def _deep_list(depth: int) -> list:
    value: list = []
    for _ in range(depth):
        value = [value]
    return value


class TestNestingLimits:
    """测试超深嵌套数据"""

    def test_serialize_too_deep_raises(self):
        with pytest.raises(CacheSerializationError):
            serialize({"data": _deep_list(100_000)}, key="cache:/api/deep")

    def test_deserialize_too_deep_raises(self):
        with pytest.raises(CacheSerializationError):
            deserialize("[" * 100_000 + "]" * 100_000, key="cache:/api/deep")
