"""
连接状态机单元测试
"""

import pytest

from savings_backend.core.cache.state import TRANSITIONS, ConnectionEvent, ConnectionState, next_state

S = ConnectionState
E = ConnectionEvent


class TestTransitionTable:
    """测试转换表"""

    @pytest.mark.parametrize(
        "current, event, expected",
        [
            (S.DISCONNECTED, E.CONNECT_STARTED, S.CONNECTING),
            (S.CONNECTING, E.READY, S.CONNECTED),
            (S.CONNECTING, E.ERROR, S.DISCONNECTED),
            (S.CONNECTED, E.READY, S.CONNECTED),
            (S.CONNECTED, E.ERROR, S.DEGRADED),
            (S.DEGRADED, E.CONNECT_STARTED, S.CONNECTING),
            (S.DEGRADED, E.READY, S.CONNECTED),
            (S.DEGRADED, E.ERROR, S.DEGRADED),
        ],
    )
    def test_defined_transitions(self, current, event, expected):
        assert next_state(current, event) is expected

    @pytest.mark.parametrize("current", list(ConnectionState))
    def test_close_always_disconnects(self, current):
        """任何状态下主动关闭都回到 DISCONNECTED"""
        assert next_state(current, E.CLOSED) is S.DISCONNECTED

    @pytest.mark.parametrize(
        "current, event",
        [
            (S.DISCONNECTED, E.READY),
            (S.DISCONNECTED, E.ERROR),
            (S.CONNECTING, E.CONNECT_STARTED),
            (S.CONNECTED, E.CONNECT_STARTED),
        ],
    )
    def test_undefined_transitions_return_none(self, current, event):
        assert next_state(current, event) is None

    def test_only_connecting_or_degraded_reach_connected(self):
        """只有握手中、已连接或降级状态可以进入 CONNECTED"""
        sources = {src for (src, _), dst in TRANSITIONS.items() if dst is S.CONNECTED}
        assert sources == {S.CONNECTING, S.CONNECTED, S.DEGRADED}

    def test_state_values_are_lowercase_strings(self):
        assert [state.value for state in ConnectionState] == ["disconnected", "connecting", "connected", "degraded"]
