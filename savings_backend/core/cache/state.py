"""
远程缓存连接状态机

连接状态只能由 ConnectionManager 通过事件驱动改变，转换规则集中在 TRANSITIONS 表中。
"""

from enum import Enum


class ConnectionState(str, Enum):
    """远程缓存连接状态"""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DEGRADED = "degraded"


class ConnectionEvent(str, Enum):
    """驱动状态转换的连接事件"""

    CONNECT_STARTED = "connect_started"
    READY = "ready"  # 握手成功或 PING 成功
    ERROR = "error"  # 任意传输层错误
    CLOSED = "closed"  # 主动关闭或放弃重连


TRANSITIONS: dict[tuple[ConnectionState, ConnectionEvent], ConnectionState] = {
    (ConnectionState.DISCONNECTED, ConnectionEvent.CONNECT_STARTED): ConnectionState.CONNECTING,
    (ConnectionState.DISCONNECTED, ConnectionEvent.CLOSED): ConnectionState.DISCONNECTED,
    (ConnectionState.CONNECTING, ConnectionEvent.READY): ConnectionState.CONNECTED,
    (ConnectionState.CONNECTING, ConnectionEvent.ERROR): ConnectionState.DISCONNECTED,
    (ConnectionState.CONNECTING, ConnectionEvent.CLOSED): ConnectionState.DISCONNECTED,
    (ConnectionState.CONNECTED, ConnectionEvent.READY): ConnectionState.CONNECTED,
    (ConnectionState.CONNECTED, ConnectionEvent.ERROR): ConnectionState.DEGRADED,
    (ConnectionState.CONNECTED, ConnectionEvent.CLOSED): ConnectionState.DISCONNECTED,
    (ConnectionState.DEGRADED, ConnectionEvent.CONNECT_STARTED): ConnectionState.CONNECTING,
    (ConnectionState.DEGRADED, ConnectionEvent.READY): ConnectionState.CONNECTED,
    (ConnectionState.DEGRADED, ConnectionEvent.ERROR): ConnectionState.DEGRADED,
    (ConnectionState.DEGRADED, ConnectionEvent.CLOSED): ConnectionState.DISCONNECTED,
}


def next_state(current: ConnectionState, event: ConnectionEvent) -> ConnectionState | None:
    """查询转换表

    Returns:
        目标状态；当前状态下该事件没有定义转换时返回 None
    """
    return TRANSITIONS.get((current, event))
