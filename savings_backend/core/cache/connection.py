"""
远程缓存连接管理

负责 Redis 连接的完整生命周期：握手、健康检查、指数退避重连，
并维护唯一的连接状态（ConnectionState）。状态只通过 dispatch() 按转换表改变。
"""

import asyncio
import contextlib
import logging
import threading
from collections.abc import Callable

from redis import asyncio as aioredis
from redis.exceptions import RedisError

from savings_backend.core.cache.config import CacheConfig
from savings_backend.core.cache.logger import get_cache_logger
from savings_backend.core.cache.metrics import get_cache_metrics
from savings_backend.core.cache.state import ConnectionEvent, ConnectionState, next_state

logger = logging.getLogger(__name__)

# 远程调用可能抛出的传输层异常（asyncio.TimeoutError 在新版本中即内置 TimeoutError）
TRANSPORT_ERRORS: tuple[type[BaseException], ...] = (RedisError, OSError, asyncio.TimeoutError)

StateListener = Callable[[ConnectionState, ConnectionState, ConnectionEvent], None]
ClientFactory = Callable[[], aioredis.Redis]


class ConnectionManager:
    """远程缓存连接管理器

    is_available() 只读取当前状态，不做任何 I/O，CacheManager 可以在每次操作时调用。
    重连和健康检查都运行在后台任务中，不会阻塞请求处理。
    """

    def __init__(self, config: CacheConfig, client_factory: ClientFactory | None = None):
        """初始化连接管理器

        Args:
            config: 缓存配置
            client_factory: Redis 客户端工厂（测试时可替换）
        """
        self.config = config
        self._client_factory = client_factory or self._create_client
        self._client: aioredis.Redis | None = None

        self._state = ConnectionState.DISCONNECTED
        self._state_lock = threading.Lock()
        self._listeners: list[StateListener] = []

        self._attempts = 0
        self._closing = False
        self._reconnect_task: asyncio.Task | None = None
        self._health_task: asyncio.Task | None = None

        self.cache_logger = get_cache_logger()
        self.metrics = get_cache_metrics()
        self.metrics.set_connection_state(self._state)

    @property
    def state(self) -> ConnectionState:
        """当前连接状态"""
        return self._state

    @property
    def client(self) -> aioredis.Redis | None:
        """当前 Redis 客户端（未连接时为 None）"""
        return self._client

    @property
    def attempts(self) -> int:
        """当前连续失败的重连次数"""
        return self._attempts

    def is_available(self) -> bool:
        """远程缓存是否可用"""
        return self._state is ConnectionState.CONNECTED and self._client is not None

    def add_listener(self, listener: StateListener) -> None:
        """订阅状态变化，回调参数为 (原状态, 新状态, 事件)"""
        self._listeners.append(listener)

    def dispatch(self, event: ConnectionEvent, detail: str | None = None) -> ConnectionState:
        """按转换表处理连接事件

        Args:
            event: 连接事件
            detail: 附加信息（写入日志）

        Returns:
            ConnectionState: 处理后的状态
        """
        with self._state_lock:
            previous = self._state
            target = next_state(previous, event)
            if target is None:
                logger.debug(f"忽略连接事件: state={previous.value}, event={event.value}")
                return previous
            self._state = target

        if target is not previous:
            self.cache_logger.log_state_change(previous.value, target.value, event.value, detail)
            self.metrics.set_connection_state(target)
            self._notify(previous, target, event)

        return target

    def _notify(self, previous: ConnectionState, current: ConnectionState, event: ConnectionEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(previous, current, event)
            except Exception as e:
                logger.error(f"连接状态监听器执行失败: {e}")

    def _create_client(self) -> aioredis.Redis:
        """根据配置创建 Redis 客户端"""
        return aioredis.Redis(
            host=self.config.host,
            port=self.config.port,
            db=self.config.db,
            password=self.config.password,
            max_connections=self.config.max_connections,
            socket_timeout=self.config.operation_timeout,
            socket_connect_timeout=self.config.connect_timeout,
            decode_responses=True,
        )

    async def connect(self) -> bool:
        """连接远程缓存

        缓存被禁用时立即返回 False；握手失败时在后台按退避策略重连。

        Returns:
            bool: 本次握手是否成功
        """
        if not self.config.enabled:
            logger.info("远程缓存已禁用，跳过连接，使用进程内缓存")
            self.cache_logger.log_cache_disabled()
            return False

        if self.is_available():
            return True

        self._closing = False
        await self._cancel_task(self._reconnect_task)
        self._reconnect_task = None
        self._attempts = 0

        if await self._handshake():
            return True

        self._schedule_reconnect()
        return False

    async def _handshake(self) -> bool:
        """创建客户端并 PING，成功后替换当前客户端"""
        self.dispatch(ConnectionEvent.CONNECT_STARTED)
        logger.info(f"正在连接远程缓存: {self.config.host}:{self.config.port}, db={self.config.db}")

        client = self._client_factory()
        try:
            await asyncio.wait_for(client.ping(), timeout=self.config.connect_timeout)
        except TRANSPORT_ERRORS as e:
            logger.error(f"远程缓存连接失败: {type(e).__name__}: {e}")
            self.dispatch(ConnectionEvent.ERROR, detail=str(e) or type(e).__name__)
            await self._close_client(client)
            return False

        # PING 期间状态可能已被其它事件改变，只有真正进入 CONNECTED 才算握手成功
        if self.dispatch(ConnectionEvent.READY) is not ConnectionState.CONNECTED:
            logger.warning(f"握手期间连接状态已变为 {self._state.value}，本次握手作废")
            if client is not self._client:
                await self._close_client(client)
            return False

        previous_client = self._client
        self._client = client
        self._attempts = 0
        if previous_client is not None and previous_client is not client:
            await self._close_client(previous_client)

        logger.info(f"远程缓存连接成功: {self.config.host}:{self.config.port}")
        self._ensure_health_check()
        return True

    def report_error(self, error: BaseException, client: aioredis.Redis | None = None) -> None:
        """远程操作出现传输层错误时由 RedisClient 调用

        已连接状态转为 DEGRADED，并在后台开始重连。握手进行中或来自旧客户端的错误被忽略，
        连接状态由握手结果决定。

        Args:
            error: 传输层异常
            client: 出错的客户端（可选）
        """
        if self._state is ConnectionState.CONNECTING:
            logger.debug(f"握手进行中，忽略远程错误: {type(error).__name__}: {error}")
            return
        if client is not None and client is not self._client:
            logger.debug(f"忽略旧客户端的远程错误: {type(error).__name__}: {error}")
            return

        state = self.dispatch(ConnectionEvent.ERROR, detail=f"{type(error).__name__}: {error}")
        if state is ConnectionState.DEGRADED:
            self.metrics.record_degradation("remote_error")
            self._schedule_reconnect()

    def retry_delay(self, attempt: int) -> float:
        """第 attempt 次重连前的等待时间（秒）：min(attempt * 步长, 上限)"""
        return min(attempt * self.config.retry_delay_ms, self.config.retry_max_delay_ms) / 1000

    def _schedule_reconnect(self) -> None:
        if self._closing:
            return
        if self._reconnect_task is not None and not self._reconnect_task.done():
            return
        self._reconnect_task = asyncio.create_task(self._reconnect_loop())

    async def _reconnect_loop(self) -> None:
        while not self._closing:
            self._attempts += 1
            if self._attempts > self.config.max_reconnect_attempts:
                logger.error(f"远程缓存已达到最大重连次数 ({self.config.max_reconnect_attempts})，停止自动重连")
                self.dispatch(ConnectionEvent.CLOSED, detail="max_reconnect_attempts_reached")
                return

            delay = self.retry_delay(self._attempts)
            logger.info(f"{delay * 1000:.0f}ms 后进行第 {self._attempts} 次重连")
            await asyncio.sleep(delay)

            if self._closing:
                return
            if await self._handshake():
                return

    def _ensure_health_check(self) -> None:
        if self._health_task is None or self._health_task.done():
            self._health_task = asyncio.create_task(self._health_check_loop())

    async def _health_check_loop(self) -> None:
        while not self._closing:
            await asyncio.sleep(self.config.health_check_interval)

            client = self._client
            if self._state is not ConnectionState.CONNECTED or client is None:
                continue

            try:
                await asyncio.wait_for(client.ping(), timeout=self.config.operation_timeout)
            except TRANSPORT_ERRORS as e:
                logger.warning(f"远程缓存健康检查失败: {type(e).__name__}: {e}")
                self.report_error(e, client=client)
            else:
                self.dispatch(ConnectionEvent.READY)

    async def health_check(self) -> bool:
        """立即执行一次 PING（供健康检查端点使用）

        Returns:
            bool: PING 是否成功；未连接时返回 False
        """
        client = self._client
        if client is None or not self.config.enabled:
            return False

        try:
            await asyncio.wait_for(client.ping(), timeout=self.config.operation_timeout)
        except TRANSPORT_ERRORS as e:
            logger.warning(f"远程缓存 PING 失败: {e}")
            self.report_error(e, client=client)
            return False

        self.dispatch(ConnectionEvent.READY)
        return True

    async def disconnect(self) -> None:
        """关闭连接并停止所有后台任务"""
        self._closing = True

        await self._cancel_task(self._reconnect_task)
        await self._cancel_task(self._health_task)
        self._reconnect_task = None
        self._health_task = None

        client = self._client
        self._client = None
        if client is not None:
            await self._close_client(client)
            logger.info("远程缓存连接已关闭")

        self.dispatch(ConnectionEvent.CLOSED, detail="disconnect")

    @staticmethod
    async def _cancel_task(task: asyncio.Task | None) -> None:
        if task is None or task.done() or task is asyncio.current_task():
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    @staticmethod
    async def _close_client(client: aioredis.Redis) -> None:
        try:
            await client.aclose()
        except TRANSPORT_ERRORS as e:
            logger.error(f"关闭 Redis 连接时出错: {e}")
