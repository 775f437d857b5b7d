"""世界事件外发通知工具。

本模块定义通知器接口（Protocol）与三种实现：

- ``LoggingNotifier``：默认实现，把消息写入应用日志；
- ``NullNotifier``：丢弃所有消息，用于测试与离线批量运行；
- ``TelegramNotifier``：通过 httpx 调用 Telegram Bot API 的 ``sendMessage``。

``NotificationDispatcher`` 负责把同步的 tick 与异步的发送解耦：消息以
fire-and-forget 的方式调度到当前事件循环，发送失败只记录日志，不会影响 tick。
"""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Optional, Protocol, Set

import httpx

logger = logging.getLogger(__name__)

TELEGRAM_TOKEN_ENV = "NOCRACY_TELEGRAM_TOKEN"
TELEGRAM_CHAT_ENV = "NOCRACY_TELEGRAM_CHAT_ID"
TELEGRAM_API_BASE = "https://api.telegram.org"


class Notifier(Protocol):
    """描述外发通知器接口的协议（Protocol）。"""

    async def send(self, message: str) -> None:  # pragma: no cover - interface
        """发送一条已格式化的 HTML 消息。"""


class LoggingNotifier:
    """默认的通知实现：通过应用日志记录消息。"""

    async def send(self, message: str) -> None:
        logger.info("World notification | %s", message.splitlines()[0] if message else "")
        logger.debug("Full notification body:\n%s", message)


class NullNotifier:
    async def send(self, message: str) -> None:
        return None


class TelegramNotifier:
    """Telegram Bot API 通知器。

    每次发送创建一个短生命周期的 ``httpx.AsyncClient``；HTTP 错误以异常形式
    抛出，由 :class:`NotificationDispatcher` 捕获并记录。
    """

    def __init__(
        self,
        token: str,
        chat_id: str,
        *,
        api_base: str = TELEGRAM_API_BASE,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if not token or not chat_id:
            raise ValueError("Telegram notifier requires both token and chat_id")
        self._token = token
        self._chat_id = chat_id
        self._api_base = api_base.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    @classmethod
    def from_env(cls) -> Optional["TelegramNotifier"]:
        """从环境变量构造；缺少任一变量时返回 ``None``。"""
        token = os.getenv(TELEGRAM_TOKEN_ENV)
        chat_id = os.getenv(TELEGRAM_CHAT_ENV)
        if not token or not chat_id:
            return None
        return cls(token, chat_id)

    @property
    def endpoint(self) -> str:
        return f"{self._api_base}/bot{self._token}/sendMessage"

    async def send(self, message: str) -> None:
        body = {
            "chat_id": self._chat_id,
            "text": message,
            "parse_mode": "HTML",
            "disable_web_page_preview": True,
        }
        async with httpx.AsyncClient(
            timeout=self._timeout, transport=self._transport
        ) as client:
            resp = await client.post(self.endpoint, json=body)
        if resp.status_code >= 400:
            # 不在异常信息中泄露 token
            raise RuntimeError(
                f"Telegram API error {resp.status_code}: {resp.text[:200]}"
            )


def default_notifier() -> Notifier:
    """环境变量齐全时返回 Telegram 通知器，否则退回日志通知器。"""
    telegram = TelegramNotifier.from_env()
    if telegram is not None:
        return telegram
    return LoggingNotifier()


class NotificationDispatcher:
    """把同步调用方产生的消息调度为后台任务。"""

    def __init__(self, notifier: Optional[Notifier]) -> None:
        self._notifier = notifier
        self._tasks: Set[asyncio.Task] = set()

    @property
    def notifier(self) -> Optional[Notifier]:
        return self._notifier

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def dispatch(self, message: str) -> None:
        if self._notifier is None:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; notification dropped")
            return
        task = loop.create_task(self._deliver(message))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _deliver(self, message: str) -> None:
        assert self._notifier is not None
        try:
            await self._notifier.send(message)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.warning("Notification delivery failed", exc_info=True)

    async def drain(self) -> None:
        """等待所有在途通知完成（测试与关闭时使用）。"""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def aclose(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        self._tasks.clear()


__all__ = [
    "LoggingNotifier",
    "NotificationDispatcher",
    "Notifier",
    "NullNotifier",
    "TelegramNotifier",
    "default_notifier",
]
