"""对话引擎核心模块。

一个 ChatEngine 只管理一段对话，负责单次交换的完整生命周期：
追加用户消息 → 追加空的 assistant 占位 → 构造请求 → 读取响应流 →
逐段写入占位消息并通知调用方 → 成功收尾或失败回滚。

状态机：Idle → Sending → Streaming → {Completed, Failed}。
同一时间只允许一次交换在进行中，并发的 send 会被直接拒绝而不是排队。
"""

import asyncio
import logging
import time
from contextlib import aclosing
from typing import Any, Callable, Dict, List, Optional, Tuple
from uuid import uuid4

from chat_core.domain.exceptions import (
    ConcurrentExchangeError,
    EmptyBodyError,
    HttpStatusError,
    NotOpenForWriteError,
    RateLimitError,
    TransportError,
)
from chat_core.domain.models import (
    ChatEvent,
    Exchange,
    ExchangeState,
    ProviderConfig,
    SendResult,
    Turn,
)
from chat_core.domain.transcript import Transcript
from chat_core.infrastructure.logging.logger import log_event, logger
from chat_core.providers import create_adapter
from chat_core.providers.base import ProviderAdapter
from chat_core.streaming.decoder import iter_lines
from chat_core.transport.base import Transport, TransportResponse
from chat_core.transport.http import HttpxTransport


FragmentCallback = Callable[[str], Any]
Listener = Callable[[ChatEvent], Any]


class ChatEngine:
    def __init__(
        self,
        config: ProviderConfig,
        transport: Optional[Transport] = None,
        adapter: Optional[ProviderAdapter] = None,
        timeout: Optional[float] = None,
    ):
        self._config = config
        self._adapter = adapter or create_adapter(config)
        self._transport = transport or HttpxTransport(timeout=timeout)
        self._owns_transport = transport is None
        self._transcript = Transcript(config.system_prompt)
        self._state = ExchangeState.IDLE
        self._last_error: Optional[Exception] = None
        self._listeners: List[Listener] = []
        self._exchange: Optional[Exchange] = None
        self._task: Optional[asyncio.Task] = None

    # ---- 只读视图 ----

    @property
    def config(self) -> ProviderConfig:
        return self._config

    @property
    def state(self) -> ExchangeState:
        return self._state

    @property
    def is_streaming(self) -> bool:
        return self._state.busy

    @property
    def last_error(self) -> Optional[Exception]:
        return self._last_error

    @property
    def transcript(self) -> Tuple[Turn, ...]:
        return self._transcript.snapshot()

    def messages(self) -> List[Dict[str, str]]:
        return [t.to_payload() for t in self._transcript.snapshot()]

    # ---- 订阅 ----

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    # ---- 交换 ----

    async def send(self, text: str, on_fragment: Optional[FragmentCallback] = None) -> SendResult:
        """发送一条用户消息并流式接收回复。

        Args:
            text: 用户输入
            on_fragment: 可选回调，每收到一段非空增量即同步调用一次；
                回调的返回值与异常都不会影响本次交换。

        Returns:
            SendResult，包含最终回复文本与增量段数。

        Raises:
            ConcurrentExchangeError: 已有交换在进行中（不修改任何状态）。
            TransportError / HttpStatusError / EmptyBodyError: 本次交换失败，
                同时记录在 last_error 中。
        """
        if self._state.busy:
            raise ConcurrentExchangeError(
                code="EXCHANGE_IN_FLIGHT",
                message="another exchange is already in flight",
                state=self._state.value,
            )

        start_time = time.time()
        exchange_id = f"ex-{uuid4().hex}"
        log_ctx: Dict[str, Any] = {
            "exchange_id": exchange_id,
            "dialect": self._adapter.dialect,
            "model": self._config.model,
        }

        self._last_error = None
        self._transcript.append(Turn(role="user", content=text))
        exchange = Exchange(id=exchange_id, placeholder=self._transcript.open_placeholder())
        self._exchange = exchange
        self._task = asyncio.current_task()
        self._set_state(ExchangeState.SENDING, exchange_id)

        response: Optional[TransportResponse] = None
        try:
            self._raise_if_aborted(exchange)
            request = self._adapter.build_request(self._transcript)
            log_event(
                logging.INFO,
                "Sending chat request",
                log_ctx,
                url=request.url,
                message_count=len(request.body["messages"]),
            )
            response = await self._transport.post(request.url, request.headers, request.body)
            self._check_response(response, log_ctx)

            self._set_state(ExchangeState.STREAMING, exchange_id)
            self._raise_if_aborted(exchange)
            async with aclosing(iter_lines(response.body)) as lines:
                async for line in lines:
                    fragment = self._adapter.extract_fragment(line)
                    if fragment:
                        self._append_fragment(exchange, fragment, on_fragment)
                        # 回调或监听器里调用 abort() 时不再等待下一段数据
                        self._raise_if_aborted(exchange)
        except asyncio.CancelledError:
            error = self._abort_error()
            self._fail(exchange, error, log_ctx)
            task = asyncio.current_task()
            # 只有 abort() 发起且没有叠加其他取消时才转成普通错误，外层超时照常生效
            if exchange.cancel_requested and task is not None and task.uncancel() == 0:
                raise error from None
            raise
        except Exception as e:
            self._fail(exchange, e, log_ctx)
            raise
        else:
            result = self._complete(exchange, log_ctx, time.time() - start_time)
        finally:
            self._task = None
            self._exchange = None
            if response is not None:
                await self._close_response(response, log_ctx)

        return result

    def abort(self) -> bool:
        """中止进行中的交换，效果等同于读流时发生传输错误。

        Returns:
            是否有交换被中止。
        """
        exchange, task = self._exchange, self._task
        if exchange is None or exchange.completed or exchange.error is not None:
            return False
        exchange.aborted = True
        # 在回调内调用时由 send 检查标记；跨任务调用时需要打断正在等待的读取
        if (
            not exchange.cancel_requested
            and task is not None
            and task is not asyncio.current_task()
            and not task.done()
        ):
            exchange.cancel_requested = task.cancel()
        return True

    def reset(self) -> None:
        """清空对话，恢复到初始状态（空或仅含系统提示词）。"""

        if self._state.busy:
            raise ConcurrentExchangeError(
                code="EXCHANGE_IN_FLIGHT",
                message="cannot reset while an exchange is in flight",
                state=self._state.value,
            )
        self._transcript.reset(self._config.system_prompt)
        self._last_error = None
        self._set_state(ExchangeState.IDLE, None)
        logger.info("Transcript reset", extra={"extra": {"turns": len(self._transcript)}})

    async def aclose(self) -> None:
        if self._owns_transport:
            await self._transport.aclose()

    async def __aenter__(self) -> "ChatEngine":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    # ---- 内部步骤 ----

    def _check_response(self, response: TransportResponse, log_ctx: Dict[str, Any]) -> None:
        if not response.ok:
            status = response.status_code
            error_cls = RateLimitError if status == 429 else HttpStatusError
            raise error_cls(
                code="RATE_LIMIT" if status == 429 else "HTTP_ERROR",
                message=f"HTTP {status} - {response.reason_phrase}",
                http_status=status,
                exchange_id=log_ctx["exchange_id"],
            )
        if response.body is None:
            raise EmptyBodyError(
                code="EMPTY_BODY",
                message="Response body is empty",
                http_status=response.status_code,
                exchange_id=log_ctx["exchange_id"],
            )

    def _append_fragment(
        self,
        exchange: Exchange,
        fragment: str,
        on_fragment: Optional[FragmentCallback],
    ) -> None:
        turn = self._transcript.last_mutable()
        if turn is not exchange.placeholder:
            raise NotOpenForWriteError(
                code="NOT_OPEN_FOR_WRITE",
                message="trailing turn does not belong to this exchange",
            )
        turn.append(fragment)
        exchange.fragment_count += 1
        self._emit(ChatEvent(kind="fragment", exchange_id=exchange.id, state=self._state, fragment=fragment))
        if on_fragment is not None:
            try:
                on_fragment(fragment)
            except Exception:
                logger.exception("Fragment callback failed", extra={"extra": {"exchange_id": exchange.id}})

    def _complete(self, exchange: Exchange, log_ctx: Dict[str, Any], elapsed: float) -> SendResult:
        placeholder = exchange.placeholder
        placeholder.close()
        if not exchange.has_content:
            # 流正常结束但没有任何内容，不留下空的 assistant 消息
            self._drop_placeholder(placeholder)
            log_event(logging.WARNING, "Stream ended without content", log_ctx)
        exchange.completed = True
        self._set_state(ExchangeState.COMPLETED, exchange.id)
        log_event(
            logging.INFO,
            "Completed exchange",
            log_ctx,
            fragment_count=exchange.fragment_count,
            content_length=len(placeholder.content),
            elapsed_seconds=round(elapsed, 2),
        )
        return SendResult(
            content=placeholder.content,
            fragment_count=exchange.fragment_count,
            elapsed_seconds=elapsed,
        )

    def _fail(self, exchange: Exchange, error: Exception, log_ctx: Dict[str, Any]) -> None:
        placeholder = exchange.placeholder
        placeholder.close()
        kept_partial = exchange.has_content
        if not kept_partial:
            # 没有产出任何内容：回退到仅保留用户消息的状态
            self._drop_placeholder(placeholder)
        exchange.error = error
        self._last_error = error
        self._set_state(ExchangeState.FAILED, exchange.id)
        self._emit(ChatEvent(kind="error", exchange_id=exchange.id, state=self._state, error=error))
        log_event(
            logging.ERROR,
            "Exchange failed",
            log_ctx,
            error=str(error),
            code=getattr(error, "code", type(error).__name__),
            http_status=getattr(error, "http_status", None),
            kept_partial=kept_partial,
            fragment_count=exchange.fragment_count,
        )

    def _drop_placeholder(self, placeholder: Turn) -> None:
        if self._transcript.is_last(placeholder):
            self._transcript.remove_last()

    @staticmethod
    def _abort_error() -> TransportError:
        return TransportError(code="ABORTED", message="exchange aborted")

    def _raise_if_aborted(self, exchange: Exchange) -> None:
        if exchange.aborted:
            raise self._abort_error()

    async def _close_response(self, response: TransportResponse, log_ctx: Dict[str, Any]) -> None:
        try:
            await response.aclose()
        except Exception:
            logger.exception("Failed to release response", extra={"extra": log_ctx})

    def _set_state(self, state: ExchangeState, exchange_id: Optional[str]) -> None:
        self._state = state
        self._emit(ChatEvent(kind="state", exchange_id=exchange_id, state=state))

    def _emit(self, event: ChatEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception(
                    "Listener failed",
                    extra={"extra": {"event": event.kind, "exchange_id": event.exchange_id}},
                )
