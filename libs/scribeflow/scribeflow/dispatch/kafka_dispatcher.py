"""Completion event dispatcher backed by an aiokafka producer."""

from __future__ import annotations

import asyncio
import logging
import subprocess
from collections.abc import Callable
from enum import Enum
from typing import Any

from aiokafka.errors import KafkaError
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from scribeflow.config import KafkaConfig
from scribeflow.dispatch.messages import CompletionAction, EventMessage, build_completion_message
from scribeflow.dispatch.security import KerberosSecurity, SecurityConfig, build_security_config
from scribeflow.exceptions import DispatchUnavailableError
from scribeflow.models import ParentRecord
from scribeflow.utils.subprocess import run_command_line

logger = logging.getLogger(__name__)

ProducerFactory = Callable[..., Any]

_CONNECT_ERRORS = (KafkaError, OSError, asyncio.TimeoutError)
_PUBLISH_ERRORS = (DispatchUnavailableError, KafkaError, OSError, asyncio.TimeoutError)
# Payload problems (missing topic, unserializable attribute) are dropped the same way.
_MESSAGE_ERRORS = (KeyError, TypeError, ValueError)


class DispatcherState(str, Enum):
    DISABLED = "disabled"
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"


def _default_producer_factory(**kwargs: Any) -> Any:
    from aiokafka import AIOKafkaProducer

    return AIOKafkaProducer(**kwargs)


def _log_connect_retry(state: RetryCallState) -> None:
    exc = state.outcome.exception() if state.outcome else None
    wait_s = state.next_action.sleep if state.next_action else None
    logger.warning(
        "kafka connect retrying (attempt=%s, wait_s=%s, error=%s)",
        state.attempt_number,
        wait_s,
        exc,
    )


class EventDispatcher:
    """Publishes "ready for summarization" events.

    Constructed once per process and injected into the aggregator. When the
    feature flag is off the dispatcher stays `disabled` and every operation
    is skipped. Events are never queued: anything published while
    disconnected is dropped and logged.
    """

    def __init__(
        self,
        config: KafkaConfig,
        *,
        producer_factory: ProducerFactory | None = None,
        connect_wait: wait_base | None = None,
    ) -> None:
        self.config = config
        self._producer_factory = producer_factory or _default_producer_factory
        self._connect_wait = connect_wait or wait_exponential(multiplier=0.1, min=0.1, max=5)
        self._producer: Any | None = None
        self._lock = asyncio.Lock()
        self.security: SecurityConfig | None = build_security_config(config) if config.enabled else None
        self._state = DispatcherState.DISCONNECTED if config.enabled else DispatcherState.DISABLED

    @property
    def state(self) -> DispatcherState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state == DispatcherState.CONNECTED

    def status(self) -> dict[str, Any]:
        return {
            "enabled": self._state != DispatcherState.DISABLED,
            "connected": self.is_connected,
            "state": self._state.value,
            "brokers": self.config.broker_list if self.config.enabled else [],
        }

    def _producer_kwargs(self) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "bootstrap_servers": self.config.broker_list,
            "client_id": self.config.client_id,
            "acks": "all",
            "enable_idempotence": True,
        }
        if self.security is not None:
            kwargs.update(self.security.to_producer_kwargs())
        return kwargs

    async def _kinit(self, security: KerberosSecurity, command: str) -> None:
        try:
            result = await run_command_line(command)
        except (OSError, ValueError, subprocess.SubprocessError) as exc:
            logger.warning("kinit failed (principal=%s, error=%s)", security.principal, exc)
            return
        if result.ok:
            logger.info("kinit succeeded (principal=%s)", security.principal)
        else:
            logger.warning(
                "kinit failed (principal=%s, returncode=%s, stderr=%s)",
                security.principal,
                result.returncode,
                result.stderr_text(),
            )

    async def _connect_once(self) -> Any:
        producer = self._producer_factory(**self._producer_kwargs())
        try:
            await producer.start()
        except _CONNECT_ERRORS:
            await self._close_producer(producer)
            raise
        return producer

    @staticmethod
    async def _close_producer(producer: Any) -> None:
        try:
            await producer.stop()
        except _CONNECT_ERRORS as exc:
            logger.debug("kafka producer stop failed: %s", exc)

    async def start(self) -> None:
        """Connect the producer; failure leaves the dispatcher disconnected."""
        if self._state == DispatcherState.DISABLED:
            logger.info("kafka disabled, completion events will not be published")
            return

        async with self._lock:
            if self._state == DispatcherState.CONNECTED:
                return
            if isinstance(self.security, KerberosSecurity):
                command = self.security.kinit_command()
                if command:
                    await self._kinit(self.security, command)

            try:
                async for attempt in AsyncRetrying(
                    retry=retry_if_exception_type(_CONNECT_ERRORS),
                    stop=stop_after_attempt(int(self.config.connect_retries) + 1),
                    wait=self._connect_wait,
                    before_sleep=_log_connect_retry,
                    reraise=True,
                ):
                    with attempt:
                        producer = await self._connect_once()
            except _CONNECT_ERRORS as exc:
                self._state = DispatcherState.DISCONNECTED
                logger.error("kafka connect failed (brokers=%s, error=%s)", self.config.brokers, exc)
                return

            self._producer = producer
            self._state = DispatcherState.CONNECTED
            logger.info(
                "kafka producer connected (brokers=%s, protocol=%s)",
                self.config.brokers,
                self.security.protocol if self.security else None,
            )

    async def stop(self) -> None:
        async with self._lock:
            producer, self._producer = self._producer, None
            if producer is not None:
                await self._close_producer(producer)
                logger.info("kafka producer disconnected")
            if self._state != DispatcherState.DISABLED:
                self._state = DispatcherState.DISCONNECTED

    async def publish(self, message: EventMessage) -> None:
        if self._state != DispatcherState.CONNECTED or self._producer is None:
            raise DispatchUnavailableError(self._state.value)
        await self._producer.send_and_wait(
            message.topic,
            value=message.value_bytes(),
            key=message.key_bytes(),
            headers=message.header_items(),
        )

    async def dispatch_completion(self, parent: ParentRecord, action: CompletionAction) -> bool:
        """Publish the completion event for a parent; never raises.

        Returns True when the broker acknowledged the event.
        """
        if self._state == DispatcherState.DISABLED:
            logger.info("kafka disabled, skipping completion event (parent=%s, action=%s)", parent.ref.key, action)
            return False

        topic = self.config.topics().get(parent.entity_type.value)
        try:
            message = build_completion_message(
                parent,
                action,
                self.config.topics(),
                source=self.config.source,
            )
            await self.publish(message)
        except _PUBLISH_ERRORS + _MESSAGE_ERRORS as exc:
            logger.error(
                "completion event dropped (parent=%s, action=%s, topic=%s, error=%s)",
                parent.ref.key,
                action,
                topic,
                exc,
            )
            return False

        logger.info(
            "completion event sent (parent=%s, action=%s, topic=%s, links=%s)",
            parent.ref.key,
            action,
            message.topic,
            {k: len(v) for k, v in parent.links.items()},
        )
        return True
