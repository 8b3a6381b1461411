"""Completion event dispatch."""

from scribeflow.dispatch.kafka_dispatcher import DispatcherState, EventDispatcher
from scribeflow.dispatch.messages import EventMessage, build_completion_message
from scribeflow.dispatch.security import (
    KerberosSecurity,
    PlaintextSecurity,
    SaslCredentialSecurity,
    SecurityConfig,
    SslSecurity,
    build_security_config,
)

__all__ = [
    "DispatcherState",
    "EventDispatcher",
    "EventMessage",
    "KerberosSecurity",
    "PlaintextSecurity",
    "SaslCredentialSecurity",
    "SecurityConfig",
    "SslSecurity",
    "build_completion_message",
    "build_security_config",
]
