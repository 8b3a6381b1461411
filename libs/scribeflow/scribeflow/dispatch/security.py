"""Broker security configuration.

Exactly one variant is active. It is built and validated once at startup by
`build_security_config`, and mapped to aiokafka producer arguments by
`to_producer_kwargs`.
"""

from __future__ import annotations

import shlex
import ssl
from dataclasses import dataclass
from typing import Any, Union

from scribeflow.config import KafkaConfig
from scribeflow.exceptions import ConfigurationError

PROTOCOLS = frozenset({"PLAINTEXT", "SSL", "SASL_PLAINTEXT", "SASL_SSL"})
CREDENTIAL_MECHANISMS = frozenset({"PLAIN", "SCRAM-SHA-256", "SCRAM-SHA-512"})
KERBEROS_MECHANISM = "GSSAPI"


@dataclass(frozen=True)
class PlaintextSecurity:
    protocol: str = "PLAINTEXT"

    def to_producer_kwargs(self) -> dict[str, Any]:
        return {"security_protocol": self.protocol}


@dataclass(frozen=True)
class SslSecurity:
    ca_location: str | None = None
    certificate_location: str | None = None
    key_location: str | None = None
    key_password: str | None = None
    verify_certificates: bool = True
    protocol: str = "SSL"

    def ssl_context(self) -> Any:
        from aiokafka.helpers import create_ssl_context

        context = create_ssl_context(
            cafile=self.ca_location,
            certfile=self.certificate_location,
            keyfile=self.key_location,
            password=self.key_password,
        )
        if not self.verify_certificates:
            # check_hostname must be off before verify_mode can drop to CERT_NONE
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        return context

    def to_producer_kwargs(self) -> dict[str, Any]:
        return {"security_protocol": self.protocol, "ssl_context": self.ssl_context()}


@dataclass(frozen=True)
class SaslCredentialSecurity:
    protocol: str
    mechanism: str
    username: str
    password: str
    ssl: SslSecurity | None = None

    def to_producer_kwargs(self) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "security_protocol": self.protocol,
            "sasl_mechanism": self.mechanism,
            "sasl_plain_username": self.username,
            "sasl_plain_password": self.password,
        }
        if self.ssl is not None:
            kwargs["ssl_context"] = self.ssl.ssl_context()
        return kwargs


@dataclass(frozen=True)
class KerberosSecurity:
    protocol: str
    principal: str
    service_name: str = "kafka"
    keytab: str | None = None
    kinit_cmd: str | None = None
    ssl: SslSecurity | None = None

    @property
    def mechanism(self) -> str:
        return KERBEROS_MECHANISM

    def kinit_command(self) -> str | None:
        """Explicit KAFKA_SASL_KERBEROS_KINIT_CMD, else a keytab login when a keytab is set."""
        if self.kinit_cmd:
            return self.kinit_cmd
        if self.keytab:
            return shlex.join(["kinit", "-kt", self.keytab, self.principal])
        return None

    def to_producer_kwargs(self) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "security_protocol": self.protocol,
            "sasl_mechanism": KERBEROS_MECHANISM,
            "sasl_kerberos_service_name": self.service_name,
        }
        if self.ssl is not None:
            kwargs["ssl_context"] = self.ssl.ssl_context()
        return kwargs


SecurityConfig = Union[PlaintextSecurity, SslSecurity, SaslCredentialSecurity, KerberosSecurity]


def _clean(value: str | None) -> str | None:
    text = str(value or "").strip()
    return text or None


def _ssl_from_config(config: KafkaConfig) -> SslSecurity:
    cert = _clean(config.ssl_certificate_location)
    key = _clean(config.ssl_key_location)
    if bool(cert) != bool(key):
        raise ConfigurationError(
            "KAFKA_SSL_CERTIFICATE_LOCATION and KAFKA_SSL_KEY_LOCATION must be set together"
        )
    algorithm = str(config.ssl_endpoint_identification_algorithm or "").strip().lower()
    return SslSecurity(
        ca_location=_clean(config.ssl_ca_location),
        certificate_location=cert,
        key_location=key,
        key_password=_clean(config.ssl_key_password),
        verify_certificates=algorithm == "https",
    )


def build_security_config(config: KafkaConfig) -> SecurityConfig:
    """Validate the KAFKA_* security settings and return the active variant."""
    protocol = str(config.security_protocol or "").strip().upper()
    if protocol not in PROTOCOLS:
        raise ConfigurationError(
            f"Unsupported KAFKA_SECURITY_PROTOCOL {config.security_protocol!r} "
            f"(expected one of: {', '.join(sorted(PROTOCOLS))})"
        )

    if protocol == "PLAINTEXT":
        return PlaintextSecurity()
    if protocol == "SSL":
        return _ssl_from_config(config)

    transport = _ssl_from_config(config) if protocol == "SASL_SSL" else None
    mechanism = str(config.sasl_mechanism or "").strip().upper()

    if mechanism == KERBEROS_MECHANISM:
        principal = _clean(config.sasl_kerberos_principal)
        if principal is None:
            raise ConfigurationError("KAFKA_SASL_KERBEROS_PRINCIPAL is required for GSSAPI")
        return KerberosSecurity(
            protocol=protocol,
            principal=principal,
            service_name=_clean(config.sasl_kerberos_service_name) or "kafka",
            keytab=_clean(config.sasl_kerberos_keytab),
            kinit_cmd=_clean(config.sasl_kerberos_kinit_cmd),
            ssl=transport,
        )

    if mechanism in CREDENTIAL_MECHANISMS:
        username = _clean(config.sasl_username)
        password = config.sasl_password or ""
        if username is None or not password:
            raise ConfigurationError(f"KAFKA_SASL_USERNAME and KAFKA_SASL_PASSWORD are required for {mechanism}")
        return SaslCredentialSecurity(
            protocol=protocol,
            mechanism=mechanism,
            username=username,
            password=password,
            ssl=transport,
        )

    raise ConfigurationError(
        f"Unsupported KAFKA_SASL_MECHANISM {config.sasl_mechanism!r} "
        f"(expected one of: GSSAPI, {', '.join(sorted(CREDENTIAL_MECHANISMS))})"
    )
