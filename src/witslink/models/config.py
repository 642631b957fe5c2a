"""Connection options and application settings.

:class:`ConnectionOptions` is the immutable description of one connection
(transport, endpoint, wire format, retry policy).  :class:`AppSettings`
supplies CLI defaults from ``WITSLINK_*`` environment variables and ``.env``.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class TransportKind(StrEnum):
    """Physical link used to reach the data source."""

    TCP = "tcp"
    UDP = "udp"
    SERIAL = "serial"
    WEBSOCKET = "websocket"


class ProtocolVariant(StrEnum):
    """Record format carried over the link."""

    NORALIS = "noralis"
    WITS0 = "wits0"
    WITS1 = "wits1"


# Staleness windows (seconds); Noralis polls less often than generic WITS.
_NORALIS_DATA_TIMEOUT = 600.0
_WITS_DATA_TIMEOUT = 300.0

_LOCAL_HOSTS = ("localhost", "127.0.0.1")


class WellInfo(BaseModel):
    """Well identity stamped onto every emitted frame."""

    model_config = ConfigDict(frozen=True)

    well_id: str | None = None
    well_name: str | None = None
    rig_name: str | None = None
    sensor_offset: float | None = None

    def as_attributes(self) -> dict[str, Any]:
        """Return the non-empty fields under their camelCase frame keys."""
        attrs: dict[str, Any] = {}
        if self.well_id:
            attrs["wellId"] = self.well_id
        if self.well_name:
            attrs["wellName"] = self.well_name
        if self.rig_name:
            attrs["rigName"] = self.rig_name
        if self.sensor_offset is not None:
            attrs["sensorOffset"] = self.sensor_offset
        return attrs


class ConnectionOptions(BaseModel):
    """Everything the client needs to open and maintain one connection.

    Frozen: use :meth:`model_copy` with ``update=`` to derive a variant and
    hand it to :meth:`WitsClient.update_options`.
    """

    model_config = ConfigDict(frozen=True)

    transport: TransportKind = TransportKind.TCP
    protocol: ProtocolVariant = ProtocolVariant.WITS0

    host: str = "localhost"
    port: int = Field(default=5000, ge=0, le=65535)
    bind_host: str = "0.0.0.0"
    """Local address for the UDP listener."""

    serial_device: str = "/dev/ttyUSB0"
    baud_rate: int = Field(default=9600, gt=0)

    delimiter: str | None = None
    """Record terminator. ``None`` picks the protocol default."""

    reconnect_interval: float = Field(default=10.0, ge=0)
    max_reconnect_attempts: int = Field(default=100, ge=0)

    health_check_interval: float = Field(default=120.0, gt=0)
    data_timeout: float | None = Field(default=None, gt=0)
    connect_timeout: float | None = Field(default=None, gt=0)

    tcp_keepalive: float = Field(default=30.0, gt=0)
    tcp_idle_timeout: float = Field(default=300.0, gt=0)

    ws_endpoint: str | None = None
    ws_secure: bool | None = None
    heartbeat_interval: float = Field(default=15.0, gt=0)
    pong_timeout: float = Field(default=10.0, gt=0)
    max_missed_pongs: int = Field(default=3, ge=1)

    proxy: bool = False
    """Ask a WebSocket-to-TCP proxy to dial ``proxy_host:proxy_port``."""
    proxy_host: str = "localhost"
    proxy_port: int = Field(default=5000, ge=1, le=65535)

    well: WellInfo | None = None
    max_buffer: int | None = Field(default=None, gt=0)
    """Cap on unterminated residual text; ``None`` never truncates."""

    @model_validator(mode="after")
    def _validate_delimiter(self) -> ConnectionOptions:
        if self.delimiter is not None and self.delimiter == "":
            raise ValueError("delimiter must not be empty")
        return self

    @property
    def is_noralis(self) -> bool:
        return self.protocol == ProtocolVariant.NORALIS

    @property
    def effective_delimiter(self) -> str:
        if self.delimiter is not None:
            return self.delimiter
        return "\r\n" if self.is_noralis else "\n"

    @property
    def effective_data_timeout(self) -> float:
        if self.data_timeout is not None:
            return self.data_timeout
        return _NORALIS_DATA_TIMEOUT if self.is_noralis else _WITS_DATA_TIMEOUT

    @property
    def use_tls(self) -> bool:
        """Whether the WebSocket URL should use ``wss://``.

        Loopback and ``192.168.*`` hosts default to plain ``ws://``.
        """
        if self.ws_secure is not None:
            return self.ws_secure
        return not (self.host in _LOCAL_HOSTS or self.host.startswith("192.168."))

    @property
    def endpoint_label(self) -> str:
        """Human-readable source description for status messages."""
        if self.transport == TransportKind.SERIAL:
            return f"{self.serial_device} @ {self.baud_rate} baud"
        return f"{self.host}:{self.port}"


class AppSettings(BaseSettings):
    """CLI defaults populated from environment variables and a ``.env`` file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="WITSLINK_",
        extra="ignore",
    )

    transport: TransportKind = TransportKind.TCP
    protocol: ProtocolVariant = ProtocolVariant.WITS0
    host: str = "localhost"
    port: int = 5000
    serial_device: str = "/dev/ttyUSB0"
    baud_rate: int = 9600
    delimiter: str | None = None
    reconnect_interval: float = 10.0
    max_reconnect_attempts: int = 100
    mappings_file: str | None = None
    well_id: str | None = None
    well_name: str | None = None
    rig_name: str | None = None

    def connection_options(self, **overrides: Any) -> ConnectionOptions:
        """Build :class:`ConnectionOptions`, letting non-``None`` *overrides* win."""
        data: dict[str, Any] = {
            "transport": self.transport,
            "protocol": self.protocol,
            "host": self.host,
            "port": self.port,
            "serial_device": self.serial_device,
            "baud_rate": self.baud_rate,
            "delimiter": self.delimiter,
            "reconnect_interval": self.reconnect_interval,
            "max_reconnect_attempts": self.max_reconnect_attempts,
        }
        data.update({k: v for k, v in overrides.items() if v is not None})
        if self.well_id or self.well_name or self.rig_name:
            data.setdefault(
                "well",
                WellInfo(well_id=self.well_id, well_name=self.well_name, rig_name=self.rig_name),
            )
        return ConnectionOptions.model_validate(data)
