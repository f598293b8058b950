"""Pushing metrics to an InfluxDB server over its HTTP write endpoint."""

from __future__ import annotations

import base64
import http.client
import json
import math
import socket
import ssl
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Mapping
from urllib.parse import urlencode, urlsplit

from kuberhealthy.metrics import Metric, MetricsClient

DEFAULT_USER_AGENT = "InfluxDBClient"


class InfluxError(Exception):
    """Raised when the server rejects a write."""


@dataclass
class InfluxConfig:
    """Connection settings for an InfluxDB server."""

    url: str = ""
    unix_socket: str = ""
    username: str = ""
    password: str = ""
    user_agent: str = ""
    timeout: float = 0.0
    precision: str = ""
    write_consistency: str = ""
    unsafe_ssl: bool = False


def _escape_measurement(text: str) -> str:
    return text.replace(",", "\\,").replace(" ", "\\ ")


def _escape_tag(text: str) -> str:
    return text.replace(",", "\\,").replace("=", "\\=").replace(" ", "\\ ")


def _format_field(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return f"{value}i"
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError(f"field value {value!r} is not a finite number")
        return format(Decimal(repr(value)).normalize(), "f")
    if isinstance(value, str):
        escaped = value.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    raise TypeError(f"unsupported field value type: {type(value).__name__}")


def build_line_protocol(points: Metric, tags: Mapping[str, str] | None) -> str:
    """Render points as line protocol, one line per name with a ``value`` field."""
    tag_text = "".join(
        f",{_escape_tag(key)}={_escape_tag(tags[key])}"
        for key in sorted(tags or {})
        if key and tags[key]
    )
    lines = []
    for point in points:
        for key, value in point.items():
            measurement = key.replace(" ", "_")
            if not measurement:
                raise ValueError("point has an empty measurement name")
            lines.append(
                f"{_escape_measurement(measurement)}{tag_text} value={_format_field(value)}"
            )
    return "\n".join(lines)


class _UnixHTTPConnection(http.client.HTTPConnection):
    def __init__(self, path: str, timeout: float | None) -> None:
        super().__init__("localhost", timeout=timeout)
        self._socket_path = path

    def connect(self) -> None:
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        if self.timeout is not None:
            sock.settimeout(self.timeout)
        sock.connect(self._socket_path)
        self.sock = sock


class InfluxClient(MetricsClient):
    """A metrics client that writes points to one InfluxDB database."""

    def __init__(self, database: str, config: InfluxConfig) -> None:
        if not config.unix_socket:
            scheme = urlsplit(config.url).scheme
            if scheme not in ("http", "https"):
                raise ValueError(f"unsupported InfluxDB URL: {config.url!r}")
        self.database = database
        self.config = config

    def _connection(self) -> http.client.HTTPConnection:
        timeout = self.config.timeout or None
        if self.config.unix_socket:
            return _UnixHTTPConnection(self.config.unix_socket, timeout)
        parts = urlsplit(self.config.url)
        if parts.scheme == "https":
            context = ssl.create_default_context()
            if self.config.unsafe_ssl:
                context.check_hostname = False
                context.verify_mode = ssl.CERT_NONE
            return http.client.HTTPSConnection(parts.netloc, timeout=timeout, context=context)
        return http.client.HTTPConnection(parts.netloc, timeout=timeout)

    def _write_path(self) -> str:
        query = {"db": self.database}
        if self.config.precision:
            query["precision"] = self.config.precision
        if self.config.write_consistency:
            query["consistency"] = self.config.write_consistency
        base = "" if self.config.unix_socket else urlsplit(self.config.url).path.rstrip("/")
        return f"{base}/write?{urlencode(query)}"

    def _headers(self) -> dict[str, str]:
        headers = {
            "Content-Type": "",
            "User-Agent": self.config.user_agent or DEFAULT_USER_AGENT,
        }
        if self.config.username:
            credentials = f"{self.config.username}:{self.config.password}".encode("utf-8")
            headers["Authorization"] = "Basic " + base64.b64encode(credentials).decode("ascii")
        return headers

    def push(self, points: Metric, tags: Mapping[str, str]) -> None:
        """Write the points with the given tags; raises InfluxError on rejection."""
        body = build_line_protocol(points, tags).encode("utf-8")
        connection = self._connection()
        try:
            connection.request("POST", self._write_path(), body=body, headers=self._headers())
            response = connection.getresponse()
            payload = response.read()
        finally:
            connection.close()
        if response.status in (200, 204):
            return
        message = payload.decode("utf-8", errors="replace")
        try:
            message = json.loads(message).get("error", message)
        except (ValueError, AttributeError):
            pass
        raise InfluxError(f"influxdb write failed with status {response.status}: {message}")