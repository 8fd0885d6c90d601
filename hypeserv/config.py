# hypeserv - A game server status query API
# Copyright (C) 2016-2023 Lloyd Dilley, Felix Ern (MindSolve)
# http://www.dilley.me/
#
# Secondary optimization and customization are carried out by @molanp.
#
# This program is free software; you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation; either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License along
# with this program; if not, write to the Free Software Foundation, Inc.,
# 51 Franklin Street, Fifth Floor, Boston, MA 02110-1301 USA.
import os
from dataclasses import dataclass
from typing import Mapping

from .errors import ConfigError

LOG_LEVELS = ("critical", "error", "warning", "info", "debug")


@dataclass(frozen=True)
class Settings:
    DEFAULT_PORT = 3000
    """default HTTP listener port"""

    port: int = DEFAULT_PORT
    """HTTP listener port"""
    host: str = "0.0.0.0"
    """HTTP listener bind address"""
    log_level: str = "info"
    """root logger level name"""
    dns_timeout: float = 10.0
    """lifetime of a single DNS query in seconds"""

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        """
        Load the settings from the process environment.

        Reads `PORT`, `HOST`, `LOG_LEVEL` and `DNS_TIMEOUT`, unset or empty
        variables keep their default.

        :raises ConfigError: if a variable holds an unusable value
        """
        if environ is None:
            environ = os.environ

        port = cls.port
        if environ.get("PORT"):
            try:
                port = int(environ["PORT"])
            except ValueError as e:
                raise ConfigError(f"PORT must be a number, got {environ['PORT']!r}") from e
            if not 0 < port <= 65535:
                raise ConfigError(f"PORT must be between 1 and 65535, got {port}")

        dns_timeout = cls.dns_timeout
        if environ.get("DNS_TIMEOUT"):
            try:
                dns_timeout = float(environ["DNS_TIMEOUT"])
            except ValueError as e:
                raise ConfigError(
                    f"DNS_TIMEOUT must be a number, got {environ['DNS_TIMEOUT']!r}"
                ) from e
            if not dns_timeout > 0:
                raise ConfigError(f"DNS_TIMEOUT must be positive, got {dns_timeout}")

        log_level = (environ.get("LOG_LEVEL") or cls.log_level).lower()
        if log_level not in LOG_LEVELS:
            raise ConfigError(f"Unknown LOG_LEVEL {log_level!r}")

        return cls(
            port=port,
            host=environ.get("HOST") or cls.host,
            log_level=log_level,
            dns_timeout=dns_timeout,
        )
