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
import logging
import sys

import uvicorn

from .app import create_app
from .config import Settings
from .endpoint import EndpointResolver
from .errors import ConfigError
from .lookup import DnsLookup

logger = logging.getLogger("hypeserv")


def main() -> None:
    try:
        settings = Settings.from_env()
    except ConfigError as e:
        sys.exit(f"Invalid configuration: {e}")

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    app = create_app(EndpointResolver(DnsLookup(timeout=settings.dns_timeout)))

    logger.info("HypeServ query API running on port %d", settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level)


if __name__ == "__main__":
    main()
