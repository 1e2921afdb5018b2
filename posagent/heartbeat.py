"""Periodic heartbeat sender for the agent service.

While paired, a heartbeat is sent every ``interval`` seconds. While
unpaired, the secret store is rechecked every
``unpaired_recheck_interval`` seconds without contacting the cloud, so a
fresh pairing is picked up without a restart. A rejected token clears
the local secrets; network and other cloud errors are logged and retried
on the next tick.
"""

from __future__ import annotations

import logging
import platform
import threading
import time
from dataclasses import dataclass, field
from typing import Optional

from posagent.cloud import (
    Client,
    CloudError,
    HeartbeatRequest,
    NetworkError,
    PrinterStatus,
    UnauthenticatedError,
)
from posagent.printer import Printer
from posagent.secrets import NoSecretsError, SecretStore

DEFAULT_UNPAIRED_RECHECK_INTERVAL = 60.0


def _default_logger() -> logging.Logger:
    return logging.getLogger(__name__)


@dataclass
class HeartbeatLoop:
    """Sends heartbeats until stopped. Intervals are in seconds.

    ``printer`` may be ``None``; heartbeats then report it unconfigured.
    A non-positive ``unpaired_recheck_interval`` means 60 seconds.
    """

    cloud: Client
    secrets: SecretStore
    printer: Optional[Printer] = None
    logger: logging.Logger = field(default_factory=_default_logger)
    version: str = ""
    interval: float = 300.0
    unpaired_recheck_interval: float = 0.0
    _started: float = field(default_factory=time.monotonic, init=False, repr=False)

    def run(self, stop: threading.Event) -> None:
        """Block until ``stop`` is set; the first tick fires immediately."""
        self._started = time.monotonic()
        recheck = self.unpaired_recheck_interval
        if recheck <= 0:
            recheck = DEFAULT_UNPAIRED_RECHECK_INTERVAL

        while not stop.is_set():
            paired = self.tick()
            if stop.is_set():
                return
            if stop.wait(self.interval if paired else recheck):
                return

    def tick(self) -> bool:
        """Make one heartbeat attempt.

        Returns whether secrets were present at the start of the tick,
        whatever the cloud answered. A store that fails to load counts as
        paired, so a transient I/O error does not speed up polling.
        """
        try:
            stored = self.secrets.load()
        except NoSecretsError:
            self.logger.debug("heartbeat: unpaired; skipping")
            return False
        except (OSError, ValueError) as exc:
            self.logger.warning("heartbeat: secret store load failed; skipping: %s", exc)
            return True

        hb = self.build_heartbeat()
        try:
            self.cloud.heartbeat(stored.terminal_token, hb)
        except UnauthenticatedError:
            self.logger.error(
                "heartbeat: 401 UNAUTHENTICATED — clearing local secrets, agent now unpaired"
            )
            try:
                self.secrets.clear()
            except OSError as exc:
                self.logger.error("heartbeat: secret clear failed after 401: %s", exc)
        except NetworkError as exc:
            self.logger.debug("heartbeat: network error; will retry next tick: %s", exc)
        except CloudError as exc:
            self.logger.warning("heartbeat: cloud error; will retry next tick: %s", exc)
        else:
            self.logger.debug(
                "heartbeat: ok uptime_seconds=%d printer_reachable=%s",
                hb.uptime_seconds,
                hb.printer.reachable,
            )
        return True

    def build_heartbeat(self) -> HeartbeatRequest:
        """Assemble the heartbeat payload from the current state."""
        status = PrinterStatus()
        if self.printer is not None and self.printer.name:
            status = PrinterStatus(
                configured=True,
                reachable=self.printer.is_reachable(),
                name=self.printer.name,
                last_error=None,
            )
        return HeartbeatRequest(
            agent_version=self.version,
            os_version=platform.system().lower(),
            uptime_seconds=int(time.monotonic() - self._started),
            printer=status,
        )