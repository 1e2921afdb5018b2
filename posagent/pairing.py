"""Pair, unpair and status flows over the cloud client and secret store.

No console I/O here. Asking the operator whether to force-clear local
secrets after a network failure is left to the caller.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from posagent.cloud import Client, NetworkError, PairResponse, UnauthenticatedError
from posagent.secrets import NoSecretsError, SecretStore, Secrets


@dataclass(frozen=True)
class PairStatus:
    """Local pair state; ``paired_at`` is ``None`` when not paired."""

    paired: bool
    terminal_id: str = ""
    store_id: str = ""
    paired_at: Optional[datetime] = None


class PairingService:
    """Orchestrates pairing against the cloud and the local secret store."""

    def __init__(self, cloud: Client, secrets: SecretStore, machine_id: str, version: str):
        self.cloud = cloud
        self.secrets = secrets
        self.machine_id = machine_id
        self.version = version

    def pair(self, code: str) -> PairResponse:
        """Exchange ``code`` for a terminal token and persist the result.

        Cloud errors propagate and nothing is saved. An existing pairing
        is overwritten by the new one. The code is not checked here; the
        cloud rejects invalid codes.
        """
        response = self.cloud.pair(code, self.version, self.machine_id)
        self.secrets.save(
            Secrets(
                terminal_id=response.terminal_id,
                terminal_token=response.terminal_token,
                store_id=response.store_id,
                paired_at=datetime.now(timezone.utc),
            )
        )
        return response

    def unpair(self) -> None:
        """Revoke the token cloud-side and clear local secrets.

        A rejected token counts as already revoked and still clears.
        Network and other cloud errors propagate and leave the secrets in
        place. Raises :class:`NoSecretsError` without contacting the
        cloud when the agent is not paired.
        """
        stored = self.secrets.load()
        try:
            self.cloud.unpair(stored.terminal_token)
        except UnauthenticatedError:
            pass
        except NetworkError:
            raise
        self.secrets.clear()

    def status(self) -> PairStatus:
        """Report whether the agent is paired, with its identifiers."""
        try:
            stored = self.secrets.load()
        except NoSecretsError:
            return PairStatus(paired=False)
        return PairStatus(
            paired=True,
            terminal_id=stored.terminal_id,
            store_id=stored.store_id,
            paired_at=stored.paired_at,
        )