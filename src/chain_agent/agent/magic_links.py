"""In-process table of signing links handed out to the chat front end."""

from __future__ import annotations

import secrets
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from chain_agent.config import MagicLinkConfig


@dataclass(slots=True)
class MagicLink:
    link_id: str
    token: str
    action: str
    url: str
    payload: dict[str, Any] = field(default_factory=dict)
    created_at: str = ""


class MagicLinkStore:
    """Issues and resolves one-time links for out-of-band wallet signing.

    At most `max_links` entries are kept; the oldest is dropped first. The
    server never signs anything: a link only carries enough context for the
    front end to build the transaction and ask the user's wallet to sign it.
    """

    def __init__(
        self,
        config: MagicLinkConfig | None = None,
        *,
        max_links: int = 1000,
    ) -> None:
        self.config = config if config is not None else MagicLinkConfig()
        self._max_links = max_links
        self._by_token: dict[str, MagicLink] = {}

    def issue(
        self,
        action: str,
        payload: dict[str, Any],
        *,
        path: str,
    ) -> MagicLink:
        """Create a signing link under `{frontend_url}/{path}/{id}?token=...`."""
        link_id = uuid.uuid4().hex
        token = secrets.token_hex(20)
        base = self.config.frontend_url.rstrip("/")
        url = f"{base}/{path.strip('/')}/{link_id}?token={token}"
        return self._remember(link_id, token, action, url, payload)

    def generate(self, action: str, user_id: str) -> MagicLink:
        """Create an API-side execute link for `action` on behalf of `user_id`."""
        token = secrets.token_hex(20)
        base = self.config.public_base_url.rstrip("/")
        url = f"{base}/magic-link/execute/{token}"
        return self._remember(
            uuid.uuid4().hex, token, action, url, {"userId": user_id}
        )

    def lookup(self, token: str) -> MagicLink | None:
        return self._by_token.get(token)

    def resolve(self, link_id: str, token: str) -> MagicLink | None:
        """Return the link only when both identifier and token match."""
        link = self._by_token.get(token)
        if link is None or not secrets.compare_digest(link.link_id, link_id):
            return None
        return link

    def execute_redirect_url(self, token: str) -> str:
        return f"{self.config.execute_action_url}?token={token}"

    def _remember(
        self,
        link_id: str,
        token: str,
        action: str,
        url: str,
        payload: dict[str, Any],
    ) -> MagicLink:
        link = MagicLink(
            link_id=link_id,
            token=token,
            action=action,
            url=url,
            payload=dict(payload),
            created_at=datetime.now(timezone.utc).isoformat(),
        )
        self._by_token[token] = link
        while len(self._by_token) > self._max_links:
            self._by_token.pop(next(iter(self._by_token)))
        return link

    def __len__(self) -> int:
        return len(self._by_token)
