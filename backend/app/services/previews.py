"""
Preview Registry - revocable in-memory previews of converted logos

A preview handle keeps converted bytes alive until it is explicitly
revoked. Nothing is reclaimed implicitly: the owner of a handle must revoke
it when replacing it, when the image is removed, and on teardown.
"""

import logging
import secrets
from dataclasses import dataclass
from typing import Dict, Optional

from app.middleware.metrics import update_live_previews

logger = logging.getLogger(__name__)

PREVIEW_ROUTE = "/uploads/previews"


@dataclass(frozen=True)
class PreviewHandle:
    token: str
    content_type: str
    data: bytes

    @property
    def url(self) -> str:
        return f"{PREVIEW_ROUTE}/{self.token}"


class PreviewRegistry:
    """Process-wide table of live preview handles."""

    def __init__(self):
        self._handles: Dict[str, PreviewHandle] = {}

    def acquire(self, data: bytes, content_type: str) -> PreviewHandle:
        handle = PreviewHandle(secrets.token_urlsafe(16), content_type, data)
        self._handles[handle.token] = handle
        update_live_previews(len(self._handles))
        return handle

    def get(self, token: str) -> Optional[PreviewHandle]:
        return self._handles.get(token)

    def revoke(self, token: str) -> bool:
        """Release a handle. Revoking twice is a no-op."""
        released = self._handles.pop(token, None) is not None
        if released:
            update_live_previews(len(self._handles))
            logger.debug(f"Revoked preview {token}")
        return released

    def __len__(self) -> int:
        return len(self._handles)

    def __contains__(self, token: str) -> bool:
        return token in self._handles


_registry: Optional[PreviewRegistry] = None


def get_preview_registry() -> PreviewRegistry:
    global _registry
    if _registry is None:
        _registry = PreviewRegistry()
    return _registry
