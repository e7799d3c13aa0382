"""
Logo Form - company logo selection with one owned preview handle

One LogoForm backs one open company form. It holds:

    - selected: the converted file waiting to be uploaded (or None)
    - preview: the single live preview handle for it (or None)
    - logo_url: the already stored logo URL when editing a company

Resource discipline:
    A preview handle is acquired only after a conversion succeeds and is
    revoked when (a) a newer conversion replaces it, (b) the image is
    removed, or (c) the form is closed. `async with LogoForm(...)` closes
    the form on every exit path.

Overlapping selections:
    Conversions are not cancellable. Each selection takes a new generation
    number; a conversion that finishes after a newer selection started is
    discarded before any handle is acquired, so it never clobbers newer
    state.

Failures:
    DecodeError / EncodeError propagate to the caller with the previous
    file, preview and logo_url left exactly as they were. They are counted
    here and logged once, by the caller that reports them.
"""

import logging
import secrets
import time
from typing import Any, Callable, Dict, Optional, Tuple, Union

from app.config import get_settings
from app.middleware.metrics import record_image_conversion, record_logo_upload
from app.services.blob_store import BlobStore, BlobStoreError, upload_file
from app.services.images import DecodeError, EncodeError, NormalizedImage, convert_image
from app.services.previews import PreviewHandle, PreviewRegistry, get_preview_registry

logger = logging.getLogger(__name__)

DEFAULT_IDLE_SECONDS = 1800


class StaleConversion(Exception):
    """A newer file was selected while this conversion was running."""
    pass


class LogoForm:
    """
    Logo field state of a single company form.

    Attributes:
        registry: Where preview handles are acquired and revoked
        logo_url: Stored logo URL (editing an existing company)
        selected: Converted file pending upload
        preview: Live preview handle for `selected`
    """

    def __init__(self, registry: PreviewRegistry, logo_url: Optional[str] = None):
        self.registry = registry
        self.logo_url = logo_url
        self.selected: Optional[NormalizedImage] = None
        self.preview: Optional[PreviewHandle] = None
        self.closed = False
        self._generation = 0

    async def __aenter__(self) -> "LogoForm":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def preview_url(self) -> Optional[str]:
        """What the form displays: the live preview, else the stored logo."""
        if self.preview is not None:
            return self.preview.url
        return self.logo_url

    def _release_preview(self) -> None:
        if self.preview is not None:
            self.registry.revoke(self.preview.token)
            self.preview = None

    async def select_file(self, source: Union[bytes, Any], filename: str) -> NormalizedImage:
        """
        Convert a newly selected file and make it the pending logo.

        Raises:
            DecodeError, EncodeError: conversion failed; state untouched
            StaleConversion: superseded by a newer selection; state untouched
        """
        if self.closed:
            raise RuntimeError("Logo form is closed")

        self._generation += 1
        generation = self._generation

        try:
            converted = await convert_image(source, filename)
        except DecodeError:
            record_image_conversion("decode_error")
            raise
        except EncodeError:
            record_image_conversion("encode_error")
            raise

        if generation != self._generation or self.closed:
            record_image_conversion("stale")
            raise StaleConversion(f"Conversion of {filename!r} was superseded")

        handle = self.registry.acquire(converted.data, converted.content_type)
        self._release_preview()
        self.selected = converted
        self.preview = handle
        # A new file replaces the stored logo once uploaded
        self.logo_url = None
        record_image_conversion("ok")
        return converted

    def remove_image(self) -> None:
        """Drop the pending file, its preview and the stored logo URL."""
        self._generation += 1
        self._release_preview()
        self.selected = None
        self.logo_url = None

    async def submit(self, store: BlobStore) -> Optional[str]:
        """
        Upload the pending file (if any) and return the logo URL to save.

        Without a pending file the stored URL (possibly None) is returned.
        """
        if self.selected is None:
            return self.logo_url

        try:
            url = await upload_file(
                store,
                self.selected.filename,
                self.selected.data,
                content_type=self.selected.content_type,
            )
        except BlobStoreError:
            record_logo_upload("error")
            raise
        record_logo_upload("ok")
        self.logo_url = url
        return url

    def close(self) -> None:
        """Teardown: release the preview and ignore in-flight conversions."""
        self._generation += 1
        self._release_preview()
        self.selected = None
        self.closed = True


class LogoFormSessions:
    """
    Open logo forms by id; each id maps to exactly one LogoForm.

    A form that is not touched (opened, read or written) for `idle_seconds`
    is treated as abandoned: it is closed and its preview revoked the next
    time the table is used.
    """

    def __init__(
        self,
        registry: PreviewRegistry,
        idle_seconds: float = DEFAULT_IDLE_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.registry = registry
        self.idle_seconds = idle_seconds
        self.clock = clock
        self._forms: Dict[str, LogoForm] = {}
        self._touched: Dict[str, float] = {}

    def open(self, logo_url: Optional[str] = None) -> Tuple[str, LogoForm]:
        self.expire_idle()
        form_id = secrets.token_urlsafe(12)
        form = LogoForm(self.registry, logo_url=logo_url)
        self._forms[form_id] = form
        self._touched[form_id] = self.clock()
        return form_id, form

    def get(self, form_id: str) -> Optional[LogoForm]:
        self.expire_idle()
        form = self._forms.get(form_id)
        if form is not None:
            self._touched[form_id] = self.clock()
        return form

    def expire_idle(self) -> int:
        """Close forms idle for longer than idle_seconds; return how many."""
        cutoff = self.clock() - self.idle_seconds
        idle = [form_id for form_id, touched in self._touched.items() if touched < cutoff]
        for form_id in idle:
            self.close(form_id)
        if idle:
            logger.info(f"Closed {len(idle)} idle logo forms")
        return len(idle)

    def close(self, form_id: str) -> bool:
        form = self._forms.pop(form_id, None)
        self._touched.pop(form_id, None)
        if form is None:
            return False
        form.close()
        return True

    def close_all(self) -> None:
        for form_id in list(self._forms):
            self.close(form_id)

    def __len__(self) -> int:
        return len(self._forms)


_sessions: Optional[LogoFormSessions] = None


def get_logo_form_sessions() -> LogoFormSessions:
    global _sessions
    if _sessions is None:
        _sessions = LogoFormSessions(get_preview_registry(), idle_seconds=get_settings().logo_form_idle_seconds)
    return _sessions
