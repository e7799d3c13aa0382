"""
Tests for the logo form and its preview handle lifecycle.

Tests cover:
- At most one live preview per form
- Release on replacement, removal and teardown
- Failed conversions leave prior state intact
- Superseded (stale) conversions never clobber newer state
- Submit uploads the pending file or keeps the stored URL
- Idle forms expire and release their preview
"""
import asyncio
import io
import logging

import pytest
from unittest.mock import AsyncMock, patch
from PIL import Image

from app.services.blob_store import BlobStoreError
from app.services.images import DecodeError, EncodeError, NormalizedImage
from app.services.logo_form import LogoForm, LogoFormSessions, StaleConversion
from app.services.previews import PreviewRegistry


def png_bytes(width, height):
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), (10, 120, 200)).save(buffer, format="PNG")
    return buffer.getvalue()


def fake_image(name="logo.webp", data=b"webp"):
    return NormalizedImage(
        filename=name,
        content_type="image/webp",
        data=data,
        width=10,
        height=10,
        original_width=10,
        original_height=10,
    )


class FakeClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def registry():
    return PreviewRegistry()


class TestPreviewRegistry:
    """Tests for revocable preview handles."""

    def test_acquire_and_get(self, registry):
        handle = registry.acquire(b"data", "image/webp")

        assert registry.get(handle.token) is handle
        assert handle.url == f"/uploads/previews/{handle.token}"
        assert len(registry) == 1

    def test_revoke_is_idempotent(self, registry):
        handle = registry.acquire(b"data", "image/webp")

        assert registry.revoke(handle.token) is True
        assert registry.revoke(handle.token) is False
        assert registry.get(handle.token) is None

    def test_tokens_are_unique(self, registry):
        tokens = {registry.acquire(b"x", "image/webp").token for _ in range(50)}
        assert len(tokens) == 50


class TestLogoFormSelection:
    """Tests for selecting, replacing and removing a logo."""

    @pytest.mark.asyncio
    async def test_select_creates_one_preview(self, registry):
        form = LogoForm(registry)

        converted = await form.select_file(png_bytes(1000, 2000), "big.png")

        assert (converted.width, converted.height) == (250, 500)
        assert form.selected is converted
        assert form.preview is not None
        assert form.preview_url == form.preview.url
        assert len(registry) == 1

    @pytest.mark.asyncio
    async def test_replacing_revokes_previous_preview(self, registry):
        form = LogoForm(registry)
        await form.select_file(png_bytes(50, 50), "first.png")
        first = form.preview.token

        await form.select_file(png_bytes(60, 60), "second.png")

        assert first not in registry
        assert form.preview.token in registry
        assert len(registry) == 1
        assert form.selected.filename == "second.webp"

    @pytest.mark.asyncio
    async def test_new_file_clears_stored_logo_url(self, registry):
        form = LogoForm(registry, logo_url="http://cdn/old.webp")

        await form.select_file(png_bytes(50, 50), "new.png")

        assert form.logo_url is None
        assert form.preview_url.startswith("/uploads/previews/")

    @pytest.mark.asyncio
    async def test_decode_failure_keeps_previous_state(self, registry):
        form = LogoForm(registry, logo_url="http://cdn/old.webp")
        await form.select_file(png_bytes(50, 50), "good.png")
        before = (form.selected, form.preview, form.logo_url)

        with pytest.raises(DecodeError):
            await form.select_file(b"not an image", "bad.png")

        assert (form.selected, form.preview, form.logo_url) == before
        assert form.preview.token in registry

    @pytest.mark.asyncio
    async def test_encode_failure_keeps_stored_logo(self, registry):
        form = LogoForm(registry, logo_url="http://cdn/old.webp")

        with patch("app.services.logo_form.convert_image", AsyncMock(side_effect=EncodeError("no output"))):
            with pytest.raises(EncodeError):
                await form.select_file(b"whatever", "logo.png")

        assert form.logo_url == "http://cdn/old.webp"
        assert form.selected is None
        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_form_is_usable_after_failure(self, registry):
        form = LogoForm(registry)

        with pytest.raises(DecodeError):
            await form.select_file(b"", "empty.png")
        await form.select_file(png_bytes(20, 20), "ok.png")

        assert form.selected.filename == "ok.webp"

    @pytest.mark.asyncio
    async def test_remove_image_releases_everything(self, registry):
        form = LogoForm(registry, logo_url="http://cdn/old.webp")
        await form.select_file(png_bytes(20, 20), "ok.png")

        form.remove_image()

        assert form.selected is None
        assert form.preview is None
        assert form.preview_url is None
        assert len(registry) == 0


class TestStaleConversions:
    """Tests for overlapping selections."""

    @pytest.mark.asyncio
    async def test_older_conversion_finishing_late_is_discarded(self, registry):
        form = LogoForm(registry)
        release_slow = asyncio.Event()

        async def fake_convert(source, filename):
            if filename == "slow.png":
                await release_slow.wait()
                return fake_image("slow.webp", b"slow")
            return fake_image("fast.webp", b"fast")

        with patch("app.services.logo_form.convert_image", side_effect=fake_convert):
            slow = asyncio.create_task(form.select_file(b"...", "slow.png"))
            await asyncio.sleep(0)
            await form.select_file(b"...", "fast.png")
            release_slow.set()

            with pytest.raises(StaleConversion):
                await slow

        assert form.selected.filename == "fast.webp"
        assert form.preview.data == b"fast"
        assert len(registry) == 1

    @pytest.mark.asyncio
    async def test_conversion_finishing_after_close_is_discarded(self, registry):
        form = LogoForm(registry)
        release = asyncio.Event()

        async def fake_convert(source, filename):
            await release.wait()
            return fake_image()

        with patch("app.services.logo_form.convert_image", side_effect=fake_convert):
            pending = asyncio.create_task(form.select_file(b"...", "logo.png"))
            await asyncio.sleep(0)
            form.close()
            release.set()

            with pytest.raises(StaleConversion):
                await pending

        assert len(registry) == 0


class TestTeardownAndSubmit:
    """Tests for close() and submit()."""

    @pytest.mark.asyncio
    async def test_context_manager_releases_on_exit(self, registry):
        async with LogoForm(registry) as form:
            await form.select_file(png_bytes(20, 20), "ok.png")
            assert len(registry) == 1

        assert len(registry) == 0
        assert form.closed

    @pytest.mark.asyncio
    async def test_context_manager_releases_on_error(self, registry):
        with pytest.raises(RuntimeError):
            async with LogoForm(registry) as form:
                await form.select_file(png_bytes(20, 20), "ok.png")
                raise RuntimeError("form crashed")

        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_closed_form_rejects_selection(self, registry):
        form = LogoForm(registry)
        form.close()

        with pytest.raises(RuntimeError):
            await form.select_file(png_bytes(20, 20), "ok.png")

    @pytest.mark.asyncio
    async def test_submit_uploads_selected_file(self, registry):
        form = LogoForm(registry)
        await form.select_file(png_bytes(20, 20), "ok.png")

        with patch("app.services.logo_form.upload_file", AsyncMock(return_value="http://cdn/ok.webp")) as upload:
            url = await form.submit(store=object())

        assert url == "http://cdn/ok.webp"
        assert form.logo_url == "http://cdn/ok.webp"
        args = upload.call_args
        assert args.args[1] == "ok.webp"
        assert args.kwargs["content_type"] == "image/webp"

    @pytest.mark.asyncio
    async def test_submit_without_file_keeps_stored_url(self, registry):
        form = LogoForm(registry, logo_url="http://cdn/old.webp")

        with patch("app.services.logo_form.upload_file", AsyncMock()) as upload:
            url = await form.submit(store=object())

        assert url == "http://cdn/old.webp"
        upload.assert_not_called()

    @pytest.mark.asyncio
    async def test_failed_upload_keeps_pending_file(self, registry):
        form = LogoForm(registry)
        await form.select_file(png_bytes(20, 20), "ok.png")

        with patch("app.services.logo_form.upload_file", AsyncMock(side_effect=BlobStoreError("down"))):
            with pytest.raises(BlobStoreError):
                await form.submit(store=object())

        assert form.selected is not None
        assert form.preview is not None


class TestLogoFormSessions:
    """Tests for the open-form table."""

    @pytest.mark.asyncio
    async def test_close_releases_preview(self, registry):
        sessions = LogoFormSessions(registry)
        form_id, form = sessions.open()
        await form.select_file(png_bytes(20, 20), "ok.png")

        assert sessions.close(form_id) is True
        assert sessions.get(form_id) is None
        assert len(registry) == 0

    def test_close_unknown_form(self, registry):
        assert LogoFormSessions(registry).close("missing") is False

    @pytest.mark.asyncio
    async def test_close_all(self, registry):
        sessions = LogoFormSessions(registry)
        for _ in range(3):
            _, form = sessions.open()
            await form.select_file(png_bytes(20, 20), "ok.png")

        sessions.close_all()

        assert len(sessions) == 0
        assert len(registry) == 0

    def test_idle_form_is_closed_and_preview_revoked(self, registry):
        clock = FakeClock()
        sessions = LogoFormSessions(registry, idle_seconds=60, clock=clock)
        form_id, form = sessions.open()
        form.preview = registry.acquire(b"webp", "image/webp")
        token = form.preview.token

        clock.now = 61

        assert sessions.get(form_id) is None
        assert form.closed is True
        assert registry.get(token) is None
        assert len(sessions) == 0

    def test_touched_form_stays_open(self, registry):
        clock = FakeClock()
        sessions = LogoFormSessions(registry, idle_seconds=60, clock=clock)
        form_id, form = sessions.open()

        clock.now = 50
        assert sessions.get(form_id) is form
        clock.now = 100
        assert sessions.get(form_id) is form
        assert form.closed is False

    def test_opening_a_form_expires_idle_ones(self, registry):
        clock = FakeClock()
        sessions = LogoFormSessions(registry, idle_seconds=60, clock=clock)
        _, stale = sessions.open()

        clock.now = 120
        form_id, fresh = sessions.open()

        assert len(sessions) == 1
        assert stale.closed is True
        assert sessions.get(form_id) is fresh


class TestConversionFailureLogging:
    """Failed conversions are counted here and reported by the caller."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [DecodeError("bad header"), EncodeError("no encoder")])
    async def test_failures_are_not_logged_by_the_form(self, registry, caplog, error):
        form = LogoForm(registry)

        with patch("app.services.logo_form.convert_image", AsyncMock(side_effect=error)):
            with caplog.at_level(logging.DEBUG, logger="app.services.logo_form"):
                with pytest.raises(type(error)):
                    await form.select_file(b"data", "logo.png")

        assert [r for r in caplog.records if r.name == "app.services.logo_form"] == []
        assert form.preview is None
