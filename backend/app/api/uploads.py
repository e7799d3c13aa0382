"""
Uploads API - company logo selection, preview and upload

Flow of one company form:
    POST   /uploads/logo-forms                 open (optionally with the stored logo_url)
    PUT    /uploads/logo-forms/{form_id}/file  select a file (normalized to WebP)
    GET    /uploads/previews/{token}           show the converted preview
    DELETE /uploads/logo-forms/{form_id}/file  remove the image
    POST   /uploads/logo-forms/{form_id}/submit upload and get the logo URL
    DELETE /uploads/logo-forms/{form_id}       close, releasing the preview

A failed conversion answers 422 with a user-facing notice; the form keeps
its previous file and preview and stays usable.
"""

import logging
from fastapi import APIRouter, Depends, File, HTTPException, Response, UploadFile, status

from app.auth import get_current_user
from app.schemas import CurrentUser, LogoFormOpen, LogoFormState, LogoSubmitResponse
from app.services.blob_store import BlobStore, BlobStoreError, get_blob_store
from app.services.images import ImageProcessingError
from app.services.logo_form import LogoForm, LogoFormSessions, StaleConversion, get_logo_form_sessions
from app.services.previews import PreviewRegistry, get_preview_registry

logger = logging.getLogger(__name__)

router = APIRouter()

IMAGE_NOTICE = "Unable to prepare the image. Please try another file."
UPLOAD_NOTICE = "Could not upload file"


def form_state(form_id: str, form: LogoForm) -> LogoFormState:
    selected = form.selected
    return LogoFormState(
        form_id=form_id,
        preview_url=form.preview_url,
        filename=selected.filename if selected else None,
        width=selected.width if selected else None,
        height=selected.height if selected else None,
        logo_url=form.logo_url,
    )


def get_form(form_id: str, sessions: LogoFormSessions) -> LogoForm:
    form = sessions.get(form_id)
    if form is None:
        raise HTTPException(status_code=404, detail="Logo form not found")
    return form


@router.post("/logo-forms", response_model=LogoFormState, status_code=status.HTTP_201_CREATED)
async def open_logo_form(
    payload: LogoFormOpen,
    sessions: LogoFormSessions = Depends(get_logo_form_sessions),
    _: CurrentUser = Depends(get_current_user),
):
    form_id, form = sessions.open(logo_url=payload.logo_url)
    return form_state(form_id, form)


@router.put("/logo-forms/{form_id}/file", response_model=LogoFormState)
async def select_logo_file(
    form_id: str,
    file: UploadFile = File(...),
    sessions: LogoFormSessions = Depends(get_logo_form_sessions),
    _: CurrentUser = Depends(get_current_user),
):
    form = get_form(form_id, sessions)
    try:
        await form.select_file(file, file.filename or "logo")
    except ImageProcessingError as e:
        logger.warning(f"Image processing failed for {file.filename!r}: {e}")
        raise HTTPException(status_code=422, detail=IMAGE_NOTICE)
    except StaleConversion:
        raise HTTPException(status_code=409, detail="A newer file was selected")
    finally:
        await file.close()
    return form_state(form_id, form)


@router.delete("/logo-forms/{form_id}/file", response_model=LogoFormState)
async def remove_logo_file(
    form_id: str,
    sessions: LogoFormSessions = Depends(get_logo_form_sessions),
    _: CurrentUser = Depends(get_current_user),
):
    form = get_form(form_id, sessions)
    form.remove_image()
    return form_state(form_id, form)


@router.post("/logo-forms/{form_id}/submit", response_model=LogoSubmitResponse)
async def submit_logo_form(
    form_id: str,
    sessions: LogoFormSessions = Depends(get_logo_form_sessions),
    store: BlobStore = Depends(get_blob_store),
    _: CurrentUser = Depends(get_current_user),
):
    form = get_form(form_id, sessions)
    try:
        logo_url = await form.submit(store)
    except BlobStoreError as e:
        logger.warning(f"Logo upload failed: {e}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=UPLOAD_NOTICE)
    return LogoSubmitResponse(form_id=form_id, logo_url=logo_url)


@router.delete("/logo-forms/{form_id}", status_code=status.HTTP_204_NO_CONTENT)
async def close_logo_form(
    form_id: str,
    sessions: LogoFormSessions = Depends(get_logo_form_sessions),
    _: CurrentUser = Depends(get_current_user),
):
    if not sessions.close(form_id):
        raise HTTPException(status_code=404, detail="Logo form not found")


@router.get("/previews/{token}")
async def get_preview(
    token: str,
    registry: PreviewRegistry = Depends(get_preview_registry),
    _: CurrentUser = Depends(get_current_user),
):
    handle = registry.get(token)
    if handle is None:
        raise HTTPException(status_code=404, detail="Preview not found")
    return Response(content=handle.data, media_type=handle.content_type, headers={"Cache-Control": "no-store"})
