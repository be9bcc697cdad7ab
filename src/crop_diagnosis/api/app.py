"""FastAPI application factory."""

import io
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from uuid import UUID, uuid4

from fastapi import FastAPI, File, Form, HTTPException, Request, UploadFile, status

from crop_diagnosis.adapters.image_picker import (
    SpooledUploadPicker,
    discard_spooled_image,
)
from crop_diagnosis.api.schemas import (
    CreateSessionRequest,
    SelectCropRequest,
    SessionView,
)
from crop_diagnosis.app_logging import configure_logging
from crop_diagnosis.containers import AppContainer
from crop_diagnosis.domain.images import ImageSource
from crop_diagnosis.services.workflow import DiagnosisWorkflow


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)
    spool_dir = container.settings.image_spool_dir

    async def release(workflow: DiagnosisWorkflow) -> None:
        await workflow.aclose()
        discard_spooled_image(spool_dir, workflow.session.image_ref)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        sessions: dict[UUID, DiagnosisWorkflow] = app.state.sessions
        for workflow in sessions.values():
            await release(workflow)
        sessions.clear()
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container
    app.state.sessions = {}

    def _workflow(request: Request, session_id: UUID) -> DiagnosisWorkflow:
        workflow = request.app.state.sessions.get(session_id)
        if workflow is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
        return workflow

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/sessions", status_code=status.HTTP_201_CREATED)
    async def create_session(
        request: Request, payload: CreateSessionRequest | None = None
    ) -> SessionView:
        """Start a session and its background weather lookup."""
        state_container: AppContainer = request.app.state.container
        sessions: dict[UUID, DiagnosisWorkflow] = request.app.state.sessions
        while len(sessions) >= state_container.settings.max_sessions:
            oldest = next(iter(sessions))
            logger.info("Evicting session %s", oldest)
            await release(sessions.pop(oldest))
        location = payload.location() if payload else None
        workflow = state_container.new_workflow(location)
        session_id = uuid4()
        sessions[session_id] = workflow
        workflow.start()
        logger.info("Session %s started", session_id)
        return SessionView.from_session(session_id, workflow.session)

    @app.get("/sessions/{session_id}")
    async def get_session(session_id: UUID, request: Request) -> SessionView:
        """Return the current session snapshot."""
        workflow = _workflow(request, session_id)
        return SessionView.from_session(session_id, workflow.session)

    @app.delete("/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def delete_session(session_id: UUID, request: Request) -> None:
        """Discard a session."""
        workflow = request.app.state.sessions.pop(session_id, None)
        if workflow is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
        await release(workflow)

    @app.post("/sessions/{session_id}/crop")
    async def select_crop(
        session_id: UUID, payload: SelectCropRequest, request: Request
    ) -> SessionView:
        """Choose the crop for the session."""
        workflow = _workflow(request, session_id)
        workflow.select_crop(payload.crop)
        return SessionView.from_session(session_id, workflow.session)

    @app.post("/sessions/{session_id}/image")
    async def submit_image(
        session_id: UUID,
        request: Request,
        file: UploadFile | None = File(default=None),
        source: ImageSource = Form(default=ImageSource.GALLERY),
    ) -> SessionView:
        """Accept a picked or captured image for the session."""
        workflow = _workflow(request, session_id)
        picker = SpooledUploadPicker(
            spool_dir=spool_dir,
            filename=file.filename if file else None,
            stream=file.file if file else io.BytesIO(),
        )
        previous = workflow.session.image_ref
        await workflow.acquire_image(picker, source)
        current = workflow.session.image_ref
        for image in (previous, picker.spooled):
            if image != current:
                discard_spooled_image(spool_dir, image)
        return SessionView.from_session(session_id, workflow.session)

    @app.post("/sessions/{session_id}/diagnose")
    async def diagnose(session_id: UUID, request: Request) -> SessionView:
        """Run detection and advice lookups for the current image."""
        workflow = _workflow(request, session_id)
        session = await workflow.diagnose()
        return SessionView.from_session(session_id, session)

    return app
