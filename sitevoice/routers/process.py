"""Voice note processing trigger."""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from sitevoice.dependencies import get_pipeline
from sitevoice.schemas.process import ErrorResponse, ProcessRequest, ProcessResponse
from sitevoice.services.pipeline import VoiceNotePipeline

logger = logging.getLogger("sitevoice.routers.process")

router = APIRouter(prefix="/api/v1/voice-notes", tags=["Voice Notes"])


@router.post(
    "/process",
    response_model=ProcessResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def process_voice_note(
    request: Request,
    pipeline: VoiceNotePipeline = Depends(get_pipeline),
) -> ProcessResponse | JSONResponse:
    """Run the processing pipeline for a new or updated voice note."""
    try:
        payload = ProcessRequest.model_validate(await request.json())
    except ValueError as e:
        logger.warning("Rejected trigger payload: %s", e)
        return JSONResponse(status_code=400, content={"error": "Invalid payload: expected voice_note_id or record"})

    result = await pipeline.run(payload.target_id)
    if not result.success:
        return JSONResponse(status_code=500, content={"error": result.error or "Processing failed"})

    return ProcessResponse(**{k: v for k, v in result.to_dict().items() if k != "error"})
