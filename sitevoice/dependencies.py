"""FastAPI dependencies."""

from fastapi import Request

from sitevoice.services.pipeline import VoiceNotePipeline


def get_pipeline(request: Request) -> VoiceNotePipeline:
    """Pipeline built at application startup."""
    return request.app.state.pipeline
