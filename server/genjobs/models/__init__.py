from genjobs.models.jobs import (
    CreditsResponse,
    GeneratedImage,
    GenerationRequest,
    ImageAsset,
    ImageRepresentation,
    JobStatus,
    JobStatusResponse,
    QueueGenerationResponse,
)

__all__ = [
    "CreditsResponse",
    "GeneratedImage",
    "GenerationRequest",
    "ImageAsset",
    "ImageRepresentation",
    "JobStatus",
    "JobStatusResponse",
    "QueueGenerationResponse",
]
