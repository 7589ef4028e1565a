from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


def _to_camel(string: str) -> str:
    """Convert snake_case to camelCase."""
    components = string.split("_")
    return components[0] + "".join(x.title() for x in components[1:])


class JobStatus(str, Enum):
    QUEUED = "queued"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


class GenerationRequest(BaseModel):
    """Parameters needed to produce a job's content."""

    prompt: str = Field(min_length=1)
    width: int = Field(gt=0)
    height: int = Field(gt=0)
    count: int = Field(ge=1, default=1)


class ImageRepresentation(BaseModel):
    width: int
    height: int
    url: str


class ImageAsset(BaseModel):
    """One artifact returned by a content generator."""

    fullsize: ImageRepresentation
    thumbnail: ImageRepresentation


class GeneratedImage(ImageAsset):
    """An artifact attached to a completed job, labelled with its prompt."""

    model_config = ConfigDict(frozen=True)

    label: str


class QueueGenerationResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True, alias_generator=_to_camel)

    job_id: str


class CreditsResponse(BaseModel):
    credits: int


class JobStatusResponse(BaseModel):
    """Wire shape of a status poll. Queued jobs are reported as ``processing``."""

    status: str
    images: list[GeneratedImage] | None = None
    credits: int | None = None
    error: str | None = None
