from fastapi import APIRouter

from genjobs.models.jobs import CreditsResponse
from genjobs.services.storage import job_store

router = APIRouter()


@router.get("/credits")
async def get_credits() -> dict[str, int]:
    """Return the remaining credit balance."""
    return CreditsResponse(credits=job_store.get_credits()).model_dump()


@router.post("/purchase-credits")
async def purchase_credits() -> dict[str, int]:
    """Add one bundle of credits and return the new balance."""
    return CreditsResponse(credits=job_store.purchase_credits()).model_dump()
