from fastapi import APIRouter, Depends

from coursebase.api.deps import Settings, get_settings
from coursebase.api.schemas import VersionResponse

router = APIRouter()


@router.get("/version", response_model=VersionResponse)
def get_version(settings: Settings = Depends(get_settings)) -> VersionResponse:
    """Current version of the REST API."""
    return VersionResponse(version=settings.api_version)
