from fastapi import APIRouter, Depends

from backend.auth.dependencies import get_current_provider
from backend.models.provider import Provider
from backend.schemas.availability import ProviderProfileResponse

router = APIRouter(tags=['auth'])


@router.get("/me", response_model=ProviderProfileResponse)
def me(current_provider: Provider = Depends(get_current_provider)):
    return ProviderProfileResponse(
        id=current_provider.id,
        name=current_provider.full_name,
        email=current_provider.email,
        specialization=current_provider.specialization or "",
    )
