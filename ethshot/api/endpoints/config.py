from fastapi import APIRouter, Depends

from ethshot.core.config import PublicConfig, Settings, get_settings

router = APIRouter()


@router.get("/config", tags=["Config"], response_model=PublicConfig)
def public_config(settings: Settings = Depends(get_settings)) -> PublicConfig:
    """Network settings the browser needs to connect a wallet. Contains no secrets."""
    return settings.public_config()
