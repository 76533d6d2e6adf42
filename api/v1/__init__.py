from fastapi import APIRouter

from .ads import router as ads_router
from .stats import router as stats_router
from .track import router as track_router

api_v1 = APIRouter(prefix="/api")

# stats before ads: /ads/stats must win over /ads/{ref}
api_v1.include_router(track_router)
api_v1.include_router(stats_router)
api_v1.include_router(ads_router)
