from fastapi import APIRouter

from bracketbounty.api.events import router as events_router
from bracketbounty.api.matchups import router as matchups_router
from bracketbounty.api.pools import router as pools_router

api_router = APIRouter()
api_router.include_router(matchups_router)
api_router.include_router(events_router)
api_router.include_router(pools_router)
