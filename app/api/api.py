from fastapi import APIRouter

from .endpoints import admin, auth, events, llm

api_router = APIRouter()
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(events.router, prefix="/events", tags=["events"])
api_router.include_router(admin.router, prefix="/admin", tags=["admin"])
api_router.include_router(llm.router, prefix="/llm", tags=["llm"])
