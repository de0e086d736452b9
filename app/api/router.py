from fastapi import APIRouter

from app.api.routes import lotteries

api_router = APIRouter()
api_router.include_router(lotteries.router)
