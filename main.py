from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

from domain.sync import sync_router
from app.logging_config import get_logger, setup_logging_from_env

# 로깅 초기화
setup_logging_from_env()
logger = get_logger("main")

app = FastAPI(title="Translation Sync API")

origins = [
    "http://127.0.0.1:5173",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


app.include_router(sync_router.router)


@app.get("/health")
def health():
    return {"status": "ok"}


@app.on_event("startup")
async def startup_event():
    """앱 시작시 실행되는 초기화 작업"""
    logger.info("Starting Translation Sync API server...")


@app.on_event("shutdown")
async def shutdown_event():
    """앱 종료시 정리 작업"""
    logger.info("Translation Sync API server stopped")
