"""
FastAPI 웹 서버

메시지 채널 동기화 상태 조회와 작업 적재를 위한 웹 인터페이스를 제공합니다.
"""

from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from adapters.db.database import get_database_adapter, initialize_database
from adapters.factory import get_adapter_factory
from adapters.web.job_routes import router as job_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    """서버 시작/종료 시 데이터베이스 연결을 관리합니다."""
    factory = get_adapter_factory()
    config = factory.get_config()
    logger = factory.create_logger()

    logger.info("FastAPI 웹 서버 시작")
    db_adapter = initialize_database(config)
    await db_adapter.initialize()
    await db_adapter.create_tables()
    logger.info(f"환경: {config.get_environment()}")

    yield

    logger.info("FastAPI 웹 서버 종료")
    await get_database_adapter().close()


def create_app() -> FastAPI:
    """FastAPI 앱을 생성합니다."""
    application = FastAPI(
        title="메시지 채널 동기화 서비스",
        description="메시지 목록 가져오기 작업 관리",
        version="1.0.0",
        lifespan=lifespan,
    )
    application.include_router(job_router)

    @application.get("/health")
    async def health_check():
        """헬스 체크"""
        return {"status": "healthy", "service": "message-channel-sync"}

    return application


app = create_app()


def run_server():
    """웹 서버를 실행합니다."""
    web_config = get_adapter_factory().get_config().get_web_config()
    uvicorn.run(
        "web_server:app",
        host=web_config["host"],
        port=web_config["port"],
        workers=web_config["workers"],
    )


if __name__ == "__main__":
    run_server()
