"""
설정 어댑터

pydantic-settings 기반으로 환경 변수와 .env 파일에서 설정을 읽습니다.
ENVIRONMENT 값에 따라 개발/운영/테스트 설정 클래스를 선택합니다.
"""

import os
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.domain.ports import ConfigPort

QUEUE_BACKENDS = ("database", "memory")


class BaseConfig(BaseSettings, ConfigPort):
    """기본 설정 클래스"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # 환경 설정
    environment: str = Field(default="development")
    debug: bool = Field(default=False)

    # 데이터베이스 설정
    database_url: str = Field(...)

    # Microsoft Graph API 설정
    azure_client_id: str = Field(...)
    azure_client_secret: Optional[str] = Field(default=None)
    azure_tenant_id: str = Field(default="common")

    # 암호화 설정
    encryption_key: str = Field(...)

    # 로깅 설정
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    # 웹 서버 설정
    web_host: str = Field(default="0.0.0.0")
    web_port: int = Field(default=5000)
    web_workers: int = Field(default=1)

    # 큐 / 워커 설정
    queue_backend: str = Field(default="database")
    worker_concurrency: int = Field(default=2, ge=1)
    worker_poll_interval_seconds: float = Field(default=1.0, gt=0)

    # 스로틀 설정
    throttle_duration_seconds: int = Field(default=60, ge=1)
    throttle_max_duration_seconds: int = Field(default=3600, ge=1)
    throttle_max_attempts: int = Field(default=4, ge=1)

    # Graph 요청 설정
    graph_timeout_seconds: float = Field(default=30.0, gt=0)
    graph_page_size: int = Field(default=100, ge=1, le=1000)

    # 예약 작업 설정
    cron_batch_size: int = Field(default=100, ge=1)

    @field_validator("encryption_key")
    @classmethod
    def validate_encryption_key(cls, v):
        """암호화 키 검증"""
        if len(v) < 16:
            raise ValueError("암호화 키는 16자 이상이어야 합니다")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """로그 레벨 검증"""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"로그 레벨은 {valid_levels} 중 하나여야 합니다")
        return v.upper()

    @field_validator("queue_backend")
    @classmethod
    def validate_queue_backend(cls, v):
        """큐 백엔드 검증"""
        if v.lower() not in QUEUE_BACKENDS:
            raise ValueError(f"큐 백엔드는 {QUEUE_BACKENDS} 중 하나여야 합니다")
        return v.lower()

    # ConfigPort 인터페이스 구현
    def get_environment(self) -> str:
        return self.environment

    def is_debug(self) -> bool:
        return self.debug

    def get_database_url(self) -> str:
        return self.database_url

    def get_azure_client_id(self) -> str:
        return self.azure_client_id

    def get_azure_client_secret(self) -> Optional[str]:
        return self.azure_client_secret

    def get_azure_tenant_id(self) -> str:
        return self.azure_tenant_id

    def get_encryption_key(self) -> str:
        return self.encryption_key

    def get_log_level(self) -> str:
        return self.log_level

    def get_log_format(self) -> str:
        return self.log_format

    def get_web_host(self) -> str:
        return self.web_host

    def get_web_port(self) -> int:
        return self.web_port

    def get_web_workers(self) -> int:
        return self.web_workers

    def get_queue_backend(self) -> str:
        return self.queue_backend

    def get_worker_concurrency(self) -> int:
        return self.worker_concurrency

    def get_worker_poll_interval_seconds(self) -> float:
        return self.worker_poll_interval_seconds

    def get_throttle_duration_seconds(self) -> int:
        return self.throttle_duration_seconds

    def get_throttle_max_duration_seconds(self) -> int:
        return self.throttle_max_duration_seconds

    def get_throttle_max_attempts(self) -> int:
        return self.throttle_max_attempts

    def get_graph_timeout_seconds(self) -> float:
        return self.graph_timeout_seconds

    def get_graph_page_size(self) -> int:
        return self.graph_page_size

    def get_cron_batch_size(self) -> int:
        return self.cron_batch_size

    def get_web_config(self) -> dict:
        """웹 서버 설정 조회"""
        return {
            "host": self.web_host,
            "port": self.web_port,
            "workers": self.web_workers,
        }


class DevelopmentConfig(BaseConfig):
    """개발 환경 설정"""

    environment: str = "development"
    debug: bool = True
    log_level: str = "DEBUG"

    # 개발용 기본값들 (실제 사용 시 .env 파일에서 설정)
    database_url: str = Field(default="sqlite+aiosqlite:///./dev_database.db")
    azure_client_id: str = Field(default="dev_client_id")
    azure_client_secret: Optional[str] = Field(default="dev_client_secret")
    encryption_key: str = Field(default="dev_encryption_key_32_bytes_long")


class ProductionConfig(BaseConfig):
    """운영 환경 설정"""

    environment: str = "production"
    debug: bool = False
    log_level: str = "INFO"

    web_workers: int = Field(default=4)
    worker_concurrency: int = Field(default=8, ge=1)

    @field_validator("database_url")
    @classmethod
    def validate_production_database_url(cls, v):
        """운영 환경에서는 SQLite를 사용하지 않음"""
        if not v or v.startswith("sqlite"):
            raise ValueError("운영 환경에서는 PostgreSQL 등 서버형 데이터베이스가 필요합니다")
        return v

    @field_validator("azure_client_secret", "encryption_key")
    @classmethod
    def validate_production_secrets(cls, v):
        """운영 환경에서는 개발용 시크릿 금지"""
        if v and v.startswith("dev_"):
            raise ValueError("운영 환경에서는 실제 시크릿 값이 필요합니다")
        return v


class TestingConfig(BaseConfig):
    """테스트 환경 설정"""

    # pytest 수집 대상 아님
    __test__ = False

    model_config = SettingsConfigDict(env_file=None, case_sensitive=False, extra="ignore")

    environment: str = "testing"
    debug: bool = True
    log_level: str = "WARNING"

    database_url: str = Field(default="sqlite+aiosqlite:///:memory:")
    azure_client_id: str = "test_client_id"
    azure_client_secret: Optional[str] = "test_client_secret"
    azure_tenant_id: str = "test_tenant_id"
    encryption_key: str = "test_encryption_key_32_bytes_long"


class ConfigAdapter:
    """설정 어댑터 팩토리"""

    @staticmethod
    def create_config() -> ConfigPort:
        """환경에 따른 설정 객체를 생성합니다."""
        environment = os.getenv("ENVIRONMENT", "development").lower()

        if environment == "production":
            return ProductionConfig()
        elif environment == "testing":
            return TestingConfig()
        else:
            return DevelopmentConfig()


# 전역 설정 인스턴스
_config: Optional[ConfigPort] = None


def get_config() -> ConfigPort:
    """전역 설정 인스턴스를 반환합니다."""
    global _config
    if _config is None:
        _config = ConfigAdapter.create_config()
    return _config
