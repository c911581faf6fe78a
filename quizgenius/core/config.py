from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """환경 변수 / .env 기반 설정"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    environment: str = "development"

    # 시스템 기본 키 (쉼표로 구분). 사용자가 등록한 로컬 키가 우선한다.
    gemini_api_key: str | None = None
    gemini_model: str = "gemini-3-flash-preview"
    gemini_validation_model: str = "gemini-3-flash-preview"
    gemini_temperature: float = 0.3

    storage_url: str = "sqlite:///./quizgenius.db"
    # 브라우저 저장소 한도와 비슷하게 값 하나당 5MiB로 제한
    storage_max_value_bytes: int = 5 * 1024 * 1024

    log_dir: str = "logs"

    @property
    def system_api_keys(self) -> list[str]:
        if not self.gemini_api_key:
            return []
        return [key.strip() for key in self.gemini_api_key.split(",") if key.strip()]


settings = Settings()
