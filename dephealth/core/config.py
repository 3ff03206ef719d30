from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    PROJECT_NAME: str = "Dependency Health"

    # Package registry
    REGISTRY_URL: str = "https://registry.npmjs.org"
    REGISTRY_TIMEOUT_SECONDS: float = 5.0

    # Analysis
    EXCLUDE_PACKAGES: List[str] = []
    ALLOWED_VULNERABILITIES: List[str] = []
    INCLUDE_DEV: bool = True

    # Fix application
    AUTOFIX_MAX_RISK_LEVEL: str = "medium"

    LOG_LEVEL: str = "INFO"

    class Config:
        case_sensitive = True
        env_file = ".env"


settings = Settings()
