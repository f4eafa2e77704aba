from typing import Dict, Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str = Field(..., alias="DATABASE_URL")
    sql_echo: bool = Field(False, alias="SQL_ECHO")

    jwt_secret_key: str = Field(..., alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field("HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(60, alias="ACCESS_TOKEN_EXPIRE_MINUTES")

    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(True, alias="LOG_JSON")

    admin_username: Optional[str] = Field(None, alias="ADMIN_USERNAME")
    admin_password: Optional[str] = Field(None, alias="ADMIN_PASSWORD")

    # Promotion / class provisioning
    max_grade: int = Field(12, alias="MAX_GRADE")
    graduation_reason: str = Field("畢業", alias="GRADUATION_REASON")
    bootstrap_class_name_template: str = Field("{grade_name}班", alias="BOOTSTRAP_CLASS_NAME_TEMPLATE")
    clone_fallback_class_name_template: str = Field("{grade_id}A", alias="CLONE_FALLBACK_CLASS_NAME_TEMPLATE")
    # {grade_id: template}; beats both templates above for that grade
    class_name_templates: Dict[int, str] = Field(default_factory=dict, alias="CLASS_NAME_TEMPLATES")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"
        populate_by_name = True


settings = Settings()
