from typing import Annotated, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic_settings.sources.types import NoDecode


DEFAULT_SQLITE_PATH = ".data/qbreview.sqlite3"
DEFAULT_JSON_PATH = ".data/qbreview.json"


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    環境変数（および `.env`）から読み込まれるアプリ設定クラス。
    - environment: 実行環境（development/staging/production など）
    - storage_backend: 復習データを保存する KV ストアの種類
    - storage_path: 永続ストアのファイルパス
    """

    environment: str = Field(
        default="development",
        description="Runtime environment / 実行環境",
    )

    # --- 復習データの永続化設定 ---
    storage_backend: Literal["memory", "json", "sqlite"] = Field(
        default="sqlite",
        description="Key-value backend for review data / 復習データを保存するKVバックエンド",
    )
    storage_path: str = Field(
        default=DEFAULT_SQLITE_PATH,
        description="Path to the persistent key-value store / 永続KVストアのパス",
    )

    # --- 出題キュー ---
    review_due_limit: int = Field(
        default=200,
        ge=1,
        description="Max review plans returned by the due endpoint / 復習予定一覧の最大件数",
    )

    # --- Operations/Observability ---
    log_level: str = Field(
        default="INFO",
        description="Root log level / ルートロガーのログレベル",
    )
    allowed_cors_origins: Annotated[tuple[str, ...], NoDecode] = Field(
        default=(),
        description="Comma separated CORS origins / CORS を許可するオリジン（カンマ区切り）",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="QBREVIEW_",
        extra="ignore",
        case_sensitive=False,
    )

    @field_validator("allowed_cors_origins", mode="before")
    @classmethod
    def _split_origins(cls, value: object) -> object:
        if isinstance(value, str):
            return tuple(origin.strip() for origin in value.split(",") if origin.strip())
        return value

    @field_validator("log_level", mode="after")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        return value.strip().upper() or "INFO"

    def resolved_storage_path(self) -> str:
        """Return the storage path, switching the default file name for the JSON backend.

        JSON バックエンドで既定パスのままなら拡張子を `.json` に切り替える。
        明示的に指定されたパスはそのまま使う。
        """

        if self.storage_backend == "json" and self.storage_path == DEFAULT_SQLITE_PATH:
            return DEFAULT_JSON_PATH
        return self.storage_path


settings = Settings()
