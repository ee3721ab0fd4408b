import os
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from services.datex import ExtractionConfig
from services.datex.core.constants import (
    DEFAULT_QUEUE_CAPACITY,
    DEFAULT_INITIAL_CAPACITY,
    DEFAULT_MAX_TEXT,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_FETCH_TIMEOUT,
)
from services.datex.utils.logging import log, set_console_logging

# 環境変数でdemo/productionモードの場合、コンソールログを無効化してパフォーマンス向上
ENV = os.getenv("ENV", os.getenv("PYTHON_ENV", "development"))

if ENV in ["demo", "production"]:
    set_console_logging(False)


# 環境変数の読み込み
try:
    from dotenv import load_dotenv

    # 環境に応じた.envファイルを選択
    env_file = None
    if ENV == "production":
        # 本番環境: .env.production → .env の順で探す
        if os.path.exists(".env.production"):
            env_file = ".env.production"
        elif os.path.exists(".env"):
            env_file = ".env"
    elif ENV == "demo":
        # デモ環境: .env.demo → .env の順で探す
        if os.path.exists(".env.demo"):
            env_file = ".env.demo"
        elif os.path.exists(".env"):
            env_file = ".env"
    else:
        # 開発環境（デフォルト）: .env.development → .env の順で探す
        if os.path.exists(".env.development"):
            env_file = ".env.development"
        elif os.path.exists(".env"):
            env_file = ".env"

    if env_file:
        load_dotenv(env_file)
        log(f"[CONFIG] 環境変数を {env_file} から読み込みました (ENV={ENV})")
except ImportError:
    log("[CONFIG] python-dotenvがインストールされていないため、環境変数の読み込みをスキップします。")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got: {raw}")


# 設定値
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3001")
CORS_ALLOW_ALL = os.getenv("CORS_ALLOW_ALL", "false").lower() == "true"

# 抽出のデフォルト設定 / Extraction defaults
DATEX_VARIANT = os.getenv("DATEX_VARIANT", "speed-flow")
DATEX_QUEUE_POLICY = os.getenv("DATEX_QUEUE_POLICY", "bounded")
DATEX_QUEUE_CAPACITY = _env_int("DATEX_QUEUE_CAPACITY", DEFAULT_QUEUE_CAPACITY)
DATEX_INITIAL_CAPACITY = _env_int("DATEX_INITIAL_CAPACITY", DEFAULT_INITIAL_CAPACITY)
DATEX_TEXT_POLICY = os.getenv("DATEX_TEXT_POLICY", "bounded")
DATEX_MAX_TEXT = _env_int("DATEX_MAX_TEXT", DEFAULT_MAX_TEXT)
DATEX_CHUNK_SIZE = _env_int("DATEX_CHUNK_SIZE", DEFAULT_CHUNK_SIZE)
DATEX_FETCH_TIMEOUT = _env_int("DATEX_FETCH_TIMEOUT", DEFAULT_FETCH_TIMEOUT)

# アップロード制限 / Upload limits
UPLOAD_LIMITS = {
    "max_file_size_bytes": _env_int("DATEX_MAX_UPLOAD_MB", 250) * 1024 * 1024,
}

# プレビュー行数 / Lines returned by the summary endpoint
SUMMARY_PREVIEW_LINES = _env_int("DATEX_PREVIEW_LINES", 20)


def default_extraction_config(**overrides) -> ExtractionConfig:
    """環境変数から抽出設定を作成する / Build an ExtractionConfig from the environment."""
    settings = {
        "variant": DATEX_VARIANT,
        "queue_policy": DATEX_QUEUE_POLICY,
        "queue_capacity": DATEX_QUEUE_CAPACITY,
        "initial_capacity": DATEX_INITIAL_CAPACITY,
        "text_policy": DATEX_TEXT_POLICY,
        "max_text": DATEX_MAX_TEXT,
        "chunk_size": DATEX_CHUNK_SIZE,
    }
    settings.update({k: v for k, v in overrides.items() if v is not None})
    return ExtractionConfig(**settings)


# アプリケーション設定
APP_CONFIG = {
    "title": "DATEX II Pair Extraction API",
    "description": """
**DATEX II Pair Extraction API**: streaming extraction of paired traffic measurements

## 主な機能 / Features

### 🚦 Speed / Flow Pairs
- `siteMeasurements` blocks → one line per (speed, vehicleFlowRate) pair
- Site identifier from `measurementSiteReference/@id`
- `publicationTime` echoed in arrival order

### 📍 Site Coordinates
- `measurementSiteTable` → one line per (latitude, longitude) pair
- Record version time carried as context

### 📐 Bounded Memory
- Forward-only pull parsing (no document tree kept)
- Bounded (drop newest) or growable (doubling) value queues
- Malformed values skipped, overflow reported, read errors stop cleanly
    """,
    "version": "1.0.0",
    "license_info": {
        "name": "MIT",
    }
}

# OpenAPI タグのメタデータ
TAGS_METADATA = [
    {
        "name": "DATEX Processing",
        "description": "DATEX II measurement pair extraction (DATEX II → ペア行抽出)",
        "externalDocs": {
            "description": "DATEX II documentation",
            "url": "https://docs.datex2.eu/",
        },
    },
    {
        "name": "System",
        "description": "Health checks, diagnostics, and system information (ヘルスチェック、診断、システム情報)",
    },
]


def build_cors_origins() -> list:
    """環境に応じた許可オリジンを返す / Allowed origins for the current environment."""
    origins = []

    if CORS_ALLOW_ALL or FRONTEND_URL == "*":
        # 開発環境: ローカルホストを明示的に許可
        origins.extend([
            "http://localhost:8001",
            "http://127.0.0.1:8001",
            "http://localhost:8080",
            "http://127.0.0.1:8080",
        ])
    elif ENV == "demo":
        # デモ環境: フロントエンド + localhost許可
        if FRONTEND_URL:
            origins.append(FRONTEND_URL)
        origins.extend([
            "http://localhost:8080",
            "http://127.0.0.1:8080",
        ])
    else:
        # 本番環境: 特定のオリジンのみを許可
        if FRONTEND_URL:
            origins.append(FRONTEND_URL)
    return origins


def setup_cors(app: FastAPI) -> None:
    """CORS設定を行う"""
    origins = build_cors_origins()
    log(f"[CORS CONFIG] 環境: {ENV}, フロントエンドURL: {FRONTEND_URL}")

    # CORSミドルウェアを追加
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[
            "X-Pair-Count",
            "X-Announcement-Count",
            "X-Dropped-Values",
            "X-Read-Error",
        ],
    )

    log(f"[CORS] 許可されたオリジン数: {len(origins)}")


def create_app() -> FastAPI:
    """FastAPIアプリケーションを作成する"""
    app = FastAPI(**APP_CONFIG, openapi_tags=TAGS_METADATA)
    setup_cors(app)
    return app
