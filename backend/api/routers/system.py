from fastapi import APIRouter

from models.response_models import HealthCheckResponse
from services.datex import VARIANTS

router = APIRouter()


# --- ヘルスチェック ---
@router.get(
    "/api/health",
    summary="Health Check",
    tags=["System"],
    status_code=200,
    response_model=HealthCheckResponse,
    responses={
        200: {
            "description": "System health status and available features",
            "content": {
                "application/json": {
                    "example": {
                        "status": "healthy",
                        "variants": ["coordinates", "speed-flow"],
                        "features": {
                            "pair_extraction": True,
                            "url_input": True,
                            "gzip_input": True,
                        }
                    }
                }
            }
        }
    }
)
async def api_health_check():
    """
    システムのヘルスチェックと利用可能な機能を返します。

    System health check and available features.

    **機能フラグ / Feature Flags**:
    - `pair_extraction`: DATEX II → ペア行抽出 / Pair extraction
    - `url_input`: URLからのフィード取得 / Remote feed input
    - `gzip_input`: gzip圧縮入力の自動展開 / Transparent gzip input
    """
    return HealthCheckResponse(
        status="healthy",
        variants=sorted(VARIANTS),
        features={
            "pair_extraction": True,
            "url_input": True,
            "gzip_input": True,
        },
    )
