import os
import time

import uvicorn
from fastapi import Request

from config import create_app, ENV, DATEX_VARIANT, DATEX_QUEUE_POLICY
from api.endpoints import router
from services.datex.utils.logging import log

# FastAPIアプリケーションの作成
app = create_app()

# APIルーターの追加
app.include_router(router)


# 簡易アクセスログ用ミドルウェア（1行/リクエスト）
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    try:
        response = await call_next(request)
        dur = (time.time() - start) * 1000.0
        client = f"{request.client.host}:{request.client.port}" if request.client else "-"
        log(f"[ACCESS] {client} {request.method} {request.url.path} -> {response.status_code} {dur:.1f}ms")
        return response
    except Exception as e:
        dur = (time.time() - start) * 1000.0
        log(f"[ACCESS][ERROR] {request.method} {request.url.path} after {dur:.1f}ms: {e}")
        raise


def main():
    """サーバーを起動する"""
    port = int(os.getenv("PORT", 8001))
    is_production = ENV == "production"

    # 本番環境ではreloadを無効化、ワーカー数を設定
    reload_enabled = not is_production
    workers = int(os.getenv("WORKERS", 1 if not is_production else 2))

    log(f"\n{'='*60}")
    log(f"[SERVER] 環境: {ENV}")
    log(f"[SERVER] ポート: {port}")
    log(f"[SERVER] リロード: {reload_enabled}")
    log(f"[SERVER] ワーカー数: {workers}")
    log(f"[SERVER] バリアント: {DATEX_VARIANT} / キュー: {DATEX_QUEUE_POLICY}")
    log(f"{'='*60}\n")

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=port,
        reload=reload_enabled,
        workers=workers if not reload_enabled else None,  # reloadモードではworkersは使えない
        access_log=True,
        log_level="info",
    )


if __name__ == "__main__":
    main()
