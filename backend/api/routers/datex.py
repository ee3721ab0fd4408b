import os
import tempfile
from typing import List, Optional, Tuple, Union

from fastapi import APIRouter, BackgroundTasks, File, Form, HTTPException, UploadFile
from fastapi.responses import FileResponse

from api.helpers import (
    cleanup_temp_dir,
    normalize_choice,
    normalize_optional_str,
    normalize_positive_int,
    save_upload_to_tmpdir,
)
from config import (
    DATEX_FETCH_TIMEOUT,
    SUMMARY_PREVIEW_LINES,
    UPLOAD_LIMITS,
    default_extraction_config,
)
from models.response_models import (
    ExtractionStatsResponse,
    ExtractionSummaryResponse,
    VariantResponse,
)
from services.datex import ExtractionConfig, ExtractionStats, VARIANTS, extract_pairs_from_path, iter_records
from services.datex.core.constants import QUEUE_POLICIES, TEXT_POLICIES
from services.datex.core.errors import SourceOpenError
from services.datex.utils.logging import log
from services.datex.utils.sources import is_url, open_source

router = APIRouter()

MAX_UPLOAD_BYTES = UPLOAD_LIMITS["max_file_size_bytes"]
ACCEPTED_SUFFIXES = (".xml", ".gz")


async def _resolve_input(
    file: Optional[UploadFile],
    xml_path: Optional[str],
    url: Optional[str],
) -> Tuple[Optional[str], str]:
    """アップロード / パス / URL のいずれかを入力として確定する。Returns (tmpdir, source)."""
    normalized_path = normalize_optional_str(xml_path)
    normalized_url = normalize_optional_str(url)

    if file is None and not normalized_path and not normalized_url:
        raise HTTPException(
            status_code=400,
            detail="DATEX IIファイルをアップロードするか xml_path / url を指定してください。/ Provide file, xml_path or url.",
        )

    if file is not None:
        if not file.filename or not file.filename.lower().endswith(ACCEPTED_SUFFIXES):
            raise HTTPException(status_code=400, detail="DATEX II (.xml/.xml.gz) に対応しています。")
        if file.size and file.size > MAX_UPLOAD_BYTES:
            raise HTTPException(
                status_code=413,
                detail=f"ファイルサイズが大きすぎます（最大{MAX_UPLOAD_BYTES // (1024 * 1024)}MB）。/ File too large.",
            )
        tmpdir, in_path, total = await save_upload_to_tmpdir(file, "xml", max_bytes=MAX_UPLOAD_BYTES)
        if total == 0:
            cleanup_temp_dir(tmpdir)
            raise HTTPException(status_code=400, detail="アップロードされたファイルが空です。/ Uploaded file is empty.")
        log(f"[UPLOAD] received {total} bytes -> {in_path}")
        return tmpdir, in_path

    if normalized_url:
        if not is_url(normalized_url):
            raise HTTPException(status_code=400, detail=f"url must start with http:// or https://, got: {normalized_url}")
        log(f"[UPLOAD] using remote feed {normalized_url}")
        return None, normalized_url

    if not os.path.exists(normalized_path):
        raise HTTPException(status_code=404, detail=f"指定されたパスが見つかりません: {normalized_path}")
    log(f"[UPLOAD] using local path {normalized_path}")
    return None, normalized_path


def _build_config(
    variant: Optional[str],
    queue_policy: Optional[str],
    queue_capacity: Union[int, str, None],
    initial_capacity: Union[int, str, None],
    text_policy: Optional[str],
    debug: bool,
) -> ExtractionConfig:
    try:
        defaults = default_extraction_config()
        return default_extraction_config(
            variant=normalize_choice(variant, sorted(VARIANTS), defaults.variant, "variant"),
            queue_policy=normalize_choice(queue_policy, QUEUE_POLICIES, defaults.queue_policy, "queue_policy"),
            queue_capacity=normalize_positive_int(queue_capacity, "queue_capacity"),
            initial_capacity=normalize_positive_int(initial_capacity, "initial_capacity"),
            text_policy=normalize_choice(text_policy, TEXT_POLICIES, defaults.text_policy, "text_policy"),
            debug=debug,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


def _stats_headers(stats: ExtractionStats) -> dict:
    headers = {
        "Cache-Control": "no-cache",
        "X-Pair-Count": str(stats.pairs_emitted),
        "X-Announcement-Count": str(stats.announcements),
        "X-Dropped-Values": str(stats.values_dropped),
    }
    if stats.read_error:
        # ヘッダーは1行・ASCIIのみ
        headers["X-Read-Error"] = stats.read_error.encode("ascii", "replace").decode("ascii").replace("\n", " ")
    return headers


# --- DATEX II → ペア行 抽出エンドポイント ---
@router.post(
    "/api/datex/pairs",
    summary="DATEX II → Pair Lines",
    tags=["DATEX Processing"],
    responses={
        200: {
            "description": "One line per matched pair / announcement, in arrival order",
            "content": {
                "text/plain": {
                    "example": "2024-05-01T10:00:00Z\n1 S1 10 100\n2 S1 20 200\n"
                }
            }
        },
        400: {"description": "Invalid parameters or missing input"},
        404: {"description": "Specified xml_path not found on server"},
        413: {"description": "File too large"},
        502: {"description": "Remote feed could not be fetched"},
        500: {"description": "Extraction error"}
    },
)
async def datex_pairs(
    background_tasks: BackgroundTasks,
    file: Optional[UploadFile] = File(
        None,
        description="DATEX IIファイル（.xml/.xml.gz）をアップロード（file / xml_path / url のいずれかを指定）",
    ),
    xml_path: Optional[str] = Form(None, description="サーバーローカルのDATEX IIファイルの絶対パス"),
    url: Optional[str] = Form(None, description="取得するフィードのURL（http/https） / Feed URL"),
    variant: Optional[str] = Form(None, description="speed-flow（速度・交通量）または coordinates（緯度・経度）"),
    queue_policy: Optional[str] = Form(None, description="bounded（固定長、溢れは破棄）または growable（自動拡張）"),
    queue_capacity: Union[int, str, None] = Form(None, description="bounded の最大未対応値数 / Bounded capacity"),
    initial_capacity: Union[int, str, None] = Form(None, description="growable の初期容量 / Growable starting capacity"),
    text_policy: Optional[str] = Form(None, description="bounded（切り詰め）または dynamic（全長保持）"),
    debug: bool = Form(False, description="デバッグログ出力を有効化"),
):
    """
    DATEX II 文書をストリーミング処理し、対応する値のペアを1行ずつ返します。

    Stream a DATEX II document and return one text line per matched pair.

    **出力形式 / Output format**:
    - speed-flow: `<index> <site> <speed> <flow>`
    - coordinates: `<site> <version time> <latitude> <longitude>`
    - `publicationTime` lines are echoed verbatim where they occur

    **ヘッダー / Headers**: X-Pair-Count, X-Announcement-Count, X-Dropped-Values, X-Read-Error
    """
    tmpdir = None
    out_dir = None
    success = False
    try:
        config = _build_config(variant, queue_policy, queue_capacity, initial_capacity, text_policy, debug)
        tmpdir, source = await _resolve_input(file, xml_path, url)

        out_dir = tempfile.mkdtemp()
        out_path = os.path.join(out_dir, "pairs.txt")
        with open(out_path, "w", encoding="utf-8") as sink:
            stats = extract_pairs_from_path(source, sink, config, timeout=DATEX_FETCH_TIMEOUT)

        log(f"[RESPONSE] {stats.pairs_emitted} pairs, {stats.announcements} announcements")

        def cleanup_temp_files():
            cleanup_temp_dir(tmpdir, label="tmpdir")
            cleanup_temp_dir(out_dir, label="out_dir")

        # レスポンス送信後にクリーンアップをスケジュール
        background_tasks.add_task(cleanup_temp_files)
        success = True
        return FileResponse(
            path=out_path,
            media_type="text/plain; charset=utf-8",
            headers=_stats_headers(stats),
        )
    except HTTPException:
        raise
    except FileNotFoundError as e:
        raise HTTPException(status_code=404, detail=f"指定されたパスが見つかりません: {e}")
    except SourceOpenError as e:
        raise HTTPException(status_code=502, detail=str(e))
    finally:
        if not success:
            cleanup_temp_dir(tmpdir, label="tmpdir")
            cleanup_temp_dir(out_dir, label="out_dir")


# --- 抽出サマリー ---
@router.post(
    "/api/datex/summary",
    summary="DATEX II Extraction Summary",
    tags=["DATEX Processing"],
    response_model=ExtractionSummaryResponse,
    responses={
        400: {"description": "Invalid parameters or missing input"},
        404: {"description": "Specified xml_path not found"},
        502: {"description": "Remote feed could not be fetched"},
    }
)
async def datex_summary(
    file: Optional[UploadFile] = File(None, description="DATEX II file (.xml/.xml.gz)"),
    xml_path: Optional[str] = Form(None, description="サーバーローカルのパス / Server-side path"),
    url: Optional[str] = Form(None, description="フィードURL / Feed URL"),
    variant: Optional[str] = Form(None, description="speed-flow / coordinates"),
    queue_policy: Optional[str] = Form(None, description="bounded / growable"),
    queue_capacity: Union[int, str, None] = Form(None, description="Bounded capacity"),
    initial_capacity: Union[int, str, None] = Form(None, description="Growable starting capacity"),
    text_policy: Optional[str] = Form(None, description="bounded / dynamic"),
):
    """
    抽出を実行し、統計情報・診断メッセージ・先頭行を返します。

    Run an extraction and return counters, recorded diagnostics and a preview.
    """
    tmpdir = None
    try:
        config = _build_config(variant, queue_policy, queue_capacity, initial_capacity, text_policy, False)
        tmpdir, source = await _resolve_input(file, xml_path, url)

        stats = ExtractionStats()
        preview: List[str] = []
        with open_source(source, timeout=DATEX_FETCH_TIMEOUT) as stream:
            for line in iter_records(stream, config, stats=stats):
                if len(preview) < SUMMARY_PREVIEW_LINES:
                    preview.append(line)

        fields = stats.as_dict()
        diagnostics = fields.pop("diagnostics")
        return ExtractionSummaryResponse(
            success=stats.read_error is None,
            variant=config.variant,
            queue_policy=config.queue_policy,
            stats=ExtractionStatsResponse(**fields),
            diagnostics=diagnostics,
            preview=preview,
        )
    except HTTPException:
        raise
    except FileNotFoundError as e:
        raise HTTPException(status_code=404, detail=f"指定されたパスが見つかりません: {e}")
    except SourceOpenError as e:
        raise HTTPException(status_code=502, detail=str(e))
    finally:
        cleanup_temp_dir(tmpdir, label="tmpdir")


# --- バリアント一覧 ---
@router.get(
    "/api/datex/variants",
    summary="Supported Variants",
    tags=["DATEX Processing"],
    response_model=List[VariantResponse],
)
async def datex_variants():
    """
    認識する要素名の一覧をバリアントごとに返します。

    List the element vocabulary of every supported variant.
    """
    return [
        VariantResponse(
            name=v.name,
            block_element=v.block_element,
            site_element=v.site_element,
            site_attribute=v.site_attribute,
            context_element=v.context_element,
            first_element=v.first_element,
            first_kind=v.first_kind,
            second_element=v.second_element,
            second_kind=v.second_kind,
            announcement_elements=list(v.announcement_elements),
            record_fields=list(v.record_fields),
        )
        for v in (VARIANTS[name] for name in sorted(VARIANTS))
    ]
