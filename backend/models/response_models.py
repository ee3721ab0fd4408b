from pydantic import BaseModel, Field
from typing import Optional, List, Dict


class HealthCheckResponse(BaseModel):
    """Health check response (ヘルスチェックレスポンス)"""

    status: str = Field(
        description="ステータス / Status",
        examples=["healthy"]
    )
    variants: List[str] = Field(
        description="利用可能なバリアント / Available variants",
        examples=[["coordinates", "speed-flow"]]
    )
    features: Dict[str, bool] = Field(
        description="有効な機能フラグ / Enabled feature flags",
        examples=[{
            "pair_extraction": True,
            "url_input": True,
            "gzip_input": True,
        }]
    )


class VariantResponse(BaseModel):
    """Element vocabulary of one variant (バリアント定義)"""

    name: str = Field(description="バリアント名 / Variant name", examples=["speed-flow"])
    block_element: Optional[str] = Field(
        default=None,
        description="ブロック境界要素 / Block boundary element",
        examples=["siteMeasurements"]
    )
    site_element: str = Field(description="サイトID要素 / Site identifier element")
    site_attribute: str = Field(description="サイトID属性 / Site identifier attribute")
    context_element: Optional[str] = Field(default=None, description="コンテキスト要素 / Context element")
    first_element: str = Field(description="1つ目の値要素 / First value element")
    first_kind: str = Field(description="1つ目の値の型 / First value kind (float/int)")
    second_element: str = Field(description="2つ目の値要素 / Second value element")
    second_kind: str = Field(description="2つ目の値の型 / Second value kind (float/int)")
    announcement_elements: List[str] = Field(
        default=[],
        description="そのまま出力される要素 / Elements echoed verbatim"
    )
    record_fields: List[str] = Field(
        description="出力フィールド順 / Output field order",
        examples=[["index", "site", "first", "second"]]
    )


class ExtractionStatsResponse(BaseModel):
    """Extraction counters (抽出統計情報)"""

    pairs_emitted: int = Field(description="出力ペア数 / Pairs emitted", examples=[2])
    announcements: int = Field(description="アナウンス行数 / Announcement lines", examples=[1])
    blocks_opened: int = Field(description="開始ブロック数 / Blocks opened")
    blocks_closed: int = Field(description="終了ブロック数 / Blocks closed")
    values_dropped: int = Field(description="キュー溢れで破棄した値 / Values dropped on overflow")
    malformed_numbers: int = Field(description="数値として解釈できなかった値 / Malformed numbers skipped")
    leftovers_discarded: int = Field(description="ペアにならず破棄された値 / Unmatched values discarded")
    unhandled_elements: int = Field(description="未処理要素数 / Unhandled elements")
    unclosed_block: bool = Field(description="終了タグのないブロック / Block left open at end of input")
    read_error: Optional[str] = Field(default=None, description="読み込みエラー / Read error")
    diagnostics_total: int = Field(description="診断メッセージ総数 / Total diagnostics")


class ExtractionSummaryResponse(BaseModel):
    """Extraction summary (抽出結果サマリー)"""

    success: bool = Field(description="読み込みエラーなしで完了 / Completed without read error")
    variant: str = Field(description="使用したバリアント / Variant used", examples=["speed-flow"])
    queue_policy: str = Field(description="キュー方式 / Queue policy", examples=["bounded"])
    stats: ExtractionStatsResponse
    diagnostics: List[str] = Field(
        default=[],
        description="診断メッセージ（先頭のみ） / Recorded diagnostics (first entries)",
        examples=[["speed queue full (max 64), dropping value"]]
    )
    preview: List[str] = Field(
        default=[],
        description="出力の先頭行 / First output lines",
        examples=[["1 S1 10 100", "2 S1 20 200"]]
    )
