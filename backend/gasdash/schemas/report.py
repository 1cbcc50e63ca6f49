# backend/gasdash/schemas/report.py
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from typing import Any, Optional


class Report(BaseModel):
    """Normalized report. Unknown backend fields are kept as extras."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: Optional[str] = None
    report_name: Optional[str] = None
    report_title: Optional[str] = None
    report_date: Optional[str] = None
    report_final: bool = False
    dist_mains_covered_length: Optional[Any] = None  # 数値 or 文字列（生値のまま）
    total_duration_seconds: float = 0
    formatted_duration: str = "0m"
    total_distance_km: str = "0.00"
    has_surveys: bool = False
    surveyor_unit_desc: Optional[str] = None
    indications: list[dict] = Field(default_factory=list)
    indications_count: int = Field(0, alias="indicationsCount")
    unique_indications_count: int = Field(0, alias="uniqueIndicationsCount")
    field_of_view_gaps_count: int = Field(0, alias="fieldOfViewGapsCount")

    @field_validator("id", "report_name", "report_title", "report_date", "surveyor_unit_desc", mode="before")
    @classmethod
    def _as_text(cls, v):
        if v is None or isinstance(v, str):
            return v
        return str(v)


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ReportCounts(_CamelModel):
    all: int = 0
    with_surveys: int = 0
    final: int = 0
    final_with_surveys: int = 0
    draft_with_surveys: int = 0


class ReportStats(_CamelModel):
    total_reports: int = 0
    calculation_reports_count: int = 0
    report_counts: ReportCounts = Field(default_factory=ReportCounts)

    total_distance: float = 0
    car1_distance: float = 0
    car2_distance: float = 0
    car3_distance: float = 0
    car4_distance: float = 0

    total_draft_distance: float = 0
    car1_draft_distance: float = 0
    car2_draft_distance: float = 0
    car3_draft_distance: float = 0
    car4_draft_distance: float = 0

    total_gaps: int = 0
    total_indications: int = 0
    total_raw_indications: int = 0
    car1_lisa_count: int = 0
    car2_lisa_count: int = 0
    car3_lisa_count: int = 0
    car4_lisa_count: int = 0

    total_lisa_per_km: float = 0
    car1_lisa_per_km: float = 0
    car2_lisa_per_km: float = 0
    car3_lisa_per_km: float = 0
    car4_lisa_per_km: float = 0

    # 稼働時間は /work-hours で別途取得
    total_work_hours: float = 0
    car1_work_hours: float = 0
    car2_work_hours: float = 0
    car3_work_hours: float = 0
    car4_work_hours: float = 0

    weekly_target_km: float = 0
    daily_target_km: float = 0
    weekly_progress: float = 0
    daily_progress: float = 0
    time_period: str = "all"


class ReportsMeta(_CamelModel):
    page: int
    total_pages: int
    total_items: int
    per_page: int
    calculation_reports_count: int
    note: Optional[str] = None


class ReportsResponse(BaseModel):
    reports: list[Report]
    stats: ReportStats
    meta: ReportsMeta

    def to_json(self) -> dict:
        data = self.model_dump(by_alias=True)
        if self.meta.note is None:
            data["meta"].pop("note", None)
        return data
