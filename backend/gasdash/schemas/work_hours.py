# backend/gasdash/schemas/work_hours.py
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Literal, Optional

Method = Literal["driving-sessions-basic", "gas-reports", "fallback-estimation"]


class WorkHours(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    total_work_hours: float
    car1_work_hours: float
    car2_work_hours: float
    total_sessions: int
    car1_session_count: int
    car2_session_count: int
    total_breadcrumbs: int = 0
    method: Optional[Method] = None
    updated: str
    report_count: Optional[int] = None
    error_info: Optional[str] = None

    def to_json(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)
