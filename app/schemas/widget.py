"""Widget and score Pydantic schemas.

These mirror the dashboard's JSON, so fields serialise in camelCase.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CustomValueUpdate(CamelModel):
    custom_value: float | None = None


class CustomValueResponse(CamelModel):
    success: bool = True
    tenant_id: str
    widget_key: str
    custom_value: float | None = None


class ScoreRunResponse(CamelModel):
    """Result of an on-demand score calculation."""

    tenant_id: str
    total_score: float
    max_score: float
    total_score_pct: float | None = None
    microsoft_secure_score: float | None = None
    microsoft_secure_score_pct: float | None = None
