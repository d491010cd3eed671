"""API services module."""

from app.api.services.graph_client import GraphAPIError, GraphClient, MissingConnectionError
from app.api.services.recommendation_service import RecommendationService
from app.api.services.report_service import ReportService
from app.api.services.score_service import ScoreService
from app.api.services.widget_service import WidgetService

__all__ = [
    "GraphClient",
    "GraphAPIError",
    "MissingConnectionError",
    "ScoreService",
    "WidgetService",
    "ReportService",
    "RecommendationService",
]
