"""
Export panel state and the parsed course design summary
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class ExportStatus(Enum):
    IDLE = "idle"
    IN_FLIGHT = "in_flight"
    SUCCESS = "success"
    ERROR = "error"


@dataclass
class ExportSummary:
    """Structured summary of the course design as returned by the service"""
    course_design: Dict[str, Any] = field(default_factory=dict)
    progress: Dict[str, Any] = field(default_factory=dict)
    quality_metrics: Dict[str, Any] = field(default_factory=dict)
    framework_analysis: Dict[str, bool] = field(default_factory=dict)
    key_insights: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)
    conversation_metadata: Dict[str, Any] = field(default_factory=dict)
    raw: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExportSummary":
        """Parse a summary payload; missing or mistyped sections are left empty"""
        def section(name) -> Dict[str, Any]:
            value = data.get(name)
            return dict(value) if isinstance(value, dict) else {}

        def string_list(name) -> List[str]:
            value = data.get(name)
            return [str(item) for item in value] if isinstance(value, list) else []

        return cls(
            course_design=section("course_design"),
            progress=section("progress"),
            quality_metrics=section("quality_metrics"),
            framework_analysis={area: bool(covered) for area, covered in section("framework_analysis").items()},
            key_insights=string_list("key_insights"),
            recommendations=string_list("recommendations"),
            conversation_metadata=section("conversation_metadata"),
            raw=dict(data),
        )

    @property
    def covered_areas(self) -> List[str]:
        return [area for area, covered in self.framework_analysis.items() if covered]


@dataclass(frozen=True)
class ExportDownload:
    """A file produced by the service, ready for the UI to save"""
    filename: str
    content: bytes
    export_format: str
    content_type: Optional[str] = None


@dataclass
class ExportRequestState:
    """Status of one export or summary action"""
    status: ExportStatus = ExportStatus.IDLE
    message: str = ""
    payload: Optional[ExportSummary] = None
    action: Optional[str] = None

    @property
    def in_flight(self) -> bool:
        return self.status == ExportStatus.IN_FLIGHT

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "message": self.message,
            "action": self.action,
            "has_payload": self.payload is not None,
        }
