"""
Process Description Input Schema

The structured description of a business process as produced by the
upstream extraction step. Validation is permissive: missing or malformed
lists become empty, bare strings in lists become named entries, missing or
null text fields become empty strings and unknown enum values fall back to
the most generic member.
"""

from enum import Enum
from typing import Any, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class StepType(str, Enum):
    """Kinds of process steps."""
    TASK = "task"
    USER_TASK = "userTask"
    SERVICE_TASK = "serviceTask"
    MANUAL_TASK = "manualTask"
    GATEWAY = "gateway"


class GatewayType(str, Enum):
    """Gateway routing semantics."""
    EXCLUSIVE = "exclusive"
    PARALLEL = "parallel"
    INCLUSIVE = "inclusive"


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _text_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value else []
    if not isinstance(value, (list, tuple)):
        return []
    return [_text(v) for v in value if v is not None]


def _entries(value: Any, model_cls, allow_single: bool = False) -> List[Any]:
    """Normalize a list of entries: bare strings become ``{"name": ...}``, junk is dropped."""
    if value is None:
        return []
    if allow_single and isinstance(value, (str, dict, model_cls)):
        value = [value]
    if not isinstance(value, (list, tuple)):
        return []
    entries: List[Any] = []
    for item in value:
        if isinstance(item, str):
            entries.append({"name": item})
        elif isinstance(item, (dict, model_cls)):
            entries.append(item)
    return entries


def _lookup_enum(enum_cls, value: Any, default):
    if isinstance(value, enum_cls):
        return value
    text = _text(value).strip().lower().replace("_", "").replace(" ", "")
    for member in enum_cls:
        if member.value.lower() == text:
            return member
    return default


class _InputModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)


class EventEntry(_InputModel):
    """A labelled start or end event."""

    name: str = Field(default="", description="Event label")
    description: str = Field(default="", description="Event description")

    @field_validator("name", "description", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        return _text(value)


class Step(_InputModel):
    """A single step of the process."""

    id: Optional[str] = Field(default=None, description="Step identifier, assigned when absent")
    name: str = Field(default="", description="Step label")
    description: str = Field(default="", description="Step description")
    type: StepType = Field(default=StepType.TASK, description="Step kind")
    actor: str = Field(default="", description="Role performing the step")
    inputs: List[str] = Field(default_factory=list, description="Input labels")
    outputs: List[str] = Field(default_factory=list, description="Output labels")
    duration: str = Field(default="", description="Advisory duration")

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Optional[str]:
        if value is None or value == "":
            return None
        return str(value)

    @field_validator("name", "description", "actor", "duration", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        return _text(value)

    @field_validator("inputs", "outputs", mode="before")
    @classmethod
    def _coerce_list(cls, value: Any) -> List[str]:
        return _text_list(value)

    @field_validator("type", mode="before")
    @classmethod
    def _coerce_type(cls, value: Any) -> StepType:
        return _lookup_enum(StepType, value, StepType.TASK)


class Gateway(_InputModel):
    """A decision or split point described by the extraction step."""

    id: str = Field(default="", description="Gateway identifier")
    name: str = Field(default="", description="Gateway label")
    type: GatewayType = Field(default=GatewayType.EXCLUSIVE, description="Routing semantics")
    condition: str = Field(default="", description="Free-text decision condition")
    outcomes: List[str] = Field(default_factory=list, description="Ordered branch labels")

    @field_validator("id", "name", "condition", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        return _text(value)

    @field_validator("outcomes", mode="before")
    @classmethod
    def _coerce_list(cls, value: Any) -> List[str]:
        return _text_list(value)

    @field_validator("type", mode="before")
    @classmethod
    def _coerce_type(cls, value: Any) -> GatewayType:
        return _lookup_enum(GatewayType, value, GatewayType.EXCLUSIVE)


class ProcessDescription(_InputModel):
    """Complete structured description of one business process."""

    name: str = Field(default="", description="Process name")
    description: str = Field(default="", description="Process summary")
    steps: List[Step] = Field(default_factory=list, description="Ordered steps")
    gateways: List[Gateway] = Field(default_factory=list, description="Decision points")
    start_events: List[EventEntry] = Field(default_factory=list, description="Start events")
    end_events: List[EventEntry] = Field(default_factory=list, description="End events")

    @field_validator("name", "description", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        return _text(value)

    @field_validator("steps", mode="before")
    @classmethod
    def _coerce_steps(cls, value: Any) -> List[Any]:
        return _entries(value, Step)

    @field_validator("gateways", mode="before")
    @classmethod
    def _coerce_gateways(cls, value: Any) -> List[Any]:
        return _entries(value, Gateway)

    @field_validator("start_events", "end_events", mode="before")
    @classmethod
    def _coerce_events(cls, value: Any) -> List[Any]:
        # A single event may be given on its own
        return _entries(value, EventEntry, allow_single=True)

    @classmethod
    def coerce(cls, data: Any) -> "ProcessDescription":
        """Validate arbitrary input, falling back to an empty description."""
        if isinstance(data, cls):
            return data
        if not isinstance(data, Mapping):
            return cls()
        return cls.model_validate(dict(data))

    @property
    def start_label(self) -> str:
        """Label of the first start event, or ``Start``."""
        if self.start_events and self.start_events[0].name:
            return self.start_events[0].name
        return "Start"

    @property
    def end_label(self) -> str:
        """Label of the first end event, or ``End``."""
        if self.end_events and self.end_events[0].name:
            return self.end_events[0].name
        return "End"


__all__ = [
    "EventEntry",
    "Gateway",
    "GatewayType",
    "ProcessDescription",
    "Step",
    "StepType",
]
