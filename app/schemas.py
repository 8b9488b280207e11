from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

MIN_DURATION = 10
MAX_TOPICS = 20

# ============================================
# REQUESTS
# ============================================

class _Request(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)


class TopicItem(_Request):
    tema: str = Field(..., min_length=1, max_length=300)
    duracion: int = Field(..., ge=MIN_DURATION, le=600)
    subtema: Optional[str] = Field(default=None, max_length=300)
    sesiones: Optional[int] = Field(default=None, ge=1, le=50)


class LessonPlanRequest(TopicItem):
    """One lesson plan to generate: a topic plus the course it belongs to."""
    materia: str = Field(..., min_length=1, max_length=120)
    nivel: str = Field(..., min_length=1, max_length=120)
    unidad: Optional[Union[int, str]] = None


class GenerateRequest(_Request):
    """Batch submission: several topics sharing subject, level and unit.

    The single-topic form ``{materia, nivel, unidad, tema, duracion}`` is
    accepted too and becomes a one-item ``temas`` list.
    """
    materia: str = Field(..., min_length=1, max_length=120)
    nivel: str = Field(..., min_length=1, max_length=120)
    unidad: Optional[Union[int, str]] = None
    temas: List[TopicItem] = Field(..., min_length=1, max_length=MAX_TOPICS)

    @model_validator(mode="before")
    @classmethod
    def single_topic_shorthand(cls, data: Any) -> Any:
        if isinstance(data, dict) and "temas" not in data and "tema" in data:
            data = dict(data)
            topic = {key: data.pop(key) for key in ("tema", "duracion", "subtema", "sesiones") if key in data}
            data["temas"] = [topic]
        return data

    def plan_requests(self) -> List[LessonPlanRequest]:
        return [
            LessonPlanRequest(
                materia=self.materia,
                nivel=self.nivel,
                unidad=self.unidad,
                **item.model_dump(),
            )
            for item in self.temas
        ]


class PlanCreate(_Request):
    materia: str = Field(..., min_length=1, max_length=120)
    nivel: str = Field(..., min_length=1, max_length=120)
    unidad: Optional[Union[int, str]] = None
    tema: str = Field(..., min_length=1, max_length=300)
    subtema: Optional[str] = Field(default=None, max_length=300)
    duracion: int = Field(..., ge=MIN_DURATION, le=600)
    sesiones: Optional[int] = Field(default=None, ge=1, le=50)
    tabla_ia: Optional[List[Dict[str, Any]]] = None


class PlanUpdate(_Request):
    materia: Optional[str] = Field(default=None, min_length=1, max_length=120)
    nivel: Optional[str] = Field(default=None, min_length=1, max_length=120)
    unidad: Optional[Union[int, str]] = None
    tema: Optional[str] = Field(default=None, min_length=1, max_length=300)
    subtema: Optional[str] = Field(default=None, max_length=300)
    duracion: Optional[int] = Field(default=None, ge=MIN_DURATION, le=600)
    sesiones: Optional[int] = Field(default=None, ge=1, le=50)
    tabla_ia: Optional[List[Dict[str, Any]]] = None

    @field_validator("materia", "nivel", "tema", "duracion")
    @classmethod
    def required_fields_not_null(cls, value: Any) -> Any:
        # may be omitted, but never cleared
        if value is None:
            raise ValueError("no puede ser nulo")
        return value

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True)

# ============================================
# RECORDS
# ============================================

class GeneratedTableRow(BaseModel):
    """One pedagogical moment of the activity table."""
    model_config = ConfigDict(extra="ignore")

    momento: str = ""
    actividades: Union[str, List[str]] = ""
    tiempo_min: Union[int, float, str] = 0
    producto: str = ""
    instrumento: str = ""
    evaluacion_formativa: str = ""
    ponderacion_sumativa: Union[int, float, str] = 0


class LessonPlanRow(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Union[int, str]
    user_id: Optional[str] = None
    batch_id: Optional[str] = None
    materia: Optional[str] = None
    nivel: Optional[str] = None
    unidad: Optional[Union[int, str]] = None
    tema: Optional[str] = None
    subtema: Optional[str] = None
    duracion: Optional[int] = None
    sesiones: Optional[int] = None
    tabla_ia: Optional[List[Dict[str, Any]]] = None
    fecha_creacion: Optional[datetime] = None


class IaMetricsRow(BaseModel):
    nivel: str
    materia: str
    prompt_version: str
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    json_ok: bool
    error_tipo: Optional[str] = None

# ============================================
# RESPONSES
# ============================================

class CreatedResponse(BaseModel):
    id: Union[int, str]
    planeacion: LessonPlanRow


class BatchResponse(BaseModel):
    batch_id: str
    total: int
    planeaciones: List[LessonPlanRow]


class BatchSummary(BaseModel):
    batch_id: str
    materia: Optional[str] = None
    nivel: Optional[str] = None
    unidad: Optional[Union[int, str]] = None
    total: int
    fecha_creacion: Optional[datetime] = None
