import json
import re
from typing import Any, Dict, List, NamedTuple, Optional

from app.core.logging import logger
from app.schemas import GeneratedTableRow
from app.services.prompt_builder import MOMENTOS

INVALID_JSON = "invalid_json"
JSON_RECOVERED = "json_recovered"
FALLBACK_USED = "fallback_used"

FALLBACK_WEIGHTS = (3, 5, 2)


class ParseOutcome(NamedTuple):
    table: List[Dict[str, Any]]
    json_ok: bool
    error_tipo: Optional[str]


def _as_table(data: Any) -> Optional[List[Dict[str, Any]]]:
    if isinstance(data, list) and data and all(isinstance(row, dict) for row in data):
        return data
    return None


def _loads_table(text: str) -> Optional[List[Dict[str, Any]]]:
    try:
        return _as_table(json.loads(text))
    except (ValueError, RecursionError):
        return None


def fallback_table(duracion: int) -> List[Dict[str, Any]]:
    """Static activity table used when the model output is unusable.

    Opening and closing take 10 minutes each and development the rest; for
    classes shorter than 30 minutes they shrink to a third so the minutes
    still add up to the duration.
    """
    edge = min(10, duracion // 3)
    minutes = (edge, duracion - 2 * edge, edge)
    activities = (
        "Lluvia de ideas y preguntas detonadoras para recuperar lo que el grupo ya sabe del tema.",
        "Explicación guiada del tema y trabajo en equipos con ejercicios de aplicación.",
        "Puesta en común de resultados, aclaración de dudas y conclusión grupal.",
    )
    products = ("Lista de ideas previas", "Ejercicios resueltos", "Conclusión escrita")
    instruments = ("Lista de cotejo", "Rúbrica", "Lista de cotejo")
    descriptors = (
        "Identifica conocimientos previos relacionados con el tema.",
        "Aplica los conceptos del tema en la resolución de ejercicios.",
        "Expresa con sus palabras lo aprendido en la sesión.",
    )
    return [
        GeneratedTableRow(
            momento=MOMENTOS[i],
            actividades=activities[i],
            tiempo_min=minutes[i],
            producto=products[i],
            instrumento=instruments[i],
            evaluacion_formativa=descriptors[i],
            ponderacion_sumativa=FALLBACK_WEIGHTS[i],
        ).model_dump()
        for i in range(3)
    ]


def parse_table(raw: str, duracion: int) -> ParseOutcome:
    """Turn raw model text into the activity table, repairing or falling back."""
    cleaned = re.sub(r'```json\s*|\s*```', '', (raw or "").strip())

    table = _loads_table(cleaned)
    if table is not None:
        return ParseOutcome(table, True, None)

    logger.warning(f"Model output is not a usable JSON array ({INVALID_JSON}), trying recovery")
    json_match = re.search(r'\[.*\]', cleaned, re.DOTALL)
    if json_match:
        table = _loads_table(json_match.group())
        if table is not None:
            logger.info(f"Recovered table with {len(table)} rows from model output")
            return ParseOutcome(table, False, JSON_RECOVERED)

    logger.warning("Could not recover a table from model output, using fallback table")
    return ParseOutcome(fallback_table(duracion), False, FALLBACK_USED)


def _as_number(value: Any) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def table_warnings(table: List[Dict[str, Any]], duracion: int) -> List[str]:
    """Check the numeric rules the model is asked to follow."""
    warnings = []
    if len(table) != 3:
        warnings.append(f"expected 3 rows, got {len(table)}")

    minutes = [_as_number(row.get("tiempo_min")) for row in table]
    if None in minutes:
        warnings.append("non-numeric tiempo_min")
    elif sum(minutes) != duracion:
        warnings.append(f"tiempo_min adds up to {sum(minutes):g}, expected {duracion}")

    weights = [_as_number(row.get("ponderacion_sumativa")) for row in table]
    if None in weights:
        warnings.append("non-numeric ponderacion_sumativa")
    elif sum(weights) != 10:
        warnings.append(f"ponderacion_sumativa adds up to {sum(weights):g}, expected 10")

    return warnings
