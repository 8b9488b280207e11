"""Prompt construction for lesson-plan generation.

The prompt is a fixed template describing the three-moment JSON table,
plus a register block chosen from the educational level. Levels are free
text; the first rule whose pattern appears in the level (case-insensitive)
wins, so rule order matters.
"""

import re
from typing import List, NamedTuple, Optional

MOMENTOS = ("Conocimientos previos", "Desarrollo", "Cierre")

SYSTEM_PROMPT = (
    "Eres un diseñador instruccional experto en planeación didáctica. "
    "Respondes únicamente con JSON válido, sin texto adicional."
)


class LevelRule(NamedTuple):
    key: str
    pattern: str
    banner: str
    guidance: str


LEVEL_RULES: List[LevelRule] = [
    LevelRule(
        key="primaria",
        pattern=r"primaria",
        banner="NIVEL PRIMARIA: lenguaje sencillo, cercano y lúdico.",
        guidance=(
            "- Actividades cortas (de 5 a 15 minutos), concretas y con material manipulable.\n"
            "- Incluye juegos, canciones o dinámicas de movimiento.\n"
            "- Productos sencillos: dibujos, carteles, listas o maquetas."
        ),
    ),
    LevelRule(
        key="secundaria",
        pattern=r"secundaria",
        banner="NIVEL SECUNDARIA: trabajo colaborativo y análisis guiado.",
        guidance=(
            "- Privilegia equipos pequeños con roles definidos.\n"
            "- Incluye preguntas detonadoras que pidan comparar, clasificar y argumentar.\n"
            "- Productos como organizadores gráficos, reportes breves o exposiciones."
        ),
    ),
    LevelRule(
        key="media_superior",
        pattern=r"prepa|preparatoria|bachiller",
        banner="NIVEL MEDIO SUPERIOR: registro formal y pensamiento crítico.",
        guidance=(
            "- Plantea problemas abiertos y análisis de casos reales.\n"
            "- Pide fuentes, argumentación escrita y debate.\n"
            "- Productos como ensayos cortos, proyectos o resolución de problemas."
        ),
    ),
    LevelRule(
        key="superior",
        pattern=r"universidad|licenciatura|ingenier|posgrado",
        banner="NIVEL SUPERIOR: registro académico orientado a competencias.",
        guidance=(
            "- Vincula el tema con competencias profesionales y casos del campo laboral.\n"
            "- Incluye lectura de literatura especializada y aprendizaje basado en proyectos.\n"
            "- Productos como reportes técnicos, prototipos o estudios de caso."
        ),
    ),
]


def _match_rule(nivel: str) -> Optional[LevelRule]:
    for rule in LEVEL_RULES:
        if re.search(rule.pattern, nivel or "", re.IGNORECASE):
            return rule
    return None


def detect_level(nivel: str) -> str:
    """Return the key of the first level rule matching ``nivel``, or ``"general"``."""
    rule = _match_rule(nivel)
    return rule.key if rule else "general"


def _level_block(nivel: str) -> str:
    rule = _match_rule(nivel)
    if rule:
        return f"{rule.banner}\n{rule.guidance}"
    return (
        f"NIVEL {nivel}: adapta el lenguaje y la complejidad al nivel indicado.\n"
        f"- Considera las características de estudiantes de \"{nivel}\".\n"
        "- Combina trabajo individual y en equipo.\n"
        "- Productos acordes a la edad y al contexto del grupo."
    )


def build_prompt(
    materia: str,
    nivel: str,
    tema: str,
    duracion: int,
    subtema: Optional[str] = None,
    sesiones: Optional[int] = None,
) -> str:
    """Build the instruction sent to the model for one lesson plan."""
    tema_line = f"Tema: {tema}"
    if subtema:
        tema_line += f"\nSubtema: {subtema}"

    sesiones_line = ""
    if sesiones:
        sesiones_line = f"\nNúmero de sesiones: {sesiones} (la tabla describe una sesión de {duracion} minutos)"

    return f"""Genera la planeación didáctica de una clase.

Materia: {materia}
Nivel educativo: {nivel}
{tema_line}
Duración: {duracion} minutos{sesiones_line}

{_level_block(nivel)}

Devuelve SOLO un arreglo JSON (sin markdown ni explicaciones) con exactamente 3 objetos,
uno por momento didáctico, en este orden: "{MOMENTOS[0]}", "{MOMENTOS[1]}", "{MOMENTOS[2]}".

Cada objeto debe tener estos campos:
[
  {{
    "momento": "{MOMENTOS[0]}",
    "actividades": "Descripción de las actividades del docente y de los alumnos",
    "tiempo_min": 10,
    "producto": "Evidencia que entregan los alumnos",
    "instrumento": "Instrumento de evaluación (lista de cotejo, rúbrica, etc.)",
    "evaluacion_formativa": "Descriptor de lo que se observa para retroalimentar",
    "ponderacion_sumativa": 3
  }}
]

Reglas:
- La suma de "tiempo_min" de los 3 momentos debe ser exactamente {duracion}.
- "ponderacion_sumativa" es un entero y la suma de los 3 debe ser exactamente 10.
- Todo el contenido en español."""
