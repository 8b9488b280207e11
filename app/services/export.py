import io
import json
from typing import Any, Dict, List

import pandas as pd

SHEET_NAME = "Planeación"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

TABLE_COLUMNS = [
    "Momento",
    "Actividades",
    "Tiempo (min)",
    "Producto",
    "Instrumento",
    "Evaluación formativa",
    "Ponderación sumativa",
]

# stored table keys, in TABLE_COLUMNS order
TABLE_FIELDS = [
    "momento",
    "actividades",
    "tiempo_min",
    "producto",
    "instrumento",
    "evaluacion_formativa",
    "ponderacion_sumativa",
]

COLUMN_WIDTHS = [24, 60, 12, 28, 24, 40, 14]


def _text(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, list):
        return "\n".join(str(item) for item in value)
    if isinstance(value, dict):
        return json.dumps(value, ensure_ascii=False)
    return value


def _title_block(plan: Dict[str, Any]) -> List[tuple]:
    return [
        ("Materia", plan.get("materia")),
        ("Nivel", plan.get("nivel")),
        ("Unidad", plan.get("unidad")),
        ("Tema", plan.get("tema")),
        ("Subtema", plan.get("subtema")),
        ("Duración (min)", plan.get("duracion")),
        ("Sesiones", plan.get("sesiones")),
    ]


def _table_frame(plan: Dict[str, Any]) -> pd.DataFrame:
    rows = []
    for entry in plan.get("tabla_ia") or []:
        if not isinstance(entry, dict):
            continue
        rows.append([_text(entry.get(field)) for field in TABLE_FIELDS])
    return pd.DataFrame(rows, columns=TABLE_COLUMNS)


def render_plan_xlsx(plan: Dict[str, Any]) -> bytes:
    """Render a stored lesson plan as an .xlsx workbook."""
    title = _title_block(plan)
    table_start = len(title) + 2  # title line + fields + blank row
    df = _table_frame(plan)

    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="xlsxwriter") as writer:
        df.to_excel(writer, index=False, sheet_name=SHEET_NAME, startrow=table_start)
        ws = writer.sheets[SHEET_NAME]
        book = writer.book

        bold = book.add_format({"bold": True})
        heading = book.add_format({"bold": True, "font_size": 14})
        wrap = book.add_format({"text_wrap": True, "valign": "top"})

        ws.write(0, 0, "Planeación didáctica", heading)
        for offset, (label, value) in enumerate(title, start=1):
            ws.write(offset, 0, label, bold)
            ws.write(offset, 1, _text(value))

        for col, width in enumerate(COLUMN_WIDTHS):
            ws.set_column(col, col, width, wrap)
        ws.freeze_panes(table_start + 1, 0)

    return buffer.getvalue()


def export_filename(plan: Dict[str, Any]) -> str:
    return f"planeacion_{plan.get('id')}.xlsx"
