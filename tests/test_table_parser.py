import json

import pytest

from app.services.prompt_builder import MOMENTOS
from app.services.table_parser import (
    FALLBACK_USED,
    JSON_RECOVERED,
    fallback_table,
    parse_table,
    table_warnings,
)
from conftest import valid_table


def test_valid_json_array_is_kept_unchanged():
    table = valid_table(50)
    outcome = parse_table(json.dumps(table, ensure_ascii=False), 50)

    assert outcome.table == table
    assert outcome.json_ok is True
    assert outcome.error_tipo is None


def test_code_fences_are_stripped():
    table = valid_table(50)
    raw = "```json\n" + json.dumps(table) + "\n```"
    outcome = parse_table(raw, 50)

    assert outcome.table == table
    assert outcome.json_ok is True


def test_array_wrapped_in_prose_is_recovered():
    table = valid_table(50)
    raw = "Claro, aquí tienes la planeación:\n" + json.dumps(table, indent=2) + "\nEspero que te sirva."
    outcome = parse_table(raw, 50)

    assert outcome.table == table
    assert outcome.json_ok is False
    assert outcome.error_tipo == JSON_RECOVERED


@pytest.mark.parametrize(
    "raw",
    [
        "Lo siento, no puedo ayudarte con eso.",
        "",
        "[]",
        '{"momento": "Desarrollo"}',
        "[1, 2, 3]",
        "Tabla: [ {momento: Desarrollo} ]",
    ],
)
def test_unusable_output_falls_back(raw):
    outcome = parse_table(raw, 50)

    assert outcome.table == fallback_table(50)
    assert outcome.json_ok is False
    assert outcome.error_tipo == FALLBACK_USED


def test_fallback_table_shape():
    table = fallback_table(50)

    assert [row["momento"] for row in table] == list(MOMENTOS)
    assert [row["tiempo_min"] for row in table] == [10, 30, 10]
    assert [row["ponderacion_sumativa"] for row in table] == [3, 5, 2]
    for row in table:
        assert row["actividades"]
        assert row["producto"]
        assert row["instrumento"]
        assert row["evaluacion_formativa"]


@pytest.mark.parametrize("duracion", [10, 15, 29, 30, 50, 120])
def test_fallback_minutes_always_add_up(duracion):
    minutes = [row["tiempo_min"] for row in fallback_table(duracion)]

    assert sum(minutes) == duracion
    assert all(m > 0 for m in minutes)
    if duracion >= 30:
        assert minutes == [10, duracion - 20, 10]


def test_table_warnings_accepts_consistent_table():
    assert table_warnings(valid_table(50), 50) == []
    assert table_warnings(fallback_table(45), 45) == []


def test_table_warnings_reports_broken_sums():
    table = valid_table(50)
    table[1]["tiempo_min"] = 40
    table[2]["ponderacion_sumativa"] = 5

    warnings = table_warnings(table, 50)

    assert any("tiempo_min adds up to 60" in w for w in warnings)
    assert any("ponderacion_sumativa adds up to 13" in w for w in warnings)


def test_table_warnings_reports_row_count_and_non_numeric():
    table = valid_table(50)[:2]
    table[0]["tiempo_min"] = "diez"

    warnings = table_warnings(table, 50)

    assert "expected 3 rows, got 2" in warnings
    assert "non-numeric tiempo_min" in warnings


def test_deeply_nested_output_falls_back():
    raw = "[" * 100_000 + "]" * 100_000
    outcome = parse_table(raw, 50)

    assert outcome.table == fallback_table(50)
    assert outcome.error_tipo == FALLBACK_USED
