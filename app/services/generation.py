"""Lesson-plan generation: prompt -> model -> table -> persisted row.

Topics of one submission are processed in order, one model call, one
insert and one telemetry insert each. A model or database failure aborts
the request; rows stored for earlier topics stay. Telemetry failures are
logged and never reach the caller.
"""

import uuid
from typing import Any, Dict

from app.core.config import Settings
from app.core.logging import logger
from app.schemas import BatchResponse, GenerateRequest, IaMetricsRow, LessonPlanRequest
from app.services.llm_service import LLMService
from app.services.prompt_builder import SYSTEM_PROMPT, build_prompt
from app.services.store import PlanStore
from app.services.table_parser import FALLBACK_USED, parse_table, table_warnings


class GenerationPipeline:

    def __init__(self, llm: LLMService, settings: Settings):
        self.llm = llm
        self.settings = settings

    def generate_batch(self, store: PlanStore, request: GenerateRequest) -> BatchResponse:
        batch_id = str(uuid.uuid4())
        plans = request.plan_requests()
        logger.info(
            f"Generating batch {batch_id}: {len(plans)} topic(s), {request.materia}, nivel={request.nivel}"
        )

        created = [self.generate_one(store, plan, batch_id) for plan in plans]

        logger.info(f"✅ Batch {batch_id} generated with {len(created)} plan(s)")
        return BatchResponse(batch_id=batch_id, total=len(created), planeaciones=created)

    def generate_one(self, store: PlanStore, plan: LessonPlanRequest, batch_id: str) -> Dict[str, Any]:
        prompt = build_prompt(
            materia=plan.materia,
            nivel=plan.nivel,
            tema=plan.tema,
            duracion=plan.duracion,
            subtema=plan.subtema,
            sesiones=plan.sesiones,
        )

        result = self.llm.complete(SYSTEM_PROMPT, prompt)
        outcome = parse_table(result.text, plan.duracion)

        if outcome.error_tipo != FALLBACK_USED:
            warnings = table_warnings(outcome.table, plan.duracion)
            if warnings:
                logger.warning(f"Model table for '{plan.tema}' breaks numeric rules: {'; '.join(warnings)}")

        row = store.create_plan({
            "batch_id": batch_id,
            "materia": plan.materia,
            "nivel": plan.nivel,
            "unidad": plan.unidad,
            "tema": plan.tema,
            "subtema": plan.subtema,
            "duracion": plan.duracion,
            "sesiones": plan.sesiones,
            "tabla_ia": outcome.table,
        })

        metrics = IaMetricsRow(
            nivel=plan.nivel,
            materia=plan.materia,
            prompt_version=self.settings.prompt_version,
            prompt_tokens=result.prompt_tokens,
            completion_tokens=result.completion_tokens,
            total_tokens=result.total_tokens,
            json_ok=outcome.json_ok,
            error_tipo=outcome.error_tipo,
        )
        self._record_metrics(store, metrics)

        return row

    def _record_metrics(self, store: PlanStore, metrics: IaMetricsRow) -> None:
        try:
            store.record_metrics(metrics.model_dump())
        except Exception as e:
            logger.warning(f"Could not record IA metrics (ignored): {e}")
