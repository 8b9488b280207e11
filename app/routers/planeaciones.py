from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, Response, status

from app.core.exceptions import InvalidRequest, NotFound
from app.core.logging import logger
from app.core.security import AuthenticatedUser, get_current_user
from app.schemas import (
    BatchResponse,
    BatchSummary,
    CreatedResponse,
    GenerateRequest,
    LessonPlanRow,
    PlanCreate,
    PlanUpdate,
)
from app.services.export import XLSX_MEDIA_TYPE, export_filename, render_plan_xlsx
from app.services.generation import GenerationPipeline
from app.services.store import PlanStore

router = APIRouter(prefix="/api/planeaciones", tags=["planeaciones"])


def get_store(request: Request, user: AuthenticatedUser = Depends(get_current_user)) -> PlanStore:
    return request.app.state.store_factory.for_user(user.id, user.token)


def get_pipeline(request: Request) -> GenerationPipeline:
    return request.app.state.pipeline


@router.post("", response_model=CreatedResponse, status_code=status.HTTP_201_CREATED)
def create_plan(body: PlanCreate, store: PlanStore = Depends(get_store)):
    """Save a lesson plan written by hand (no generation)"""
    row = store.create_plan(body.model_dump())
    logger.info(f"✅ Plan created: {row.get('id')}")
    return {"id": row["id"], "planeacion": row}


@router.get("", response_model=List[LessonPlanRow])
def list_plans(
    limit: Optional[int] = Query(default=None, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    store: PlanStore = Depends(get_store),
):
    """Caller's plans, newest first"""
    return store.list_plans(limit=limit, offset=offset)


@router.post("/generate", response_model=BatchResponse, status_code=status.HTTP_201_CREATED)
def generate_plans(
    body: GenerateRequest,
    store: PlanStore = Depends(get_store),
    pipeline: GenerationPipeline = Depends(get_pipeline),
):
    """Generate one plan per topic with the LLM, grouped under one batch id"""
    return pipeline.generate_batch(store, body)


@router.get("/batches", response_model=List[BatchSummary])
def list_batches(store: PlanStore = Depends(get_store)):
    return store.list_batches()


@router.get("/batch/{batch_id}", response_model=List[LessonPlanRow])
def get_batch(batch_id: str, store: PlanStore = Depends(get_store)):
    rows = store.list_batch(batch_id)
    if not rows:
        raise NotFound("Lote no encontrado")
    return rows


@router.get("/{plan_id}", response_model=LessonPlanRow)
def get_plan(plan_id: str, store: PlanStore = Depends(get_store)):
    return store.get_plan(plan_id)


@router.put("/{plan_id}", response_model=LessonPlanRow)
def update_plan(plan_id: str, body: PlanUpdate, store: PlanStore = Depends(get_store)):
    changes = body.changes()
    if not changes:
        raise InvalidRequest("No hay campos para actualizar")
    row = store.update_plan(plan_id, changes)
    logger.info(f"Plan updated: {plan_id} ({', '.join(changes)})")
    return row


@router.delete("/{plan_id}")
def delete_plan(plan_id: str, store: PlanStore = Depends(get_store)):
    store.delete_plan(plan_id)
    logger.info(f"Plan deleted: {plan_id}")
    return {"message": "Planeación eliminada"}


@router.get("/{plan_id}/export/excel")
def export_plan_excel(plan_id: str, store: PlanStore = Depends(get_store)):
    plan = store.get_plan(plan_id)
    content = render_plan_xlsx(plan)
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{export_filename(plan)}"'},
    )
