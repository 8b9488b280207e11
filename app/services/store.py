from typing import Any, Callable, Dict, List, Optional, Union

import httpx
from postgrest.exceptions import APIError
from supabase import Client, create_client

from app.core.config import Settings
from app.core.exceptions import NotFound, UpstreamError
from app.core.logging import logger

PlanId = Union[int, str]

# Postgres "invalid_text_representation", e.g. id=eq.abc on a bigint column
INVALID_TEXT_REPRESENTATION = "22P02"


class PlanStore:
    """Lesson-plan rows of one user in the managed database.

    Every query is filtered on ``user_id``; a row owned by somebody else
    behaves exactly like a missing row.
    """

    def __init__(self, client: Client, settings: Settings, user_id: str):
        self.client = client
        self.user_id = user_id
        self.plans_table = settings.plans_table
        self.metrics_table = settings.metrics_table

    def _plans(self):
        return self.client.table(self.plans_table)

    def _execute(self, query, action: str, lookup: bool = False) -> List[Dict[str, Any]]:
        try:
            response = query.execute()
        except APIError as e:
            if lookup and e.code == INVALID_TEXT_REPRESENTATION:
                logger.info(f"Malformed id while trying to {action}: {e.message}")
                raise NotFound() from e
            logger.error(f"Supabase error while trying to {action}: {e}")
            raise UpstreamError(f"Error al {action}", cause=e) from e
        except httpx.HTTPError as e:
            logger.error(f"Supabase error while trying to {action}: {e}")
            raise UpstreamError(f"Error al {action}", cause=e) from e
        return response.data or []

    # ---------------------
    # CRUD
    # ---------------------
    def create_plan(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        row = {**fields, "user_id": self.user_id}
        data = self._execute(self._plans().insert(row), "guardar la planeación")
        if not data:
            raise UpstreamError("Error al guardar la planeación")
        return data[0]

    def list_plans(self, limit: Optional[int] = None, offset: int = 0) -> List[Dict[str, Any]]:
        query = (
            self._plans()
            .select("*")
            .eq("user_id", self.user_id)
            .order("fecha_creacion", desc=True)
        )
        if limit is not None:
            query = query.range(offset, offset + limit - 1)
        return self._execute(query, "obtener planeaciones")

    def get_plan(self, plan_id: PlanId) -> Dict[str, Any]:
        query = (
            self._plans()
            .select("*")
            .eq("id", plan_id)
            .eq("user_id", self.user_id)
            .limit(1)
        )
        data = self._execute(query, "obtener la planeación", lookup=True)
        if not data:
            raise NotFound()
        return data[0]

    def update_plan(self, plan_id: PlanId, fields: Dict[str, Any]) -> Dict[str, Any]:
        query = self._plans().update(fields).eq("id", plan_id).eq("user_id", self.user_id)
        data = self._execute(query, "actualizar la planeación", lookup=True)
        if not data:
            raise NotFound()
        return data[0]

    def delete_plan(self, plan_id: PlanId) -> None:
        query = self._plans().delete().eq("id", plan_id).eq("user_id", self.user_id)
        if not self._execute(query, "eliminar la planeación", lookup=True):
            raise NotFound()

    # ---------------------
    # Batches
    # ---------------------
    def list_batch(self, batch_id: str) -> List[Dict[str, Any]]:
        query = (
            self._plans()
            .select("*")
            .eq("user_id", self.user_id)
            .eq("batch_id", batch_id)
            .order("fecha_creacion")
        )
        return self._execute(query, "obtener el lote")

    def list_batches(self) -> List[Dict[str, Any]]:
        """Summaries of the user's batches, newest first."""
        query = (
            self._plans()
            .select("batch_id, materia, nivel, unidad, fecha_creacion")
            .eq("user_id", self.user_id)
            .order("fecha_creacion", desc=True)
        )
        batches: Dict[str, Dict[str, Any]] = {}
        for row in self._execute(query, "obtener los lotes"):
            batch_id = row.get("batch_id")
            if not batch_id:
                continue
            if batch_id not in batches:
                batches[batch_id] = {
                    "batch_id": batch_id,
                    "materia": row.get("materia"),
                    "nivel": row.get("nivel"),
                    "unidad": row.get("unidad"),
                    "total": 0,
                    "fecha_creacion": row.get("fecha_creacion"),
                }
            batches[batch_id]["total"] += 1
        return list(batches.values())

    # ---------------------
    # Telemetry
    # ---------------------
    def record_metrics(self, row: Dict[str, Any]) -> None:
        self._execute(self.client.table(self.metrics_table).insert(row), "registrar métricas")


class StoreFactory:
    """Builds a PlanStore whose client carries the caller's access token."""

    def __init__(self, settings: Settings, client_factory: Callable[[str, str], Client] = create_client):
        self.settings = settings
        self.client_factory = client_factory

    def for_user(self, user_id: str, token: str) -> PlanStore:
        if not self.settings.supabase_url or not self.settings.supabase_key:
            logger.error("SUPABASE_URL or SUPABASE_KEY missing")
            raise UpstreamError("Base de datos no configurada")
        client = self.client_factory(self.settings.supabase_url, self.settings.supabase_key)
        # Row-level security is evaluated against this token
        client.postgrest.auth(token)
        return PlanStore(client, self.settings, user_id)
