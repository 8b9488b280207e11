"""Shared fixtures: an in-memory stand-in for the Supabase client and a scripted LLM."""

import json
from datetime import datetime, timedelta
from types import SimpleNamespace

import httpx
import pytest
from fastapi.testclient import TestClient
from postgrest.exceptions import APIError
from supabase_auth.errors import AuthApiError

from app.core.config import Settings
from app.core.security import IdentityProvider
from app.main import create_app
from app.services.llm_service import LLMResult
from app.services.store import PlanStore, StoreFactory

TOKENS = {
    "token-ana": "user-ana",
    "token-beto": "user-beto",
}

AUTH_ANA = {"Authorization": "Bearer token-ana"}
AUTH_BETO = {"Authorization": "Bearer token-beto"}


def valid_table(duracion=50):
    return [
        {"momento": "Conocimientos previos", "actividades": "Preguntas detonadoras",
         "tiempo_min": 10, "producto": "Lluvia de ideas", "instrumento": "Lista de cotejo",
         "evaluacion_formativa": "Recupera saberes", "ponderacion_sumativa": 2},
        {"momento": "Desarrollo", "actividades": "Resolución de problemas en equipo",
         "tiempo_min": duracion - 20, "producto": "Ejercicios", "instrumento": "Rúbrica",
         "evaluacion_formativa": "Aplica el procedimiento", "ponderacion_sumativa": 6},
        {"momento": "Cierre", "actividades": "Conclusiones grupales",
         "tiempo_min": 10, "producto": "Conclusión escrita", "instrumento": "Lista de cotejo",
         "evaluacion_formativa": "Explica lo aprendido", "ponderacion_sumativa": 2},
    ]


# ============================================
# FAKE SUPABASE
# ============================================

class FakeDatabase:
    def __init__(self):
        self.tables = {}
        self.failing_tables = set()
        self.next_id = 1
        self.clock = datetime(2025, 8, 1, 8, 0, 0)
        self.auth_tokens = []
        self.auth_down = False

    def rows(self, table):
        return self.tables.setdefault(table, [])

    def stamp(self):
        self.clock += timedelta(seconds=1)
        return self.clock.isoformat()


class FakeQuery:
    def __init__(self, db, table):
        self.db = db
        self.table = table
        self.op = "select"
        self.payload = None
        self.filters = []
        self.order_by = None
        self.descending = False
        self.bounds = None
        self.max_rows = None

    def select(self, columns="*"):
        self.op = "select"
        return self

    def insert(self, payload):
        self.op, self.payload = "insert", payload
        return self

    def update(self, payload):
        self.op, self.payload = "update", payload
        return self

    def delete(self):
        self.op = "delete"
        return self

    def eq(self, column, value):
        self.filters.append((column, value))
        return self

    def order(self, column, desc=False):
        self.order_by, self.descending = column, desc
        return self

    def range(self, start, end):
        self.bounds = (start, end)
        return self

    def limit(self, size):
        self.max_rows = size
        return self

    def _matches(self, row):
        return all(str(row.get(column)) == str(value) for column, value in self.filters)

    def execute(self):
        if self.table in self.db.failing_tables:
            raise APIError({"message": f"{self.table} unavailable", "code": "500"})
        for column, value in self.filters:
            # ids are bigint, PostgREST rejects anything else
            if column == "id" and not str(value).isdigit():
                raise APIError({"message": f'invalid input syntax for type bigint: "{value}"', "code": "22P02"})

        rows = self.db.rows(self.table)

        if self.op == "insert":
            items = self.payload if isinstance(self.payload, list) else [self.payload]
            created = []
            for item in items:
                row = json.loads(json.dumps(item))
                row.setdefault("id", self.db.next_id)
                row.setdefault("fecha_creacion", self.db.stamp())
                self.db.next_id += 1
                rows.append(row)
                created.append(dict(row))
            return SimpleNamespace(data=created)

        matched = [row for row in rows if self._matches(row)]

        if self.op == "update":
            for row in matched:
                row.update(self.payload)
            return SimpleNamespace(data=[dict(row) for row in matched])

        if self.op == "delete":
            self.db.tables[self.table] = [row for row in rows if row not in matched]
            return SimpleNamespace(data=[dict(row) for row in matched])

        if self.order_by:
            matched.sort(key=lambda row: row.get(self.order_by) or "", reverse=self.descending)
        if self.bounds:
            matched = matched[self.bounds[0]:self.bounds[1] + 1]
        if self.max_rows is not None:
            matched = matched[:self.max_rows]
        return SimpleNamespace(data=[dict(row) for row in matched])


class FakeAuth:
    def __init__(self, db):
        self.db = db

    def get_user(self, token):
        if self.db.auth_down:
            raise httpx.ConnectError("connection refused")
        if token not in TOKENS:
            raise AuthApiError("invalid JWT", 401, "bad_jwt")
        return SimpleNamespace(user=SimpleNamespace(id=TOKENS[token]))


class FakePostgrest:
    def __init__(self, db):
        self.db = db

    def auth(self, token):
        self.db.auth_tokens.append(token)


class FakeSupabaseClient:
    def __init__(self, db):
        self.db = db
        self.auth = FakeAuth(db)
        self.postgrest = FakePostgrest(db)

    def table(self, name):
        return FakeQuery(self.db, name)


# ============================================
# FAKE LLM
# ============================================

class FakeLLM:
    """Returns queued replies in order; the last one repeats."""

    def __init__(self, *replies):
        self.replies = list(replies) or [json.dumps(valid_table())]
        self.prompts = []

    def complete(self, system, prompt):
        self.prompts.append(prompt)
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        return LLMResult(text=reply, prompt_tokens=120, completion_tokens=340, total_tokens=460)


# ============================================
# FIXTURES
# ============================================

@pytest.fixture
def settings(tmp_path):
    return Settings(
        environment="development",
        supabase_url="https://example.supabase.co",
        supabase_key="anon-key",
        openai_api_key="sk-test",
        prompt_version="test",
        log_file=str(tmp_path / "planeaciones.log"),
    )


@pytest.fixture
def db():
    return FakeDatabase()


@pytest.fixture
def client_factory(db):
    return lambda url, key: FakeSupabaseClient(db)


@pytest.fixture
def fake_llm():
    return FakeLLM()


@pytest.fixture
def store(db, settings):
    return PlanStore(FakeSupabaseClient(db), settings, "user-ana")


@pytest.fixture
def make_client(settings, client_factory, fake_llm):
    def _make(app_settings=None, llm=None):
        app_settings = app_settings or settings
        app = create_app(
            app_settings,
            identity=IdentityProvider(app_settings, client_factory=client_factory),
            store_factory=StoreFactory(app_settings, client_factory=client_factory),
            llm=llm or fake_llm,
        )
        return TestClient(app)
    return _make


@pytest.fixture
def client(make_client):
    return make_client()
