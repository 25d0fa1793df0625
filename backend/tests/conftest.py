"""Shared fixtures: an in-memory stand-in for the Supabase HTTP API."""

import json
from decimal import Decimal
from itertools import count

import httpx
import pytest
import pytest_asyncio

from portfolio_dashboard.models.user import AuthUser
from portfolio_dashboard.services.supabase import SupabaseClient

USER_ID = "0b7c6a1e-0000-4000-8000-000000000001"
OTHER_USER_ID = "0b7c6a1e-0000-4000-8000-000000000002"
TOKEN = "token-user-1"
OTHER_TOKEN = "token-user-2"

_row_ids = count(1)


def make_row(**overrides) -> dict:
    n = next(_row_ids)
    row = {
        "id": f"row-{n}",
        "user_id": USER_ID,
        "stock_symbol": "TCS",
        "company_name": "Tata Consultancy Services Ltd.",
        "shares": 10,
        "purchase_price": 90.0,
        "current_price": 100.0,
        "quarter": "Q1",
        "year": 2024,
        "created_at": f"2024-01-01T00:00:{n % 60:02d}+00:00",
        "updated_at": f"2024-01-01T00:00:{n % 60:02d}+00:00",
    }
    row.update(overrides)
    return row


class FakeSupabase:
    """Handles PostgREST and GoTrue requests against in-memory rows.

    Row-level security is emulated: data requests only see rows owned by
    the user the bearer token belongs to. An unknown token is refused with 401
    the way PostgREST refuses an expired JWT.
    """

    def __init__(self):
        self.rows: list[dict] = []
        self.profiles: list[dict] = []
        self.tokens = {
            TOKEN: {"id": USER_ID, "email": "investor@example.com"},
            OTHER_TOKEN: {"id": OTHER_USER_ID, "email": "other@example.com"},
        }
        self.passwords = {"investor@example.com": "s3cret"}
        self.confirm_signups = False
        self.fail = None  # predicate(request) -> bool
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail is not None and self.fail(request):
            return httpx.Response(
                500, json={"message": "upstream exploded", "code": "XX000"}
            )

        path = request.url.path
        if request.headers.get("apikey") != "anon-key":
            return httpx.Response(401, json={"message": "Invalid API key"})

        if path.startswith("/auth/v1/"):
            return self._auth(request, path.removeprefix("/auth/v1/"))

        caller = self._caller(request)
        bearer = request.headers.get("authorization", "").removeprefix("Bearer ")
        if caller is None and bearer not in ("", "anon-key"):
            return httpx.Response(401, json={"message": "JWT expired", "code": "PGRST301"})
        if path == "/rest/v1/portfolio_holdings":
            return self._select(request, self.rows, caller, owner="user_id")
        if path == "/rest/v1/users":
            return self._select(request, self.profiles, caller, owner="id")
        if path == "/rest/v1/rpc/get_portfolio_summary":
            return self._summary(request, caller)
        return httpx.Response(404, json={"message": f"No route {path}"})

    def _caller(self, request: httpx.Request) -> str | None:
        token = request.headers.get("authorization", "").removeprefix("Bearer ")
        user = self.tokens.get(token)
        return user["id"] if user else None

    def _select(self, request, rows, caller, owner) -> httpx.Response:
        params = request.url.params
        visible = [r for r in rows if r[owner] == caller]
        for column, value in params.multi_items():
            if column in ("select", "order"):
                continue
            assert value.startswith("eq."), value
            visible = [r for r in visible if str(r[column]) == value[3:]]
        order = params.get("order")
        if order:
            column, _, direction = order.partition(".")
            visible.sort(key=lambda r: r[column], reverse=direction == "desc")
        columns = params.get("select", "*")
        if columns != "*":
            wanted = columns.split(",")
            visible = [{c: r[c] for c in wanted} for r in visible]
        return httpx.Response(200, json=visible)

    def _summary(self, request, caller) -> httpx.Response:
        target = json.loads(request.content)["target_user_id"]
        if target != caller:
            return httpx.Response(
                403, json={"message": f"permission denied for user {target}", "code": "42501"}
            )
        mine = [r for r in self.rows if r["user_id"] == target]
        value = sum(Decimal(str(r["current_price"])) * r["shares"] for r in mine)
        cost = sum(Decimal(str(r["purchase_price"])) * r["shares"] for r in mine)
        pct = (value - cost) / cost * 100 if cost > 0 else Decimal(0)
        return httpx.Response(
            200,
            json=[
                {
                    "total_value": float(value) if mine else None,
                    "total_cost": float(cost) if mine else None,
                    "total_gain_loss": float(value - cost) if mine else None,
                    "total_gain_loss_percent": float(pct),
                    "total_shares": sum(r["shares"] for r in mine) if mine else None,
                }
            ],
        )

    def _session(self, email: str) -> dict:
        token = next(t for t, u in self.tokens.items() if u["email"] == email)
        return {
            "access_token": token,
            "refresh_token": f"refresh-{token}",
            "expires_in": 3600,
            "token_type": "bearer",
            "user": {**self.tokens[token], "aud": "authenticated", "role": "authenticated"},
        }

    def _auth(self, request: httpx.Request, route: str) -> httpx.Response:
        body = json.loads(request.content) if request.content else {}
        grant = request.url.params.get("grant_type")
        if route == "token" and grant == "password":
            if self.passwords.get(body.get("email")) != body.get("password"):
                return httpx.Response(
                    400,
                    json={"error": "invalid_grant", "error_description": "Invalid login credentials"},
                )
            return httpx.Response(200, json=self._session(body["email"]))
        if route == "token" and grant == "refresh_token":
            token = body.get("refresh_token", "").removeprefix("refresh-")
            if token not in self.tokens:
                return httpx.Response(
                    400, json={"error": "invalid_grant", "error_description": "Invalid Refresh Token"}
                )
            return httpx.Response(200, json=self._session(self.tokens[token]["email"]))
        if route == "signup":
            if body["email"] in self.passwords:
                return httpx.Response(422, json={"msg": "User already registered", "code": 422})
            self.passwords[body["email"]] = body["password"]
            new_token = f"token-{len(self.tokens) + 1}"
            self.tokens[new_token] = {"id": f"new-{len(self.tokens) + 1}", "email": body["email"]}
            if self.confirm_signups:
                return httpx.Response(200, json={**self.tokens[new_token], "confirmation_sent_at": "now"})
            return httpx.Response(200, json=self._session(body["email"]))
        if route == "user":
            caller = self._caller(request)
            if caller is None:
                return httpx.Response(401, json={"msg": "invalid JWT", "code": 401})
            user = next(u for u in self.tokens.values() if u["id"] == caller)
            return httpx.Response(200, json=user)
        if route == "logout":
            return httpx.Response(204)
        return httpx.Response(404, json={"msg": "not found"})


@pytest.fixture
def fake_supabase():
    return FakeSupabase()


@pytest_asyncio.fixture
async def supabase_client(fake_supabase):
    client = SupabaseClient(
        "https://project.supabase.co/",
        "anon-key",
        transport=httpx.MockTransport(fake_supabase.handler),
    )
    yield client
    await client.aclose()


@pytest.fixture
def user():
    return AuthUser(id=USER_ID, email="investor@example.com", access_token=TOKEN)
