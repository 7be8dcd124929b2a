# tianguistore/client/session.py

"""
Client-side session: the token and user profile the storefront keeps between
visits, saved as a small JSON file.
"""

import json
import os
import time
from typing import Optional

import aiofiles
import httpx
import jwt


class SessionStore:
    def __init__(self, path: str):
        self.path = path
        self.token: Optional[str] = None
        self.usuario: Optional[dict] = None

    # ────────────── Storage ──────────────
    async def load(self) -> "SessionStore":
        if not os.path.exists(self.path):
            return self
        async with aiofiles.open(self.path, "r", encoding="utf-8") as f:
            raw = await f.read()
        try:
            data = json.loads(raw) if raw.strip() else {}
        except json.JSONDecodeError:
            data = {}
        self.token = data.get("token")
        self.usuario = data.get("usuario")
        return self

    async def save(self, token: str, usuario: dict) -> None:
        self.token, self.usuario = token, usuario
        os.makedirs(os.path.dirname(os.path.abspath(self.path)), exist_ok=True)
        async with aiofiles.open(self.path, "w", encoding="utf-8") as f:
            await f.write(json.dumps({"token": token, "usuario": usuario}, ensure_ascii=False))

    async def clear(self) -> None:
        self.token, self.usuario = None, None
        if os.path.exists(self.path):
            os.remove(self.path)

    # ────────────── Token checks ──────────────
    @staticmethod
    def seconds_left(token: Optional[str], now: Optional[float] = None) -> Optional[float]:
        """Seconds until `exp`, or None when the token is missing or unreadable."""
        if not token:
            return None
        try:
            payload = jwt.decode(token, options={"verify_signature": False})
        except jwt.DecodeError:
            return None
        exp = payload.get("exp")
        if not exp:
            return None
        return exp - (now if now is not None else time.time())

    @classmethod
    def token_expired(cls, token: Optional[str], now: Optional[float] = None) -> bool:
        left = cls.seconds_left(token, now)
        return left is None or left < 0

    def is_valid(self) -> bool:
        """
        Token present and not expired, a profile with id, role and permissions,
        and at least read access to products or users.
        """
        usuario = self.usuario or {}
        permisos = usuario.get("permisos")
        well_formed = (
            bool(usuario.get("usuario_id"))
            and isinstance(usuario.get("rol"), str)
            and isinstance(permisos, dict)
        )
        if not (bool(self.token) and not self.token_expired(self.token) and well_formed):
            return False
        return any(
            isinstance(permisos.get(resource), dict) and bool(permisos[resource].get("leer"))
            for resource in ("productos", "usuarios")
        )

    def needs_renewal(self, margin: int = 60) -> bool:
        left = self.seconds_left(self.token)
        return left is not None and left <= margin

    def headers(self) -> dict:
        return {"Authorization": f"Bearer {self.token}"} if self.token else {}

    # ────────────── Server calls ──────────────
    async def login(self, client: httpx.AsyncClient, email: str, password: str) -> bool:
        response = await client.post("/auth/token", data={"username": email, "password": password})
        if response.status_code != 200:
            return False
        data = response.json()
        await self.save(data["access_token"], data["usuario"])
        return True

    async def renew(self, client: httpx.AsyncClient) -> bool:
        """Swaps the token for a fresh one; a refused renewal ends the session."""
        if not self.token:
            return False
        try:
            response = await client.post("/auth/renovar", headers=self.headers())
        except httpx.HTTPError:
            await self.clear()
            return False
        if response.status_code != 200:
            await self.clear()
            return False
        data = response.json()
        await self.save(data["token"], data["usuario"])
        return True
