"""Test helpers: signing keys, tokens, a small catalog, an in-memory Redis, a fake code runner."""

from __future__ import annotations

import json
import os
import tempfile
from datetime import datetime, timedelta, timezone
from typing import Any

import httpx
import jwt
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from learnstack.assessments.code_runner import CodeRunner
from learnstack.auth.jwt import reset_keys
from learnstack.catalog.snapshot import Catalog, CatalogAlgorithm, CatalogTopic
from learnstack.config import get_settings

JWT_ISSUER = "learnstack"


def _generate_test_keys() -> tuple[bytes, str]:
    """Generate an RSA key pair; the public half goes to a temp file for the app."""
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    public_pem = key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    tmpdir = tempfile.mkdtemp(prefix="learnstack_test_keys_")
    public_path = os.path.join(tmpdir, "jwt_public.pem")
    with open(public_path, "wb") as f:
        f.write(public_pem)
    return private_pem, public_path


_PRIVATE_KEY, _PUBLIC_KEY_PATH = _generate_test_keys()
os.environ["LS_JWT_PUBLIC_KEY_PATH"] = _PUBLIC_KEY_PATH
os.environ["LS_JWT_ISSUER"] = JWT_ISSUER
os.environ["LS_LOG_FORMAT"] = "console"
os.environ["LS_SEED_ON_STARTUP"] = "false"
get_settings.cache_clear()
reset_keys()


def make_token(user_id: int, role: str = "user", **overrides: Any) -> str:
    """Sign an access token the way the auth service does."""
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "sub": str(user_id),
        "role": role,
        "type": "access",
        "iss": JWT_ISSUER,
        "iat": now,
        "exp": now + timedelta(hours=1),
        **overrides,
    }
    return jwt.encode(payload, _PRIVATE_KEY, algorithm="RS256")


def auth_headers(user_id: int, role: str = "user") -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(user_id, role)}"}


def build_catalog() -> Catalog:
    """Small in-memory catalog: two chained DSA topics and one C topic."""
    return Catalog(
        topics=[
            CatalogTopic(
                id="searching",
                name="Searching",
                subject="DSA Visualizer",
                order=1,
                algorithms=[
                    CatalogAlgorithm(id="linearSearch", name="Linear Search", points=50),
                    CatalogAlgorithm(
                        id="binarySearch", name="Binary Search", points=75, prerequisites=["linearSearch"]
                    ),
                ],
            ),
            CatalogTopic(
                id="sorting",
                name="Sorting",
                subject="DSA Visualizer",
                order=2,
                prerequisites=["searching"],
                algorithms=[
                    CatalogAlgorithm(id="bubbleSort", name="Bubble Sort", points=50),
                    CatalogAlgorithm(id="selectionSort", name="Selection Sort", points=50),
                ],
            ),
            CatalogTopic(
                id="cBasics",
                name="C Basics",
                subject="C Programming",
                order=4,
                algorithms=[CatalogAlgorithm(id="cIntro", name="Introduction to C", points=10)],
            ),
        ]
    )


class FakeRedis:
    """In-memory stand-in for the few Redis commands the services use."""

    def __init__(self) -> None:
        self.store: dict[str, str] = {}

    async def get(self, key: str) -> str | None:
        return self.store.get(key)

    async def set(self, key: str, value: str, ex: int | None = None, nx: bool = False) -> bool | None:
        if nx and key in self.store:
            return None
        self.store[key] = value
        return True

    async def delete(self, *keys: str) -> int:
        return sum(1 for k in keys if self.store.pop(k, None) is not None)

    async def setex(self, key: str, seconds: int, value: str) -> bool:
        return await self.set(key, value, ex=seconds)


def adding_machine(request: httpx.Request) -> httpx.Response:
    """Fake execution API: "good" programs add their two stdin numbers."""
    body = json.loads(request.content)
    code = body["files"][0]["content"]
    if code == "crash":
        return httpx.Response(200, json={"stdout": "", "stderr": "Segmentation fault"})
    a, b = (int(x) for x in body["stdin"].split())
    total = a + b if code == "good" else a - b
    return httpx.Response(200, json={"stdout": f"{total}\n", "stderr": None, "exception": None})


def make_runner(handler=adding_machine) -> CodeRunner:
    return CodeRunner(url="https://runner.test/run", max_retries=0, transport=httpx.MockTransport(handler))
