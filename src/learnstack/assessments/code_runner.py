"""Client for the external code-execution API.

Requests are bounded by a timeout and retried with backoff on timeouts,
transport errors and 5xx responses. 4xx responses are not retried.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

import httpx

from learnstack.config import get_settings
from learnstack.errors import CollaboratorError

logger = logging.getLogger(__name__)

RETRY_BACKOFF = (0.5, 1.0, 2.0)  # seconds

FILE_NAMES: dict[str, str] = {
    "c": "main.c",
    "cpp": "main.cpp",
    "python": "main.py",
    "java": "Main.java",
    "javascript": "index.js",
}


@dataclass(frozen=True)
class ExecutionResult:
    stdout: str
    error: str | None = None


class CodeRunner:
    """Runs one program against one stdin through the execution API."""

    def __init__(
        self,
        url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        self.url = url or settings.code_runner_url
        self.api_key = settings.code_runner_api_key if api_key is None else api_key
        self.timeout = timeout or settings.code_runner_timeout_seconds
        self.max_retries = settings.code_runner_max_retries if max_retries is None else max_retries
        self.transport = transport

    async def run(self, language: str, code: str, stdin: str = "") -> ExecutionResult:
        payload = {
            "language": language,
            "stdin": stdin,
            "files": [{"name": FILE_NAMES.get(language.lower(), "index.js"), "content": code}],
        }
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["X-RapidAPI-Key"] = self.api_key

        last_error: Exception | None = None
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            for attempt in range(self.max_retries + 1):
                try:
                    response = await client.post(self.url, json=payload, headers=headers)
                    if response.status_code >= 500:
                        raise httpx.HTTPStatusError(
                            f"Execution service returned {response.status_code}",
                            request=response.request,
                            response=response,
                        )
                    response.raise_for_status()
                    data = response.json()
                    return ExecutionResult(
                        stdout=data.get("stdout") or "",
                        error=data.get("exception") or data.get("stderr") or None,
                    )
                except httpx.HTTPStatusError as e:
                    if e.response.status_code < 500:
                        raise CollaboratorError(
                            "Execution service rejected the request",
                            status_code=e.response.status_code,
                        ) from e
                    last_error = e
                except (httpx.TimeoutException, httpx.TransportError) as e:
                    last_error = e
                except ValueError as e:
                    raise CollaboratorError("Execution service returned malformed JSON") from e

                if attempt < self.max_retries:
                    delay = RETRY_BACKOFF[min(attempt, len(RETRY_BACKOFF) - 1)]
                    logger.info("Execution service attempt %d failed, retrying in %.1fs", attempt + 1, delay)
                    await asyncio.sleep(delay)

        logger.warning("Execution service unavailable after %d attempts", self.max_retries + 1)
        raise CollaboratorError("Execution service unavailable", reason=str(last_error))
