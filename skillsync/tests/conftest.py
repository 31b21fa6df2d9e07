import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import httpx
import pytest

from skillsync.config import SkillSyncConfig
from skillsync.crypto.kdf import KdfParams
from skillsync.models.skill import Skill, SkillFile, SkillType
from skillsync.skills.frontmatter import parse_frontmatter

# Argon2id at the smallest cost it accepts; the production cost takes seconds.
FAST_KDF_PARAMS = KdfParams(memory_cost=64, time_cost=1, parallelism=1)


class MockTransport(httpx.AsyncBaseTransport):
    """
    Mock transport for testing.

    Responses are matched in order of registration: routed responses first
    (by method and path), then the queue.
    """

    def __init__(self) -> None:
        self._queue: list[dict[str, Any]] = []
        self._routes: dict[tuple[str, str], list[dict[str, Any]]] = {}
        self.requests: list[httpx.Request] = []

    def add_response(
        self,
        status_code: int = httpx.codes.OK,
        json_data: dict[str, Any] | None = None,
        content: bytes | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        """Add a response to the queue."""
        self._queue.append(
            {"status_code": status_code, "json_data": json_data, "content": content, "headers": headers}
        )

    def route(
        self,
        method: str,
        path: str,
        status_code: int = httpx.codes.OK,
        json_data: dict[str, Any] | None = None,
    ) -> None:
        """Answer ``method path`` with this response (repeatable, last one sticks)."""
        self._routes.setdefault((method, path), []).append(
            {"status_code": status_code, "json_data": json_data, "content": None, "headers": None}
        )

    def bodies(self, method: str, path: str) -> list[dict[str, Any]]:
        return [
            json.loads(r.content)
            for r in self.requests
            if r.method == method and r.url.path == path and r.content
        ]

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        routed = self._routes.get((request.method, request.url.path))
        if routed:
            resp_data = routed.pop(0) if len(routed) > 1 else routed[0]
        elif self._queue:
            resp_data = self._queue.pop(0)
        else:
            return httpx.Response(
                httpx.codes.INTERNAL_SERVER_ERROR,
                content=b'{"error": "No mock response"}',
            )

        content = resp_data.get("content")
        if content is None and resp_data.get("json_data") is not None:
            content = json.dumps(resp_data["json_data"]).encode()

        return httpx.Response(
            status_code=resp_data["status_code"],
            content=content or b"",
            headers=resp_data.get("headers"),
        )


@pytest.fixture
def mock_transport() -> MockTransport:
    return MockTransport()


@pytest.fixture
def config(tmp_path: Path) -> SkillSyncConfig:
    return SkillSyncConfig(
        api_url="https://sync.test",
        claude_dir=tmp_path / "claude",
        config_dir=tmp_path / "config",
    )


@pytest.fixture
def fast_kdf() -> KdfParams:
    return FAST_KDF_PARAMS


@pytest.fixture
def master_key() -> bytes:
    return bytes(range(32))


@pytest.fixture
def make_skill() -> Callable[..., Skill]:
    def _make(
        name: str = "deploy",
        skill_type: SkillType = SkillType.COMMAND,
        content: str = "---\ndescription: Ship it\n---\nRun the deploy pipeline.\n",
        files: tuple[SkillFile, ...] = (),
    ) -> Skill:
        metadata, _ = parse_frontmatter(content)
        return Skill(name=name, type=skill_type, content=content, files=files, metadata=metadata)

    return _make
