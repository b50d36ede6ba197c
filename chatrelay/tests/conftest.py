from __future__ import annotations

from typing import Callable
from urllib.parse import parse_qs

import httpx
import pytest

from chatrelay.adapters.watsonx.profiles import get_profile
from chatrelay.config.settings import Settings
from chatrelay.core.relay import RelayConfig

IAM_HOST = "iam.cloud.ibm.com"


class FakeUpstream:
    """MockTransport handler standing in for IAM + watsonx; records every call."""

    def __init__(
        self,
        *,
        iam: Callable[[httpx.Request], httpx.Response] | None = None,
        inference: Callable[[httpx.Request], httpx.Response] | None = None,
    ) -> None:
        self.iam = iam or (lambda _req: httpx.Response(200, json={"access_token": "tok-abc", "expires_in": 3600}))
        self.inference = inference or (
            lambda _req: httpx.Response(200, json={"results": [{"generated_text": "Start with the basics."}]})
        )
        self.iam_requests: list[httpx.Request] = []
        self.inference_requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.host == IAM_HOST:
            self.iam_requests.append(request)
            return self.iam(request)
        self.inference_requests.append(request)
        return self.inference(request)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))

    def client_factory(self):
        client = self.client()

        async def factory() -> httpx.AsyncClient:
            return client

        return factory

    @staticmethod
    def form(request: httpx.Request) -> dict[str, list[str]]:
        return parse_qs(request.content.decode("utf-8"))


def make_config(**overrides) -> RelayConfig:
    values = {
        "api_key": "test-api-key-123",
        "project_id": "proj-123",
        "profile": get_profile("granite-3-8b"),
    }
    values.update(overrides)
    return RelayConfig(**values)


def make_settings(**overrides) -> Settings:
    values = {"log_file_path": "", "enable_static_frontend": False}
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def fake_upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def config_factory() -> Callable[..., RelayConfig]:
    return make_config


@pytest.fixture
def settings_factory() -> Callable[..., Settings]:
    return make_settings


@pytest.fixture
def upstream_factory() -> type[FakeUpstream]:
    return FakeUpstream
