import pytest

from chatrelay.config.settings import Settings
from chatrelay.core import context as stages
from chatrelay.core.errors import ConfigurationError, UnknownProfileError, ValidationError
from chatrelay.core.relay import RelayConfig, RelayService, ensure_method


def test_from_settings_applies_profile_overrides(settings_factory):
    source = settings_factory(
        ibm_api_key="  key  ",
        project_id="proj",
        model_id="ibm/granite-custom",
        upstream_timeout_seconds=12,
        token_cache_enabled=True,
    )
    config = RelayConfig.from_settings(source)

    assert config.api_key == "key"
    assert config.profile.name == "granite-3-8b"
    assert config.profile.model_id == "ibm/granite-custom"
    assert config.profile.timeout_seconds == 12.0
    assert config.token_cache_enabled is True


def test_deployment_profile_picks_up_deployment_url(settings_factory):
    url = "https://eu-de.ml.cloud.ibm.com/ml/v4/deployments/abc/ai_service?version=2021-05-01"
    config = RelayConfig.from_settings(settings_factory(deployment_url=url), profile_name="deployment-chat")
    assert config.profile.endpoint_url == url
    assert config.with_profile("deployment-chat").profile.endpoint_url == url


def test_with_profile_drops_model_override(settings_factory):
    config = RelayConfig.from_settings(settings_factory(model_id="ibm/granite-custom"))
    alternate = config.with_profile("llama-3-8b")
    assert alternate.profile.model_id == "meta-llama/llama-3-8b-instruct"
    assert alternate.api_key == config.api_key


def test_unknown_profile_fails_at_construction(settings_factory):
    with pytest.raises(UnknownProfileError):
        RelayConfig.from_settings(settings_factory(profile="does-not-exist"))


def test_ensure_complete_reports_missing_values(config_factory):
    with pytest.raises(ConfigurationError, match="API key missing"):
        config_factory(api_key="").ensure_complete()
    with pytest.raises(ConfigurationError, match="Project ID missing"):
        config_factory(project_id="").ensure_complete()
    assert config_factory(api_key="", project_id="").missing_settings() == ["IBM_API_KEY", "PROJECT_ID"]
    config_factory().ensure_complete()


def test_ensure_method():
    ensure_method("post")
    with pytest.raises(ValidationError) as exc_info:
        ensure_method("GET")
    assert exc_info.value.status_code == 405


def test_settings_accept_original_env_names(monkeypatch):
    monkeypatch.setenv("IBM_API_KEY", "env-key")
    monkeypatch.setenv("PROJECT_ID", "env-project")
    monkeypatch.setenv("PORT", "8080")
    monkeypatch.setenv("RELAY_PROFILE", "llama-3-8b")

    source = Settings(_env_file=None)

    assert source.ibm_api_key == "env-key"
    assert source.project_id == "env-project"
    assert source.port == 8080
    assert source.profile == "llama-3-8b"


def test_prefixed_env_names_win(monkeypatch):
    monkeypatch.setenv("RELAY_IBM_API_KEY", "prefixed")
    monkeypatch.setenv("IBM_API_KEY", "plain")
    assert Settings(_env_file=None).ibm_api_key == "prefixed"


@pytest.mark.asyncio
async def test_relay_walks_every_stage(fake_upstream, config_factory):
    service = RelayService(config_factory(), client_factory=fake_upstream.client_factory())
    ctx = service.new_context("/api/chat")

    envelope = await service.relay("POST", {"message": "hi"}, ctx)

    assert envelope.choices[0].message.content == "Start with the basics."
    assert ctx.stages == [
        stages.RECEIVED,
        stages.VALIDATING,
        stages.ACQUIRING_TOKEN,
        stages.INVOKING,
        stages.NORMALIZING,
        stages.RESPONDING,
    ]


@pytest.mark.asyncio
async def test_for_profile_shares_token_cache(fake_upstream, config_factory):
    service = RelayService(config_factory(token_cache_enabled=True), client_factory=fake_upstream.client_factory())
    sibling = service.for_profile("granite-3-2b")

    await service.relay("POST", {"message": "a"}, service.new_context("/api/chat"))
    await sibling.relay("POST", {"message": "b"}, sibling.new_context("/api/chat-v3"))

    assert sibling.acquirer is service.acquirer
    assert len(fake_upstream.iam_requests) == 1
    assert len(fake_upstream.inference_requests) == 2
