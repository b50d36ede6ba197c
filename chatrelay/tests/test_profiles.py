import pytest

from chatrelay.adapters.watsonx.profiles import (
    ASSISTANT_INTRO,
    COACH_PREAMBLE,
    DEPLOYMENT_URL,
    TEXT_GENERATION_URL,
    get_profile,
    profile_names,
    resolve_profile,
)
from chatrelay.core.errors import ConfigurationError, UnknownProfileError


def test_registered_profiles():
    assert profile_names() == ["granite-3-8b", "llama-3-8b", "granite-3-2b", "deployment-chat"]


def test_primary_profile_builds_turn_prompt():
    profile = get_profile("granite-3-8b")
    body = profile.payload_for("What is spaced repetition?", "proj-1").to_upstream()
    assert body["input"] == f"Human: What is spaced repetition?\n\nAssistant: {ASSISTANT_INTRO}"
    assert body["model_id"] == "ibm/granite-3-3-8b-instruct"
    assert body["project_id"] == "proj-1"
    assert body["parameters"] == {
        "decoding_method": "greedy",
        "max_new_tokens": 500,
        "temperature": 0.7,
        "stop_sequences": ["Human:", "\n\nHuman:"],
    }
    assert profile.endpoint_url == TEXT_GENERATION_URL
    assert profile.timeout_seconds == 45.0


@pytest.mark.parametrize(
    "name,model_id",
    [("llama-3-8b", "meta-llama/llama-3-8b-instruct"), ("granite-3-2b", "ibm/granite-3-3-2b-instruct")],
)
def test_alternate_profiles_use_coach_preamble(name, model_id):
    profile = get_profile(name)
    body = profile.payload_for("teach me chess", "proj-1").to_upstream()
    assert body["input"] == f"{COACH_PREAMBLE}teach me chess"
    assert body["model_id"] == model_id
    assert body["parameters"]["max_new_tokens"] == 400
    assert "stop_sequences" not in body["parameters"]
    assert profile.timeout_seconds == 30.0


def test_deployment_profile_builds_chat_messages():
    profile = get_profile("deployment-chat")
    body = profile.payload_for("hello", "proj-1").to_upstream()
    assert body == {"messages": [{"role": "user", "content": "hello"}], "project_id": "proj-1"}
    assert profile.endpoint_url == DEPLOYMENT_URL


def test_lookup_is_case_insensitive():
    assert get_profile("  Granite-3-8B ").name == "granite-3-8b"


def test_unknown_profile_is_a_configuration_error():
    with pytest.raises(UnknownProfileError) as exc_info:
        get_profile("gpt-9")
    assert isinstance(exc_info.value, ConfigurationError)
    assert "granite-3-8b" in exc_info.value.details["available"]


def test_resolve_profile_applies_overrides():
    profile = resolve_profile(
        "granite-3-8b",
        model_id="ibm/granite-custom",
        endpoint_url="https://eu-de.ml.cloud.ibm.com/ml/v1/text/generation?version=2023-05-29",
        timeout_seconds=5,
    )
    assert profile.model_id == "ibm/granite-custom"
    assert profile.endpoint_url.startswith("https://eu-de.")
    assert profile.timeout_seconds == 5.0
    # registry entry is untouched
    assert get_profile("granite-3-8b").model_id == "ibm/granite-3-3-8b-instruct"


def test_resolve_profile_without_overrides_returns_registry_entry():
    assert resolve_profile("llama-3-8b", timeout_seconds=0) is get_profile("llama-3-8b")
