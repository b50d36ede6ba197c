"""Provider profiles: one upstream variant = endpoint + model + payload shape + decoding."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Callable

from chatrelay.core.errors import UnknownProfileError
from chatrelay.core.models import ChatMessage, DecodingParameters, InferencePayload

TEXT_GENERATION_URL = "https://us-south.ml.cloud.ibm.com/ml/v1/text/generation?version=2023-05-29"
DEPLOYMENT_URL = (
    "https://us-south.ml.cloud.ibm.com/ml/v4/deployments/6aa5c265-8965-4028-b9bc-64027944f790/ai_service"
    "?version=2021-05-01"
)

ASSISTANT_INTRO = (
    "I'm LearnMate, your AI learning coach. I'm here to help you with educational planning, "
    "finding resources, and answering questions about learning and development."
)
COACH_PREAMBLE = "You are LearnMate, an AI learning coach. Help the user with their learning question: "

PayloadBuilder = Callable[["ProviderProfile", str, str], InferencePayload]


@dataclass(slots=True, frozen=True)
class ProviderProfile:
    name: str
    endpoint_url: str
    model_id: str
    build_payload: PayloadBuilder
    decoding: DecodingParameters | None = None
    timeout_seconds: float = 45.0
    description: str = ""

    def payload_for(self, message: str, project_id: str) -> InferencePayload:
        return self.build_payload(self, message, project_id)


def build_turn_prompt_payload(profile: ProviderProfile, message: str, project_id: str) -> InferencePayload:
    """Completion prompt framed as a Human/Assistant turn; stop sequences end it at the next turn."""
    return InferencePayload(
        input=f"Human: {message}\n\nAssistant: {ASSISTANT_INTRO}",
        parameters=profile.decoding,
        model_id=profile.model_id,
        project_id=project_id,
    )


def build_coach_prompt_payload(profile: ProviderProfile, message: str, project_id: str) -> InferencePayload:
    return InferencePayload(
        input=f"{COACH_PREAMBLE}{message}",
        parameters=profile.decoding,
        model_id=profile.model_id,
        project_id=project_id,
    )


def build_chat_messages_payload(profile: ProviderProfile, message: str, project_id: str) -> InferencePayload:
    return InferencePayload(
        messages=[ChatMessage(role="user", content=message)],
        model_id=profile.model_id,
        project_id=project_id,
    )


_PROFILES: dict[str, ProviderProfile] = {
    profile.name: profile
    for profile in (
        ProviderProfile(
            name="granite-3-8b",
            endpoint_url=TEXT_GENERATION_URL,
            model_id="ibm/granite-3-3-8b-instruct",
            build_payload=build_turn_prompt_payload,
            decoding=DecodingParameters(
                max_new_tokens=500,
                temperature=0.7,
                stop_sequences=["Human:", "\n\nHuman:"],
            ),
            timeout_seconds=45.0,
            description="recommended",
        ),
        ProviderProfile(
            name="llama-3-8b",
            endpoint_url=TEXT_GENERATION_URL,
            model_id="meta-llama/llama-3-8b-instruct",
            build_payload=build_coach_prompt_payload,
            decoding=DecodingParameters(max_new_tokens=400, temperature=0.7),
            timeout_seconds=30.0,
            description="alternative",
        ),
        ProviderProfile(
            name="granite-3-2b",
            endpoint_url=TEXT_GENERATION_URL,
            model_id="ibm/granite-3-3-2b-instruct",
            build_payload=build_coach_prompt_payload,
            decoding=DecodingParameters(max_new_tokens=400, temperature=0.7),
            timeout_seconds=30.0,
            description="smaller/faster",
        ),
        ProviderProfile(
            name="deployment-chat",
            endpoint_url=DEPLOYMENT_URL,
            model_id="",
            build_payload=build_chat_messages_payload,
            timeout_seconds=45.0,
            description="deployed AI service",
        ),
    )
}


def profile_names() -> list[str]:
    return list(_PROFILES)


def get_profile(name: str) -> ProviderProfile:
    key = (name or "").strip().lower()
    profile = _PROFILES.get(key)
    if profile is None:
        raise UnknownProfileError(
            f"Server configuration error: unknown provider profile '{name}'",
            details={"available": profile_names()},
        )
    return profile


def resolve_profile(
    name: str,
    *,
    model_id: str = "",
    endpoint_url: str = "",
    timeout_seconds: float = 0.0,
) -> ProviderProfile:
    """Look up a profile and apply configuration overrides; empty/zero overrides are ignored."""
    profile = get_profile(name)
    overrides: dict = {}
    if model_id.strip():
        overrides["model_id"] = model_id.strip()
    if endpoint_url.strip():
        overrides["endpoint_url"] = endpoint_url.strip()
    if timeout_seconds > 0:
        overrides["timeout_seconds"] = float(timeout_seconds)
    return replace(profile, **overrides) if overrides else profile
