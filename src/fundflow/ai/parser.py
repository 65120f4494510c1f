#!/usr/bin/env python3
"""
LLM Transaction Parser

Turns a free-text expense description ("Minh trả 300k ăn trưa cho 3 người")
into a transaction proposal by prompting a hosted LLM, then hands the raw
answer to the validator. The model is untrusted: nothing it returns is
persisted without passing TransactionValidator.

Supported providers:
- Google Gemini (generateContent API, key as query parameter)
- Groq (OpenAI-compatible chat completions, bearer token)
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable

import requests

from ..core.config import LLMConfig
from ..core.datastore import DocumentStore
from ..core.models import Fund, User
from .models import ValidationResult
from .usage import record_ai_usage
from .validator import TransactionValidator, ValidationPolicy, parse_json_content

logger = logging.getLogger(__name__)

# Vietnam does not observe daylight saving time
VIETNAM_TZ = timezone(timedelta(hours=7), name="ICT")


class AIConfigurationError(Exception):
    """Raised when no API key is available for the selected provider"""

    pass


class AIServiceError(Exception):
    """Raised when the LLM provider fails or returns an unexpected shape"""

    pass


@dataclass(frozen=True)
class AIModel:
    """A hosted model the parser can call."""

    id: str
    name: str
    provider: str
    api_endpoint: str
    max_tokens: int
    description: str = ""


AI_MODELS: list[AIModel] = [
    AIModel(
        id="gemini-2.0-flash",
        name="Gemini 2.0 Flash",
        provider="google",
        api_endpoint="https://generativelanguage.googleapis.com/v1beta/models/gemini-2.0-flash:generateContent",
        max_tokens=8192,
        description="Next generation, speed and thinking",
    ),
    AIModel(
        id="llama-3.3-70b",
        name="Llama 3.3 70B",
        provider="groq",
        api_endpoint="https://api.groq.com/openai/v1/chat/completions",
        max_tokens=4096,
        description="High quality open source model",
    ),
]


def get_model(model_id: str | None) -> AIModel:
    """Look up a model by id, falling back to the first registered model."""
    for model in AI_MODELS:
        if model.id == model_id:
            return model
    if model_id:
        logger.warning("Unknown AI model %r, using %s", model_id, AI_MODELS[0].id)
    return AI_MODELS[0]


def get_active_api_key(fund: Fund, provider: str) -> str | None:
    """First active key stored on the fund for the provider."""
    for api_key in fund.ai_api_keys:
        if api_key.is_active and api_key.provider == provider and api_key.key:
            return api_key.key
    return None


def available_models(fund: Fund, config: LLMConfig | None = None) -> list[AIModel]:
    """Models whose provider has a usable key for this fund."""
    return [model for model in AI_MODELS if _find_api_key(fund, model.provider, config)]


def _find_api_key(fund: Fund, provider: str, config: LLMConfig | None) -> str | None:
    key = get_active_api_key(fund, provider)
    if key:
        return key
    if config is None:
        return None
    if provider == "google":
        return config.google_api_key
    if provider == "groq":
        return config.groq_api_key
    return None


def resolve_api_key(fund: Fund, provider: str, config: LLMConfig | None = None) -> str:
    """
    API key for a provider: the fund's active key, else the configured one.

    Raises:
        AIConfigurationError: If neither exists
    """
    key = _find_api_key(fund, provider, config)
    if not key:
        raise AIConfigurationError(
            f"No active API key found for provider: {provider}. Please add an API key in the fund settings."
        )
    return key


def format_vietnam_time(now: datetime | None = None) -> str:
    """Current date and time in Vietnam, dd/mm/yyyy HH:MM."""
    moment = (now or datetime.now(timezone.utc)).astimezone(VIETNAM_TZ)
    return moment.strftime("%d/%m/%Y %H:%M")


def build_system_prompt(
    fund: Fund,
    members: Iterable[User],
    current_user: User | None = None,
    current_date: str | None = None,
) -> str:
    """System prompt giving the model the fund, roster and output contract."""
    roster = ", ".join(f"{m.display_name} (ID: {m.id})" for m in members)
    current_date = current_date or format_vietnam_time()

    lines = [
        "You are an AI assistant that parses natural language transaction descriptions into structured data.",
        "",
        "## CONTEXT:",
        f"- Fund name: {fund.name}",
        f"- Fund description: {fund.description}",
        f"- Current date and time in Vietnam: {current_date}",
        f"- All fund members with IDs: {roster}",
    ]
    if current_user is not None:
        lines.append(f"- Current user making the request: {current_user.display_name} (ID: {current_user.id})")

    lines += [
        "",
        "## OUTPUT FORMAT:",
        "Return ONLY a valid JSON object:",
        "{",
        '  "desc": "Detailed description in Vietnamese: payer, total, purpose, time, place, split method, original prompt",',
        '  "totalAmount": number,',
        '  "payer": "UserId",',
        '  "reasoning": "Vietnamese explanation using NAMES, ending with a FINAL AMOUNTS section",',
        '  "users": {"UserId1": "AmountValue1", "UserId2": "AmountValue2"}',
        "}",
        "",
        "## RULES:",
        "1. \"payer\" and every key of \"users\" must be an exact member ID from the list above, never a name.",
        "2. \"totalAmount\" is the positive total the payer paid, in VND.",
        "3. Amounts in \"users\" are strings without symbols or separators. Positive = receives, negative = pays.",
        "4. If the payer consumed a share: payer gets totalAmount minus their share, others get minus their share.",
        "5. If the payer did not consume: payer gets +totalAmount, consumers split it.",
        "6. The values in \"users\" must sum to exactly zero.",
        "7. \"k\" means thousands: \"45k\" is 45000.",
        "8. If no payer is mentioned, the current user paid.",
        "9. End the reasoning with one line per person, the payer listed once:",
        "   FINAL AMOUNTS:",
        "   - <Name> (payer): +<amount>đ",
        "   - <Name>: -<amount>đ",
        "   followed by \"Tổng kiểm tra\" showing the sum is 0đ.",
        "10. Every FINAL AMOUNTS value must match the corresponding \"users\" value exactly.",
    ]
    return "\n".join(lines)


class LLMTransactionParser:
    """
    HTTP client for the supported LLM providers.

    Blocking calls go through requests; aparse runs them in a worker thread
    so the event loop stays responsive.
    """

    def __init__(self, config: LLMConfig, session: requests.Session | None = None):
        self.config = config
        self.session = session or requests.Session()

    def parse(
        self,
        message: str,
        fund: Fund,
        members: list[User],
        current_user_id: str | None = None,
        model_id: str | None = None,
    ) -> str:
        """
        Ask the model for a proposal and return its raw JSON text.

        Raises:
            AIConfigurationError: No API key for the model's provider
            AIServiceError: HTTP failure or unexpected response shape
        """
        model = get_model(model_id or self.config.default_model)
        api_key = resolve_api_key(fund, model.provider, self.config)

        current_user = next((m for m in members if m.id == current_user_id), None)
        system_prompt = build_system_prompt(fund, members, current_user)

        logger.info("Parsing transaction with %s for fund %s", model.id, fund.id)
        if model.provider == "google":
            return self._call_google(model, api_key, system_prompt, message)
        if model.provider == "groq":
            return self._call_groq(model, api_key, system_prompt, message)
        raise AIConfigurationError(f"Unsupported provider: {model.provider}")

    async def aparse(
        self,
        message: str,
        fund: Fund,
        members: list[User],
        current_user_id: str | None = None,
        model_id: str | None = None,
    ) -> str:
        return await asyncio.to_thread(self.parse, message, fund, members, current_user_id, model_id)

    def _post(self, model: AIModel, url: str, body: dict[str, Any], headers: dict[str, str]) -> dict[str, Any]:
        try:
            response = self.session.post(url, json=body, headers=headers, timeout=self.config.timeout)
        except requests.RequestException as e:
            raise AIServiceError(f"{model.provider} API request failed: {e}") from e

        if not response.ok:
            raise AIServiceError(f"{model.provider} API error ({response.status_code}): {response.text[:200]}")

        try:
            data = response.json()
        except ValueError as e:
            raise AIServiceError(f"{model.provider} API returned invalid JSON") from e
        if not isinstance(data, dict):
            raise AIServiceError(f"Invalid {model.provider} API response structure")
        return data

    def _call_google(self, model: AIModel, api_key: str, system_prompt: str, message: str) -> str:
        body = {
            "contents": [{"role": "user", "parts": [{"text": system_prompt}, {"text": message}]}],
            "generationConfig": {
                "temperature": self.config.temperature,
                "maxOutputTokens": model.max_tokens,
                "responseMimeType": "application/json",
            },
        }
        data = self._post(model, f"{model.api_endpoint}?key={api_key}", body, {"Content-Type": "application/json"})

        candidates = data.get("candidates")
        if not candidates or not isinstance(candidates[0], dict):
            raise AIServiceError("Invalid Google API response structure: missing candidates")

        candidate = candidates[0]
        parts = (candidate.get("content") or {}).get("parts")
        if parts:
            text = parts[0].get("text") if isinstance(parts[0], dict) else None
            if not isinstance(text, str):
                raise AIServiceError("Missing content in Google API response: parts structure issue")
        elif isinstance(candidate.get("text"), str):
            text = candidate["text"]
        else:
            raise AIServiceError("Unsupported Google API response format")

        if candidate.get("finishReason") == "MAX_TOKENS":
            logger.warning("Google API response was truncated due to token limits")
        return text

    def _call_groq(self, model: AIModel, api_key: str, system_prompt: str, message: str) -> str:
        body = {
            "model": model.id,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": message},
            ],
            "response_format": {"type": "json_object"},
            "temperature": self.config.temperature,
            "max_tokens": model.max_tokens,
        }
        headers = {"Content-Type": "application/json", "Authorization": f"Bearer {api_key}"}
        data = self._post(model, model.api_endpoint, body, headers)

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise AIServiceError("Invalid Groq API response structure") from e
        if not isinstance(content, str) or not content:
            raise AIServiceError("Invalid Groq API response structure")
        return content


async def propose_transaction(
    parser: LLMTransactionParser,
    message: str,
    fund: Fund,
    members: list[User],
    current_user_id: str | None = None,
    model_id: str | None = None,
    policy: ValidationPolicy | None = None,
    store: DocumentStore | None = None,
) -> ValidationResult:
    """
    Full natural-language path: LLM call, JSON recovery, validation.

    Usage statistics are recorded once the response parses, whether or not
    it then validates.

    Raises:
        AIConfigurationError, AIServiceError, ProposalParseError,
        TransactionValidationError
    """
    raw = await parser.aparse(message, fund, members, current_user_id, model_id)
    payload = parse_json_content(raw)

    if store is not None:
        await record_ai_usage(store, fund.id)

    payload.setdefault("aiPrompt", message)
    payload["aiGenerated"] = True
    return TransactionValidator(members, policy).validate_response(payload)
