"""Structured LLM calls with validation-aware retries."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Callable, Sequence, TypeVar

from mirascope import llm
from pydantic import BaseModel, ValidationError
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt

from taleweaver.local_llm import LocalLLMError, call_ollama_chat
from taleweaver.logging_utils import log_error


ModelT = TypeVar("ModelT", bound=BaseModel)


@dataclass(slots=True)
class ValidationFeedback:
    """Structured feedback for retrying failed LLM schema outputs."""

    llm_text: str
    issues: Sequence[str]


def _truncate_preview(value: Any, *, limit: int = 80) -> str:
    """Return a compact preview of the offending input value."""

    if value is None:
        return "null"
    text = repr(value)
    if len(text) > limit:
        return text[: limit - 3] + "..."
    return text


def inject_validation_feedback(error: ValidationError) -> ValidationFeedback:
    """Turn a pydantic ValidationError into retry guidance for the model.

    Each issue names the field path (dot notation), the message, the error type
    and a short preview of the rejected value, e.g.
    ``characterEffects.limbEffects.0.limbName: Field required [type=missing]``.
    """

    issues: list[str] = []
    for err in error.errors(include_url=False):
        loc = ".".join(str(part) for part in err.get("loc", [])) or "root"
        details = f"{loc}: {err.get('msg', 'validation error')}"
        if err.get("type"):
            details += f" [type={err['type']}]"
        if "input" in err:
            details += f" | received={_truncate_preview(err.get('input'))}"
        issues.append(details)

    if not issues:
        issues.append("root: response did not match the expected schema")

    instructions = [
        "Your previous JSON response failed to validate against the required schema.",
        "Produce a corrected response that strictly matches the schema.",
        "Return only valid JSON, without explanations or code fences.",
        "Issues detected:",
    ]
    instructions.extend(f"- {issue}" for issue in issues)
    return ValidationFeedback(llm_text="\n".join(instructions), issues=issues)


async def call_llm_with_retries(
    *,
    system_prompt: str,
    user_prompt: str,
    llm_provider: str,
    llm_model: str,
    response_model: type[ModelT],
    max_attempts: int = 3,
    timeout: float | None = None,
    base_url: str | None = None,
    feedback_builder: Callable[[ValidationError], ValidationFeedback] = inject_validation_feedback,
) -> ModelT:
    """Invoke a structured LLM call, retrying only on schema validation errors.

    Validation feedback is appended to the original user prompt so the model
    keeps its full context while seeing what to correct. Provider, network and
    timeout errors propagate immediately. ``timeout=None`` waits indefinitely.
    """

    system_prompt = system_prompt.strip()
    base_user_prompt = user_prompt.strip()
    feedback: ValidationFeedback | None = None
    use_local_llm = llm_provider.lower() == "ollama"

    remote_invoke: Callable[[str], Any] | None = None
    if not use_local_llm:
        @llm.call(provider=llm_provider, model=llm_model, response_model=response_model)
        async def _invoke(prompt: str) -> str:
            return prompt

        remote_invoke = _invoke

    attempt_number = 0
    async for attempt in AsyncRetrying(
        retry=retry_if_exception_type(ValidationError),
        stop=stop_after_attempt(max_attempts),
        reraise=True,
    ):
        with attempt:
            attempt_number += 1
            if attempt_number > 1:
                log_error(
                    "LLM",
                    f"Retry {attempt_number}/{max_attempts} for {response_model.__name__};"
                    " attempting schema correction.",
                )
            user_section = base_user_prompt
            if feedback is not None:
                user_section = f"{base_user_prompt}\n\n{feedback.llm_text}"
            try:
                if use_local_llm:
                    raw_response = await asyncio.wait_for(
                        call_ollama_chat(
                            system_prompt=system_prompt,
                            user_prompt=user_section,
                            llm_model=llm_model,
                            base_url=base_url,
                            timeout=timeout,
                        ),
                        timeout=timeout,
                    )
                    return response_model.model_validate_json(raw_response)

                if remote_invoke is None:
                    raise RuntimeError("Remote LLM invoke is not initialized.")

                combined = "\n\n".join(
                    section for section in (system_prompt, user_section) if section
                )
                return await asyncio.wait_for(remote_invoke(combined), timeout=timeout)
            except ValidationError as exc:
                feedback = feedback_builder(exc)
                log_error(
                    "LLM",
                    f"Schema validation failed for {response_model.__name__} "
                    f"(attempt {attempt_number}/{max_attempts}).",
                )
                for issue in feedback.issues:
                    print(f"    - {issue}")
                raise
            except asyncio.TimeoutError:
                log_error(
                    "LLM",
                    f"Call timed out after {timeout:g}s for {response_model.__name__}.",
                )
                raise
            except LocalLLMError as exc:
                raise RuntimeError(
                    f"Local LLM provider error ({llm_provider}): {exc}"
                ) from exc

    # AsyncRetrying(reraise=True) always exits via return or raise.
    raise RuntimeError("LLM retry mechanism exited unexpectedly")
