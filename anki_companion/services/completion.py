import logging

from groq import APIConnectionError, APIStatusError, APITimeoutError, Groq

from anki_companion import config
from anki_companion.errors import EmptyResponseError, ProviderNotConfiguredError, TransportError

logger = logging.getLogger(__name__)


def get_model() -> str:
    return config.get_groq_model()


def complete(
    model: str,
    temperature: float,
    messages: list[dict[str, str]],
    response_schema: dict,
) -> str:
    """Run one chat completion constrained by a strict JSON schema and return its text.

    Args:
        model: Provider model id
        temperature: Sampling temperature
        messages: Chat messages, each with `role` and `content`
        response_schema: `{"name": ..., "strict": True, "schema": {...}}`

    Returns:
        The raw completion text, stripped of surrounding whitespace.
    """
    api_key = config.get_groq_api_key()
    if not api_key:
        raise ProviderNotConfiguredError("Server missing GROQ_API_KEY")

    # Retries are left to the user; the client must fail fast.
    client = Groq(
        api_key=api_key,
        timeout=config.get_completion_timeout(),
        max_retries=0,
    )

    try:
        response = client.chat.completions.create(
            model=model,
            messages=messages,
            temperature=temperature,
            response_format={"type": "json_schema", "json_schema": response_schema},
        )
    except APITimeoutError as err:
        raise TransportError(f"Completion request timed out: {err}") from err
    except APIConnectionError as err:
        raise TransportError(f"Completion provider unreachable: {err}") from err
    except APIStatusError as err:
        body = err.response.text if err.response is not None else None
        raise TransportError(
            f"Completion request failed: {err.status_code} {body or err}",
            status=err.status_code,
            body=body,
        ) from err

    choices = getattr(response, "choices", None) or []
    content = ""
    if choices and choices[0].message is not None:
        content = (choices[0].message.content or "").strip()
    if not content:
        raise EmptyResponseError("Completion provider returned an empty response")

    logger.info("Completion %s returned %d characters", response_schema.get("name"), len(content))
    return content
