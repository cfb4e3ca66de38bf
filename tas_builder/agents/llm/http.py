import httpx

from .base import LLMClient, ProviderCallError


def _error_message(r: httpx.Response) -> str:
    try:
        body = r.json()
    except ValueError:
        return r.reason_phrase or f"HTTP {r.status_code}"
    err = body.get("error") if isinstance(body, dict) else None
    if isinstance(err, dict):
        return str(err.get("message") or r.reason_phrase)
    if isinstance(err, str):
        return err
    return r.reason_phrase or f"HTTP {r.status_code}"


class HTTPChatClient(LLMClient):
    """
    Plain httpx client for OpenAI-compatible /chat/completions endpoints
    (Ollama, vLLM, llama.cpp server). `transport` lets tests plug in an
    httpx.MockTransport.
    """

    def __init__(self, *, base_url: str, model: str, api_key: str = "ollama",
                 timeout: float = 120.0, transport: httpx.BaseTransport | None = None,
                 **kwargs):
        super().__init__(**kwargs)
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport

    @property
    def model_name(self) -> str:
        return self.model

    def _send_chat(self, *, system: str, user: str, temperature: float, max_tokens: int) -> str:
        url = f"{self.base_url}/chat/completions"
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }

        headers = {
            "Content-Type": "application/json",
            # OpenAI-compatible servers expect a bearer token; Ollama ignores it
            "Authorization": f"Bearer {self.api_key}",
        }

        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                r = client.post(url, json=payload, headers=headers)
        except httpx.TransportError as e:
            raise ProviderCallError(f"{type(e).__name__}: {e}") from e

        if r.status_code >= 400:
            raise ProviderCallError(
                _error_message(r),
                status_code=r.status_code,
                request_id=r.headers.get("x-request-id"),
            )

        try:
            data = r.json()
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise ProviderCallError(
                f"Unexpected response format: {type(e).__name__}",
                status_code=r.status_code,
            ) from e

        return (content or "").strip()
