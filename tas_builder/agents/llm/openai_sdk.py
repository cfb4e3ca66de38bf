from openai import APIConnectionError, APIStatusError, OpenAI

from .base import LLMClient, ProviderCallError


class OpenAIClient(LLMClient):
    """Any OpenAI-compatible chat API (OpenAI, Groq, Azure proxies, ...)."""

    def __init__(self, *, api_key: str, base_url: str, model: str,
                 timeout: float = 120.0, **kwargs):
        super().__init__(**kwargs)
        # SDK retries off: the shared RetryPolicy decides
        self.client = OpenAI(api_key=api_key, base_url=base_url, timeout=timeout, max_retries=0)
        self.model = model

    @property
    def model_name(self) -> str:
        return self.model

    def _send_chat(self, *, system: str, user: str, temperature: float, max_tokens: int) -> str:
        try:
            resp = self.client.chat.completions.create(
                model=self.model,
                temperature=temperature,
                max_tokens=max_tokens,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": user},
                ],
            )
        except APIStatusError as e:
            raise ProviderCallError(
                e.message,
                status_code=e.status_code,
                request_id=getattr(e, "request_id", None),
            ) from e
        except APIConnectionError as e:
            # includes APITimeoutError
            raise ProviderCallError(str(e)) from e

        if not resp.choices:
            raise ProviderCallError("Response contained no choices", status_code=200)
        return (resp.choices[0].message.content or "").strip()
