## Error taxonomy shared by the generation pipeline and the HTTP layer


class TASBuilderError(Exception):
    pass


class ConfigurationError(TASBuilderError):
    """Missing/invalid credential or a missing template resource. Never retried."""


class LLMError(TASBuilderError):
    def __init__(self, message: str, *, status_code: int | None = None,
                 request_id: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.request_id = request_id


class TransientLLMError(LLMError):
    """Rate limit, timeout or 5xx that outlived the retry budget."""


class LLMRequestError(LLMError):
    """The provider rejected the request (auth, bad request, ...)."""


class OrchestrationTimeout(TASBuilderError):
    pass


USER_MESSAGES = {
    "validation": "The generated plan did not meet quality standards. "
                  "Please try again with more specific requirements.",
    "malformed_output": "The AI generated an invalid response format. Please try again.",
    "generation": "Failed to communicate with the AI service. Please try again shortly.",
    "timeout": "Plan generation took too long and was stopped. Please try again.",
    "configuration": "The AI service rejected the server's credentials. "
                     "Please contact an administrator.",
}


def user_message_for(category: str) -> str:
    return USER_MESSAGES.get(category, "An unexpected error occurred. Please try again.")


def friendly_status_message(status_code: int | None, fallback: str | None = None) -> str:
    if status_code == 401:
        return "Invalid API key. Please check your LLM_API_KEY environment variable."
    if status_code == 403:
        return "Access forbidden. Your API key may not have the required permissions."
    if status_code == 429:
        return "Rate limit exceeded. Please try again in a moment."
    if status_code is not None and 500 <= status_code < 600:
        return "The AI service is temporarily unavailable. Please try again later."
    if status_code == 408:
        return "The AI service timed out. Please try again."
    return fallback or "An error occurred while communicating with the AI service."
