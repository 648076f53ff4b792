from typing import Any, Protocol


class StructuredAIProvider(Protocol):
    """Generative backend that answers every prompt with a JSON object.

    Implementations raise :class:`app.core.errors.DojoError` tagged with the
    kind of failure; they never return partial or free-text output.
    """

    def generate_json(
        self,
        *,
        system_prompt: str,
        user_prompt: str,
    ) -> dict[str, Any]:
        ...
