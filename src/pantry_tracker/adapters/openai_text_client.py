"""OpenAI Responses API client for text completions."""

from dataclasses import dataclass

from openai import AsyncOpenAI

from pantry_tracker.services.generation import TextGenerationClient


@dataclass
class OpenAITextClient(TextGenerationClient):
    """Text generation client backed by the OpenAI Responses API."""

    client: AsyncOpenAI

    @classmethod
    def create(cls, api_key: str, timeout_seconds: float = 8.0) -> "OpenAITextClient":
        """Create an OpenAI client that fails fast instead of retrying."""
        return cls(
            client=AsyncOpenAI(
                api_key=api_key, timeout=timeout_seconds, max_retries=0
            )
        )

    async def complete(
        self,
        *,
        model: str,
        instructions: str,
        prompt: str,
        temperature: float,
    ) -> str:
        """Return the model's text output for a system instruction and prompt."""
        response = await self.client.responses.create(
            model=model,
            instructions=instructions,
            input=prompt,
            temperature=temperature,
            store=False,
        )
        return response.output_text or ""

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.client.close()
