"""
Completion Service - the external effect of a reconciliation.

Sends the resource's prompt to an OpenAI-compatible chat completion
endpoint and returns the answer text.
"""

from typing import Optional

import openai
import structlog
from openai import AsyncOpenAI

from aioperator.services.errors import CompletionError

logger = structlog.get_logger(__name__)


class CompletionInvoker:
    """
    Wraps a single chat-completion call.
    
    The API key is read from OPENAI_API_KEY by the OpenAI client when not
    passed explicitly. The client does not retry on its own: a failed call
    surfaces as CompletionError and the reconciler re-queues the resource.
    """
    
    def __init__(
        self,
        model: str = "gpt-3.5-turbo",
        base_url: Optional[str] = None,
        timeout: float = 60.0,
        api_key: Optional[str] = None,
    ):
        self.client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=0,
        )
        self.model = model
    
    async def invoke(self, prompt: str) -> str:
        """
        Prompt the model and return its answer.
        
        Raises:
            CompletionError: on timeout, authentication or API failure, or
                when the response carries no text.
        """
        logger.info("Calling completion provider", model=self.model)
        
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
            )
        except openai.APITimeoutError as e:
            raise CompletionError(f"Completion call timed out: {e}") from e
        except openai.AuthenticationError as e:
            raise CompletionError(f"Completion provider rejected credentials: {e}") from e
        except openai.APIError as e:
            raise CompletionError(f"Completion call failed: {e}") from e
        
        if not response.choices:
            raise CompletionError("Completion response has no choices")
        
        content = response.choices[0].message.content
        if not content:
            raise CompletionError("Completion response has no content")
        
        logger.debug(f"Completion response: {content}")
        return content


class MockCompletion:
    """
    Mock completion provider for running without credentials.
    
    Returns predefined answers in order, then echoes the prompt.
    """
    
    def __init__(self, answers: Optional[list[str]] = None):
        self.answers = answers or []
        self.prompts: list[str] = []
    
    async def invoke(self, prompt: str) -> str:
        """Return the next predefined answer."""
        
        self.prompts.append(prompt)
        if len(self.prompts) <= len(self.answers):
            return self.answers[len(self.prompts) - 1]
        return f"Mock answer to: {prompt}"
