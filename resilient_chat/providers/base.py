"""
Content generator interface.

The chat session talks to the model only through ``ContentGenerator``. An
implementation opens the stream when awaited (so connection and HTTP status
failures surface before the first chunk) and returns an async iterator over
response chunks.
"""

from typing import AsyncIterator, Optional, Protocol, runtime_checkable

from ..models.generation import GenerateContentRequest, GenerateContentResponse
from ..reliability.cancellation import CancellationToken


@runtime_checkable
class ContentGenerator(Protocol):
    async def generate_content_stream(
        self,
        request: GenerateContentRequest,
        prompt_id: str,
        signal: Optional[CancellationToken] = None,
    ) -> AsyncIterator[GenerateContentResponse]:
        """
        Open a streaming generation request.

        Args:
            request: Model id, contents and generation config
            prompt_id: Correlation id for logs
            signal: Aborts the connection and any pending read

        Returns:
            Async iterator over response chunks

        Raises:
            ApiError: Non-success HTTP status from the endpoint
            httpx.TransportError: Connection-level failures
            RequestCancelledError: ``signal`` fired
        """
        ...
