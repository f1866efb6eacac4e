"""
Inference Client - prompt in, trimmed text out

Wraps Claude on Amazon Bedrock through the Anthropic SDK. One request per
call: no retries, no backoff, no rate limiting. Any backend failure is
raised as InferenceError and the caller decides whether to absorb it.
"""
from typing import Any, Optional, Protocol

import anthropic
import structlog
from botocore.exceptions import BotoCoreError, ClientError

from packages.common.errors import ConfigurationError, InferenceError
from packages.common.metrics import inference_calls

logger = structlog.get_logger()


class InferenceClient(Protocol):
    """Anything that turns a prompt into generated text"""

    async def infer(self, prompt: str) -> str:
        ...


class BedrockInferenceClient:
    """
    Claude-on-Bedrock inference client.

    Usage:
        client = BedrockInferenceClient(model_id=settings.bedrock_model_id)
        text = await client.infer("Classify: Pan")
    """

    def __init__(
        self,
        model_id: Optional[str],
        aws_region: str = "us-east-1",
        max_tokens: int = 200,
        client: Optional[Any] = None,
    ):
        """
        Initialize inference client.

        Args:
            model_id: Bedrock model identifier (BEDROCK_MODEL_ID)
            aws_region: AWS region for Bedrock runtime
            max_tokens: Response token limit
            client: Pre-built AsyncAnthropicBedrock client (tests)

        Raises:
            ConfigurationError: If no model identifier is configured
        """
        if not model_id:
            raise ConfigurationError("BEDROCK_MODEL_ID is not set")

        self.model_id = model_id
        self.max_tokens = max_tokens
        self.client = client or anthropic.AsyncAnthropicBedrock(aws_region=aws_region)

        logger.info("inference_client_initialized",
                   model_id=model_id,
                   region=aws_region)

    async def infer(self, prompt: str) -> str:
        """
        Send one prompt and return the trimmed text of the first content block.

        Raises:
            InferenceError: If the call fails or the response has no text
        """
        try:
            response = await self.client.messages.create(
                model=self.model_id,
                max_tokens=self.max_tokens,
                messages=[
                    {
                        "role": "user",
                        "content": [{"type": "text", "text": prompt}]
                    }
                ]
            )
        except (anthropic.APIError, BotoCoreError, ClientError) as e:
            inference_calls.labels(outcome="error").inc()
            logger.error("inference_call_failed",
                        model_id=self.model_id,
                        error=str(e))
            raise InferenceError(f"Bedrock invocation failed: {e}") from e

        content = getattr(response, "content", None) or []
        text = getattr(content[0], "text", None) if content else None
        if not isinstance(text, str):
            inference_calls.labels(outcome="error").inc()
            raise InferenceError("Bedrock response contained no text content")

        inference_calls.labels(outcome="success").inc()

        usage = getattr(response, "usage", None)
        logger.debug("inference_call_complete",
                    model_id=self.model_id,
                    input_tokens=getattr(usage, "input_tokens", None),
                    output_tokens=getattr(usage, "output_tokens", None))

        return text.strip()
