"""
Abstract base class for Claude-backed verification agents.
Provides the Claude client, retry handling, and error translation.
"""

import time
from abc import ABC, abstractmethod
from typing import Optional

import anthropic
from anthropic import Anthropic

from appwhistler.config import get_settings
from appwhistler.schemas.fact_check import ProviderVerdict
from appwhistler.utils.logger import get_logger

logger = get_logger(__name__)
settings = get_settings()


class AgentProcessingError(Exception):
    """Raised when an agent fails to produce a verdict."""
    pass


class BaseAgent(ABC):
    """
    Abstract base class for agents that assess claims with Claude.

    Every Claude call is bounded by ``provider_timeout_seconds`` so a hung
    request cannot stall a re-verification cycle indefinitely.
    """

    def __init__(self) -> None:
        """Initialize the agent with Claude API client."""
        if not settings.anthropic_api_key:
            raise ValueError("ANTHROPIC_API_KEY environment variable is required")

        self.client: Anthropic = Anthropic(
            api_key=settings.anthropic_api_key,
            timeout=settings.provider_timeout_seconds,
        )
        self.model: str = settings.claude_model
        self.agent_name: str = self.__class__.__name__

    @abstractmethod
    def verify(self, claim_text: str, category: Optional[str] = None) -> ProviderVerdict:
        """
        Produce a fresh verdict for a claim.

        Raises:
            AgentProcessingError: If no trustworthy verdict could be produced
        """
        pass

    def _call_claude(self, prompt: str, system_prompt: Optional[str] = None, max_retries: int = 3) -> str:
        """
        Make a call to Claude API with error handling and logging.

        Rate-limit errors are retried with exponential backoff; every other
        failure is raised immediately.

        Args:
            prompt: The user prompt to send to Claude
            system_prompt: Optional system prompt for Claude
            max_retries: Retries allowed after a rate-limit error

        Returns:
            Claude's text response

        Raises:
            AgentProcessingError: If the API call fails
        """
        start_time = time.time()
        retry_count = 0

        while retry_count <= max_retries:
            try:
                logger.info(f"[{self.agent_name}] Sending prompt to Claude",
                           prompt_length=len(prompt),
                           has_system=bool(system_prompt))

                message_params = {
                    "model": self.model,
                    "max_tokens": 1000,
                    "temperature": 0.1,
                    "messages": [{"role": "user", "content": prompt}]
                }
                if system_prompt:
                    message_params["system"] = system_prompt

                response = self.client.messages.create(**message_params)

                if response.content and len(response.content) > 0:
                    response_text = response.content[0].text
                else:
                    raise AgentProcessingError("Empty response from Claude API")

                duration = time.time() - start_time
                logger.info(f"[{self.agent_name}] Claude response received",
                           duration_seconds=round(duration, 2),
                           response_length=len(response_text))

                return response_text

            except anthropic.RateLimitError as e:
                retry_count += 1
                if retry_count <= max_retries:
                    wait_time = (2 ** retry_count) * 10
                    logger.warning(f"[{self.agent_name}] Rate limit hit, waiting {wait_time}s (attempt {retry_count}/{max_retries})")
                    time.sleep(wait_time)
                    continue
                logger.error(f"[{self.agent_name}] Rate limit exceeded after {max_retries} retries",
                            error=str(e),
                            duration_seconds=round(time.time() - start_time, 2))
                raise AgentProcessingError(f"Rate limit exceeded: {str(e)}")

            except anthropic.APIError as e:
                logger.error(f"[{self.agent_name}] Claude API error",
                            error=str(e),
                            duration_seconds=round(time.time() - start_time, 2))
                raise AgentProcessingError(f"Claude API error: {str(e)}")

            except AgentProcessingError:
                raise

            except Exception as e:
                logger.error(f"[{self.agent_name}] Unexpected error calling Claude",
                            error=str(e),
                            duration_seconds=round(time.time() - start_time, 2))
                raise AgentProcessingError(f"Unexpected error: {str(e)}")

        raise AgentProcessingError("Claude call did not complete")
