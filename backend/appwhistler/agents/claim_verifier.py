"""
AI agent that re-verifies stored claims.
Gathers web evidence with Serper and asks Claude for a verdict.
"""

import re
from typing import Any, Dict, List, Optional

from appwhistler.agents.base_agent import AgentProcessingError, BaseAgent
from appwhistler.models.fact_check import Verdict
from appwhistler.schemas.fact_check import ProviderVerdict, Source
from appwhistler.services.serper_service import SerperSearchError, SerperService
from appwhistler.utils.logger import get_logger, truncate_for_log

logger = get_logger(__name__)

VALID_VERDICTS = [verdict.value for verdict in Verdict]


class ClaimVerifierAgent(BaseAgent):
    """
    Verification provider backed by Serper search results and Claude.

    Unlike a best-effort checker this agent never invents a fallback verdict:
    anything short of a well-formed answer is raised as AgentProcessingError
    so the stored verdict stays untouched.
    """

    def __init__(self) -> None:
        """Initialize the agent with its Serper service."""
        super().__init__()
        self.serper_service = SerperService()

    def verify(self, claim_text: str, category: Optional[str] = None) -> ProviderVerdict:
        """
        Produce a fresh verdict for a claim.

        Args:
            claim_text: The claim to verify
            category: Optional claim category

        Returns:
            ProviderVerdict with verdict, confidence, sources and explanation

        Raises:
            AgentProcessingError: If search or analysis fails or the answer is malformed
        """
        if not claim_text or not claim_text.strip():
            raise AgentProcessingError("Cannot verify empty claim")

        logger.info(f"[{self.agent_name}] Verifying claim: {truncate_for_log(claim_text, 100)}",
                   category=category)

        try:
            search_context = self.serper_service.search_for_claim(claim_text, category)
        except SerperSearchError as e:
            logger.error(f"[{self.agent_name}] Serper search failed", error=str(e))
            raise AgentProcessingError(f"Web search failed: {str(e)}")

        if not search_context["snippets"]:
            logger.warning(f"[{self.agent_name}] No search results found for claim")
            raise AgentProcessingError("No search results found for claim")

        prompt = self._build_verification_prompt(claim_text, category, search_context)
        system_prompt = """You are a professional fact-checker re-examining a previously published verdict. Evaluate the claim objectively based on source quality and evidence strength. Be precise and concise in your assessment."""

        response = self._call_claude(prompt, system_prompt, max_retries=1)
        result = self._parse_verification_result(response, search_context["sources"])

        logger.info(f"[{self.agent_name}] Claim result: {result.verdict.value} (confidence: {result.confidence:.2f})")
        return result

    def _build_verification_prompt(self, claim: str, category: Optional[str], search_context: Dict[str, Any]) -> str:
        """
        Build the analysis prompt from the claim and its top search results.

        Args:
            claim: The claim being re-verified
            category: Optional claim category
            search_context: Search context from SerperService

        Returns:
            Prompt text
        """
        formatted_results = []
        for i, snippet_data in enumerate(search_context["snippets"][:3], 1):
            result_text = f"Result {i}:\nTitle: {snippet_data.get('title', '')}\nSnippet: {snippet_data.get('snippet', '')}"
            if snippet_data.get("url"):
                result_text += f"\nSource: {snippet_data['url']}"
            formatted_results.append(result_text)

        category_line = f"CATEGORY: {category}\n" if category else ""

        return f"""Analyze the following search results to verify this claim:

CLAIM: {claim}
{category_line}
SEARCH RESULTS:
{chr(10).join(formatted_results)}

Based on these search results, provide your assessment:

VERDICT: [TRUE/FALSE/MISLEADING/UNVERIFIED]
CONFIDENCE: [0.0-1.0]
EXPLANATION: [Brief explanation in 1-2 sentences max]
SOURCES: [List the most relevant source URLs from the search results]

Guidelines:
- TRUE: Claim is fully supported by reliable sources
- FALSE: Claim is contradicted by reliable sources
- MISLEADING: Claim has some truth but lacks important context or distorts it
- UNVERIFIED: Insufficient or unreliable sources to make a determination"""

    def _parse_verification_result(self, response: str, available_sources: Optional[List[Dict[str, str]]] = None) -> ProviderVerdict:
        """
        Parse Claude's answer into a ProviderVerdict.

        Args:
            response: Claude's verification response
            available_sources: Labelled sources from the search results

        Returns:
            ProviderVerdict

        Raises:
            AgentProcessingError: If the verdict or confidence is missing or invalid
        """
        available_sources = available_sources or []

        verdict_match = re.search(r'VERDICT:\s*(\w+)', response, re.IGNORECASE)
        if not verdict_match:
            raise AgentProcessingError("Malformed verification response: missing VERDICT")
        verdict = verdict_match.group(1).upper()
        if verdict not in VALID_VERDICTS:
            raise AgentProcessingError(f"Malformed verification response: unknown verdict '{verdict}'")

        confidence_match = re.search(r'CONFIDENCE:\s*(-?[\d.]+)', response, re.IGNORECASE)
        try:
            confidence = float(confidence_match.group(1))
        except (AttributeError, ValueError):
            raise AgentProcessingError("Malformed verification response: missing or invalid CONFIDENCE")
        confidence = max(0.0, min(1.0, confidence))

        explanation_match = re.search(r'EXPLANATION:\s*(.+?)(?=SOURCES:|$)', response, re.IGNORECASE | re.DOTALL)
        explanation = explanation_match.group(1).strip() if explanation_match else ""

        sources_match = re.search(r'SOURCES:\s*(.+?)$', response, re.IGNORECASE | re.DOTALL)
        cited_urls = re.findall(r'https?://[^\s\],]+', sources_match.group(1)) if sources_match else []

        labels = {source["url"]: source.get("label") for source in available_sources}
        if available_sources:
            cited_urls = [url for url in cited_urls if url in labels]

        sources = [Source(label=labels.get(url), url=url) for url in dict.fromkeys(cited_urls)]
        if not sources and available_sources:
            sources = [Source(**source) for source in available_sources[:2]]

        return ProviderVerdict(
            verdict=Verdict(verdict),
            confidence=confidence,
            sources=sources,
            explanation=explanation,
        )
