"""
Serper API web search service used as evidence for claim re-verification.
"""

import http.client
import json
import logging
from typing import Any, Dict, List, Optional

from appwhistler.config import get_settings

logger = logging.getLogger(__name__)

MAX_QUERY_WORDS = 12


class SerperSearchError(Exception):
    """Exception raised when Serper search fails."""
    pass


class SerperService:
    """Service for performing web searches using Serper API."""

    def __init__(self, timeout: Optional[float] = None) -> None:
        """
        Initialize the Serper service.

        Args:
            timeout: Socket timeout in seconds, defaults to the provider timeout
        """
        self.settings = get_settings()
        self.base_url = "google.serper.dev"
        self.search_endpoint = "/search"
        self.timeout = timeout if timeout is not None else self.settings.provider_timeout_seconds

    def search(self, query: str, num_results: int = 5) -> Dict[str, Any]:
        """
        Perform a web search using Serper API.

        Args:
            query: The search query string
            num_results: Number of results to return

        Returns:
            Raw Serper response body

        Raises:
            SerperSearchError: If search fails, times out, or API key is missing
        """
        if not self.settings.serper_api_key:
            raise SerperSearchError("Serper API key not configured")

        logger.info(f"Performing web search for query: {query}")

        conn = http.client.HTTPSConnection(self.base_url, timeout=self.timeout)
        try:
            payload = json.dumps({"q": query, "num": num_results})
            headers = {
                'X-API-KEY': self.settings.serper_api_key,
                'Content-Type': 'application/json'
            }

            conn.request("POST", self.search_endpoint, payload, headers)
            response = conn.getresponse()

            if response.status != 200:
                error_msg = f"Serper API returned status {response.status}: {response.reason}"
                logger.error(error_msg)
                raise SerperSearchError(error_msg)

            result = json.loads(response.read().decode("utf-8"))

            logger.info(f"Search completed. Found {len(result.get('organic', []))} organic results")
            return result

        except SerperSearchError:
            raise
        except json.JSONDecodeError as e:
            error_msg = f"Failed to parse Serper API response: {e}"
            logger.error(error_msg)
            raise SerperSearchError(error_msg)
        except Exception as e:
            error_msg = f"Serper API request failed: {e}"
            logger.error(error_msg)
            raise SerperSearchError(error_msg)
        finally:
            conn.close()

    def extract_search_context(self, search_results: Dict[str, Any]) -> Dict[str, Any]:
        """
        Turn raw Serper results into snippets and labelled sources.

        Answer boxes and knowledge graph entries are placed ahead of organic
        results because they tend to carry the most direct evidence.

        Args:
            search_results: Raw search results from Serper API

        Returns:
            Dict with ``snippets`` (title, snippet, url) and ``sources``
            (label, url) lists
        """
        snippets: List[Dict[str, str]] = []
        sources: List[Dict[str, str]] = []

        for result in search_results.get("organic", []):
            title = result.get("title", "")
            link = result.get("link", "")
            if result.get("snippet"):
                snippets.append({"title": title, "snippet": result["snippet"], "url": link})
            if link:
                sources.append({"label": title or link, "url": link})

        answer_box = search_results.get("answerBox") or {}
        answer = answer_box.get("answer") or answer_box.get("snippet")
        if answer:
            snippets.insert(0, {
                "title": answer_box.get("title", "Answer Box"),
                "snippet": answer,
                "url": answer_box.get("link", "")
            })

        knowledge_graph = search_results.get("knowledgeGraph") or {}
        if knowledge_graph.get("description"):
            snippets.insert(0, {
                "title": f"Knowledge Graph: {knowledge_graph.get('title', '')}",
                "snippet": knowledge_graph["description"],
                "url": knowledge_graph.get("website", "")
            })

        logger.debug(f"Extracted {len(snippets)} snippets and {len(sources)} sources")
        return {"snippets": snippets, "sources": sources}

    def search_for_claim(self, claim: str, category: Optional[str] = None) -> Dict[str, Any]:
        """
        Search the web for evidence about a claim.

        Args:
            claim: The claim to verify
            category: Optional claim category used to narrow the query

        Returns:
            Search context with the query that produced it
        """
        search_query = self._build_claim_query(claim, category)
        context = self.extract_search_context(self.search(search_query, num_results=5))
        context["search_query"] = search_query
        return context

    def _build_claim_query(self, claim: str, category: Optional[str] = None) -> str:
        """Strip quotes, cap the length, and append the category as a keyword."""
        words = claim.replace('"', '').split()[:MAX_QUERY_WORDS]
        query = ' '.join(words)
        if category and category.strip().lower() not in ("general", "other"):
            query = f"{query} {category.strip()}"
        return query
