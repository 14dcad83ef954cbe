"""
Re-verifies a single fact-check against the verification provider and
persists the outcome.
"""

from typing import Any, Protocol, Union

from sqlalchemy.orm import Session

from appwhistler.db.database import utcnow
from appwhistler.models.fact_check import AUTOMATED_REVERIFICATION_REASON, FactCheck, FactCheckUpdate
from appwhistler.schemas.fact_check import ProviderVerdict
from appwhistler.schemas.reverification import ReverificationResult
from appwhistler.services.significance_policy import is_significant_change
from appwhistler.utils.logger import get_logger, truncate_for_log

logger = get_logger(__name__)


class VerificationProvider(Protocol):
    """Anything that can produce a fresh verdict for a claim."""

    def verify(self, claim_text: str, category: str) -> Union[ProviderVerdict, dict]:
        ...


class ReverificationService:
    """
    Service class for re-checking one claim at a time.

    The sole writer of a fact-check's verdict fields and of its update
    history. Each claim's writes are committed as a single transaction.
    """

    def __init__(self, db: Session, provider: VerificationProvider) -> None:
        """
        Initialize the re-verification service.

        Args:
            db: Database session for operations
            provider: Verification provider used to obtain fresh verdicts
        """
        self.db: Session = db
        self.provider = provider

    def reverify(self, fact_check: FactCheck) -> ReverificationResult:
        """
        Re-verify a fact-check and persist the result.

        A significant change replaces the verdict, confidence, sources, and
        explanation and appends a FactCheckUpdate row. Otherwise only
        ``last_verified_at`` advances.

        Args:
            fact_check: The stored fact-check to re-verify

        Returns:
            ReverificationResult describing the before and after state

        Raises:
            Exception: Provider failures propagate before anything is written;
                store failures are rolled back and re-raised
        """
        fact_check_id = fact_check.id
        old_verdict = fact_check.verdict
        old_confidence = fact_check.confidence_score or 0.0

        logger.info("Re-verifying claim",
                   fact_check_id=fact_check_id,
                   claim=truncate_for_log(fact_check.claim))

        fresh = self._coerce_verdict(self.provider.verify(fact_check.claim, fact_check.category))
        new_verdict = fresh.verdict.value

        verdict_changed = is_significant_change(old_verdict, new_verdict, old_confidence, fresh.confidence)
        now = utcnow()

        try:
            if verdict_changed:
                logger.warning("Verdict changed",
                              fact_check_id=fact_check_id,
                              old_verdict=old_verdict,
                              old_confidence=old_confidence,
                              new_verdict=new_verdict,
                              new_confidence=fresh.confidence)

                fact_check.verdict = new_verdict
                fact_check.confidence_score = fresh.confidence
                fact_check.sources = [source.model_dump(exclude_none=True) for source in fresh.sources]
                fact_check.explanation = fresh.explanation
                fact_check.last_verified_at = now
                fact_check.automated_update_count = (fact_check.automated_update_count or 0) + 1
                fact_check.updated_at = now

                self.db.add(FactCheckUpdate(
                    fact_check_id=fact_check_id,
                    old_verdict=old_verdict,
                    new_verdict=new_verdict,
                    old_confidence=old_confidence,
                    new_confidence=fresh.confidence,
                    reason=AUTOMATED_REVERIFICATION_REASON,
                    created_at=now,
                ))
            else:
                fact_check.last_verified_at = now

            self.db.commit()

        except Exception as e:
            self.db.rollback()
            logger.error("Failed to persist re-verification",
                        fact_check_id=fact_check_id,
                        error=str(e))
            raise

        return ReverificationResult(
            fact_check_id=fact_check_id,
            verdict_changed=verdict_changed,
            old_verdict=old_verdict,
            new_verdict=new_verdict,
            old_confidence=old_confidence,
            new_confidence=fresh.confidence,
        )

    @staticmethod
    def _coerce_verdict(raw: Any) -> ProviderVerdict:
        """Validate a provider payload; malformed payloads raise ValidationError."""
        if isinstance(raw, ProviderVerdict):
            return raw
        return ProviderVerdict.model_validate(raw)
