"""
Decides whether a re-verification outcome differs enough from the stored
verdict to be persisted and announced to users.
"""

# More than 20 percentage points of confidence drift counts as significant
CONFIDENCE_DRIFT_THRESHOLD = 0.2

# Deltas are compared at this precision so 0.1 + 0.2 style float noise
# cannot push an exact 0.2 drift over the threshold
_DELTA_PRECISION = 6


def is_significant_change(
    old_verdict: str,
    new_verdict: str,
    old_confidence: float,
    new_confidence: float,
) -> bool:
    """
    Return True when a verdict flipped or its confidence drifted by more
    than ``CONFIDENCE_DRIFT_THRESHOLD``.

    Args:
        old_verdict: Verdict currently stored on the fact-check
        new_verdict: Verdict returned by the provider
        old_confidence: Stored confidence (0.0 to 1.0)
        new_confidence: Provider confidence (0.0 to 1.0)
    """
    if old_verdict != new_verdict:
        return True

    delta = round(abs(old_confidence - new_confidence), _DELTA_PRECISION)
    return delta > CONFIDENCE_DRIFT_THRESHOLD
