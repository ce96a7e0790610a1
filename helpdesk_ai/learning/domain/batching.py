"""
Mining batch sizing.

Batches are sized so the pattern prompt plus the reserved output allowance
stays under the per-request token ceiling.
"""

from typing import Iterator, List, Optional, Sequence, TypeVar

T = TypeVar("T")

MIN_BATCH_SIZE = 2
MAX_BATCH_SIZE = 10
DEFAULT_BATCH_SIZE = 3
OUTPUT_RESERVE_TOKENS = 500


def compute_batch_size(
    tokens_per_ticket: Optional[int],
    budget: Optional[int],
    reserved: Optional[int]
) -> int:
    """
    ``clamp(floor((budget - reserved) / tokens_per_ticket), 2, 10)``.

    Falls back to the default of 3 when the inputs leave nothing to divide.
    """
    if not tokens_per_ticket or tokens_per_ticket <= 0 or budget is None or reserved is None:
        return DEFAULT_BATCH_SIZE
    available = budget - reserved
    if available <= 0:
        return DEFAULT_BATCH_SIZE
    raw = max(1, available // tokens_per_ticket)
    return max(MIN_BATCH_SIZE, min(MAX_BATCH_SIZE, raw))


def chunked(items: Sequence[T], size: int) -> Iterator[List[T]]:
    """Consecutive slices of ``items`` of at most ``size``."""
    size = max(1, size)
    for start in range(0, len(items), size):
        yield list(items[start:start + size])
