"""Parse several SPECTRO reports at once.

Each parse is self-contained, so files are handed to a thread pool and the
summaries come back in input order.
"""

import concurrent.futures
import logging
from typing import List, Optional, Sequence

from spectro_sum.source.core.parse_spectro import parse_spectro_output
from spectro_sum.source.core.summary import Summary

logger = logging.getLogger(__name__)


def summarize_many(
    paths: Sequence[str], max_workers: Optional[int] = None, **kwargs
) -> List[Summary]:
    """Parse every path; the first failing file raises its exception."""
    if not paths:
        return []
    with concurrent.futures.ThreadPoolExecutor(max_workers=max_workers) as ex:
        futures = [ex.submit(parse_spectro_output, p, **kwargs) for p in paths]
        results = []
        for path, fut in zip(paths, futures):
            try:
                results.append(fut.result())
            except Exception:
                logger.error(f"failed to summarize {path}")
                raise
    return results
