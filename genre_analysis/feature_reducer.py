# feature_reducer.py

import logging
from typing import Iterable, List, Sequence

from .audio_feature_config import DEFAULT_EXCLUDED_FEATURES
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def reduce_features(features: Sequence[str],
                    excluded: Iterable[str] = DEFAULT_EXCLUDED_FEATURES) -> List[str]:
    """Drop the configured exclusion set from the feature list.

    The exclusion set comes from a prior correlation analysis and is never
    recomputed here. Input order is kept and duplicates are removed.
    """
    excluded = set(excluded)
    unique_features = list(dict.fromkeys(features))

    unknown = sorted(excluded - set(unique_features))
    if unknown:
        raise ConfigurationError(f"Excluded features not in feature list: {unknown}", stage='feature_reduction')

    reduced = [f for f in unique_features if f not in excluded]
    if not reduced:
        raise ConfigurationError("Exclusion set removes every feature", stage='feature_reduction')

    if excluded:
        logger.info(f"Excluded {sorted(excluded)}; {len(reduced)} features remain")
    return reduced
