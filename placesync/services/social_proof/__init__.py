"""Social-proof components split by responsibility.

* ``formatting`` renders counts and friend labels into lines.
* ``transitions`` overlays the viewer's pending bucket change.
* ``attribution`` picks the followee to name per bucket.
* ``label_cache`` caches display labels in Redis.
* ``aggregator`` combines all of the above for one open place.
"""

from .aggregator import PlaceSocialProofAggregator
from .attribution import FriendAttributionResolver, format_user_label, pick_latest
from .formatting import (
    INCENTIVE_TEXT,
    build_line_text,
    build_line_text_with_self,
    get_social_proof_lines,
)
from .label_cache import CachedUserDirectory
from .transitions import TransitionOverlay, TransitionPhase

__all__ = [
    "CachedUserDirectory",
    "FriendAttributionResolver",
    "INCENTIVE_TEXT",
    "PlaceSocialProofAggregator",
    "TransitionOverlay",
    "TransitionPhase",
    "build_line_text",
    "build_line_text_with_self",
    "format_user_label",
    "get_social_proof_lines",
    "pick_latest",
]
