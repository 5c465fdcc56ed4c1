"""Text rendering for place social-proof lines."""

from __future__ import annotations

from placesync.schemas.places import BUCKETS, Bucket
from placesync.schemas.social_proof import SocialProofLine, SocialProofResult

INCENTIVE_TEXT = "Be the first to save this spot."
SELF_LABEL = "you"


def _others(count: int) -> str:
    return f"{count} other" if count == 1 else f"{count} others"


def build_line_text(count: int, friend_label: str | None) -> str:
    """Render one bucket line without the viewer."""

    if friend_label:
        if count <= 1:
            return friend_label
        return f"{friend_label} and {_others(count - 1)}"
    if count == 1:
        return "1 person"
    return f"{count} people"


def build_line_text_with_self(
    count: int, friend_label: str | None, *, include_self: bool
) -> str:
    """Render one bucket line, leading with ``"you"`` when ``include_self`` is set.

    >>> build_line_text_with_self(3, "@june", include_self=True)
    'you, @june and 1 other'
    >>> build_line_text_with_self(3, None, include_self=True)
    'you and 2 others'
    """

    if not include_self:
        return build_line_text(count, friend_label)

    parts = [SELF_LABEL]
    if friend_label and count > 1:
        parts.append(friend_label)
    remainder = count - len(parts)
    if remainder > 0:
        return f"{', '.join(parts)} and {_others(remainder)}"
    return " and ".join(parts)


def get_social_proof_lines(
    *,
    wishlist_count: int,
    favourite_count: int,
    wishlist_friend_label: str | None = None,
    favourite_friend_label: str | None = None,
    self_bucket: Bucket | None = None,
) -> SocialProofResult:
    counts = {"wishlist": wishlist_count, "favourite": favourite_count}
    labels = {"wishlist": wishlist_friend_label, "favourite": favourite_friend_label}

    lines: list[SocialProofLine] = []
    for bucket in BUCKETS:
        count = counts[bucket]
        if count <= 0:
            continue
        text = build_line_text_with_self(
            count, labels[bucket], include_self=self_bucket == bucket
        )
        lines.append(SocialProofLine(kind=bucket, text=text))

    if not lines:
        return SocialProofResult(lines=(), incentive=INCENTIVE_TEXT)
    return SocialProofResult(lines=tuple(lines), incentive=None)


__all__ = [
    "INCENTIVE_TEXT",
    "build_line_text",
    "build_line_text_with_self",
    "get_social_proof_lines",
]
