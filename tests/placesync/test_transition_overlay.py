"""Tests for the optimistic transition overlay state machine."""

from __future__ import annotations

from placesync.schemas.places import PlaceAggregate
from placesync.schemas.social_proof import Transition
from placesync.services.social_proof import TransitionOverlay, TransitionPhase


def _aggregate(wishlist: int, favourite: int = 0) -> PlaceAggregate:
    return PlaceAggregate(wishlist_count=wishlist, favourite_count=favourite)


def test_adding_to_wishlist_shows_immediately_and_settles_once() -> None:
    overlay = TransitionOverlay()
    overlay.begin(Transition(from_bucket="none", to_bucket="wishlist"), _aggregate(3))

    assert overlay.display_count("wishlist", 3) == 4
    assert overlay.observe(_aggregate(3)) is False
    assert overlay.display_count("wishlist", 3) == 4

    assert overlay.observe(_aggregate(4)) is True
    assert overlay.phase is TransitionPhase.SETTLED
    assert overlay.display_count("wishlist", 4) == 4
    assert overlay.observe(_aggregate(5)) is False


def test_baseline_taken_from_first_observation_when_unknown() -> None:
    overlay = TransitionOverlay()
    overlay.begin(Transition(from_bucket="wishlist", to_bucket="favourite"))

    assert overlay.observe(_aggregate(2, 1)) is False
    assert overlay.baseline == _aggregate(2, 1)
    assert overlay.display_count("wishlist", 2) == 1
    assert overlay.display_count("favourite", 1) == 2

    assert overlay.observe(_aggregate(1, 1)) is True


def test_removal_never_displays_negative_counts() -> None:
    overlay = TransitionOverlay()
    overlay.begin(Transition.model_validate({"from": "favourite", "to": "none"}), _aggregate(0, 0))

    assert overlay.display_count("favourite", 0) == 0
    assert overlay.effective_self_bucket("favourite") is None


def test_transition_without_net_change_settles_on_first_observation() -> None:
    overlay = TransitionOverlay()
    overlay.begin(Transition(from_bucket="wishlist", to_bucket="wishlist"), _aggregate(2))

    assert overlay.observe(_aggregate(2)) is True


def test_clear_returns_to_idle() -> None:
    overlay = TransitionOverlay()
    overlay.begin(Transition(from_bucket="none", to_bucket="favourite"), _aggregate(0))
    assert overlay.effective_self_bucket(None) == "favourite"

    overlay.clear()

    assert overlay.phase is TransitionPhase.IDLE
    assert overlay.display_count("favourite", 7) == 7
    assert overlay.observe(_aggregate(0, 1)) is False
    assert overlay.effective_self_bucket("wishlist") == "wishlist"
