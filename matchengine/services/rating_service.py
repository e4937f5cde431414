"""Translate match actions into Elo rating updates."""

from typing import Dict, Optional, Tuple, Union

from matchengine.models.match import MatchAction
from matchengine.models.rating import DEFAULT_RATING_CONFIG, RatingConfig
from matchengine.services.elo import dynamic_k_factor, expected_outcome, update_rating
from matchengine.utils.errors import InvalidActionError

# (viewer outcome, target outcome) per rated action
ACTION_OUTCOMES: Dict[MatchAction, Tuple[float, float]] = {
    MatchAction.LIKED: (1.0, 0.0),
    MatchAction.DISLIKED: (0.0, 1.0),
}


def parse_action(action: Union[MatchAction, str]) -> MatchAction:
    """
    Convert a raw action into a MatchAction.

    Raises:
        InvalidActionError: If the value is not a known action.
    """
    if isinstance(action, MatchAction):
        return action
    try:
        return MatchAction(action)
    except ValueError as e:
        raise InvalidActionError(
            f"Invalid match action: {action!r}",
            details={"action": str(action), "allowed": [a.value for a in MatchAction]},
        ) from e


def process_match_action(
    user_rating: int,
    target_rating: int,
    user_match_count: int,
    target_match_count: int,
    action: Union[MatchAction, str],
    config: Optional[RatingConfig] = None,
) -> Tuple[int, int]:
    """
    Compute both profiles' new ratings after one action.

    A like counts as a win for the viewer, a dislike as a win for the target.
    A pass is neutral and returns the ratings unchanged. Each side uses its
    own expected outcome and its own dynamic K-factor.

    Args:
        user_rating (int): Viewer's current rating.
        target_rating (int): Target's current rating.
        user_match_count (int): Viewer's rated interaction count.
        target_match_count (int): Target's rated interaction count.
        action (Union[MatchAction, str]): The action taken by the viewer.
        config (Optional[RatingConfig]): Base rating parameters; None uses defaults.

    Returns:
        Tuple[int, int]: (new viewer rating, new target rating).

    Raises:
        InvalidActionError: If the action is not liked, disliked or passed.
    """
    match_action = parse_action(action)
    if match_action == MatchAction.PASSED:
        return user_rating, target_rating

    base_config = config or DEFAULT_RATING_CONFIG
    user_outcome, target_outcome = ACTION_OUTCOMES[match_action]

    user_expected = expected_outcome(user_rating, target_rating)
    target_expected = expected_outcome(target_rating, user_rating)

    user_config = base_config.with_k_factor(dynamic_k_factor(user_rating, user_match_count))
    target_config = base_config.with_k_factor(dynamic_k_factor(target_rating, target_match_count))

    new_user_rating = update_rating(user_rating, user_expected, user_outcome, user_config)
    new_target_rating = update_rating(target_rating, target_expected, target_outcome, target_config)
    return new_user_rating, new_target_rating
