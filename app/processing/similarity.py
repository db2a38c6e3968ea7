"""Synthetic similarity score derived from a transform config.

This is a heuristic, not a perceptual measurement: it only reports how many
parameters moved noticeably away from identity.
"""

from app.processing.params import TransformConfig


# (threshold, penalty) per parameter; deviation is measured from identity
SPEED_RULE = (0.02, 8)
BRIGHTNESS_RULE = (0.02, 5)
CONTRAST_RULE = (0.02, 5)
SCALE_RULE = (0.01, 4)
FLIP_PENALTY = 10

# Reported scores always land in this band
MIN_SCORE = 50
MAX_SCORE = 70


def raw_similarity(config: TransformConfig) -> int:
    """Score before clamping: 100 minus penalties."""
    score = 100
    if abs(config.speed - 1) > SPEED_RULE[0]:
        score -= SPEED_RULE[1]
    if abs(config.brightness) > BRIGHTNESS_RULE[0]:
        score -= BRIGHTNESS_RULE[1]
    if abs(config.contrast - 1) > CONTRAST_RULE[0]:
        score -= CONTRAST_RULE[1]
    if config.flip:
        score -= FLIP_PENALTY
    if abs(config.scale - 1) > SCALE_RULE[0]:
        score -= SCALE_RULE[1]
    return score


def estimate_similarity(config: TransformConfig) -> int:
    return max(MIN_SCORE, min(MAX_SCORE, raw_similarity(config)))
