from nightowl.repositories.gamification_repository import (
    BadgeEvaluator,
    GamificationRepository,
    default_badge_evaluator,
)
