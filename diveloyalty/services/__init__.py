"""
Business logic services for the loyalty program.
"""
from .tier_calculator import Tier, TIER_LEVELS, calculate_tier, get_next_tier, required_yearly_points
from .yearly_check import YearlyLoyaltyCheck, compute_reductions, evaluate_profile
from .points_service import PointsService, POINT_RATES
from .rewards_summary import build_rewards_summary

__all__ = [
    'Tier',
    'TIER_LEVELS',
    'calculate_tier',
    'get_next_tier',
    'required_yearly_points',
    'YearlyLoyaltyCheck',
    'compute_reductions',
    'evaluate_profile',
    'PointsService',
    'POINT_RATES',
    'build_rewards_summary',
]
