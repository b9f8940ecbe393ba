"""
Background Jobs for Community Trust.

This module contains scheduled and background jobs:
- monthly_bonus: Monthly active-user trust bonus
"""

from .monthly_bonus import grant_monthly_active_bonus, run_monthly_bonus_job

__all__ = ["grant_monthly_active_bonus", "run_monthly_bonus_job"]
