"""Reconciliation module for matching imported rows to the roster."""
from reconciler.roster_matcher import (
    RosterMatchResult,
    match_roster,
    reconcile_with_roster,
)

__all__ = ["RosterMatchResult", "match_roster", "reconcile_with_roster"]
